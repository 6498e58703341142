from __future__ import annotations

import logging
from pathlib import Path

from adminconf.core.errors import ADMINCFG_005_FILE_UNREADABLE


_logger = logging.getLogger("adminconf.config_file")


class FileConfigSource:
    """Reads the operator-edited declarative file from disk."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def __call__(self) -> str | None:
        return self.read()

    def read(self) -> str | None:
        try:
            return self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            _logger.error("%s path=%s error=%s", ADMINCFG_005_FILE_UNREADABLE.code, self.path, e)
            return None
