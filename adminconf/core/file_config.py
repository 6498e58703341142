from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import yaml

from adminconf.core.errors import ADMINCFG_001_FILE_PARSE_FAILED
from adminconf.core.models import CATEGORY_TYPES, category_key


_logger = logging.getLogger("adminconf.file_config")


@dataclass(frozen=True)
class FileSite:
    name: str
    api: str
    detail: str | None = None


@dataclass(frozen=True)
class FileCategory:
    type: str
    query: str
    name: str | None = None

    @property
    def natural_key(self) -> str:
        return category_key(self.query, self.type)


@dataclass(frozen=True)
class FileLive:
    name: str
    url: str
    ua: str | None = None
    epg: str | None = None


@dataclass
class FileConfig:
    cache_time: int | None = None
    api_site: dict[str, FileSite] = field(default_factory=dict)
    custom_category: list[FileCategory] = field(default_factory=list)
    lives: dict[str, FileLive] = field(default_factory=dict)

    def source_keys(self) -> set[str]:
        return set(self.api_site)

    def category_keys(self) -> set[str]:
        return {c.natural_key for c in self.custom_category}

    def live_keys(self) -> set[str]:
        return set(self.lives)

    def is_empty(self) -> bool:
        return not (self.api_site or self.custom_category or self.lives)


def _opt_str(v: Any) -> str | None:
    return None if v is None else str(v)


def _decode(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return yaml.safe_load(raw)


def _parse_sites(obj: Any) -> dict[str, FileSite]:
    out: dict[str, FileSite] = {}
    if not isinstance(obj, dict):
        return out
    for key, body in obj.items():
        if not isinstance(body, dict):
            continue
        out[str(key)] = FileSite(
            name=str(body.get("name") or ""),
            api=str(body.get("api") or ""),
            detail=_opt_str(body.get("detail")),
        )
    return out


def _parse_categories(obj: Any) -> list[FileCategory]:
    out: list[FileCategory] = []
    if not isinstance(obj, list):
        return out
    for row in obj:
        if not isinstance(row, dict) or row.get("query") is None:
            continue
        type_ = str(row.get("type") or "").strip()
        if type_ not in CATEGORY_TYPES:
            continue
        out.append(FileCategory(type=type_, query=str(row.get("query")), name=_opt_str(row.get("name")) or None))
    return out


def _parse_lives(obj: Any) -> dict[str, FileLive]:
    out: dict[str, FileLive] = {}
    if not isinstance(obj, dict):
        return out
    for key, body in obj.items():
        if not isinstance(body, dict):
            continue
        out[str(key)] = FileLive(
            name=str(body.get("name") or ""),
            url=str(body.get("url") or ""),
            ua=_opt_str(body.get("ua")),
            epg=_opt_str(body.get("epg")),
        )
    return out


def parse_config_file(raw: str | None) -> FileConfig:
    """Parse declarative config text. Never raises; unusable input yields an empty FileConfig."""
    text = (raw or "").strip()
    if not text:
        return FileConfig()
    try:
        obj = _decode(text)
    except Exception as e:
        _logger.warning("%s error=%s", ADMINCFG_001_FILE_PARSE_FAILED.code, e)
        return FileConfig()
    if not isinstance(obj, dict):
        _logger.warning("%s error=top-level must be object, got %s", ADMINCFG_001_FILE_PARSE_FAILED.code, type(obj).__name__)
        return FileConfig()

    cache_time: int | None
    try:
        cache_time = int(obj["cache_time"]) if obj.get("cache_time") is not None else None
    except (TypeError, ValueError, OverflowError):
        cache_time = None

    return FileConfig(
        cache_time=cache_time,
        api_site=_parse_sites(obj.get("api_site")),
        custom_category=_parse_categories(obj.get("custom_category")),
        lives=_parse_lives(obj.get("lives")),
    )
