from __future__ import annotations

import logging
from collections.abc import Callable
from functools import lru_cache
from pathlib import Path
from typing import Any

from adminconf.core.access import available_sources, cache_time
from adminconf.core.errors import AdminStoreError
from adminconf.core.models import AdminConfig, ConfigSubscription, SourceEntry
from adminconf.core.reconcile import apply_config_file, bootstrap_config
from adminconf.core.self_check import normalize
from adminconf.services.admin_store import SQLAlchemyAdminStore
from adminconf.services.config_file import FileConfigSource
from adminconf.settings import AdminSettings, get_settings


STATE_EMPTY = "empty"
STATE_POPULATED = "populated"


def _error_code(e: Exception) -> str:
    return e.err.code if isinstance(e, AdminStoreError) else type(e).__name__


class AdminConfigCache:
    """
    Process-lifetime, single-slot cache of the normalized AdminConfig.

    `store` needs get_admin_config(), save_admin_config(config) and get_all_usernames();
    `file_source` returns the declarative file text, or None when it cannot be read.
    Store failures are logged and degrade to bootstrap / in-memory-only caching.
    """

    def __init__(
        self,
        store: Any,
        *,
        settings: AdminSettings,
        file_source: Callable[[], str | None],
    ) -> None:
        self.store = store
        self.settings = settings
        self.file_source = file_source
        self._cached: AdminConfig | None = None
        self._logger = logging.getLogger("adminconf.config_cache")
        if not settings.owner_configured:
            self._logger.warning("owner identity not configured; using default owner=%s", settings.owner_username)

    @property
    def state(self) -> str:
        return STATE_POPULATED if self._cached is not None else STATE_EMPTY

    @property
    def owner(self) -> str:
        return self.settings.owner_username

    def _read_persisted(self) -> AdminConfig | None:
        try:
            return self.store.get_admin_config()
        except Exception as e:
            self._logger.error("admin config read failed code=%s error=%s", _error_code(e), e)
            return None

    def _persist(self, config: AdminConfig) -> None:
        try:
            self.store.save_admin_config(config)
        except Exception as e:
            self._logger.error(
                "admin config write failed code=%s error=%s; serving from memory only", _error_code(e), e
            )

    def _usernames(self) -> list[str]:
        try:
            return list(self.store.get_all_usernames())
        except Exception as e:
            self._logger.error("username listing failed code=%s error=%s", _error_code(e), e)
            return []

    def _bootstrap(self, raw: str, subscription: ConfigSubscription | None = None) -> AdminConfig:
        return bootstrap_config(
            raw,
            site=self.settings.site_defaults(),
            usernames=self._usernames(),
            owner=self.owner,
            subscription=subscription,
        )

    def get_config(self) -> AdminConfig:
        if self._cached is not None:
            return self._cached

        persisted = self._read_persisted()
        raw = self.file_source()
        if persisted is None:
            self._logger.info("no persisted admin config; bootstrapping from file")
            config = self._bootstrap(raw if raw is not None else "")
        else:
            config = apply_config_file(persisted, raw if raw is not None else persisted.config_file)

        config = normalize(config, owner=self.owner)
        self._cached = config
        self._persist(config)
        return config

    def reset_config(self) -> AdminConfig:
        previous = self._read_persisted()
        raw = self.file_source()
        if raw is None:
            raw = previous.config_file if previous is not None else ""
        subscription = previous.config_subscription if previous is not None else None
        config = normalize(self._bootstrap(raw, subscription), owner=self.owner)
        self._cached = config
        self._persist(config)
        return config

    def update_config_file(self, raw: str) -> AdminConfig:
        config = normalize(apply_config_file(self.get_config(), raw), owner=self.owner)
        self._cached = config
        self._persist(config)
        return config

    def set_cached_config(self, config: AdminConfig) -> None:
        self._cached = config

    def clear(self) -> None:
        self._cached = None

    def cache_time(self) -> int:
        return cache_time(self.get_config())

    def available_sources(self, username: str | None = None) -> list[SourceEntry]:
        return available_sources(self.get_config(), username)


@lru_cache
def _cache_for_root(root: Path) -> AdminConfigCache:
    settings = get_settings(root)
    return AdminConfigCache(
        SQLAlchemyAdminStore(root, auto_init=False),
        settings=settings,
        file_source=FileConfigSource(settings.config_file_path),
    )


def get_admin_config_cache(project_root: Path | None = None) -> AdminConfigCache:
    return _cache_for_root((project_root or Path.cwd()).resolve())


get_admin_config_cache.cache_clear = _cache_for_root.cache_clear  # type: ignore[attr-defined]
