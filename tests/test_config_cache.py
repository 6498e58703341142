from __future__ import annotations

import json
import os
import tempfile
import unittest
from copy import deepcopy
from pathlib import Path

from adminconf.core.errors import (
    ADMINCFG_002_STORE_READ_FAILED,
    ADMINCFG_003_STORE_WRITE_FAILED,
    ADMINCFG_005_FILE_UNREADABLE,
    AdminStoreError,
)
from adminconf.core.models import (
    ORIGIN_CONFIG,
    ORIGIN_CUSTOM,
    ROLE_OWNER,
    AdminConfig,
    ConfigSubscription,
    SourceEntry,
    UserConfig,
    UserEntry,
)
from adminconf.services.admin_store import SQLAlchemyAdminStore
from adminconf.services.config_cache import STATE_EMPTY, STATE_POPULATED, AdminConfigCache, get_admin_config_cache
from adminconf.services.config_file import FileConfigSource
from adminconf.settings import get_settings


FILE = json.dumps(
    {
        "cache_time": 900,
        "api_site": {
            "a": {"name": "A", "api": "http://a"},
            "b": {"name": "B", "api": "http://b"},
        },
        "lives": {"l1": {"name": "Live", "url": "http://l1.m3u"}},
    }
)


class FakeStore:
    def __init__(self, config: AdminConfig | None = None, usernames: list[str] | None = None) -> None:
        self.config = deepcopy(config)
        self.usernames = list(usernames or [])
        self.reads = 0
        self.saved: list[AdminConfig] = []

    def get_admin_config(self) -> AdminConfig | None:
        self.reads += 1
        return deepcopy(self.config)

    def save_admin_config(self, config: AdminConfig) -> None:
        self.saved.append(deepcopy(config))
        self.config = deepcopy(config)

    def get_all_usernames(self) -> list[str]:
        return list(self.usernames)


class FailingStore:
    def get_admin_config(self) -> AdminConfig | None:
        raise AdminStoreError(ADMINCFG_002_STORE_READ_FAILED, "connection refused")

    def save_admin_config(self, config: AdminConfig) -> None:
        raise AdminStoreError(ADMINCFG_003_STORE_WRITE_FAILED, "connection refused")

    def get_all_usernames(self) -> list[str]:
        raise AdminStoreError(ADMINCFG_002_STORE_READ_FAILED, "connection refused")


class UnreachableStore:
    def get_admin_config(self) -> AdminConfig | None:
        raise ConnectionError("db down")

    def save_admin_config(self, config: AdminConfig) -> None:
        raise ConnectionError("db down")

    def get_all_usernames(self) -> list[str]:
        raise ConnectionError("db down")


class EnvMixin:
    def _set_env(self, **kwargs: str | None) -> dict[str, str | None]:
        old: dict[str, str | None] = {}
        for k, v in kwargs.items():
            old[k] = os.environ.get(k)
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v
        return old

    def _restore(self, old: dict[str, str | None]) -> None:
        for k, v in old.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v


class AdminConfigCacheTests(EnvMixin, unittest.TestCase):
    def setUp(self) -> None:
        old = self._set_env(USERNAME="root", CONFIG_FILE=None, SITE_NAME="Test Site")
        self.addCleanup(self._restore, old)
        self.settings = get_settings(Path("/nonexistent"))

    def _cache(self, store: object, raw: str | None = FILE) -> AdminConfigCache:
        return AdminConfigCache(store, settings=self.settings, file_source=lambda: raw)

    def test_bootstrap_when_store_is_empty(self) -> None:
        store = FakeStore(usernames=["alice", "root"])
        cache = self._cache(store)
        self.assertEqual(cache.state, STATE_EMPTY)
        cfg = cache.get_config()
        self.assertEqual(cache.state, STATE_POPULATED)
        self.assertEqual([(u.username, u.role) for u in cfg.user_config.users], [("root", ROLE_OWNER), ("alice", "user")])
        self.assertEqual(cfg.site_config.site_name, "Test Site")
        self.assertEqual(cfg.site_config.site_interface_cache_time, 900)
        self.assertEqual({s.key for s in cfg.source_config}, {"a", "b"})
        self.assertEqual(len(store.saved), 1)
        self.assertEqual(store.saved[0], cfg)

    def test_populated_cache_is_served_without_store_access(self) -> None:
        store = FakeStore()
        cache = self._cache(store)
        first = cache.get_config()
        second = cache.get_config()
        self.assertIs(first, second)
        self.assertEqual(store.reads, 1)
        self.assertEqual(len(store.saved), 1)

    def test_persisted_config_is_reconciled_against_current_file(self) -> None:
        persisted = AdminConfig(
            config_file="{}",
            user_config=UserConfig(users=[UserEntry(username="bob", role=ROLE_OWNER)]),
            source_config=[
                SourceEntry(key="a", name="Old", api="http://old", origin=ORIGIN_CUSTOM, disabled=True),
                SourceEntry(key="mine", name="Mine", api="http://mine", origin=ORIGIN_CONFIG),
            ],
        )
        cache = self._cache(FakeStore(persisted))
        cfg = cache.get_config()
        self.assertEqual(cfg.config_file, FILE)
        by_key = {s.key: s for s in cfg.source_config}
        self.assertEqual(set(by_key), {"a", "b", "mine"})
        self.assertEqual((by_key["a"].name, by_key["a"].origin, by_key["a"].disabled), ("A", ORIGIN_CONFIG, True))
        self.assertEqual(by_key["mine"].origin, ORIGIN_CUSTOM)
        self.assertEqual([(u.username, u.role) for u in cfg.user_config.users], [("root", ROLE_OWNER), ("bob", "user")])

    def test_unreadable_file_reuses_persisted_file_text(self) -> None:
        persisted = AdminConfig(
            config_file=FILE,
            source_config=[SourceEntry(key="a", name="Old", api="http://old", origin=ORIGIN_CUSTOM)],
        )
        cache = self._cache(FakeStore(persisted), raw=None)
        cfg = cache.get_config()
        self.assertEqual(cfg.config_file, FILE)
        self.assertEqual({s.key: s.origin for s in cfg.source_config}, {"a": ORIGIN_CONFIG, "b": ORIGIN_CONFIG})

    def test_store_failures_degrade_to_bootstrap(self) -> None:
        cache = self._cache(FailingStore())
        with self.assertLogs("adminconf.config_cache", level="ERROR") as logs:
            cfg = cache.get_config()
        self.assertEqual(cfg.user_config.users[0].username, "root")
        self.assertEqual({s.key for s in cfg.source_config}, {"a", "b"})
        self.assertEqual(cache.state, STATE_POPULATED)
        self.assertTrue(any(ADMINCFG_003_STORE_WRITE_FAILED.code in line for line in logs.output))

    def test_foreign_store_exceptions_degrade_to_bootstrap(self) -> None:
        cache = self._cache(UnreachableStore())
        with self.assertLogs("adminconf.config_cache", level="ERROR") as logs:
            cfg = cache.get_config()
            reset = cache.reset_config()
        self.assertEqual({s.key for s in cfg.source_config}, {"a", "b"})
        self.assertEqual([u.username for u in reset.user_config.users], ["root"])
        self.assertIs(cache.get_config(), reset)
        self.assertTrue(all("code=ConnectionError" in line for line in logs.output))

    def test_reset_rebuilds_from_file_and_keeps_subscription(self) -> None:
        sub = ConfigSubscription(url="http://sub/config.json", auto_update=True, last_check="2026-10-18T00:00:00Z")
        persisted = AdminConfig(
            config_file="{}",
            config_subscription=sub,
            source_config=[SourceEntry(key="mine", name="Mine", api="http://mine", origin=ORIGIN_CUSTOM)],
        )
        store = FakeStore(persisted, usernames=["alice"])
        cache = self._cache(store)
        cache.get_config()
        cfg = cache.reset_config()
        self.assertEqual(cfg.config_subscription, sub)
        self.assertEqual({s.key for s in cfg.source_config}, {"a", "b"})
        self.assertTrue(all(not s.disabled for s in cfg.source_config))
        self.assertEqual([u.username for u in cfg.user_config.users], ["root", "alice"])
        self.assertIs(cache.get_config(), cfg)
        self.assertEqual(store.config, cfg)

    def test_reset_without_file_uses_persisted_text(self) -> None:
        store = FakeStore(AdminConfig(config_file=FILE))
        cfg = self._cache(store, raw=None).reset_config()
        self.assertEqual({s.key for s in cfg.source_config}, {"a", "b"})

    def test_set_cached_config_does_not_touch_store(self) -> None:
        store = FakeStore()
        cache = self._cache(store)
        cache.get_config()
        newer = AdminConfig(source_config=[SourceEntry(key="x", name="X", api="http://x")])
        cache.set_cached_config(newer)
        self.assertIs(cache.get_config(), newer)
        self.assertEqual(len(store.saved), 1)
        self.assertEqual(store.reads, 1)

    def test_clear_forces_reload(self) -> None:
        store = FakeStore()
        cache = self._cache(store)
        cache.get_config()
        cache.clear()
        self.assertEqual(cache.state, STATE_EMPTY)
        cache.get_config()
        self.assertEqual(store.reads, 2)

    def test_update_config_file(self) -> None:
        store = FakeStore()
        cache = self._cache(store)
        cache.get_config()
        raw = json.dumps({"api_site": {"c": {"name": "C", "api": "http://c"}}})
        cfg = cache.update_config_file(raw)
        self.assertEqual(cfg.config_file, raw)
        self.assertEqual({s.key: s.origin for s in cfg.source_config}, {
            "a": ORIGIN_CUSTOM,
            "b": ORIGIN_CUSTOM,
            "c": ORIGIN_CONFIG,
        })
        self.assertEqual(store.config, cfg)

    def test_access_helpers(self) -> None:
        persisted = AdminConfig(
            config_file=FILE,
            user_config=UserConfig(users=[UserEntry(username="alice", enabled_apis=["b"])]),
        )
        cache = self._cache(FakeStore(persisted))
        self.assertEqual(cache.cache_time(), 7200)
        self.assertEqual([s.key for s in cache.available_sources("alice")], ["b"])
        self.assertEqual(sorted(s.key for s in cache.available_sources()), ["a", "b"])


class AdminConfigCacheSQLAlchemyTests(EnvMixin, unittest.TestCase):
    def test_admin_edits_survive_reload(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "config.json").write_text(FILE, encoding="utf-8")
            old = self._set_env(
                USERNAME="root",
                CONFIG_FILE=None,
                DATABASE_URL=f"sqlite:///{(root / 'data' / 'admin.db').as_posix()}",
            )
            self.addCleanup(self._restore, old)
            get_admin_config_cache.cache_clear()
            self.addCleanup(get_admin_config_cache.cache_clear)

            cache = get_admin_config_cache(root)
            self.assertIs(get_admin_config_cache(root), cache)
            self.assertIsInstance(cache.file_source, FileConfigSource)
            cfg = cache.get_config()
            self.assertEqual(cfg.user_config.users[0].username, "root")

            cfg.source_config[0].disabled = True
            cfg.source_config.append(SourceEntry(key="manual", name="Manual", api="http://manual", origin=ORIGIN_CUSTOM))
            cache.store.save_admin_config(cfg)
            cache.store.register_user("alice")

            other = AdminConfigCache(
                SQLAlchemyAdminStore(root),
                settings=get_settings(root),
                file_source=FileConfigSource(root / "config.json"),
            )
            reloaded = other.get_config()
            by_key = {s.key: s for s in reloaded.source_config}
            self.assertTrue(by_key["a"].disabled)
            self.assertEqual(by_key["a"].origin, ORIGIN_CONFIG)
            self.assertEqual(by_key["manual"].origin, ORIGIN_CUSTOM)
            self.assertEqual([s.key for s in other.available_sources()], ["b", "manual"])

            reset = other.reset_config()
            self.assertEqual({s.key for s in reset.source_config}, {"a", "b"})
            self.assertEqual([u.username for u in reset.user_config.users], ["root", "alice"])

    def test_unreachable_database_degrades_to_bootstrap(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "config.json").write_text(FILE, encoding="utf-8")
            (root / "blocker").write_text("not a directory", encoding="utf-8")
            old = self._set_env(
                USERNAME="root",
                CONFIG_FILE=None,
                DATABASE_URL=f"sqlite:///{(root / 'blocker' / 'data' / 'admin.db').as_posix()}",
            )
            self.addCleanup(self._restore, old)
            get_admin_config_cache.cache_clear()
            self.addCleanup(get_admin_config_cache.cache_clear)

            cache = get_admin_config_cache(root)
            with self.assertLogs("adminconf.config_cache", level="ERROR") as logs:
                cfg = cache.get_config()
            self.assertEqual(cfg.user_config.users[0].username, "root")
            self.assertEqual({s.key for s in cfg.source_config}, {"a", "b"})
            self.assertEqual(cache.state, STATE_POPULATED)
            self.assertTrue(any(ADMINCFG_002_STORE_READ_FAILED.code in line for line in logs.output))
            self.assertTrue(any(ADMINCFG_003_STORE_WRITE_FAILED.code in line for line in logs.output))

    def test_default_cache_is_keyed_on_resolved_root(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            db_file = Path(td) / "admin.db"
            old = self._set_env(USERNAME="root", DATABASE_URL=f"sqlite:///{db_file.as_posix()}")
            self.addCleanup(self._restore, old)
            get_admin_config_cache.cache_clear()
            self.addCleanup(get_admin_config_cache.cache_clear)

            cache = get_admin_config_cache()
            self.assertIs(get_admin_config_cache(Path.cwd()), cache)
            self.assertIs(get_admin_config_cache(Path(".")), cache)
            self.assertFalse(db_file.exists())

    def test_undecodable_file_is_logged_and_degrades(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "config.json"
            path.write_bytes(b'{"api_site": {"a": {"name": "\xff", "api": "http://a"}}}')
            source = FileConfigSource(path)
            with self.assertLogs("adminconf.config_file", level="ERROR") as logs:
                self.assertIsNone(source())
            self.assertIn(ADMINCFG_005_FILE_UNREADABLE.code, logs.output[0])

            old = self._set_env(USERNAME="root")
            self.addCleanup(self._restore, old)
            store = FakeStore()
            cache = AdminConfigCache(store, settings=get_settings(Path(td)), file_source=source)
            with self.assertLogs("adminconf.config_file", level="ERROR"):
                cfg = cache.get_config()
            self.assertEqual(cfg.source_config, [])
            self.assertEqual(cfg.user_config.users[0].username, "root")
            self.assertEqual(store.config, cfg)

    def test_missing_file_is_logged_and_empty(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            source = FileConfigSource(Path(td) / "missing.json")
            with self.assertLogs("adminconf.config_file", level="ERROR"):
                self.assertIsNone(source())


class SettingsTests(EnvMixin, unittest.TestCase):
    def test_defaults_and_overrides(self) -> None:
        old = self._set_env(
            USERNAME=None,
            CONFIG_FILE="/etc/moontv/config.json",
            SEARCH_MAX_PAGE="abc",
            FLUID_SEARCH="false",
            DISABLE_YELLOW_FILTER="true",
        )
        self.addCleanup(self._restore, old)
        s = get_settings(Path("/srv/app"))
        self.assertEqual(s.owner_username, "admin")
        self.assertFalse(s.owner_configured)
        self.assertEqual(s.config_file_path, Path("/etc/moontv/config.json"))
        site = s.site_defaults()
        self.assertEqual(site.search_downstream_max_page, 5)
        self.assertFalse(site.fluid_search)
        self.assertTrue(site.disable_yellow_filter)


if __name__ == "__main__":
    unittest.main()
