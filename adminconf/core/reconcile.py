"""
Folds the declarative config file into a persisted AdminConfig.

Sources, custom categories and live channels share one merge routine,
`reconcile_by_key`, parameterised by natural-key extraction. Provenance
(`origin`) is recomputed from the current file on every call; `disabled` is
never touched for existing entries.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from adminconf.core.file_config import FileCategory, FileConfig, FileLive, FileSite, parse_config_file
from adminconf.core.models import (
    DEFAULT_CACHE_TIME,
    ORIGIN_CONFIG,
    ORIGIN_CUSTOM,
    ROLE_OWNER,
    ROLE_USER,
    AdminConfig,
    CategoryEntry,
    ConfigSubscription,
    LiveEntry,
    SiteConfig,
    SourceEntry,
    UserConfig,
    UserEntry,
)

E = TypeVar("E")
D = TypeVar("D")


def reconcile_by_key(
    current: Iterable[E],
    declared: Iterable[tuple[str, D]],
    key_of: Callable[[E], str],
    update: Callable[[E, D], None],
    create: Callable[[str, D], E],
    set_origin: Callable[[E, str], None] | None = None,
) -> list[E]:
    mark = set_origin or _set_origin
    index: dict[str, E] = {key_of(e): e for e in current}
    declared_keys: set[str] = set()
    for key, item in declared:
        declared_keys.add(key)
        existing = index.get(key)
        if existing is not None:
            update(existing, item)
            mark(existing, ORIGIN_CONFIG)
        else:
            index[key] = create(key, item)
    for key, entry in index.items():
        if key not in declared_keys:
            mark(entry, ORIGIN_CUSTOM)
    return list(index.values())


def _set_origin(entry: Any, origin: str) -> None:
    entry.origin = origin


def _update_source(entry: SourceEntry, site: FileSite) -> None:
    entry.name = site.name
    entry.api = site.api
    entry.detail = site.detail


def _create_source(key: str, site: FileSite) -> SourceEntry:
    return SourceEntry(key=key, name=site.name, api=site.api, detail=site.detail, origin=ORIGIN_CONFIG, disabled=False)


def _update_category(entry: CategoryEntry, cat: FileCategory) -> None:
    entry.name = cat.name or cat.query
    entry.query = cat.query
    entry.type = cat.type


def _create_category(_key: str, cat: FileCategory) -> CategoryEntry:
    return CategoryEntry(name=cat.name or cat.query, type=cat.type, query=cat.query, origin=ORIGIN_CONFIG, disabled=False)


def _update_live(entry: LiveEntry, live: FileLive) -> None:
    entry.name = live.name
    entry.url = live.url
    entry.ua = live.ua
    entry.epg = live.epg


def _create_live(key: str, live: FileLive) -> LiveEntry:
    return LiveEntry(
        key=key,
        name=live.name,
        url=live.url,
        ua=live.ua,
        epg=live.epg,
        channel_number=0,
        origin=ORIGIN_CONFIG,
        disabled=False,
    )


def reconcile(current: AdminConfig, file_config: FileConfig | str | None) -> AdminConfig:
    if not isinstance(file_config, FileConfig):
        file_config = parse_config_file(file_config)

    current.source_config = reconcile_by_key(
        current.source_config or [],
        file_config.api_site.items(),
        key_of=lambda s: s.key,
        update=_update_source,
        create=_create_source,
    )
    current.custom_categories = reconcile_by_key(
        current.custom_categories or [],
        ((c.natural_key, c) for c in file_config.custom_category),
        key_of=lambda c: c.natural_key,
        update=_update_category,
        create=_create_category,
    )
    current.live_config = reconcile_by_key(
        current.live_config or [],
        file_config.lives.items(),
        key_of=lambda lv: lv.key,
        update=_update_live,
        create=_create_live,
    )
    return current


def apply_config_file(config: AdminConfig, raw: str) -> AdminConfig:
    config.config_file = raw
    return reconcile(config, raw)


def bootstrap_config(
    raw: str,
    *,
    site: SiteConfig,
    usernames: Iterable[str],
    owner: str,
    subscription: ConfigSubscription | None = None,
) -> AdminConfig:
    file_config = parse_config_file(raw)
    site_config = SiteConfig(**vars(site))
    site_config.site_interface_cache_time = file_config.cache_time or DEFAULT_CACHE_TIME

    users = [UserEntry(username=owner, role=ROLE_OWNER, banned=False)]
    users.extend(UserEntry(username=u, role=ROLE_USER, banned=False) for u in usernames if u != owner)

    config = AdminConfig(
        config_file=raw,
        config_subscription=subscription or ConfigSubscription(),
        site_config=site_config,
        user_config=UserConfig(users=users),
    )
    return reconcile(config, file_config)
