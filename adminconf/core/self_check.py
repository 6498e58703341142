from __future__ import annotations

from collections.abc import Callable, Iterable
from copy import deepcopy
from typing import TypeVar

from adminconf.core.models import (
    ROLE_OWNER,
    ROLE_USER,
    AdminConfig,
    CategoryEntry,
    UserConfig,
    UserEntry,
)

T = TypeVar("T")


def _keep_first(items: Iterable[T], key_of: Callable[[T], str]) -> list[T]:
    seen: set[str] = set()
    out: list[T] = []
    for item in items:
        k = key_of(item)
        if k in seen:
            continue
        seen.add(k)
        out.append(item)
    return out


def _keep_last(items: Iterable[T], key_of: Callable[[T], str]) -> list[T]:
    # A key keeps the slot of its first occurrence but the value of its last one.
    out: dict[str, T] = {}
    for item in items:
        out[key_of(item)] = item
    return list(out.values())


def _single_owner(users: list[UserEntry], owner: str) -> list[UserEntry]:
    previous = next((u for u in users if u.username == owner), None)
    rest = [u for u in users if u.username != owner]
    for u in rest:
        if u.role == ROLE_OWNER:
            u.role = ROLE_USER
    fresh = UserEntry(
        username=owner,
        role=ROLE_OWNER,
        banned=False,
        enabled_apis=list(previous.enabled_apis) if previous and previous.enabled_apis is not None else None,
        tags=list(previous.tags) if previous and previous.tags is not None else None,
    )
    return [fresh, *rest]


def normalize(config: AdminConfig, *, owner: str) -> AdminConfig:
    """
    Self-check over a reconciled config. Returns a repaired copy; the input is not modified.

    Users and custom categories keep the first duplicate, sources and lives keep the last.
    The designated owner is always Users[0] and the only owner.
    """
    out = deepcopy(config)
    if not isinstance(out.user_config, UserConfig):
        out.user_config = UserConfig()
    if not isinstance(out.user_config.users, list):
        out.user_config.users = []
    if not isinstance(out.source_config, list):
        out.source_config = []
    if not isinstance(out.custom_categories, list):
        out.custom_categories = []
    if not isinstance(out.live_config, list):
        out.live_config = []

    users = _keep_first(out.user_config.users, lambda u: u.username)
    out.user_config.users = _single_owner(users, owner)

    out.source_config = _keep_last(out.source_config, lambda s: s.key)
    out.live_config = _keep_last(out.live_config, lambda lv: lv.key)

    out.custom_categories = _keep_first(out.custom_categories, lambda c: c.natural_key)
    return out


def check_invariants(config: AdminConfig, *, owner: str) -> list[str]:
    """List invariant violations; empty when the config is safe to serve."""
    problems: list[str] = []
    users = config.user_config.users
    if not users or users[0].username != owner or users[0].role != ROLE_OWNER:
        problems.append(f"owner {owner!r} is not the first user")
    owners = [u.username for u in users if u.role == ROLE_OWNER]
    if len(owners) != 1:
        problems.append(f"expected exactly one owner, found {owners!r}")

    checks: list[tuple[str, list[str]]] = [
        ("Users.username", [u.username for u in users]),
        ("SourceConfig.key", [s.key for s in config.source_config]),
        ("LiveConfig.key", [lv.key for lv in config.live_config]),
        ("CustomCategories.(query,type)", [_category_label(c) for c in config.custom_categories]),
    ]
    for label, keys in checks:
        dupes = sorted({k for k in keys if keys.count(k) > 1})
        if dupes:
            problems.append(f"duplicate {label}: {dupes!r}")
    return problems


def _category_label(c: CategoryEntry) -> str:
    return f"{c.query}/{c.type}"
