"""
Admin configuration data model.

Every dataclass round-trips through the JSON shape persisted in the admin store
(`to_dict` / `from_dict`). `from_dict` is tolerant: wrong types fall back to
defaults and unusable collection members are dropped, never raised on.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

ORIGIN_CONFIG = "config"
ORIGIN_CUSTOM = "custom"

ROLE_OWNER = "owner"
ROLE_USER = "user"

CATEGORY_TYPES = ("movie", "tv")

DEFAULT_CACHE_TIME = 7200


def _str(v: Any, default: str = "") -> str:
    if v is None:
        return default
    return str(v)


def _opt_str(v: Any) -> str | None:
    if v is None:
        return None
    return str(v)


def _bool(v: Any, default: bool = False) -> bool:
    if v is None:
        return default
    if isinstance(v, str):
        return v.strip().lower() in {"1", "true", "yes", "y", "on"}
    return bool(v)


def _int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _str_list(v: Any) -> list[str] | None:
    if not isinstance(v, list):
        return None
    return [str(x) for x in v if x is not None]


def _drop_none(d: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


@dataclass
class SourceEntry:
    key: str
    name: str
    api: str
    detail: str | None = None
    origin: str = ORIGIN_CONFIG
    disabled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "key": self.key,
                "name": self.name,
                "api": self.api,
                "detail": self.detail,
                "from": self.origin,
                "disabled": self.disabled,
            }
        )

    @classmethod
    def from_dict(cls, obj: Any) -> SourceEntry | None:
        if not isinstance(obj, dict) or not _str(obj.get("key")).strip():
            return None
        return cls(
            key=_str(obj.get("key")),
            name=_str(obj.get("name")),
            api=_str(obj.get("api")),
            detail=_opt_str(obj.get("detail")),
            origin=_str(obj.get("from"), ORIGIN_CUSTOM),
            disabled=_bool(obj.get("disabled")),
        )


@dataclass
class CategoryEntry:
    name: str
    type: str
    query: str
    origin: str = ORIGIN_CONFIG
    disabled: bool = False

    @property
    def natural_key(self) -> str:
        return category_key(self.query, self.type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "query": self.query,
            "from": self.origin,
            "disabled": self.disabled,
        }

    @classmethod
    def from_dict(cls, obj: Any) -> CategoryEntry | None:
        if not isinstance(obj, dict) or obj.get("query") is None:
            return None
        query = _str(obj.get("query"))
        return cls(
            name=_str(obj.get("name"), query),
            type=_str(obj.get("type")),
            query=query,
            origin=_str(obj.get("from"), ORIGIN_CUSTOM),
            disabled=_bool(obj.get("disabled")),
        )


def category_key(query: str, type_: str) -> str:
    return f"{query}{type_}"


@dataclass
class LiveEntry:
    key: str
    name: str
    url: str
    ua: str | None = None
    epg: str | None = None
    channel_number: int = 0
    origin: str = ORIGIN_CONFIG
    disabled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "key": self.key,
                "name": self.name,
                "url": self.url,
                "ua": self.ua,
                "epg": self.epg,
                "channelNumber": self.channel_number,
                "from": self.origin,
                "disabled": self.disabled,
            }
        )

    @classmethod
    def from_dict(cls, obj: Any) -> LiveEntry | None:
        if not isinstance(obj, dict) or not _str(obj.get("key")).strip():
            return None
        return cls(
            key=_str(obj.get("key")),
            name=_str(obj.get("name")),
            url=_str(obj.get("url")),
            ua=_opt_str(obj.get("ua")),
            epg=_opt_str(obj.get("epg")),
            channel_number=_int(obj.get("channelNumber"), 0),
            origin=_str(obj.get("from"), ORIGIN_CUSTOM),
            disabled=_bool(obj.get("disabled")),
        )


@dataclass
class UserEntry:
    username: str
    role: str = ROLE_USER
    banned: bool = False
    enabled_apis: list[str] | None = None
    tags: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "username": self.username,
                "role": self.role,
                "banned": self.banned,
                "enabledApis": list(self.enabled_apis) if self.enabled_apis is not None else None,
                "tags": list(self.tags) if self.tags is not None else None,
            }
        )

    @classmethod
    def from_dict(cls, obj: Any) -> UserEntry | None:
        if not isinstance(obj, dict) or not _str(obj.get("username")).strip():
            return None
        role = _str(obj.get("role"), ROLE_USER)
        return cls(
            username=_str(obj.get("username")),
            role=role if role in (ROLE_OWNER, ROLE_USER) else ROLE_USER,
            banned=_bool(obj.get("banned")),
            enabled_apis=_str_list(obj.get("enabledApis")),
            tags=_str_list(obj.get("tags")),
        )


@dataclass
class TagEntry:
    name: str
    enabled_apis: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "enabledApis": list(self.enabled_apis)}

    @classmethod
    def from_dict(cls, obj: Any) -> TagEntry | None:
        if not isinstance(obj, dict) or not _str(obj.get("name")).strip():
            return None
        return cls(name=_str(obj.get("name")), enabled_apis=_str_list(obj.get("enabledApis")) or [])


@dataclass
class UserConfig:
    users: list[UserEntry] = field(default_factory=list)
    tags: list[TagEntry] | None = None

    def find_user(self, username: str) -> UserEntry | None:
        for u in self.users:
            if u.username == username:
                return u
        return None

    def find_tag(self, name: str) -> TagEntry | None:
        for t in self.tags or []:
            if t.name == name:
                return t
        return None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"Users": [u.to_dict() for u in self.users]}
        if self.tags is not None:
            out["Tags"] = [t.to_dict() for t in self.tags]
        return out

    @classmethod
    def from_dict(cls, obj: Any) -> UserConfig:
        if not isinstance(obj, dict):
            return cls()
        tags_raw = obj.get("Tags")
        tags = _entries(tags_raw, TagEntry) if isinstance(tags_raw, list) else None
        return cls(users=_entries(obj.get("Users"), UserEntry), tags=tags)


@dataclass
class SiteConfig:
    site_name: str = "MoonTV"
    announcement: str = ""
    search_downstream_max_page: int = 5
    site_interface_cache_time: int = DEFAULT_CACHE_TIME
    douban_proxy_type: str = "cmliussss-cdn-tencent"
    douban_proxy: str = ""
    douban_image_proxy_type: str = "cmliussss-cdn-tencent"
    douban_image_proxy: str = ""
    disable_yellow_filter: bool = False
    fluid_search: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "SiteName": self.site_name,
            "Announcement": self.announcement,
            "SearchDownstreamMaxPage": self.search_downstream_max_page,
            "SiteInterfaceCacheTime": self.site_interface_cache_time,
            "DoubanProxyType": self.douban_proxy_type,
            "DoubanProxy": self.douban_proxy,
            "DoubanImageProxyType": self.douban_image_proxy_type,
            "DoubanImageProxy": self.douban_image_proxy,
            "DisableYellowFilter": self.disable_yellow_filter,
            "FluidSearch": self.fluid_search,
        }

    @classmethod
    def from_dict(cls, obj: Any) -> SiteConfig:
        if not isinstance(obj, dict):
            return cls()
        d = cls()
        return cls(
            site_name=_str(obj.get("SiteName"), d.site_name),
            announcement=_str(obj.get("Announcement"), d.announcement),
            search_downstream_max_page=_int(obj.get("SearchDownstreamMaxPage"), d.search_downstream_max_page),
            site_interface_cache_time=_int(obj.get("SiteInterfaceCacheTime"), d.site_interface_cache_time),
            douban_proxy_type=_str(obj.get("DoubanProxyType"), d.douban_proxy_type),
            douban_proxy=_str(obj.get("DoubanProxy"), d.douban_proxy),
            douban_image_proxy_type=_str(obj.get("DoubanImageProxyType"), d.douban_image_proxy_type),
            douban_image_proxy=_str(obj.get("DoubanImageProxy"), d.douban_image_proxy),
            disable_yellow_filter=_bool(obj.get("DisableYellowFilter"), d.disable_yellow_filter),
            fluid_search=_bool(obj.get("FluidSearch"), d.fluid_search),
        )


@dataclass
class ConfigSubscription:
    url: str = ""
    auto_update: bool = False
    last_check: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"URL": self.url, "AutoUpdate": self.auto_update, "LastCheck": self.last_check}

    @classmethod
    def from_dict(cls, obj: Any) -> ConfigSubscription:
        if not isinstance(obj, dict):
            return cls()
        return cls(
            url=_str(obj.get("URL")),
            auto_update=_bool(obj.get("AutoUpdate")),
            last_check=_str(obj.get("LastCheck")),
        )


@dataclass
class AdminConfig:
    config_file: str = ""
    config_subscription: ConfigSubscription = field(default_factory=ConfigSubscription)
    site_config: SiteConfig = field(default_factory=SiteConfig)
    user_config: UserConfig = field(default_factory=UserConfig)
    source_config: list[SourceEntry] = field(default_factory=list)
    custom_categories: list[CategoryEntry] = field(default_factory=list)
    live_config: list[LiveEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ConfigFile": self.config_file,
            "ConfigSubscription": self.config_subscription.to_dict(),
            "SiteConfig": self.site_config.to_dict(),
            "UserConfig": self.user_config.to_dict(),
            "SourceConfig": [s.to_dict() for s in self.source_config],
            "CustomCategories": [c.to_dict() for c in self.custom_categories],
            "LiveConfig": [lv.to_dict() for lv in self.live_config],
        }

    @classmethod
    def from_dict(cls, obj: Any) -> AdminConfig | None:
        if not isinstance(obj, dict):
            return None
        sub = obj.get("ConfigSubscription", obj.get("ConfigSubscribtion"))
        return cls(
            config_file=_str(obj.get("ConfigFile")),
            config_subscription=ConfigSubscription.from_dict(sub),
            site_config=SiteConfig.from_dict(obj.get("SiteConfig")),
            user_config=UserConfig.from_dict(obj.get("UserConfig")),
            source_config=_entries(obj.get("SourceConfig"), SourceEntry),
            custom_categories=_entries(obj.get("CustomCategories"), CategoryEntry),
            live_config=_entries(obj.get("LiveConfig"), LiveEntry),
        )


def _entries(raw: Any, cls: Any) -> list[Any]:
    if not isinstance(raw, list):
        return []
    out = []
    for item in raw:
        entry = cls.from_dict(item)
        if entry is not None:
            out.append(entry)
    return out
