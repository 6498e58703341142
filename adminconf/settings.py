from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from adminconf.core.models import SiteConfig


DEFAULT_OWNER = "admin"
DEFAULT_CONFIG_FILE_NAME = "config.json"
DEFAULT_ANNOUNCEMENT = (
    "This site only provides search over film and TV metadata; all content comes from third-party sites. "
    "No video resources are stored here, and no responsibility is taken for the accuracy, legality or "
    "completeness of any content."
)


@dataclass(frozen=True)
class AdminSettings:
    owner_username: str
    owner_configured: bool
    config_file_path: Path
    site_name: str
    announcement: str
    search_max_page: int
    douban_proxy_type: str
    douban_proxy: str
    douban_image_proxy_type: str
    douban_image_proxy: str
    disable_yellow_filter: bool
    fluid_search: bool

    def site_defaults(self) -> SiteConfig:
        return SiteConfig(
            site_name=self.site_name,
            announcement=self.announcement,
            search_downstream_max_page=self.search_max_page,
            douban_proxy_type=self.douban_proxy_type,
            douban_proxy=self.douban_proxy,
            douban_image_proxy_type=self.douban_image_proxy_type,
            douban_image_proxy=self.douban_image_proxy,
            disable_yellow_filter=self.disable_yellow_filter,
            fluid_search=self.fluid_search,
        )


def _env(name: str, default: str = "") -> str:
    return str(os.environ.get(name, "")).strip() or default


def _safe_int(v: str, default: int) -> int:
    try:
        return int(v) or int(default)
    except Exception:
        return int(default)


def get_settings(project_root: Path | None = None) -> AdminSettings:
    root = project_root or Path.cwd()
    owner = _env("USERNAME")
    config_file = _env("CONFIG_FILE")
    return AdminSettings(
        owner_username=owner or DEFAULT_OWNER,
        owner_configured=bool(owner),
        config_file_path=Path(config_file) if config_file else root / DEFAULT_CONFIG_FILE_NAME,
        site_name=_env("SITE_NAME", "MoonTV"),
        announcement=_env("ANNOUNCEMENT", DEFAULT_ANNOUNCEMENT),
        search_max_page=_safe_int(_env("SEARCH_MAX_PAGE"), 5),
        douban_proxy_type=_env("DOUBAN_PROXY_TYPE", "cmliussss-cdn-tencent"),
        douban_proxy=_env("DOUBAN_PROXY"),
        douban_image_proxy_type=_env("DOUBAN_IMAGE_PROXY_TYPE", "cmliussss-cdn-tencent"),
        douban_image_proxy=_env("DOUBAN_IMAGE_PROXY"),
        disable_yellow_filter=_env("DISABLE_YELLOW_FILTER").lower() == "true",
        fluid_search=_env("FLUID_SEARCH").lower() != "false",
    )
