from __future__ import annotations

from adminconf.core.models import DEFAULT_CACHE_TIME, AdminConfig, SourceEntry


def available_sources(config: AdminConfig, username: str | None = None) -> list[SourceEntry]:
    """
    Enabled sources a user may query.

    Precedence: explicit enabledApis allow-list, then the union of the user's tags
    (only when non-empty), then every enabled source. Anonymous and unknown users
    see every enabled source.
    """
    enabled = [s for s in config.source_config if not s.disabled]
    if not username:
        return enabled

    user = config.user_config.find_user(username)
    if user is None:
        return enabled

    if user.enabled_apis:
        allowed = set(user.enabled_apis)
        return [s for s in enabled if s.key in allowed]

    if user.tags and config.user_config.tags:
        from_tags: set[str] = set()
        for tag_name in user.tags:
            tag = config.user_config.find_tag(tag_name)
            if tag is not None:
                from_tags.update(tag.enabled_apis)
        if from_tags:
            return [s for s in enabled if s.key in from_tags]

    return enabled


def cache_time(config: AdminConfig) -> int:
    return config.site_config.site_interface_cache_time or DEFAULT_CACHE_TIME
