"""Plugin and block discovery collaborators with a TTL cache."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import TYPE_CHECKING

from .cache import DEFAULT_TTL_SECONDS, TTLCache
from .http import RestDiscovery, features_from_supports
from .sources import (
    CachedDiscovery,
    DiscoveryError,
    DiscoverySource,
    FileDiscovery,
    StaticDiscovery,
    TransientDiscoveryError,
)

if TYPE_CHECKING:
    from pagecomposer.config import DiscoverySettings

ENV_WP_USER = "PAGECOMPOSER_WP_USER"
ENV_WP_APP_PASSWORD = "PAGECOMPOSER_WP_APP_PASSWORD"


def build_discovery(
    settings: DiscoverySettings,
    priorities: Mapping[str, int] | None = None,
) -> CachedDiscovery:
    """Pick the discovery source named by ``settings.mode`` and wrap it in a TTL cache."""

    source: DiscoverySource
    if settings.mode == "static":
        source = StaticDiscovery(settings.active_plugins, priorities)
    elif settings.mode == "file":
        if settings.snapshot_path is None:
            raise DiscoveryError("discovery.snapshot_path is required for file discovery.")
        source = FileDiscovery(settings.snapshot_path, priorities)
    elif settings.mode == "rest":
        if not settings.base_url:
            raise DiscoveryError("discovery.base_url is required for rest discovery.")
        source = RestDiscovery(
            settings.base_url,
            username=settings.username or os.getenv(ENV_WP_USER),
            application_password=settings.application_password or os.getenv(ENV_WP_APP_PASSWORD),
            timeout=settings.timeout_seconds,
            max_retries=settings.max_retries,
            backoff_min_seconds=settings.backoff_min_seconds,
            backoff_max_seconds=settings.backoff_max_seconds,
            priorities=priorities,
        )
    else:  # pragma: no cover - guarded by config validation
        raise DiscoveryError(f"Unknown discovery mode: {settings.mode!r}")
    return CachedDiscovery(source, settings.cache_ttl_seconds)


__all__ = [
    "DEFAULT_TTL_SECONDS",
    "CachedDiscovery",
    "DiscoveryError",
    "DiscoverySource",
    "FileDiscovery",
    "RestDiscovery",
    "StaticDiscovery",
    "TTLCache",
    "TransientDiscoveryError",
    "build_discovery",
    "features_from_supports",
]
