"""Discovery sources that build a catalog snapshot without network access."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Protocol

import yaml

from pagecomposer.catalog.known import KNOWN_PLUGINS, describe_block
from pagecomposer.catalog.models import BlockDescriptor, PluginDescriptor
from pagecomposer.catalog.registry import CatalogSnapshot, build_default_snapshot
from pagecomposer.discovery.cache import DEFAULT_TTL_SECONDS, TTLCache

logger = logging.getLogger(__name__)


class DiscoveryError(Exception):
    """Raised when a discovery source cannot produce a snapshot."""


class TransientDiscoveryError(DiscoveryError):
    """Raised for retryable discovery failures."""


class DiscoverySource(Protocol):
    """Anything that can produce a full catalog snapshot."""

    def snapshot(self) -> CatalogSnapshot:
        """Perform a full scan and return a fresh snapshot."""


class StaticDiscovery:
    """Snapshot built from the built-in plugin and block tables."""

    def __init__(
        self,
        active_plugins: Iterable[str] = ("core",),
        priorities: Mapping[str, int] | None = None,
    ) -> None:
        self.active_plugins = tuple(active_plugins)
        self.priorities = dict(priorities or {})

    def snapshot(self) -> CatalogSnapshot:
        return build_default_snapshot(self.active_plugins, self.priorities)


class FileDiscovery:
    """Snapshot read from a YAML document with ``plugins`` and ``blocks`` lists."""

    def __init__(self, path: Path, priorities: Mapping[str, int] | None = None) -> None:
        self.path = Path(path)
        self.priorities = dict(priorities or {})

    def snapshot(self) -> CatalogSnapshot:
        try:
            content = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise DiscoveryError(f"Cannot read catalog file {self.path}: {exc}") from exc

        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as exc:
            raise DiscoveryError(f"Catalog file {self.path} is not valid YAML: {exc}") from exc
        if not isinstance(data, dict):
            raise DiscoveryError(f"Catalog file {self.path} must define a mapping at the top level.")

        plugins = self._plugins(data.get("plugins") or [])
        blocks = self._blocks(data.get("blocks") or [])
        logger.info(
            "Loaded %s plugins and %s blocks from %s.", len(plugins), len(blocks), self.path
        )
        return CatalogSnapshot.from_descriptors(plugins, blocks)

    def _plugins(self, entries: Any) -> list[PluginDescriptor]:
        if not isinstance(entries, list):
            raise DiscoveryError("'plugins' must be a list.")
        plugins: list[PluginDescriptor] = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise DiscoveryError(f"Plugin entry must be a mapping, got {entry!r}.")
            payload = dict(entry)
            known = KNOWN_PLUGINS.get(str(payload.get("key", "")))
            if known is not None:
                payload.setdefault("name", known.name)
                payload.setdefault("namespace", known.namespace)
                if "supported_section_types" not in payload and "supported_sections" not in payload:
                    payload["supported_section_types"] = list(known.supported_sections)
                payload.setdefault("priority", known.default_priority)
            if payload.get("key") in self.priorities:
                payload["priority"] = self.priorities[payload["key"]]
            try:
                plugins.append(PluginDescriptor.from_mapping(payload))
            except (KeyError, TypeError, ValueError) as exc:
                raise DiscoveryError(f"Invalid plugin entry {entry!r}: {exc}") from exc
        return plugins

    def _blocks(self, entries: Any) -> list[BlockDescriptor]:
        if not isinstance(entries, list):
            raise DiscoveryError("'blocks' must be a list.")
        blocks: list[BlockDescriptor] = []
        for entry in entries:
            if isinstance(entry, str):
                # bare names pick up metadata from the built-in tables
                blocks.append(describe_block(entry.strip()))
                continue
            if not isinstance(entry, dict):
                raise DiscoveryError(f"Block entry must be a string or mapping, got {entry!r}.")
            try:
                blocks.append(BlockDescriptor.from_mapping(entry))
            except (TypeError, ValueError) as exc:
                raise DiscoveryError(f"Invalid block entry {entry!r}: {exc}") from exc
        return blocks


class CachedDiscovery:
    """Wrap a source so repeated scans within ``ttl_seconds`` reuse one snapshot."""

    _KEY = "snapshot"

    def __init__(
        self,
        source: DiscoverySource,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        cache: TTLCache | None = None,
    ) -> None:
        self.source = source
        self.cache = cache or TTLCache(ttl_seconds)
        self._lock = threading.Lock()

    def snapshot(self, force_refresh: bool = False) -> CatalogSnapshot:
        with self._lock:
            if not force_refresh:
                cached = self.cache.get(self._KEY)
                if cached is not None:
                    return cached
            logger.debug("Refreshing catalog snapshot from %s.", type(self.source).__name__)
            snapshot = self.source.snapshot()
            self.cache.set(self._KEY, snapshot)
            return snapshot

    def invalidate(self) -> None:
        self.cache.invalidate(self._KEY)
