"""Read-only plugin registry and block catalog snapshots."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from pagecomposer.catalog.known import (
    default_blocks,
    default_plugins,
    describe_plugin,
    plugin_key_for_namespace,
)
from pagecomposer.catalog.models import (
    CORE_KEY,
    UNKNOWN_KEY,
    BlockDescriptor,
    CatalogInconsistency,
    PluginDescriptor,
    split_block_name,
)

logger = logging.getLogger(__name__)


class PluginRegistry:
    """Lookup table of plugin descriptors keyed by plugin key.

    The core plugin always exists and is always active: it is the guaranteed fallback.
    """

    def __init__(self, plugins: Iterable[PluginDescriptor] = ()) -> None:
        entries: dict[str, PluginDescriptor] = {}
        for plugin in plugins:
            if plugin.key in entries:
                logger.debug("Duplicate plugin descriptor %s ignored.", plugin.key)
                continue
            entries[plugin.key] = plugin

        core = entries.get(CORE_KEY)
        if core is None:
            entries = {CORE_KEY: describe_plugin(CORE_KEY, active=True), **entries}
        elif not core.active:
            logger.warning("Core plugin reported inactive; forcing it active.")
            entries[CORE_KEY] = PluginDescriptor(
                key=core.key,
                name=core.name,
                active=True,
                priority=core.priority,
                supported_section_types=core.supported_section_types,
                namespace=core.namespace or CORE_KEY,
            )

        self._plugins: Mapping[str, PluginDescriptor] = MappingProxyType(entries)
        self._by_namespace: Mapping[str, str] = MappingProxyType(
            {plugin.namespace: plugin.key for plugin in entries.values() if plugin.namespace}
        )

    def get(self, plugin_key: str) -> PluginDescriptor | None:
        return self._plugins.get(plugin_key)

    def list_active(self) -> list[PluginDescriptor]:
        return [plugin for plugin in self._plugins.values() if plugin.active]

    def keys(self) -> list[str]:
        return list(self._plugins)

    def plugin_for_namespace(self, namespace: str) -> str | None:
        return self._by_namespace.get(namespace)

    def __iter__(self) -> Iterator[PluginDescriptor]:
        return iter(self._plugins.values())

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, plugin_key: object) -> bool:
        return plugin_key in self._plugins


class BlockCatalog:
    """Registered block types keyed by full block name."""

    def __init__(self, blocks: Iterable[BlockDescriptor] = ()) -> None:
        entries: dict[str, BlockDescriptor] = {}
        for block in blocks:
            if block.full_name and block.full_name not in entries:
                entries[block.full_name] = block
        self._blocks: Mapping[str, BlockDescriptor] = MappingProxyType(entries)

    def is_registered(self, full_name: str) -> bool:
        return bool(full_name) and full_name in self._blocks

    def get(self, full_name: str) -> BlockDescriptor | None:
        return self._blocks.get(full_name)

    def blocks_for_namespace(self, namespace: str) -> list[BlockDescriptor]:
        return [block for block in self._blocks.values() if block.namespace == namespace]

    def names(self) -> list[str]:
        return list(self._blocks)

    def __iter__(self) -> Iterator[BlockDescriptor]:
        return iter(self._blocks.values())

    def __len__(self) -> int:
        return len(self._blocks)


class CatalogSnapshot:
    """Immutable pairing of a plugin registry with a block catalog.

    One snapshot is shared by every section of an assembly call, so resolution inside a
    single call always sees the same plugins and blocks.
    """

    def __init__(self, registry: PluginRegistry, catalog: BlockCatalog) -> None:
        self.registry = registry
        self.catalog = catalog
        self.inconsistencies: tuple[CatalogInconsistency, ...] = tuple(self._audit())
        for issue in self.inconsistencies:
            logger.warning("Catalog inconsistency: %s", issue.describe())

    @classmethod
    def from_descriptors(
        cls,
        plugins: Iterable[PluginDescriptor],
        blocks: Iterable[BlockDescriptor | str],
    ) -> CatalogSnapshot:
        descriptors = [
            block if isinstance(block, BlockDescriptor) else BlockDescriptor(full_name=block)
            for block in blocks
        ]
        return cls(PluginRegistry(plugins), BlockCatalog(descriptors))

    def get(self, plugin_key: str) -> PluginDescriptor | None:
        return self.registry.get(plugin_key)

    def list_active(self) -> list[PluginDescriptor]:
        return self.registry.list_active()

    def is_registered(self, full_name: str) -> bool:
        return self.catalog.is_registered(full_name)

    def block(self, full_name: str) -> BlockDescriptor | None:
        return self.catalog.get(full_name)

    def blocks_for(self, plugin_key: str) -> list[BlockDescriptor]:
        plugin = self.registry.get(plugin_key)
        if plugin is None:
            return []
        return self.catalog.blocks_for_namespace(plugin.namespace or plugin.key)

    def plugin_key_for_block(self, full_name: str) -> str:
        """Infer the owning plugin key from a block name's namespace prefix."""

        namespace = split_block_name(full_name)[0]
        if not namespace:
            return UNKNOWN_KEY
        key = self.registry.plugin_for_namespace(namespace)
        if key is not None:
            return key
        return plugin_key_for_namespace(namespace)

    def available_blocks(self) -> dict[str, list[str]]:
        """Active plugin key -> registered block names, in registry order."""

        available: dict[str, list[str]] = {}
        for plugin in self.registry.list_active():
            names = [block.full_name for block in self.blocks_for(plugin.key)]
            if names:
                available[plugin.key] = names
        return available

    def _audit(self) -> Iterator[CatalogInconsistency]:
        for block in self.catalog:
            namespace = block.namespace
            if self.registry.plugin_for_namespace(namespace) is not None:
                continue
            yield CatalogInconsistency(block_name=block.full_name, namespace=namespace)

    def to_dict(self) -> dict[str, list[dict]]:
        return {
            "plugins": [plugin.to_dict() for plugin in self.registry],
            "blocks": [block.to_dict() for block in self.catalog],
        }


def build_default_snapshot(
    active_plugins: Iterable[str] = (CORE_KEY,),
    priorities: Mapping[str, int] | None = None,
) -> CatalogSnapshot:
    """Snapshot where every known block of every listed plugin is registered."""

    active = list(dict.fromkeys(active_plugins))
    return CatalogSnapshot(
        PluginRegistry(default_plugins(active, priorities)),
        BlockCatalog(default_blocks(active)),
    )
