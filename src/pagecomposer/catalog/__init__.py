"""Plugin registry and block catalog."""

from .models import (
    CORE_KEY,
    UNKNOWN_KEY,
    BlockDescriptor,
    CatalogInconsistency,
    PluginDescriptor,
    split_block_name,
)
from .registry import BlockCatalog, CatalogSnapshot, PluginRegistry, build_default_snapshot

__all__ = [
    "CORE_KEY",
    "UNKNOWN_KEY",
    "BlockCatalog",
    "BlockDescriptor",
    "CatalogInconsistency",
    "CatalogSnapshot",
    "PluginDescriptor",
    "PluginRegistry",
    "build_default_snapshot",
    "split_block_name",
]
