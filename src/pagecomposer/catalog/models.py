"""Descriptor records for block-providing plugins and their blocks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

CORE_KEY = "core"
UNKNOWN_KEY = "unknown"


@dataclass(slots=True, frozen=True)
class PluginDescriptor:
    """A block-providing plugin as seen by one detection pass."""

    key: str
    name: str
    active: bool
    priority: int
    supported_section_types: frozenset[str] = field(default_factory=frozenset)
    namespace: str = ""

    def supports(self, content_type: str) -> bool:
        return content_type in self.supported_section_types

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> PluginDescriptor:
        """Build a descriptor from a loosely typed mapping (YAML or JSON payloads)."""

        key = str(data["key"]).strip()
        if not key:
            raise ValueError("Plugin descriptor requires a non-empty key.")
        sections = data.get("supported_section_types") or data.get("supported_sections") or []
        return cls(
            key=key,
            name=str(data.get("name") or key),
            active=bool(data.get("active", True)),
            priority=int(data.get("priority", 0)),
            supported_section_types=frozenset(str(item) for item in sections),
            namespace=str(data.get("namespace") or key),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "active": self.active,
            "priority": self.priority,
            "supported_section_types": sorted(self.supported_section_types),
            "namespace": self.namespace,
        }


@dataclass(slots=True, frozen=True)
class BlockDescriptor:
    """A registered block type, identified by its ``namespace/block`` name."""

    full_name: str
    supports_inner_blocks: bool = False
    is_container: bool = False
    supported_features: frozenset[str] = field(default_factory=frozenset)

    @property
    def namespace(self) -> str:
        return split_block_name(self.full_name)[0]

    @property
    def short_name(self) -> str:
        return split_block_name(self.full_name)[1]

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | str) -> BlockDescriptor:
        if isinstance(data, str):
            return cls(full_name=data.strip())
        full_name = str(data.get("full_name") or data.get("name") or "").strip()
        if not full_name:
            raise ValueError("Block descriptor requires a full_name.")
        return cls(
            full_name=full_name,
            supports_inner_blocks=bool(data.get("supports_inner_blocks", False)),
            is_container=bool(data.get("is_container", False)),
            supported_features=frozenset(str(item) for item in data.get("supported_features") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "full_name": self.full_name,
            "supports_inner_blocks": self.supports_inner_blocks,
            "is_container": self.is_container,
            "supported_features": sorted(self.supported_features),
        }


@dataclass(slots=True, frozen=True)
class CatalogInconsistency:
    """A block whose namespace matches no known plugin. Reported, never raised."""

    block_name: str
    namespace: str

    def describe(self) -> str:
        return f"Block '{self.block_name}' uses namespace '{self.namespace}' with no known plugin."


def split_block_name(block_name: str) -> tuple[str, str]:
    """Split ``namespace/block`` into its parts; a bare name has an empty namespace."""

    namespace, sep, short = block_name.partition("/")
    if not sep:
        return "", block_name
    return namespace, short
