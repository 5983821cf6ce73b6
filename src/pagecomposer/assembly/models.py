"""Input and output records for page assembly."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pagecomposer.blocks.preferences import BlockPreference
from pagecomposer.blocks.resolver import DEFAULT_CONTENT_TYPE, ResolvedBlock

logger = logging.getLogger(__name__)

_HEADING_LEVEL_RE = re.compile(r"^h?([1-6])$", re.IGNORECASE)


class InvalidSectionsError(ValueError):
    """The sections payload as a whole is unusable (empty or not a list)."""


def _text(value: Any) -> str | None:
    """Scalars become text; anything else is treated as absent."""

    if isinstance(value, (str, int, float)):
        return str(value) or None
    return None


def _heading_level(value: Any) -> int | None:
    if value is None:
        return None
    match = _HEADING_LEVEL_RE.match(str(value).strip()) if not isinstance(value, bool) else None
    if match is None:
        logger.warning("Ignoring heading_level %r; expected 1-6 or h1-h6.", value)
        return None
    return int(match.group(1))


@dataclass(slots=True, frozen=True)
class MediaRef:
    id: Any = None
    url: str | None = None
    alt: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | str | None) -> MediaRef | None:
        if not data:
            return None
        if not isinstance(data, Mapping):
            url = _text(data)
            return cls(url=url) if url else None
        return cls(
            id=data.get("id"),
            url=_text(data.get("url")),
            alt=_text(data.get("alt")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "url": self.url, "alt": self.alt}


@dataclass(slots=True)
class SectionRequest:
    """One abstract section to render as a block."""

    id: str
    content_type: str = DEFAULT_CONTENT_TYPE
    heading: str | None = None
    body_html: str | None = None
    media: MediaRef | None = None
    preference: BlockPreference | None = None
    heading_level: int | None = None

    @property
    def effective_heading_level(self) -> int:
        if self.heading_level is not None:
            return self.heading_level
        return 1 if self.content_type == "hero" else 2

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], index: int = 0) -> SectionRequest:
        """Lenient constructor: missing fields get defaults instead of errors."""

        if not isinstance(data, Mapping):
            raise InvalidSectionsError(f"Section {index} must be a mapping.")
        content_type = data.get("content_type") or data.get("type") or DEFAULT_CONTENT_TYPE
        level = data.get("heading_level")
        preference = data.get("preference")
        if preference is not None and not isinstance(preference, Mapping):
            logger.warning("Section %s: ignoring preference that is not a mapping.", index)
            preference = None
        return cls(
            id=str(data.get("id") or f"section-{index}"),
            content_type=str(content_type),
            heading=_text(data.get("heading")),
            body_html=_text(data.get("body_html")) or _text(data.get("content")),
            media=MediaRef.from_mapping(data.get("media")),
            preference=BlockPreference.from_mapping(preference) if preference else None,
            heading_level=_heading_level(level),
        )

    @property
    def has_media(self) -> bool:
        return self.media is not None and bool(self.media.url)


def parse_sections(payload: Any) -> list[SectionRequest]:
    """Boundary check for a raw sections payload."""

    if not isinstance(payload, list):
        raise InvalidSectionsError("Sections must be a list.")
    if not payload:
        raise InvalidSectionsError("Sections list is empty.")
    return [SectionRequest.from_mapping(item, index) for index, item in enumerate(payload)]


@dataclass(slots=True)
class AssemblyOptions:
    optimize_images: bool = True
    validate_html: bool = True
    include_recommendations: bool = True
    max_internal_links: int = 10
    max_text_length: int = 5000
    site_url: str | None = None
    # content type -> plugin key or "auto"; used when a section carries no preference
    section_mappings: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class PluginIndicator:
    section_id: str
    plugin_used: str
    block_name: str
    fallback_used: bool
    plugin_name: str = ""
    suggested_block: str | None = None
    suggestion_confidence: int | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "section_id": self.section_id,
            "plugin_used": self.plugin_used,
            "plugin_name": self.plugin_name,
            "block_name": self.block_name,
            "fallback_used": self.fallback_used,
            "warnings": list(self.warnings),
        }
        if self.suggested_block is not None:
            payload["suggested_block"] = self.suggested_block
            payload["suggestion_confidence"] = self.suggestion_confidence
        return payload


@dataclass(slots=True)
class AssemblyMetadata:
    blocks_used: dict[str, int] = field(default_factory=dict)
    fallbacks_applied: int = 0
    validation_warnings: list[str] = field(default_factory=list)
    accessibility_score: int = 100
    estimated_load_time_s: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "blocks_used": dict(self.blocks_used),
            "fallbacks_applied": self.fallbacks_applied,
            "validation_warnings": list(self.validation_warnings),
            "accessibility_score": self.accessibility_score,
            "estimated_load_time_s": self.estimated_load_time_s,
        }


@dataclass(slots=True)
class AssemblyResult:
    blocks: list[ResolvedBlock] = field(default_factory=list)
    metadata: AssemblyMetadata = field(default_factory=AssemblyMetadata)
    plugin_indicators: list[PluginIndicator] = field(default_factory=list)

    @property
    def fallback_ratio(self) -> float:
        if not self.blocks:
            return 0.0
        return self.metadata.fallbacks_applied / len(self.blocks)

    def to_dict(self) -> dict[str, Any]:
        return {
            "blocks": [block.to_dict() for block in self.blocks],
            "metadata": self.metadata.to_dict(),
            "plugin_indicators": [indicator.to_dict() for indicator in self.plugin_indicators],
        }
