"""Per-section block preferences."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

AUTO = "auto"

logger = logging.getLogger(__name__)

_PRIMARY_BLOCKS: dict[str, dict[str, str]] = {
    "genesis_blocks": {
        "hero": "genesis-blocks/gb-container",
        "testimonial": "genesis-blocks/gb-testimonial",
        "pricing": "genesis-blocks/gb-pricing",
        "team": "genesis-blocks/gb-profile-box",
        "content": "genesis-blocks/gb-container",
        "cta": "genesis-blocks/gb-button",
        "faq": "genesis-blocks/gb-accordion",
    },
    "kadence_blocks": {
        "hero": "kadence/rowlayout",
        "testimonial": "kadence/testimonials",
        "pricing": "kadence/pricelist",
        "team": "kadence/rowlayout",
        "content": "kadence/column",
        "cta": "kadence/advancedbtn",
        "faq": "kadence/accordion",
    },
    "stackable": {
        "hero": "ugb/hero",
        "testimonial": "ugb/testimonial",
        "team": "ugb/team-member",
        "content": "ugb/container",
        "cta": "ugb/button",
        "faq": "ugb/expand",
    },
    "ultimate_addons": {
        "hero": "uagb/container",
        "testimonial": "uagb/testimonial",
        "team": "uagb/team",
        "content": "uagb/container",
        "cta": "uagb/buttons",
        "faq": "uagb/faq",
    },
    "core": {
        "hero": "core/cover",
        "testimonial": "core/quote",
        "pricing": "core/table",
        "team": "core/media-text",
        "content": "core/paragraph",
        "cta": "core/buttons",
        "faq": "core/details",
    },
}

_FALLBACK_BLOCKS: dict[str, tuple[str, ...]] = {
    "hero": ("core/cover", "core/group", "core/media-text"),
    "testimonial": ("core/quote", "core/media-text", "core/group"),
    "pricing": ("core/table", "core/group", "core/columns"),
    "team": ("core/media-text", "core/group", "core/columns"),
    "content": ("core/paragraph", "core/heading", "core/group"),
    "cta": ("core/buttons", "core/button", "core/group"),
    "faq": ("core/details", "core/group", "core/paragraph"),
}

_PATTERN_PREFERENCES: dict[str, dict[str, str]] = {
    "genesis_blocks": {
        "hero": "hero-with-background",
        "testimonial": "testimonial-card",
        "pricing": "pricing-table",
        "team": "team-member-card",
    },
    "kadence_blocks": {
        "hero": "hero-with-image",
        "testimonial": "testimonial-slider",
        "pricing": "pricing-comparison",
        "team": "team-grid",
    },
    "stackable": {
        "hero": "hero-banner",
        "testimonial": "testimonial-block",
        "team": "team-profile",
    },
}


@dataclass(slots=True)
class BlockPreference:
    """How a caller would like one content type rendered.

    ``fallback_blocks`` is ordered: the first registered entry wins.
    """

    preferred_plugin: str = AUTO
    primary_block: str | None = None
    fallback_blocks: list[str] = field(default_factory=list)
    pattern_preference: str | None = None
    custom_attributes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> BlockPreference:
        if not data:
            return cls()
        fallbacks = data.get("fallback_blocks") or []
        if isinstance(fallbacks, str):
            fallbacks = [fallbacks]
        custom = data.get("custom_attributes") or {}
        if not isinstance(custom, Mapping):
            logger.warning(
                "Ignoring custom_attributes of type %s; expected a mapping.", type(custom).__name__
            )
            custom = {}
        return cls(
            preferred_plugin=str(data.get("preferred_plugin") or AUTO),
            primary_block=data.get("primary_block") or None,
            fallback_blocks=[str(item) for item in fallbacks if item],
            pattern_preference=data.get("pattern_preference") or None,
            custom_attributes=dict(custom),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "preferred_plugin": self.preferred_plugin,
            "primary_block": self.primary_block,
            "fallback_blocks": list(self.fallback_blocks),
            "pattern_preference": self.pattern_preference,
            "custom_attributes": dict(self.custom_attributes),
        }


def primary_block_for(content_type: str, plugin_key: str) -> str:
    core = _PRIMARY_BLOCKS["core"]
    return _PRIMARY_BLOCKS.get(plugin_key, {}).get(content_type) or core.get(
        content_type, "core/paragraph"
    )


def fallback_blocks_for(content_type: str) -> list[str]:
    return list(_FALLBACK_BLOCKS.get(content_type, ("core/paragraph", "core/group")))


def default_preference(content_type: str, preferred_plugin: str = AUTO) -> BlockPreference:
    """Preference a site would get from its section mappings for ``content_type``."""

    lookup_key = "core" if preferred_plugin == AUTO else preferred_plugin
    return BlockPreference(
        preferred_plugin=preferred_plugin,
        primary_block=primary_block_for(content_type, lookup_key),
        fallback_blocks=fallback_blocks_for(content_type),
        pattern_preference=_PATTERN_PREFERENCES.get(lookup_key, {}).get(content_type) or None,
    )
