"""Resolve an abstract content type into a concrete, registered block."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from pagecomposer.blocks.attributes import default_attributes, merge_attributes, unique_block_id
from pagecomposer.blocks.preferences import BlockPreference
from pagecomposer.catalog.models import CORE_KEY, PluginDescriptor
from pagecomposer.catalog.registry import CatalogSnapshot

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "content"
LAST_RESORT_BLOCK = "core/paragraph"
CORE_SAFETY_NET: tuple[str, ...] = ("core/group", "core/columns", "core/paragraph")

# Canonical block per plugin for each content type. Dict order is the tie-break order.
SECTION_MAPPINGS: dict[str, dict[str, str]] = {
    "hero": {
        "kadence_blocks": "kadence/rowlayout",
        "genesis_blocks": "genesis-blocks/gb-container",
        "stackable": "ugb/hero",
        "ultimate_addons": "uagb/advanced-heading",
        "core": "core/cover",
    },
    "content": {
        "kadence_blocks": "kadence/rowlayout",
        "genesis_blocks": "genesis-blocks/gb-container",
        "stackable": "ugb/text",
        "ultimate_addons": "uagb/info-box",
        "core": "core/group",
    },
    "testimonial": {
        "kadence_blocks": "kadence/testimonials",
        "genesis_blocks": "genesis-blocks/gb-testimonial",
        "stackable": "ugb/testimonial",
        "ultimate_addons": "uagb/testimonial",
        "core": "core/quote",
    },
    "pricing": {
        "kadence_blocks": "kadence/pricelist",
        "genesis_blocks": "genesis-blocks/gb-pricing",
        "stackable": "ugb/pricing-box",
        "ultimate_addons": "uagb/restaurant-menu",
        "core": "core/table",
    },
    "team": {
        "kadence_blocks": "kadence/rowlayout",
        "genesis_blocks": "genesis-blocks/gb-profile-box",
        "stackable": "ugb/team-member",
        "ultimate_addons": "uagb/team",
        "core": "core/media-text",
    },
    "faq": {
        "kadence_blocks": "kadence/accordion",
        "genesis_blocks": "genesis-blocks/gb-accordion",
        "stackable": "ugb/expand",
        "ultimate_addons": "uagb/faq",
        "core": "core/details",
    },
    "cta": {
        "kadence_blocks": "kadence/advancedbtn",
        "genesis_blocks": "genesis-blocks/gb-button",
        "stackable": "ugb/cta",
        "ultimate_addons": "uagb/call-to-action",
        "core": "core/buttons",
    },
    "feature": {
        "kadence_blocks": "kadence/iconlist",
        "genesis_blocks": "genesis-blocks/gb-columns",
        "stackable": "ugb/feature",
        "ultimate_addons": "uagb/info-box",
        "core": "core/columns",
    },
}


class UnresolvableBlockError(RuntimeError):
    """No block could be chosen. The resolver's last resort makes this unreachable."""


@dataclass(slots=True)
class ResolvedBlock:
    """A concrete block chosen for one section, ready for assembly."""

    plugin_key: str
    block_name: str
    fallback_used: bool
    attributes: dict[str, Any] = field(default_factory=dict)
    inner_blocks: list[ResolvedBlock] = field(default_factory=list)
    inner_html: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "plugin_key": self.plugin_key,
            "block_name": self.block_name,
            "fallback_used": self.fallback_used,
            "attributes": dict(self.attributes),
            "inner_blocks": [inner.to_dict() for inner in self.inner_blocks],
            "inner_html": self.inner_html,
        }


@dataclass(slots=True, frozen=True)
class Candidate:
    plugin_key: str
    block_name: str
    score: int


def section_mapping(content_type: str) -> dict[str, str]:
    return SECTION_MAPPINGS.get(content_type) or SECTION_MAPPINGS[DEFAULT_CONTENT_TYPE]


def score_candidate(
    plugin: PluginDescriptor,
    content_type: str,
    preferred_plugin: str,
    registered: bool,
) -> int:
    """Priority score of one (plugin, block) pair. Pure function of its inputs."""

    score = 0
    if plugin.key == preferred_plugin:
        score += 100
    if plugin.active:
        score += 50
    if plugin.supports(content_type):
        score += 30
    score += plugin.priority
    if registered:
        score += 20
    if plugin.key == CORE_KEY and preferred_plugin != CORE_KEY:
        score -= 10
    return score


class BlockResolver:
    """Pick a block for a content type against one catalog snapshot.

    ``resolve`` never raises: the priority list is followed by the preference's fallback
    blocks, then a core safety net, then an unconditional ``core/paragraph``.
    """

    def __init__(self, snapshot: CatalogSnapshot) -> None:
        self.snapshot = snapshot

    def priority_list(self, content_type: str, preferred_plugin: str) -> list[Candidate]:
        candidates: list[Candidate] = []
        for plugin_key, block_name in section_mapping(content_type).items():
            plugin = self.snapshot.get(plugin_key)
            if plugin is None or not plugin.active:
                continue
            registered = self.snapshot.is_registered(block_name)
            candidates.append(
                Candidate(
                    plugin_key=plugin_key,
                    block_name=block_name,
                    score=score_candidate(plugin, content_type, preferred_plugin, registered),
                )
            )
        # sorted() is stable, so equal scores keep mapping order.
        return sorted(candidates, key=lambda candidate: candidate.score, reverse=True)

    def score(self, plugin_key: str, content_type: str, preferred_plugin: str) -> int | None:
        plugin = self.snapshot.get(plugin_key)
        if plugin is None:
            return None
        block_name = section_mapping(content_type).get(plugin_key, "")
        return score_candidate(
            plugin, content_type, preferred_plugin, self.snapshot.is_registered(block_name)
        )

    def resolve(
        self,
        content_type: str,
        preference: BlockPreference | None = None,
        *,
        section_id: str = "",
    ) -> ResolvedBlock:
        preference = preference or BlockPreference()
        content_type = content_type or DEFAULT_CONTENT_TYPE
        plugin_key, block_name, fallback_used = self._choose(content_type, preference)

        unique_id = unique_block_id(section_id or content_type, block_name)
        attributes = merge_attributes(
            default_attributes(block_name, unique_id),
            preference.custom_attributes,
        )
        return ResolvedBlock(
            plugin_key=plugin_key,
            block_name=block_name,
            fallback_used=fallback_used,
            attributes=attributes,
        )

    def _choose(self, content_type: str, preference: BlockPreference) -> tuple[str, str, bool]:
        candidates = self.priority_list(content_type, preference.preferred_plugin)
        for candidate in candidates:
            logger.debug(
                "Candidate %s (%s) scored %s for %s.",
                candidate.block_name,
                candidate.plugin_key,
                candidate.score,
                content_type,
            )
        for candidate in candidates:
            if self.snapshot.is_registered(candidate.block_name):
                return candidate.plugin_key, candidate.block_name, False

        for block_name in preference.fallback_blocks:
            if self.snapshot.is_registered(block_name):
                plugin_key = self.snapshot.plugin_key_for_block(block_name)
                logger.info("Using preference fallback %s for %s.", block_name, content_type)
                return plugin_key, block_name, True

        for block_name in CORE_SAFETY_NET:
            if self.snapshot.is_registered(block_name):
                logger.info("Using core safety net %s for %s.", block_name, content_type)
                return CORE_KEY, block_name, True

        logger.warning(
            "No registered block for %s; using %s unconditionally.", content_type, LAST_RESORT_BLOCK
        )
        return CORE_KEY, LAST_RESORT_BLOCK, True

    def available_blocks_for(self, content_type: str) -> list[dict[str, Any]]:
        """Registered mapping entries for ``content_type`` with their plugin metadata."""

        available: list[dict[str, Any]] = []
        for plugin_key, block_name in section_mapping(content_type).items():
            plugin = self.snapshot.get(plugin_key)
            if plugin is None or not plugin.active:
                continue
            if not self.snapshot.is_registered(block_name):
                continue
            available.append(
                {
                    "plugin_key": plugin_key,
                    "plugin_name": plugin.name,
                    "block_name": block_name,
                    "priority": plugin.priority,
                }
            )
        return available

    def specification_for(self, block_name: str, *, section_id: str = "") -> ResolvedBlock:
        """Build a block directly by name, bypassing ranking."""

        unique_id = unique_block_id(section_id or block_name, block_name)
        return ResolvedBlock(
            plugin_key=self.snapshot.plugin_key_for_block(block_name),
            block_name=block_name,
            fallback_used=False,
            attributes=default_attributes(block_name, unique_id),
        )
