"""Advisory fallback recommendations for sections whose preferred block is unavailable.

The advisor is not on the resolver's hot path. Its output is surfaced to reviewers and
attached to plugin indicators when an assembly falls back.
"""

from __future__ import annotations

import difflib
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from pagecomposer.catalog.known import FEATURES, feature_support, plugin_key_for_namespace
from pagecomposer.catalog.models import CORE_KEY, split_block_name
from pagecomposer.catalog.registry import CatalogSnapshot

PLUGIN_ORDER: tuple[str, ...] = (
    "kadence_blocks",
    "genesis_blocks",
    "stackable",
    "ultimate_addons",
    "generateblocks",
    CORE_KEY,
)

PLUGIN_CONFIDENCE: dict[str, int] = {
    "kadence_blocks": 25,
    "genesis_blocks": 20,
    "stackable": 20,
    "ultimate_addons": 20,
    "generateblocks": 15,
    CORE_KEY: 10,
}

TYPE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "hero": ("hero", "banner", "cover"),
    "testimonial": ("testimonial", "review"),
    "image": ("image", "gallery"),
    "button": ("button", "cta"),
    "form": ("form", "contact"),
}

FALLBACK_MAPPINGS: dict[str, dict[str, tuple[str, ...]]] = {
    "hero": {
        "kadence_blocks": ("kadence/rowlayout", "kadence/advancedheading"),
        "genesis_blocks": ("genesis-blocks/gb-container", "genesis-blocks/gb-cta"),
        "stackable": ("ugb/hero", "ugb/container"),
        "ultimate_addons": ("uagb/container", "uagb/call-to-action"),
        "generateblocks": ("generateblocks/container", "generateblocks/headline"),
        CORE_KEY: ("core/cover", "core/group", "core/heading"),
    },
    "content": {
        "kadence_blocks": ("kadence/advancedheading", "kadence/column"),
        "genesis_blocks": ("genesis-blocks/gb-container",),
        "stackable": ("ugb/heading", "ugb/container"),
        "ultimate_addons": ("uagb/advanced-heading", "uagb/container"),
        "generateblocks": ("generateblocks/headline", "generateblocks/container"),
        CORE_KEY: ("core/heading", "core/paragraph", "core/group"),
    },
    "image": {
        "kadence_blocks": ("kadence/image", "kadence/gallery"),
        "genesis_blocks": ("genesis-blocks/gb-container",),
        "stackable": ("ugb/image",),
        "ultimate_addons": ("uagb/image",),
        "generateblocks": ("generateblocks/image",),
        CORE_KEY: ("core/image", "core/gallery", "core/media-text"),
    },
    "testimonial": {
        "kadence_blocks": ("kadence/testimonials",),
        "genesis_blocks": ("genesis-blocks/gb-testimonial",),
        "stackable": ("ugb/testimonial",),
        "ultimate_addons": ("uagb/testimonial",),
        "generateblocks": ("generateblocks/container",),
        CORE_KEY: ("core/quote", "core/group"),
    },
    "list": {
        "kadence_blocks": ("kadence/iconlist",),
        "genesis_blocks": ("genesis-blocks/gb-container",),
        "stackable": ("ugb/container",),
        "ultimate_addons": ("uagb/icon-list",),
        "generateblocks": ("generateblocks/container",),
        CORE_KEY: ("core/list", "core/group"),
    },
    "button": {
        "kadence_blocks": ("kadence/button",),
        "genesis_blocks": ("genesis-blocks/gb-button",),
        "stackable": ("ugb/button",),
        "ultimate_addons": ("uagb/buttons",),
        "generateblocks": ("generateblocks/button",),
        CORE_KEY: ("core/button", "core/buttons"),
    },
    "form": {
        "kadence_blocks": ("kadence/form",),
        "genesis_blocks": ("genesis-blocks/gb-newsletter",),
        "stackable": ("ugb/container",),
        "ultimate_addons": ("uagb/forms",),
        "generateblocks": ("generateblocks/container",),
        CORE_KEY: ("core/group", "core/paragraph"),
    },
    "layout": {
        "kadence_blocks": ("kadence/rowlayout", "kadence/column"),
        "genesis_blocks": ("genesis-blocks/gb-container", "genesis-blocks/gb-columns"),
        "stackable": ("ugb/container", "ugb/columns"),
        "ultimate_addons": ("uagb/container",),
        "generateblocks": ("generateblocks/container", "generateblocks/grid"),
        CORE_KEY: ("core/group", "core/columns"),
    },
}

_PLUGIN_LABELS: dict[str, str] = {
    "kadence_blocks": "Kadence Blocks",
    "genesis_blocks": "Genesis Blocks",
    "stackable": "Stackable",
    "ultimate_addons": "Ultimate Addons",
    "generateblocks": "GenerateBlocks",
    CORE_KEY: "WordPress core blocks",
}


@dataclass(slots=True, frozen=True)
class FallbackChoice:
    plugin: str
    block_name: str
    reason: str
    is_fallback: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "plugin": self.plugin,
            "block_name": self.block_name,
            "is_fallback": self.is_fallback,
            "fallback_reason": self.reason,
        }


@dataclass(slots=True, frozen=True)
class FeatureComparison:
    preserved: tuple[str, ...] = ()
    lost: tuple[str, ...] = ()
    gained: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "preserved": list(self.preserved),
            "lost": list(self.lost),
            "gained": list(self.gained),
        }


@dataclass(slots=True, frozen=True)
class Alternative:
    block_name: str
    plugin: str
    similarity_score: int
    features: FeatureComparison

    def to_dict(self) -> dict[str, Any]:
        return {
            "block_name": self.block_name,
            "plugin": self.plugin,
            "similarity_score": self.similarity_score,
            "features_preserved": list(self.features.preserved),
            "features_lost": list(self.features.lost),
            "features_gained": list(self.features.gained),
        }


@dataclass(slots=True)
class Recommendation:
    content_type: str
    block: FallbackChoice
    confidence: int
    alternatives: list[Alternative] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "section_type": self.content_type,
            "block": self.block.to_dict(),
            "confidence": self.confidence,
            "alternatives": [alternative.to_dict() for alternative in self.alternatives],
        }


def content_type_for_block(block_name: str) -> str:
    """Guess the content family of a block from its name."""

    lowered = block_name.lower()
    if "hero" in lowered or "banner" in lowered:
        return "hero"
    if "testimonial" in lowered:
        return "testimonial"
    if "image" in lowered or "gallery" in lowered:
        return "image"
    if "button" in lowered:
        return "button"
    if "form" in lowered:
        return "form"
    if any(token in lowered for token in ("row", "column", "container")):
        return "layout"
    return "content"


def confidence_score(plugin_key: str, block_name: str, content_type: str) -> int:
    score = 50 + PLUGIN_CONFIDENCE.get(plugin_key, 0)
    lowered = block_name.lower()
    if any(keyword in lowered for keyword in TYPE_KEYWORDS.get(content_type, ())):
        score += 15
    return min(100, score)


class FallbackAdvisor:
    """Recommend a best-available block, a confidence score and scored alternatives."""

    def __init__(self, snapshot: CatalogSnapshot | None = None) -> None:
        self.snapshot = snapshot

    def recommend(
        self,
        content_type: str,
        snapshot: CatalogSnapshot | None = None,
        *,
        required_features: Iterable[str] = (),
        original_block: str | None = None,
    ) -> Recommendation:
        snapshot = self._snapshot(snapshot)
        choice = self.fallback_block(content_type, snapshot, required_features=required_features)
        reference = original_block or choice.block_name
        return Recommendation(
            content_type=content_type,
            block=choice,
            confidence=confidence_score(choice.plugin, choice.block_name, content_type),
            alternatives=self.alternatives(reference, snapshot),
        )

    def fallback_block(
        self,
        content_type: str,
        snapshot: CatalogSnapshot | None = None,
        *,
        required_features: Iterable[str] = (),
    ) -> FallbackChoice:
        snapshot = self._snapshot(snapshot)
        available = _available(snapshot)
        required = tuple(required_features)
        options = FALLBACK_MAPPINGS.get(content_type) or FALLBACK_MAPPINGS["content"]

        for plugin_key in PLUGIN_ORDER:
            registered = available.get(plugin_key)
            if not registered:
                continue
            for block_name in options.get(plugin_key, ()):
                if block_name not in registered:
                    continue
                if all(self.supports(block_name, feature, snapshot) for feature in required):
                    return FallbackChoice(
                        plugin=plugin_key,
                        block_name=block_name,
                        reason=f"Using {_PLUGIN_LABELS[plugin_key]} as fallback",
                    )

        return FallbackChoice(
            plugin=CORE_KEY,
            block_name="core/paragraph",
            reason="No suitable blocks available, using core paragraph",
        )

    def alternatives(
        self,
        original_block: str,
        snapshot: CatalogSnapshot | None = None,
    ) -> list[Alternative]:
        snapshot = self._snapshot(snapshot)
        available = _available(snapshot)
        options = FALLBACK_MAPPINGS.get(content_type_for_block(original_block), {})

        found: list[Alternative] = []
        for plugin_key in PLUGIN_ORDER:
            registered = available.get(plugin_key)
            if not registered:
                continue
            for block_name in options.get(plugin_key, ()):
                if block_name == original_block or block_name not in registered:
                    continue
                found.append(
                    Alternative(
                        block_name=block_name,
                        plugin=plugin_key,
                        similarity_score=self.similarity(original_block, block_name, snapshot),
                        features=self.compare_features(original_block, block_name, snapshot),
                    )
                )
        found.sort(key=lambda alternative: alternative.similarity_score, reverse=True)
        return found

    def recommend_sections(
        self,
        sections: Sequence[Mapping[str, Any]],
        snapshot: CatalogSnapshot | None = None,
    ) -> list[Recommendation]:
        snapshot = self._snapshot(snapshot)
        recommendations = []
        for section in sections:
            content_type = str(section.get("content_type") or section.get("type") or "content")
            recommendations.append(
                self.recommend(
                    content_type,
                    snapshot,
                    required_features=section.get("required_features") or (),
                )
            )
        return recommendations

    def supports(
        self,
        block_name: str,
        feature: str,
        snapshot: CatalogSnapshot | None = None,
    ) -> bool:
        """Feature flags from the catalog descriptor when present, else the built-in matrix."""

        snapshot = snapshot or self.snapshot
        if snapshot is not None:
            descriptor = snapshot.block(block_name)
            if descriptor is not None and descriptor.supported_features:
                return feature in descriptor.supported_features
        return feature_support(block_name, feature)

    def similarity(
        self,
        original_block: str,
        candidate_block: str,
        snapshot: CatalogSnapshot | None = None,
    ) -> int:
        score = 0
        if _plugin_of(original_block) == _plugin_of(candidate_block):
            score += 20

        ratio = difflib.SequenceMatcher(
            None, split_block_name(original_block)[1], split_block_name(candidate_block)[1]
        ).ratio()
        score += int(ratio * 100 * 0.8)

        matching = sum(
            1
            for feature in FEATURES
            if self.supports(original_block, feature, snapshot)
            == self.supports(candidate_block, feature, snapshot)
        )
        score += matching * 10
        return min(100, score)

    def compare_features(
        self,
        original_block: str,
        candidate_block: str,
        snapshot: CatalogSnapshot | None = None,
    ) -> FeatureComparison:
        preserved: list[str] = []
        lost: list[str] = []
        gained: list[str] = []
        for feature in FEATURES:
            before = self.supports(original_block, feature, snapshot)
            after = self.supports(candidate_block, feature, snapshot)
            if before == after:
                preserved.append(feature)
            elif before:
                lost.append(feature)
            else:
                gained.append(feature)
        return FeatureComparison(tuple(preserved), tuple(lost), tuple(gained))

    def _snapshot(self, snapshot: CatalogSnapshot | None) -> CatalogSnapshot:
        chosen = snapshot or self.snapshot
        if chosen is None:
            raise ValueError("FallbackAdvisor needs a catalog snapshot.")
        return chosen


def _available(snapshot: CatalogSnapshot) -> dict[str, set[str]]:
    return {key: set(names) for key, names in snapshot.available_blocks().items()}


def _plugin_of(block_name: str) -> str:
    return plugin_key_for_namespace(split_block_name(block_name)[0])
