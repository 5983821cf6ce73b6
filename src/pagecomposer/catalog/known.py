"""Built-in knowledge about the block plugins Pagecomposer understands.

These tables seed static discovery and fill gaps when a discovery source reports a block
without metadata. Nothing here is consulted at resolution time except through a
``CatalogSnapshot``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from pagecomposer.catalog.models import (
    CORE_KEY,
    UNKNOWN_KEY,
    BlockDescriptor,
    PluginDescriptor,
    split_block_name,
)

FEATURE_BACKGROUND_IMAGE = "background_image"
FEATURE_ADVANCED_STYLING = "advanced_styling"
FEATURE_RESPONSIVE_CONTROLS = "responsive_controls"
FEATURES: tuple[str, ...] = (
    FEATURE_BACKGROUND_IMAGE,
    FEATURE_ADVANCED_STYLING,
    FEATURE_RESPONSIVE_CONTROLS,
)


@dataclass(slots=True, frozen=True)
class KnownPlugin:
    key: str
    name: str
    namespace: str
    supported_sections: tuple[str, ...]
    default_priority: int
    blocks: tuple[str, ...]


KNOWN_PLUGINS: dict[str, KnownPlugin] = {
    CORE_KEY: KnownPlugin(
        key=CORE_KEY,
        name="WordPress Core Blocks",
        namespace="core",
        supported_sections=("hero", "content", "testimonial", "pricing", "team", "faq", "cta"),
        default_priority=5,
        blocks=(
            "core/paragraph",
            "core/heading",
            "core/image",
            "core/gallery",
            "core/list",
            "core/quote",
            "core/table",
            "core/button",
            "core/buttons",
            "core/columns",
            "core/column",
            "core/group",
            "core/cover",
            "core/spacer",
            "core/separator",
            "core/media-text",
            "core/details",
        ),
    ),
    "kadence_blocks": KnownPlugin(
        key="kadence_blocks",
        name="Kadence Blocks",
        namespace="kadence",
        supported_sections=("hero", "content", "testimonial", "tabs", "accordion", "pricing"),
        default_priority=8,
        blocks=(
            "kadence/rowlayout",
            "kadence/column",
            "kadence/advancedheading",
            "kadence/spacer",
            "kadence/image",
            "kadence/testimonials",
            "kadence/gallery",
            "kadence/button",
            "kadence/advancedbtn",
            "kadence/icon",
            "kadence/iconlist",
            "kadence/accordion",
            "kadence/tabs",
            "kadence/form",
            "kadence/pricelist",
        ),
    ),
    "genesis_blocks": KnownPlugin(
        key="genesis_blocks",
        name="Genesis Blocks",
        namespace="genesis-blocks",
        supported_sections=("hero", "testimonial", "pricing", "team", "cta"),
        default_priority=8,
        blocks=(
            "genesis-blocks/gb-container",
            "genesis-blocks/gb-columns",
            "genesis-blocks/gb-column",
            "genesis-blocks/gb-button",
            "genesis-blocks/gb-spacer",
            "genesis-blocks/gb-testimonial",
            "genesis-blocks/gb-accordion",
            "genesis-blocks/gb-newsletter",
            "genesis-blocks/gb-sharing",
            "genesis-blocks/gb-cta",
            "genesis-blocks/gb-pricing",
            "genesis-blocks/gb-post-grid",
            "genesis-blocks/gb-profile-box",
        ),
    ),
    "stackable": KnownPlugin(
        key="stackable",
        name="Stackable",
        namespace="ugb",
        supported_sections=("hero", "feature", "team", "testimonial"),
        default_priority=7,
        blocks=(
            "ugb/container",
            "ugb/columns",
            "ugb/heading",
            "ugb/text",
            "ugb/button",
            "ugb/image",
            "ugb/testimonial",
            "ugb/accordion",
            "ugb/expand",
            "ugb/card",
            "ugb/feature",
            "ugb/hero",
            "ugb/cta",
            "ugb/spacer",
            "ugb/pricing-box",
            "ugb/team-member",
        ),
    ),
    "ultimate_addons": KnownPlugin(
        key="ultimate_addons",
        name="Ultimate Addons for Gutenberg",
        namespace="uagb",
        supported_sections=("hero", "content", "testimonial", "team", "pricing"),
        default_priority=7,
        blocks=(
            "uagb/container",
            "uagb/advanced-heading",
            "uagb/image",
            "uagb/testimonial",
            "uagb/team",
            "uagb/call-to-action",
            "uagb/info-box",
            "uagb/social-share",
            "uagb/google-map",
            "uagb/icon-list",
            "uagb/buttons",
            "uagb/forms",
            "uagb/faq",
            "uagb/restaurant-menu",
        ),
    ),
    "generateblocks": KnownPlugin(
        key="generateblocks",
        name="GenerateBlocks",
        namespace="generateblocks",
        supported_sections=("hero", "content", "feature"),
        default_priority=6,
        blocks=(
            "generateblocks/container",
            "generateblocks/grid",
            "generateblocks/button",
            "generateblocks/headline",
            "generateblocks/image",
        ),
    ),
}

# Namespace prefixes seen in the wild that do not match their plugin key.
NAMESPACE_TO_PLUGIN: dict[str, str] = {
    "kadence": "kadence_blocks",
    "genesis-blocks": "genesis_blocks",
    "ugb": "stackable",
    "stackable": "stackable",
    "uagb": "ultimate_addons",
    "generateblocks": "generateblocks",
    "core": CORE_KEY,
}

CONTAINER_BLOCKS: frozenset[str] = frozenset(
    {
        "kadence/rowlayout",
        "genesis-blocks/gb-container",
        "core/group",
        "core/cover",
        "core/columns",
    }
)

INNER_BLOCK_SUPPORTED: frozenset[str] = CONTAINER_BLOCKS | {"core/column"}

_BACKGROUND_IMAGE_SUPPORT: dict[str, bool] = {
    "kadence/rowlayout": True,
    "genesis-blocks/gb-container": True,
    "ugb/container": True,
    "uagb/container": True,
    "generateblocks/container": True,
    "core/cover": True,
    "core/group": False,
}

_PLUGIN_STYLING_SUPPORT: dict[str, bool] = {
    "kadence_blocks": True,
    "genesis_blocks": True,
    "stackable": True,
    "ultimate_addons": True,
    "generateblocks": True,
    CORE_KEY: False,
}


def plugin_key_for_namespace(namespace: str) -> str:
    """Map a namespace prefix to a plugin key using the built-in table only."""

    return NAMESPACE_TO_PLUGIN.get(namespace, UNKNOWN_KEY)


def feature_support(block_name: str, feature: str) -> bool:
    """Static feature matrix: exact block first, then plugin-wide, then a name heuristic."""

    if feature == FEATURE_BACKGROUND_IMAGE and block_name in _BACKGROUND_IMAGE_SUPPORT:
        return _BACKGROUND_IMAGE_SUPPORT[block_name]

    plugin_key = plugin_key_for_namespace(split_block_name(block_name)[0])
    if feature in (FEATURE_ADVANCED_STYLING, FEATURE_RESPONSIVE_CONTROLS):
        if plugin_key in _PLUGIN_STYLING_SUPPORT:
            return _PLUGIN_STYLING_SUPPORT[plugin_key]
        return not block_name.startswith("core/")

    if feature == FEATURE_BACKGROUND_IMAGE:
        lowered = block_name.lower()
        return any(token in lowered for token in ("container", "row", "hero", "cover"))

    return False


def describe_block(block_name: str) -> BlockDescriptor:
    """Build a descriptor for ``block_name`` from the built-in tables."""

    features = frozenset(feature for feature in FEATURES if feature_support(block_name, feature))
    return BlockDescriptor(
        full_name=block_name,
        supports_inner_blocks=block_name in INNER_BLOCK_SUPPORTED,
        is_container=block_name in CONTAINER_BLOCKS,
        supported_features=features,
    )


def describe_plugin(
    key: str,
    *,
    active: bool,
    priority: int | None = None,
) -> PluginDescriptor:
    """Build a descriptor for a known plugin key."""

    known = KNOWN_PLUGINS.get(key)
    if known is None:
        return PluginDescriptor(
            key=key,
            name=key.replace("_", " ").title(),
            active=active,
            priority=priority or 0,
            namespace=key,
        )
    return PluginDescriptor(
        key=known.key,
        name=known.name,
        active=active,
        priority=known.default_priority if priority is None else priority,
        supported_section_types=frozenset(known.supported_sections),
        namespace=known.namespace,
    )


def default_plugins(
    active_plugins: Iterable[str],
    priorities: Mapping[str, int] | None = None,
) -> list[PluginDescriptor]:
    """Descriptors for every known plugin; only ``active_plugins`` (plus core) are active."""

    active = set(active_plugins) | {CORE_KEY}
    overrides = dict(priorities or {})
    descriptors = [
        describe_plugin(key, active=key in active, priority=overrides.get(key))
        for key in KNOWN_PLUGINS
    ]
    for key in sorted(active - set(KNOWN_PLUGINS)):
        descriptors.append(describe_plugin(key, active=True, priority=overrides.get(key)))
    return descriptors


def default_blocks(active_plugins: Iterable[str]) -> list[BlockDescriptor]:
    """Descriptors for every known block of the active plugins (core always included)."""

    keys = [CORE_KEY, *(key for key in active_plugins if key != CORE_KEY)]
    blocks: list[BlockDescriptor] = []
    seen: set[str] = set()
    for key in keys:
        known = KNOWN_PLUGINS.get(key)
        if known is None:
            continue
        for name in known.blocks:
            if name not in seen:
                seen.add(name)
                blocks.append(describe_block(name))
    return blocks
