"""Attribute skeletons and per-namespace attribute mapping.

Each block namespace names its heading and media attributes differently. The strategy
table below maps a namespace to those names plus a skeleton builder; ``core`` is the
catch-all for any namespace without an entry.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from hashlib import sha256
from typing import Any

from pagecomposer.catalog.models import split_block_name

SkeletonBuilder = Callable[[str, str], dict[str, Any]]

BLOCK_DEFAULTS: dict[str, dict[str, Any]] = {
    "kadence/rowlayout": {
        "uniqueID": "",
        "columns": 1,
        "padding": ["20", "20", "20", "20"],
        "backgroundImg": [],
        "backgroundOverlay": [],
    },
    "kadence/testimonials": {
        "uniqueID": "",
        "testimonialCount": 1,
        "layout": "simple",
        "displayTitle": True,
    },
    "kadence/accordion": {
        "uniqueID": "",
        "paneCount": 3,
        "startClosed": False,
        "showIcon": True,
    },
    "genesis-blocks/gb-container": {
        "containerPaddingTop": 20,
        "containerPaddingBottom": 20,
        "containerMaxWidth": 1200,
        "containerImgID": 0,
    },
    "core/cover": {
        "dimRatio": 30,
        "minHeight": 400,
        "contentPosition": "center center",
        "backgroundType": "image",
    },
    "core/group": {
        "layout": {"type": "constrained"},
        "style": {},
    },
    "core/columns": {
        "columns": 2,
        "isStackedOnMobile": True,
    },
}


@dataclass(slots=True, frozen=True)
class NamespaceAttributes:
    """Attribute names one namespace uses for headings and media."""

    heading_tag_key: str
    heading_text_key: str
    media_url_key: str
    media_alt_key: str
    media_id_key: str
    heading_as_level: bool = False
    skeleton: SkeletonBuilder | None = None
    # non-heading values the heading key may also hold (container elements)
    structural_tags: frozenset[str] = frozenset()

    def heading_tag_value(self, level: int) -> Any:
        return level if self.heading_as_level else f"h{level}"


def unique_block_id(section_id: str, block_name: str) -> str:
    """Stable block id so the same section always serializes identically."""

    digest = sha256(f"{section_id}:{block_name}".encode("utf-8")).hexdigest()[:8]
    return f"{section_id}-{digest}"


def _kadence_skeleton(block_name: str, unique_id: str) -> dict[str, Any]:
    attrs: dict[str, Any] = {"uniqueID": unique_id}
    _, short = split_block_name(block_name)
    if "rowlayout" in short:
        attrs.update(
            {
                "colLayout": "equal",
                "tabletLayout": "equal",
                "mobileLayout": "row",
                "columnGutter": "default",
            }
        )
    if "advancedheading" in short:
        attrs.update({"sizeType": "px", "size": [24, 20, 18]})
    return attrs


def _genesis_skeleton(block_name: str, unique_id: str) -> dict[str, Any]:
    if "container" in block_name:
        return {"containerMaxWidth": 1200, "containerPaddingTop": 0, "containerPaddingBottom": 0}
    return {}


def _unique_id_skeleton(block_name: str, unique_id: str) -> dict[str, Any]:
    return {"uniqueID": unique_id}


def _block_id_skeleton(block_name: str, unique_id: str) -> dict[str, Any]:
    return {"block_id": unique_id}


NAMESPACE_ATTRIBUTES: dict[str, NamespaceAttributes] = {
    "core": NamespaceAttributes(
        heading_tag_key="level",
        heading_text_key="content",
        media_url_key="url",
        media_alt_key="alt",
        media_id_key="id",
        heading_as_level=True,
    ),
    "kadence": NamespaceAttributes(
        heading_tag_key="htmlTag",
        heading_text_key="content",
        media_url_key="url",
        media_alt_key="alt",
        media_id_key="id",
        skeleton=_kadence_skeleton,
    ),
    "genesis-blocks": NamespaceAttributes(
        heading_tag_key="headingTag",
        heading_text_key="content",
        media_url_key="containerImgURL",
        media_alt_key="containerImgAlt",
        media_id_key="containerImgID",
        skeleton=_genesis_skeleton,
    ),
    "ugb": NamespaceAttributes(
        heading_tag_key="titleTag",
        heading_text_key="title",
        media_url_key="imageUrl",
        media_alt_key="imageAlt",
        media_id_key="imageId",
        skeleton=_unique_id_skeleton,
    ),
    "uagb": NamespaceAttributes(
        heading_tag_key="headingTag",
        heading_text_key="headingTitle",
        media_url_key="url",
        media_alt_key="alt",
        media_id_key="id",
        skeleton=_block_id_skeleton,
    ),
    "generateblocks": NamespaceAttributes(
        heading_tag_key="element",
        heading_text_key="content",
        media_url_key="mediaUrl",
        media_alt_key="alt",
        media_id_key="mediaId",
        skeleton=_unique_id_skeleton,
        structural_tags=frozenset(
            {"div", "section", "header", "footer", "article", "aside", "nav", "main", "p", "span"}
        ),
    ),
}

# Extra styling per (namespace, content type).
_CONTENT_TYPE_ATTRIBUTES: dict[tuple[str, str], dict[str, Any]] = {
    ("kadence", "hero"): {
        "backgroundOverlay": {"color": "rgba(0,0,0,0.3)"},
        "padding": ["100", "20", "100", "20"],
        "textAlign": "center",
    },
    ("kadence", "content"): {
        "padding": ["40", "20", "40", "20"],
        "textAlign": "left",
    },
}


def attributes_for_namespace(namespace: str) -> NamespaceAttributes:
    return NAMESPACE_ATTRIBUTES.get(namespace, NAMESPACE_ATTRIBUTES["core"])


def default_attributes(block_name: str, unique_id: str = "") -> dict[str, Any]:
    """Static defaults for ``block_name`` plus its namespace skeleton."""

    attrs = copy.deepcopy(BLOCK_DEFAULTS.get(block_name, {}))
    namespace = split_block_name(block_name)[0]
    entry = NAMESPACE_ATTRIBUTES.get(namespace)
    if entry is not None and entry.skeleton is not None:
        attrs.update(entry.skeleton(block_name, unique_id))
    return attrs


def merge_attributes(
    defaults: Mapping[str, Any],
    *overrides: Mapping[str, Any],
) -> dict[str, Any]:
    """Shallow merge; later mappings win on key collision."""

    merged = dict(defaults)
    for override in overrides:
        merged.update(override)
    return merged


def section_attributes(
    block_name: str,
    *,
    content_type: str,
    heading: str | None,
    heading_level: int,
    media_url: str | None = None,
    media_alt: str | None = None,
    media_id: Any = None,
) -> dict[str, Any]:
    """Map a section's heading and media onto the namespace's attribute names."""

    namespace = split_block_name(block_name)[0]
    entry = attributes_for_namespace(namespace)
    attrs: dict[str, Any] = dict(_CONTENT_TYPE_ATTRIBUTES.get((namespace, content_type), {}))

    if namespace == "genesis-blocks":
        attrs["className"] = f"gb-block-{content_type}"

    if heading:
        attrs[entry.heading_tag_key] = entry.heading_tag_value(heading_level)
        attrs[entry.heading_text_key] = heading

    if media_url:
        attrs[entry.media_url_key] = media_url
        attrs[entry.media_alt_key] = media_alt or ""
        if media_id is not None:
            attrs[entry.media_id_key] = media_id

    return attrs


def image_optimization_attributes(block_name: str) -> dict[str, Any]:
    """Lazy-load and responsive hints for blocks carrying media."""

    namespace = split_block_name(block_name)[0]
    attrs: dict[str, Any] = {"loading": "lazy"}
    if namespace == "core":
        attrs["sizeSlug"] = "large"
    else:
        attrs["responsive"] = True
    return attrs
