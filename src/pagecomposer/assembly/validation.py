"""Structural checks applied to every assembled block."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from pagecomposer.blocks.attributes import attributes_for_namespace
from pagecomposer.blocks.resolver import ResolvedBlock
from pagecomposer.catalog.models import split_block_name

HEADING_TAG_PATTERN = re.compile(r"^h[1-6]$")

EMPTY_RESULT_WARNING = "No blocks were assembled"
HIGH_FALLBACK_WARNING = "High fallback usage (>50% of blocks)"
ACCESSIBILITY_THRESHOLD = 80


class BlockValidationError(ValueError):
    """A single block failed structural validation."""

    def __init__(self, block_name: str, reason: str) -> None:
        super().__init__(f"{block_name or '<unnamed>'}: {reason}")
        self.block_name = block_name
        self.reason = reason


@dataclass(slots=True, frozen=True)
class ValidationLimits:
    max_internal_links: int = 10
    max_text_length: int = 5000
    site_url: str | None = None


def is_valid_heading_tag(value: Any) -> bool:
    """Tag format only (``h1``..``h6``); document-wide heading order is not tracked."""

    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        value = f"h{value}"
    return isinstance(value, str) and bool(HEADING_TAG_PATTERN.match(value.lower()))


def _is_internal(href: str, site_host: str | None) -> bool:
    href = href.strip()
    if not href or href.startswith(("#", "/")):
        return True
    parts = urlsplit(href)
    if not parts.scheme and not parts.netloc:
        return True
    if parts.scheme not in ("http", "https"):
        return False
    return site_host is not None and parts.netloc.lower() == site_host


def count_internal_links(html: str, site_url: str | None = None) -> int:
    if not html:
        return 0
    site_host = urlsplit(site_url).netloc.lower() if site_url else None
    soup = BeautifulSoup(html, "html.parser")
    return sum(1 for anchor in soup.find_all("a", href=True) if _is_internal(anchor["href"], site_host))


def text_length(html: str) -> int:
    if not html:
        return 0
    return len(BeautifulSoup(html, "html.parser").get_text(" ", strip=True))


def validate_block(block: ResolvedBlock, limits: ValidationLimits | None = None) -> None:
    """Raise ``BlockValidationError`` on the first rule ``block`` (or a nested block) breaks."""

    limits = limits or ValidationLimits()
    name = block.block_name.strip() if block.block_name else ""
    if not name:
        raise BlockValidationError("", "block name is empty")

    attrs = block.attributes
    entry = attributes_for_namespace(split_block_name(name)[0])
    tag_key = entry.heading_tag_key
    if tag_key in attrs:
        value = attrs[tag_key]
        structural = isinstance(value, str) and value.lower() in entry.structural_tags
        if not structural and not is_valid_heading_tag(value):
            kind = "level" if entry.heading_as_level else "tag"
            raise BlockValidationError(name, f"invalid heading {kind} {value!r}")

    if attrs.get(entry.media_url_key) and not str(attrs.get(entry.media_alt_key) or "").strip():
        raise BlockValidationError(name, "image is missing alt text")

    links = count_internal_links(block.inner_html, limits.site_url)
    if links > limits.max_internal_links:
        raise BlockValidationError(
            name, f"{links} internal links exceeds limit of {limits.max_internal_links}"
        )

    length = text_length(block.inner_html)
    if length > limits.max_text_length:
        raise BlockValidationError(
            name, f"text length {length} exceeds limit of {limits.max_text_length}"
        )

    for inner in block.inner_blocks:
        validate_block(inner, limits)


def final_warnings(block_count: int, accessibility_score: int, fallbacks_applied: int) -> list[str]:
    """Cross-block checks run once after every section has been assembled."""

    warnings: list[str] = []
    if block_count == 0:
        warnings.append(EMPTY_RESULT_WARNING)
        return warnings
    if accessibility_score < ACCESSIBILITY_THRESHOLD:
        warnings.append(f"Accessibility score below threshold ({accessibility_score}/100)")
    if fallbacks_applied / block_count > 0.5:
        warnings.append(HIGH_FALLBACK_WARNING)
    return warnings
