"""Turn an ordered list of abstract sections into an ordered list of concrete blocks."""

from __future__ import annotations

import asyncio
import functools
import logging
import re
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from html import escape

from bs4 import BeautifulSoup

from pagecomposer.assembly.models import (
    AssemblyMetadata,
    AssemblyOptions,
    AssemblyResult,
    PluginIndicator,
    SectionRequest,
)
from pagecomposer.assembly.validation import (
    BlockValidationError,
    ValidationLimits,
    final_warnings,
    validate_block,
)
from pagecomposer.blocks.attributes import (
    image_optimization_attributes,
    merge_attributes,
    section_attributes,
)
from pagecomposer.blocks.fallback import FallbackAdvisor
from pagecomposer.blocks.preferences import AUTO, BlockPreference, default_preference
from pagecomposer.blocks.resolver import BlockResolver, ResolvedBlock
from pagecomposer.catalog.models import CORE_KEY, split_block_name
from pagecomposer.catalog.registry import CatalogSnapshot

MISSING_ALT_WARNING = "Image missing alt text"
DISALLOWED_TAGS: tuple[str, ...] = ("script", "style", "iframe", "object", "embed")
_HEADING_RE = re.compile(r"^h([1-6])$")


@dataclass(slots=True)
class SectionOutcome:
    block: ResolvedBlock
    indicator: PluginIndicator
    warnings: list[str] = field(default_factory=list)
    missing_alt: int = 0
    has_media: bool = False


def placeholder_alt(section: SectionRequest) -> str:
    alt = f"{section.content_type.replace('_', ' ').capitalize()} section image"
    if section.heading:
        alt = f"{alt}: {section.heading}"
    return alt


def _min_heading_level(html: str) -> int | None:
    if not html:
        return None
    soup = BeautifulSoup(html, "html.parser")
    levels = [int(tag.name[1]) for tag in soup.find_all(_HEADING_RE)]
    return min(levels) if levels else None


def _all_html(block: ResolvedBlock) -> str:
    return block.inner_html + "".join(_all_html(inner) for inner in block.inner_blocks)


def _missing_alt_count(html: str) -> int:
    if not html:
        return 0
    soup = BeautifulSoup(html, "html.parser")
    return sum(1 for img in soup.find_all("img") if not str(img.get("alt") or "").strip())


class AssemblyEngine:
    """Stateless across calls; every call works against the snapshot it was built with."""

    def __init__(
        self,
        snapshot: CatalogSnapshot,
        advisor: FallbackAdvisor | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.snapshot = snapshot
        self.resolver = BlockResolver(snapshot)
        self.advisor = advisor or FallbackAdvisor(snapshot)
        self.logger = logger or logging.getLogger(__name__)

    def assemble(
        self,
        sections: Sequence[SectionRequest],
        options: AssemblyOptions | None = None,
    ) -> AssemblyResult:
        options = options or AssemblyOptions()
        outcomes = [self._assemble_section(section, options) for section in sections]
        return self._collect(outcomes)

    async def assemble_async(
        self,
        sections: Sequence[SectionRequest],
        options: AssemblyOptions | None = None,
    ) -> AssemblyResult:
        """Resolve sections concurrently; gather() keeps results in input order."""

        options = options or AssemblyOptions()
        loop = asyncio.get_running_loop()
        tasks = [
            loop.run_in_executor(None, functools.partial(self._assemble_section, section, options))
            for section in sections
        ]
        outcomes = await asyncio.gather(*tasks)
        return self._collect(list(outcomes))

    def _preference_for(self, section: SectionRequest, options: AssemblyOptions) -> BlockPreference:
        if section.preference is not None:
            return section.preference
        preferred = options.section_mappings.get(section.content_type, AUTO)
        return default_preference(section.content_type, preferred)

    def _assemble_section(self, section: SectionRequest, options: AssemblyOptions) -> SectionOutcome:
        try:
            return self._build_section(section, options)
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.exception("Section %s could not be assembled; substituting core/group.", section.id)
            warning = f"Section {section.id}: {exc}; substituted core/group"
            block = self._substitute(section)
            core = self.snapshot.get(CORE_KEY)
            indicator = PluginIndicator(
                section_id=str(section.id),
                plugin_used=CORE_KEY,
                block_name=block.block_name,
                fallback_used=True,
                plugin_name=core.name if core else CORE_KEY,
                warnings=[warning],
            )
            return SectionOutcome(
                block=block,
                indicator=indicator,
                warnings=[warning],
                missing_alt=_missing_alt_count(_all_html(block)),
            )

    def _build_section(self, section: SectionRequest, options: AssemblyOptions) -> SectionOutcome:
        warnings: list[str] = []
        preference = self._preference_for(section, options)
        resolved = self.resolver.resolve(section.content_type, preference, section_id=section.id)

        body, missing_body_alt = self._prepare_body(section, options, warnings)
        missing_alt = missing_body_alt

        media_url = media_alt = media_id = None
        if section.has_media:
            media_url = section.media.url
            media_id = section.media.id
            media_alt = (section.media.alt or "").strip()
            if not media_alt:
                warnings.append(MISSING_ALT_WARNING)
                media_alt = placeholder_alt(section)
                missing_alt += 1

        level = section.effective_heading_level
        attributes = merge_attributes(
            resolved.attributes,
            section_attributes(
                resolved.block_name,
                content_type=section.content_type,
                heading=section.heading,
                heading_level=level,
                media_url=media_url,
                media_alt=media_alt,
                media_id=media_id,
            ),
            preference.custom_attributes,
        )
        if options.optimize_images and media_url:
            for key, value in image_optimization_attributes(resolved.block_name).items():
                attributes.setdefault(key, value)

        block = ResolvedBlock(
            plugin_key=resolved.plugin_key,
            block_name=resolved.block_name,
            fallback_used=resolved.fallback_used,
            attributes=attributes,
            inner_html=self._inner_html(section, resolved.block_name, body, level, media_url, media_alt),
        )

        limits = ValidationLimits(
            max_internal_links=options.max_internal_links,
            max_text_length=options.max_text_length,
            site_url=options.site_url,
        )
        has_media = section.has_media
        try:
            validate_block(block, limits)
        except BlockValidationError as exc:
            self.logger.warning("Section %s failed validation: %s", section.id, exc)
            warnings.append(f"Section {section.id}: {exc}; substituted core/group")
            block = self._substitute(section)
            # the substitute drops the media block; only images in the raw body remain
            has_media = False
            missing_alt = _missing_alt_count(_all_html(block))

        if block.fallback_used:
            self.logger.info(
                "Section %s (%s) assembled with fallback block %s.",
                section.id,
                section.content_type,
                block.block_name,
            )

        indicator = self._indicator(section, block, preference, options)
        indicator.warnings = list(warnings)
        return SectionOutcome(
            block=block,
            indicator=indicator,
            warnings=warnings,
            missing_alt=missing_alt,
            has_media=has_media,
        )

    def _prepare_body(
        self,
        section: SectionRequest,
        options: AssemblyOptions,
        warnings: list[str],
    ) -> tuple[str, int]:
        html = section.body_html or ""
        if not html:
            return "", 0
        soup = BeautifulSoup(html, "html.parser")
        changed = False

        if options.validate_html:
            removed = soup.find_all(DISALLOWED_TAGS)
            if removed:
                for tag in removed:
                    tag.decompose()
                warnings.append(f"Section {section.id}: removed disallowed markup")
                changed = True

        images = soup.find_all("img")
        missing = sum(1 for img in images if not str(img.get("alt") or "").strip())
        if options.optimize_images and images:
            for img in images:
                img["loading"] = "lazy"
                if not str(img.get("alt") or "").strip():
                    img["alt"] = placeholder_alt(section)
            changed = True

        return (str(soup) if changed else html), missing

    def _inner_html(
        self,
        section: SectionRequest,
        block_name: str,
        body: str,
        level: int,
        media_url: str | None,
        media_alt: str | None,
    ) -> str:
        namespace, short = split_block_name(block_name)
        parts = [f'<div class="wp-block-{namespace}-{short}" id="{escape(section.id)}">']
        if section.heading:
            parts.append(f"<h{level}>{escape(section.heading)}</h{level}>")
        if media_url:
            parts.append(f'<img src="{escape(media_url)}" alt="{escape(media_alt or "")}"/>')
        if body:
            parts.append(body)
        parts.append("</div>")
        return "".join(parts)

    def _substitute(self, section: SectionRequest) -> ResolvedBlock:
        if isinstance(section.body_html, str) and section.body_html:
            raw = section.body_html
        else:
            raw = escape(str(section.heading or ""))
        paragraph = ResolvedBlock(
            plugin_key=CORE_KEY,
            block_name="core/paragraph",
            fallback_used=True,
            inner_html=f"<p>{raw}</p>",
        )
        return ResolvedBlock(
            plugin_key=CORE_KEY,
            block_name="core/group",
            fallback_used=True,
            attributes={"layout": {"type": "constrained"}},
            inner_blocks=[paragraph],
        )

    def _indicator(
        self,
        section: SectionRequest,
        block: ResolvedBlock,
        preference: BlockPreference,
        options: AssemblyOptions,
    ) -> PluginIndicator:
        plugin = self.snapshot.get(block.plugin_key)
        indicator = PluginIndicator(
            section_id=section.id,
            plugin_used=block.plugin_key,
            block_name=block.block_name,
            fallback_used=block.fallback_used,
            plugin_name=plugin.name if plugin else block.plugin_key,
        )
        if block.fallback_used and options.include_recommendations:
            recommendation = self.advisor.recommend(
                section.content_type,
                self.snapshot,
                original_block=preference.primary_block,
            )
            indicator.suggested_block = recommendation.block.block_name
            indicator.suggestion_confidence = recommendation.confidence
        return indicator

    def _collect(self, outcomes: list[SectionOutcome]) -> AssemblyResult:
        blocks = [outcome.block for outcome in outcomes]
        usage = Counter(block.plugin_key for block in blocks)
        fallbacks = sum(1 for block in blocks if block.fallback_used)

        warnings: list[str] = []
        for outcome in outcomes:
            warnings.extend(outcome.warnings)

        score = accessibility_score(outcomes)
        warnings.extend(final_warnings(len(blocks), score, fallbacks))

        metadata = AssemblyMetadata(
            blocks_used=dict(usage),
            fallbacks_applied=fallbacks,
            validation_warnings=warnings,
            accessibility_score=score,
            estimated_load_time_s=estimate_load_time(
                len(blocks), sum(1 for outcome in outcomes if outcome.has_media)
            ),
        )
        self.logger.info(
            "Assembled %s blocks (%s fallbacks, accessibility %s).",
            len(blocks),
            fallbacks,
            score,
        )
        return AssemblyResult(
            blocks=blocks,
            metadata=metadata,
            plugin_indicators=[outcome.indicator for outcome in outcomes],
        )


def accessibility_score(outcomes: Sequence[SectionOutcome]) -> int:
    score = 100
    for outcome in outcomes:
        score -= 10 * outcome.missing_alt
        level = _min_heading_level(_all_html(outcome.block))
        if level is not None and level > 2:
            score -= 5
    return max(0, score)


def estimate_load_time(block_count: int, media_count: int) -> float:
    return round(0.2 + 0.05 * block_count + 0.3 * media_count, 3)
