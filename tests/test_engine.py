"""Tests for the assembly engine."""

from __future__ import annotations

import pytest

from pagecomposer.assembly import (
    MISSING_ALT_WARNING,
    AssemblyEngine,
    AssemblyOptions,
    InvalidSectionsError,
    SectionRequest,
    parse_sections,
)
from pagecomposer.assembly.engine import accessibility_score, estimate_load_time, placeholder_alt
from pagecomposer.assembly.models import MediaRef
from pagecomposer.assembly.validation import HIGH_FALLBACK_WARNING
from pagecomposer.blocks import BlockPreference
from pagecomposer.catalog import CatalogSnapshot, build_default_snapshot


@pytest.fixture
def core_snapshot() -> CatalogSnapshot:
    return build_default_snapshot()


@pytest.fixture
def plugin_snapshot() -> CatalogSnapshot:
    return build_default_snapshot(["kadence_blocks", "stackable", "genesis_blocks"])


def _sections(*items: dict) -> list[SectionRequest]:
    return parse_sections(list(items))


class TestOrderAndCounting:
    def test_blocks_follow_section_order(self, plugin_snapshot):
        sections = _sections(
            {"id": "s0", "type": "hero", "heading": "Welcome"},
            {"id": "s1", "type": "faq", "heading": "Questions"},
            {"id": "s2", "type": "testimonial", "content": "<p>Great!</p>"},
            {"id": "s3", "type": "gallery"},
            {"id": "s4", "type": "cta", "heading": "Buy"},
        )

        result = AssemblyEngine(plugin_snapshot).assemble(sections)

        assert len(result.blocks) == len(sections)
        assert [indicator.section_id for indicator in result.plugin_indicators] == [
            "s0",
            "s1",
            "s2",
            "s3",
            "s4",
        ]
        for section, block in zip(sections, result.blocks):
            assert f'id="{section.id}"' in block.inner_html

    def test_fallback_count_matches_indicators(self):
        snapshot = CatalogSnapshot.from_descriptors([], ["core/cover", "core/group"])
        sections = _sections(
            {"type": "hero", "heading": "A"},
            {"type": "pricing", "heading": "B"},
            {"type": "team", "heading": "C"},
        )

        result = AssemblyEngine(snapshot).assemble(sections)

        flagged = sum(1 for indicator in result.plugin_indicators if indicator.fallback_used)
        assert result.metadata.fallbacks_applied == flagged == 2
        assert result.metadata.blocks_used == {"core": 3}

    def test_high_fallback_usage_warning(self):
        snapshot = CatalogSnapshot.from_descriptors(
            [], ["core/cover", "core/group", "core/paragraph"]
        )
        sections = _sections(
            *({"type": "hero", "heading": f"Hero {i}"} for i in range(4)),
            *({"type": "pricing", "heading": f"Plan {i}"} for i in range(6)),
        )

        result = AssemblyEngine(snapshot).assemble(sections)

        assert result.metadata.fallbacks_applied == 6
        assert result.fallback_ratio == pytest.approx(0.6)
        assert HIGH_FALLBACK_WARNING in result.metadata.validation_warnings

    def test_empty_sections_assemble_to_empty_result(self, core_snapshot):
        result = AssemblyEngine(core_snapshot).assemble([])

        assert result.blocks == []
        assert result.metadata.validation_warnings == ["No blocks were assembled"]


class TestAccessibility:
    def test_missing_media_alt_keeps_block(self, core_snapshot):
        sections = _sections({"id": "hero", "type": "hero", "media": {"url": "x.jpg"}})

        result = AssemblyEngine(core_snapshot).assemble(sections)

        assert len(result.blocks) == 1
        block = result.blocks[0]
        assert MISSING_ALT_WARNING in result.metadata.validation_warnings
        assert block.attributes["url"] == "x.jpg"
        assert block.attributes["alt"] == "Hero section image"
        assert 'alt="Hero section image"' in block.inner_html
        assert result.metadata.accessibility_score == 90

    def test_image_without_alt_costs_exactly_ten(self, core_snapshot):
        engine = AssemblyEngine(core_snapshot)
        clean = _sections({"id": "intro", "type": "content", "heading": "Intro"})
        with_image = clean + [
            SectionRequest(id="hero", content_type="hero", media=MediaRef(url="hero.jpg"))
        ]

        before = engine.assemble(clean).metadata.accessibility_score
        after = engine.assemble(with_image).metadata.accessibility_score

        assert before == 100
        assert after == before - 10

    def test_score_bounded_at_zero(self, core_snapshot):
        sections = [
            SectionRequest(id=f"img-{i}", content_type="hero", media=MediaRef(url=f"{i}.jpg"))
            for i in range(12)
        ]

        result = AssemblyEngine(core_snapshot).assemble(sections)

        assert result.metadata.accessibility_score == 0
        assert "Accessibility score below threshold (0/100)" in result.metadata.validation_warnings

    def test_body_images_without_alt_are_counted_and_fixed(self, core_snapshot):
        sections = _sections(
            {"id": "body", "type": "content", "heading": "Gallery", "content": '<img src="a.jpg">'}
        )

        result = AssemblyEngine(core_snapshot).assemble(sections)
        html = result.blocks[0].inner_html

        assert result.metadata.accessibility_score == 90
        assert 'loading="lazy"' in html
        assert 'alt="Content section image: Gallery"' in html

    def test_deep_heading_level_penalized(self, core_snapshot):
        sections = _sections({"type": "content", "heading": "Small", "heading_level": 4})

        result = AssemblyEngine(core_snapshot).assemble(sections)

        assert "<h4>Small</h4>" in result.blocks[0].inner_html
        assert result.metadata.accessibility_score == 95


class TestAttributes:
    def test_hero_on_kadence(self, plugin_snapshot):
        sections = _sections(
            {
                "id": "hero",
                "type": "hero",
                "heading": "Tom & Jerry",
                "media": {"id": 7, "url": "https://cdn.test/h.jpg", "alt": "Cat and mouse"},
                "preference": {"preferred_plugin": "kadence_blocks"},
            }
        )

        block = AssemblyEngine(plugin_snapshot).assemble(sections).blocks[0]

        assert block.block_name == "kadence/rowlayout"
        assert block.fallback_used is False
        assert block.attributes["htmlTag"] == "h1"
        assert block.attributes["content"] == "Tom & Jerry"
        assert block.attributes["id"] == 7
        assert block.attributes["loading"] == "lazy"
        assert block.attributes["responsive"] is True
        assert block.attributes["textAlign"] == "center"
        assert "<h1>Tom &amp; Jerry</h1>" in block.inner_html
        assert block.inner_html.startswith('<div class="wp-block-kadence-rowlayout" id="hero">')

    def test_section_mappings_pick_plugin(self, plugin_snapshot):
        sections = _sections({"type": "hero", "heading": "Hello"})
        options = AssemblyOptions(section_mappings={"hero": "stackable"})

        block = AssemblyEngine(plugin_snapshot).assemble(sections, options).blocks[0]

        assert block.block_name == "ugb/hero"
        assert block.attributes["titleTag"] == "h1"
        assert block.attributes["title"] == "Hello"
        assert "uniqueID" in block.attributes

    def test_custom_attributes_win(self, core_snapshot):
        section = SectionRequest(
            id="c",
            content_type="content",
            heading="Hi",
            preference=BlockPreference(custom_attributes={"level": 3, "style": {"color": "red"}}),
        )

        block = AssemblyEngine(core_snapshot).assemble([section]).blocks[0]

        assert block.attributes["level"] == 3
        assert block.attributes["style"] == {"color": "red"}

    def test_optimize_images_disabled(self, core_snapshot):
        sections = _sections({"type": "hero", "media": {"url": "x.jpg", "alt": "X"}})
        options = AssemblyOptions(optimize_images=False)

        block = AssemblyEngine(core_snapshot).assemble(sections, options).blocks[0]

        assert "loading" not in block.attributes
        assert "sizeSlug" not in block.attributes


class TestValidationFailures:
    def test_disallowed_markup_removed(self, core_snapshot):
        sections = _sections(
            {"id": "s1", "type": "content", "content": "<p>ok</p><script>alert(1)</script>"}
        )

        result = AssemblyEngine(core_snapshot).assemble(sections)

        assert "<script>" not in result.blocks[0].inner_html
        assert "Section s1: removed disallowed markup" in result.metadata.validation_warnings
        assert result.plugin_indicators[0].warnings == ["Section s1: removed disallowed markup"]

    def test_invalid_block_is_substituted(self, core_snapshot):
        sections = _sections({"id": "long", "type": "content", "content": "<p>far too long</p>"})
        options = AssemblyOptions(max_text_length=5)

        result = AssemblyEngine(core_snapshot).assemble(sections, options)
        block = result.blocks[0]

        assert block.block_name == "core/group"
        assert block.fallback_used is True
        assert block.inner_blocks[0].block_name == "core/paragraph"
        assert "far too long" in block.inner_blocks[0].inner_html
        assert any("substituted core/group" in w for w in result.metadata.validation_warnings)
        assert result.metadata.fallbacks_applied == 1

    def test_substitute_drops_section_media(self, core_snapshot):
        long_body = "<p>" + "x" * 6000 + "</p>"
        sections = _sections({"id": "big", "type": "hero", "media": {"url": "h.jpg"}, "content": long_body})

        result = AssemblyEngine(core_snapshot).assemble(sections)

        assert result.blocks[0].block_name == "core/group"
        assert result.metadata.estimated_load_time_s == 0.25
        assert result.metadata.accessibility_score == 100

    def test_substitute_counts_images_left_in_body(self, core_snapshot):
        body = '<img src="a.jpg"><p>' + "x" * 6000 + "</p>"
        sections = _sections({"id": "big", "type": "content", "content": body})

        result = AssemblyEngine(core_snapshot).assemble(sections)

        assert result.blocks[0].block_name == "core/group"
        assert result.metadata.estimated_load_time_s == 0.25
        assert result.metadata.accessibility_score == 90

    def test_link_limit_from_options(self, core_snapshot):
        links = "".join(f'<a href="/p{i}">{i}</a>' for i in range(4))
        sections = _sections({"id": "links", "type": "content", "content": links})

        result = AssemblyEngine(core_snapshot).assemble(sections, AssemblyOptions(max_internal_links=3))

        assert result.blocks[0].block_name == "core/group"
        assert any("internal links" in w for w in result.metadata.validation_warnings)


class TestRecommendations:
    def test_fallback_indicator_carries_suggestion(self):
        snapshot = CatalogSnapshot.from_descriptors([], ["core/group"])
        sections = _sections({"id": "p", "type": "pricing"})

        indicator = AssemblyEngine(snapshot).assemble(sections).plugin_indicators[0]

        assert indicator.fallback_used is True
        assert indicator.suggested_block == "core/group"
        assert indicator.suggestion_confidence == 60
        assert indicator.to_dict()["suggested_block"] == "core/group"

    def test_recommendations_can_be_disabled(self):
        snapshot = CatalogSnapshot.from_descriptors([], ["core/group"])
        sections = _sections({"id": "p", "type": "pricing"})
        options = AssemblyOptions(include_recommendations=False)

        indicator = AssemblyEngine(snapshot).assemble(sections, options).plugin_indicators[0]

        assert indicator.suggested_block is None
        assert "suggested_block" not in indicator.to_dict()

    def test_plugin_name_on_indicator(self, plugin_snapshot):
        sections = _sections({"type": "faq", "preference": {"preferred_plugin": "kadence_blocks"}})

        indicator = AssemblyEngine(plugin_snapshot).assemble(sections).plugin_indicators[0]

        assert indicator.plugin_used == "kadence_blocks"
        assert indicator.plugin_name == "Kadence Blocks"
        assert indicator.block_name == "kadence/accordion"


@pytest.mark.asyncio
async def test_async_assembly_matches_sync(plugin_snapshot):
    sections = _sections(
        {"id": "a", "type": "hero", "heading": "A", "media": {"url": "a.jpg"}},
        {"id": "b", "type": "team", "heading": "B"},
        {"id": "c", "type": "faq", "content": "<p>Q?</p>"},
    )
    engine = AssemblyEngine(plugin_snapshot)

    expected = engine.assemble(sections).to_dict()
    actual = (await engine.assemble_async(sections)).to_dict()

    assert actual == expected


class TestParseSections:
    @pytest.mark.parametrize("payload", [[], None, {"type": "hero"}, "hero"])
    def test_rejects_unusable_payloads(self, payload):
        with pytest.raises(InvalidSectionsError):
            parse_sections(payload)

    def test_rejects_non_mapping_entries(self):
        with pytest.raises(InvalidSectionsError, match="Section 1"):
            parse_sections([{"type": "hero"}, "oops"])

    def test_defaults(self):
        sections = parse_sections([{"type": "hero", "media": "x.jpg"}, {}])

        assert sections[0].id == "section-0"
        assert sections[0].effective_heading_level == 1
        assert sections[0].media.url == "x.jpg"
        assert sections[1].content_type == "content"
        assert sections[1].effective_heading_level == 2
        assert sections[1].has_media is False


def test_placeholder_alt():
    assert placeholder_alt(SectionRequest(id="x", content_type="team")) == "Team section image"
    assert (
        placeholder_alt(SectionRequest(id="x", content_type="hero", heading="Hi"))
        == "Hero section image: Hi"
    )


def test_estimate_load_time():
    assert estimate_load_time(0, 0) == 0.2
    assert estimate_load_time(4, 2) == 1.0


def test_accessibility_score_of_nothing():
    assert accessibility_score([]) == 100


class TestMalformedSections:
    def test_scalar_fields_are_coerced(self, core_snapshot):
        sections = _sections(
            {"id": "a", "heading": "Ok"},
            {"id": "b", "heading": 2024, "content": 42, "media": {"url": "x.jpg", "alt": 7}},
        )

        assert sections[1].heading == "2024"
        assert sections[1].body_html == "42"
        assert sections[1].media.alt == "7"

        result = AssemblyEngine(core_snapshot).assemble(sections)

        assert len(result.blocks) == 2
        assert "<h2>2024</h2>" in result.blocks[1].inner_html

    def test_unusable_media_is_ignored(self):
        sections = _sections({"id": "a", "media": ["x.jpg"]}, {"id": "b", "media": {"url": ["x.jpg"]}})

        assert sections[0].media is None
        assert sections[1].has_media is False

    def test_failing_section_is_substituted_in_place(self, core_snapshot, caplog):
        sections = [SectionRequest(id="a", heading="Ok"), SectionRequest(id="b", heading=2024)]

        result = AssemblyEngine(core_snapshot).assemble(sections)

        assert [indicator.section_id for indicator in result.plugin_indicators] == ["a", "b"]
        substitute = result.blocks[1]
        assert substitute.block_name == "core/group"
        assert substitute.fallback_used is True
        assert "2024" in substitute.inner_blocks[0].inner_html
        assert result.plugin_indicators[1].fallback_used is True
        assert result.plugin_indicators[1].warnings[0].startswith("Section b:")
        assert "could not be assembled" in caplog.text

    @pytest.mark.parametrize(
        "item,expected",
        [
            ({"heading_level": "h3"}, 3),
            ({"heading_level": "H5"}, 5),
            ({"heading_level": 4}, 4),
            ({"heading_level": "big"}, 2),
            ({"type": "hero", "heading_level": 9}, 1),
            ({"heading_level": True}, 2),
        ],
    )
    def test_heading_level_parsing(self, item, expected):
        assert parse_sections([item])[0].effective_heading_level == expected

    def test_malformed_preferences_are_dropped(self):
        sections = _sections(
            {"id": "a", "preference": {"preferred_plugin": "core", "custom_attributes": ["x"]}},
            {"id": "b", "preference": "kadence_blocks"},
        )

        assert sections[0].preference.custom_attributes == {}
        assert sections[0].preference.preferred_plugin == "core"
        assert sections[1].preference is None
