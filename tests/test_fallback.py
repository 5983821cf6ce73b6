"""Tests for fallback recommendations."""

from __future__ import annotations

import pytest

from pagecomposer.blocks import FallbackAdvisor
from pagecomposer.blocks.fallback import confidence_score, content_type_for_block
from pagecomposer.catalog import BlockDescriptor, CatalogSnapshot, build_default_snapshot


@pytest.fixture
def core_only() -> CatalogSnapshot:
    return build_default_snapshot()


@pytest.fixture
def with_kadence() -> CatalogSnapshot:
    return build_default_snapshot(["kadence_blocks"])


class TestFallbackBlock:
    def test_core_fallback_for_hero(self, core_only):
        choice = FallbackAdvisor(core_only).fallback_block("hero")

        assert choice.plugin == "core"
        assert choice.block_name == "core/cover"
        assert choice.is_fallback is True
        assert choice.reason == "Using WordPress core blocks as fallback"

    def test_plugin_order_prefers_kadence(self, with_kadence):
        choice = FallbackAdvisor().fallback_block("hero", with_kadence)

        assert choice.block_name == "kadence/rowlayout"
        assert choice.to_dict()["fallback_reason"] == "Using Kadence Blocks as fallback"

    def test_required_features_filter_candidates(self, core_only):
        advisor = FallbackAdvisor(core_only)

        assert advisor.fallback_block("hero", required_features=["background_image"]).block_name == (
            "core/cover"
        )
        last_resort = advisor.fallback_block("hero", required_features=["advanced_styling"])
        assert last_resort.block_name == "core/paragraph"
        assert last_resort.reason == "No suitable blocks available, using core paragraph"

    def test_empty_catalog_uses_paragraph(self):
        choice = FallbackAdvisor(CatalogSnapshot.from_descriptors([], [])).fallback_block("faq")
        assert choice.block_name == "core/paragraph"

    def test_missing_snapshot_is_an_error(self):
        with pytest.raises(ValueError):
            FallbackAdvisor().fallback_block("hero")


class TestAlternatives:
    def test_sorted_by_similarity_and_excludes_original(self, with_kadence):
        alternatives = FallbackAdvisor(with_kadence).alternatives("kadence/rowlayout")

        names = [alternative.block_name for alternative in alternatives]
        assert "kadence/rowlayout" not in names
        assert set(names) == {"kadence/column", "core/group", "core/columns"}
        assert names[0] == "kadence/column"
        scores = [alternative.similarity_score for alternative in alternatives]
        assert scores == sorted(scores, reverse=True)

        top = alternatives[0].to_dict()
        assert top["features_lost"] == ["background_image"]
        assert top["features_preserved"] == ["advanced_styling", "responsive_controls"]
        assert top["features_gained"] == []

    def test_similarity_is_capped(self, core_only):
        assert FallbackAdvisor(core_only).similarity("core/cover", "core/cover") == 100

    def test_descriptor_features_override_matrix(self):
        snapshot = CatalogSnapshot.from_descriptors(
            [], [BlockDescriptor("core/group", supported_features=frozenset({"background_image"}))]
        )
        advisor = FallbackAdvisor(snapshot)

        assert advisor.supports("core/group", "background_image") is True
        assert advisor.supports("core/group", "advanced_styling") is False
        assert advisor.supports("core/cover", "background_image") is True


class TestRecommend:
    def test_recommendation_payload(self, with_kadence):
        recommendation = FallbackAdvisor(with_kadence).recommend("hero")
        payload = recommendation.to_dict()

        assert payload["section_type"] == "hero"
        assert payload["block"]["block_name"] == "kadence/rowlayout"
        assert payload["confidence"] == 75
        assert payload["alternatives"]
        assert all("similarity_score" in item for item in payload["alternatives"])

    def test_original_block_drives_alternatives(self, core_only):
        recommendation = FallbackAdvisor(core_only).recommend("hero", original_block="ugb/hero")

        assert recommendation.block.block_name == "core/cover"
        names = {alternative.block_name for alternative in recommendation.alternatives}
        assert names == {"core/cover", "core/group", "core/heading"}

    def test_recommend_sections(self, core_only):
        recommendations = FallbackAdvisor(core_only).recommend_sections(
            [{"type": "testimonial"}, {"content_type": "hero", "required_features": ["background_image"]}]
        )

        assert [r.block.block_name for r in recommendations] == ["core/quote", "core/cover"]
        assert recommendations[0].confidence == 60


@pytest.mark.parametrize(
    "plugin,block,content_type,expected",
    [
        ("core", "core/cover", "hero", 75),
        ("kadence_blocks", "kadence/testimonials", "testimonial", 90),
        ("stackable", "ugb/hero", "hero", 85),
        ("mystery", "acme/widget", "content", 50),
    ],
)
def test_confidence_score(plugin, block, content_type, expected):
    assert confidence_score(plugin, block, content_type) == expected


@pytest.mark.parametrize(
    "block,expected",
    [
        ("ugb/hero", "hero"),
        ("kadence/testimonials", "testimonial"),
        ("core/gallery", "image"),
        ("genesis-blocks/gb-button", "button"),
        ("uagb/forms", "form"),
        ("genesis-blocks/gb-columns", "layout"),
        ("core/paragraph", "content"),
    ],
)
def test_content_type_for_block(block, expected):
    assert content_type_for_block(block) == expected
