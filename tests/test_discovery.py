"""Tests for discovery sources and the TTL cache."""

from __future__ import annotations

import httpx
import pytest
import yaml

from pagecomposer.config import DiscoverySettings
from pagecomposer.discovery import (
    CachedDiscovery,
    DiscoveryError,
    FileDiscovery,
    RestDiscovery,
    StaticDiscovery,
    TTLCache,
    build_discovery,
    features_from_supports,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class CountingSource:
    def __init__(self) -> None:
        self.calls = 0

    def snapshot(self):
        self.calls += 1
        return StaticDiscovery(["kadence_blocks"]).snapshot()


class TestTTLCache:
    def test_entries_expire(self):
        clock = FakeClock()
        cache = TTLCache(10, clock=clock)
        cache.set("key", "value")

        clock.now = 9.9
        assert cache.get("key") == "value"
        assert "key" in cache
        assert len(cache) == 1

        clock.now = 10.0
        assert cache.get("key") is None
        assert "key" not in cache
        assert len(cache) == 0

    def test_per_entry_ttl_and_invalidate(self):
        clock = FakeClock()
        cache = TTLCache(100, clock=clock)
        cache.set("short", 1, ttl_seconds=1)
        cache.set("long", 2)

        clock.now = 5
        assert cache.get("short", "gone") == "gone"
        assert cache.get("long") == 2

        cache.invalidate("long")
        assert cache.get("long") is None

    def test_clear(self):
        cache = TTLCache(60)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert len(cache) == 0

    def test_non_positive_ttl_rejected(self):
        with pytest.raises(ValueError):
            TTLCache(0)


class TestCachedDiscovery:
    def test_reuses_snapshot_within_ttl(self):
        clock = FakeClock()
        source = CountingSource()
        discovery = CachedDiscovery(source, cache=TTLCache(60, clock=clock))

        first = discovery.snapshot()
        second = discovery.snapshot()

        assert first is second
        assert source.calls == 1

        clock.now = 61
        third = discovery.snapshot()
        assert third is not first
        assert source.calls == 2

    def test_force_refresh_and_invalidate(self):
        source = CountingSource()
        discovery = CachedDiscovery(source, 60)

        discovery.snapshot()
        discovery.snapshot(force_refresh=True)
        assert source.calls == 2

        discovery.invalidate()
        discovery.snapshot()
        assert source.calls == 3


def test_static_discovery_uses_priorities():
    snapshot = StaticDiscovery(["stackable"], {"stackable": 2}).snapshot()

    assert snapshot.get("stackable").active is True
    assert snapshot.get("stackable").priority == 2
    assert snapshot.is_registered("ugb/hero")
    assert snapshot.is_registered("core/paragraph")


class TestFileDiscovery:
    def test_loads_plugins_and_blocks(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "plugins": [
                        {"key": "kadence_blocks"},
                        {"key": "stackable", "active": False, "supported_sections": ["team"]},
                    ],
                    "blocks": [
                        "kadence/rowlayout",
                        {"name": "ugb/team-member", "supported_features": ["advanced_styling"]},
                        "core/paragraph",
                    ],
                }
            ),
            encoding="utf-8",
        )

        snapshot = FileDiscovery(path, {"kadence_blocks": 3}).snapshot()

        kadence = snapshot.get("kadence_blocks")
        assert kadence.namespace == "kadence"
        assert kadence.priority == 3
        assert kadence.supports("hero")
        stackable = snapshot.get("stackable")
        assert stackable.active is False
        assert stackable.supported_section_types == frozenset({"team"})
        assert snapshot.block("kadence/rowlayout").is_container
        assert snapshot.block("ugb/team-member").supported_features == frozenset({"advanced_styling"})
        assert snapshot.get("core").active is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(DiscoveryError, match="Cannot read"):
            FileDiscovery(tmp_path / "missing.yaml").snapshot()

    @pytest.mark.parametrize(
        "content",
        [
            "plugins: [unclosed",
            "- just\n- a list\n",
            "plugins: {key: core}\n",
            "blocks:\n  - 42\n",
            "blocks:\n  - {supports_inner_blocks: true}\n",
        ],
    )
    def test_malformed_catalog(self, tmp_path, content):
        path = tmp_path / "catalog.yaml"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(DiscoveryError):
            FileDiscovery(path).snapshot()


BLOCK_TYPES = [
    {"name": "core/paragraph", "supports": {"color": {"text": True}}},
    {"name": "core/cover", "supports": {"background": {"backgroundImage": True}}},
    {"name": "kadence/rowlayout", "supports": {"layout": True}},
    {"name": "acme/slider", "supports": {}},
    {"name": "no-namespace"},
    "garbage",
]


def _rest(handler, **kwargs) -> RestDiscovery:
    return RestDiscovery(
        "https://example.com/",
        transport=httpx.MockTransport(handler),
        backoff_min_seconds=0,
        backoff_max_seconds=0,
        **kwargs,
    )


class TestRestDiscovery:
    def test_snapshot_from_block_types(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=BLOCK_TYPES)

        snapshot = _rest(handler).snapshot()

        assert seen[0].url.path == "/wp-json/wp/v2/block-types"
        assert seen[0].url.params["context"] == "edit"
        assert snapshot.get("kadence_blocks").active is True
        assert snapshot.get("stackable").active is False
        assert snapshot.is_registered("acme/slider")
        assert not snapshot.is_registered("no-namespace")
        assert [issue.block_name for issue in snapshot.inconsistencies] == ["acme/slider"]
        assert snapshot.block("core/cover").supported_features == frozenset({"background_image"})

    def test_retries_server_errors(self):
        responses = iter([httpx.Response(503), httpx.Response(200, json=BLOCK_TYPES)])

        def handler(request: httpx.Request) -> httpx.Response:
            return next(responses)

        payload = _rest(handler, max_retries=3).fetch_block_types()

        assert [item["name"] for item in payload][:2] == ["core/paragraph", "core/cover"]

    def test_gives_up_after_max_retries(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        with pytest.raises(DiscoveryError, match="after 2 attempts"):
            _rest(handler, max_retries=2).fetch_block_types()
        assert len(calls) == 2

    def test_client_errors_are_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(401)

        with pytest.raises(DiscoveryError, match="HTTP 401"):
            _rest(handler, max_retries=3).fetch_block_types()
        assert len(calls) == 1

    def test_connection_errors_are_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json=[])

        assert _rest(handler).fetch_block_types() == []
        assert len(calls) == 2

    def test_non_list_body_rejected(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"code": "rest_no_route"})

        with pytest.raises(DiscoveryError, match="Expected a list"):
            _rest(handler).fetch_block_types()

    def test_basic_auth_sent_when_configured(self):
        headers = []

        def handler(request: httpx.Request) -> httpx.Response:
            headers.append(request.headers.get("authorization", ""))
            return httpx.Response(200, json=[])

        _rest(handler, username="editor", application_password="abcd efgh").fetch_block_types()

        assert headers[0].startswith("Basic ")


def test_features_from_supports():
    assert features_from_supports(None) == frozenset()
    assert features_from_supports({"typography": {"fontSize": True}, "layout": True}) == frozenset(
        {"advanced_styling", "responsive_controls"}
    )


class TestBuildDiscovery:
    def test_static_mode(self):
        discovery = build_discovery(DiscoverySettings(active_plugins=["core", "genesis_blocks"]))

        assert isinstance(discovery.source, StaticDiscovery)
        assert discovery.snapshot().get("genesis_blocks").active is True

    def test_file_mode(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text("blocks: [core/group]\n", encoding="utf-8")

        discovery = build_discovery(DiscoverySettings(mode="file", snapshot_path=path))

        assert isinstance(discovery.source, FileDiscovery)
        assert discovery.snapshot().is_registered("core/group")

    def test_rest_mode_reads_credentials_from_env(self, monkeypatch):
        monkeypatch.setenv("PAGECOMPOSER_WP_USER", "editor")
        monkeypatch.setenv("PAGECOMPOSER_WP_APP_PASSWORD", "secret")

        discovery = build_discovery(
            DiscoverySettings(mode="rest", base_url="https://example.com", cache_ttl_seconds=5),
            {"kadence_blocks": 4},
        )

        source = discovery.source
        assert isinstance(source, RestDiscovery)
        assert source.auth == ("editor", "secret")
        assert source.priorities == {"kadence_blocks": 4}
        assert discovery.cache.ttl_seconds == 5
