"""Discover registered block types from a WordPress site's REST API."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from pagecomposer.catalog.known import (
    CONTAINER_BLOCKS,
    FEATURE_ADVANCED_STYLING,
    FEATURE_BACKGROUND_IMAGE,
    FEATURE_RESPONSIVE_CONTROLS,
    INNER_BLOCK_SUPPORTED,
    default_plugins,
    plugin_key_for_namespace,
)
from pagecomposer.catalog.models import CORE_KEY, UNKNOWN_KEY, BlockDescriptor, split_block_name
from pagecomposer.catalog.registry import CatalogSnapshot
from pagecomposer.discovery.sources import DiscoveryError, TransientDiscoveryError

BLOCK_TYPES_PATH = "/wp-json/wp/v2/block-types"
_STYLING_SUPPORTS = ("color", "typography", "spacing", "__experimentalBorder")


def features_from_supports(supports: Mapping[str, Any] | None) -> frozenset[str]:
    """Map a block type's ``supports`` object onto the feature flags the advisor compares."""

    if not isinstance(supports, Mapping):
        return frozenset()
    features: set[str] = set()
    background = supports.get("background")
    if isinstance(background, Mapping) and background.get("backgroundImage"):
        features.add(FEATURE_BACKGROUND_IMAGE)
    if any(supports.get(key) for key in _STYLING_SUPPORTS):
        features.add(FEATURE_ADVANCED_STYLING)
    if supports.get("layout"):
        features.add(FEATURE_RESPONSIVE_CONTROLS)
    return frozenset(features)


def block_from_payload(payload: Mapping[str, Any]) -> BlockDescriptor | None:
    name = str(payload.get("name") or "").strip()
    if not name or "/" not in name:
        return None
    supports = payload.get("supports")
    has_layout = isinstance(supports, Mapping) and bool(supports.get("layout"))
    return BlockDescriptor(
        full_name=name,
        supports_inner_blocks=name in INNER_BLOCK_SUPPORTED or has_layout,
        is_container=name in CONTAINER_BLOCKS,
        supported_features=features_from_supports(supports),
    )


class RestDiscovery:
    """Full rescan of ``{base_url}/wp-json/wp/v2/block-types``.

    HTTP 5xx, timeouts and connection failures are retried with exponential backoff;
    HTTP 4xx fails immediately.
    """

    def __init__(
        self,
        base_url: str,
        *,
        username: str | None = None,
        application_password: str | None = None,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff_min_seconds: float = 1.0,
        backoff_max_seconds: float = 30.0,
        priorities: Mapping[str, int] | None = None,
        transport: httpx.BaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("RestDiscovery requires a base_url.")
        self.base_url = base_url.rstrip("/")
        self.auth = (username, application_password) if username and application_password else None
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_min_seconds = backoff_min_seconds
        self.backoff_max_seconds = backoff_max_seconds
        self.priorities = dict(priorities or {})
        self.transport = transport
        self.logger = logger or logging.getLogger(__name__)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{BLOCK_TYPES_PATH}"

    def snapshot(self) -> CatalogSnapshot:
        payload = self.fetch_block_types()
        blocks = [block for block in map(block_from_payload, payload) if block is not None]

        namespaces = {block.namespace for block in blocks}
        active = {CORE_KEY}
        for namespace in namespaces:
            key = plugin_key_for_namespace(namespace)
            if key != UNKNOWN_KEY:
                active.add(key)
        self.logger.info(
            "Discovered %s block types across %s namespaces; active plugins: %s.",
            len(blocks),
            len(namespaces),
            ", ".join(sorted(active)),
        )
        plugins = default_plugins(sorted(active), self.priorities)
        return CatalogSnapshot.from_descriptors(plugins, blocks)

    def fetch_block_types(self) -> list[dict[str, Any]]:
        retry_policy = Retrying(
            stop=stop_after_attempt(self.max_retries or 1),
            wait=wait_exponential_jitter(
                initial=self.backoff_min_seconds,
                max=self.backoff_max_seconds,
            ),
            retry=retry_if_exception_type(TransientDiscoveryError),
            reraise=False,
        )
        try:
            for attempt in retry_policy:
                with attempt:
                    number = attempt.retry_state.attempt_number
                    if number > 1:
                        self.logger.warning("Retrying block discovery (attempt %s).", number)
                    return self._request()
        except RetryError as exc:
            last = exc.last_attempt
            error = last.exception() if last else exc
            raise DiscoveryError(
                f"Block discovery failed after {self.max_retries} attempts: {error}"
            ) from error
        raise DiscoveryError("Block discovery produced no result.")  # pragma: no cover

    def _request(self) -> list[dict[str, Any]]:
        try:
            with httpx.Client(
                timeout=self.timeout,
                follow_redirects=True,
                auth=self.auth,
                transport=self.transport,
            ) as client:
                response = client.get(self.endpoint, params={"context": "edit"})
        except httpx.TimeoutException as exc:
            raise TransientDiscoveryError(f"Timeout fetching {self.endpoint}: {exc}") from exc
        except httpx.ConnectError as exc:
            raise TransientDiscoveryError(f"Connection error for {self.endpoint}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransientDiscoveryError(f"HTTP error for {self.endpoint}: {exc}") from exc

        if 400 <= response.status_code < 500:
            raise DiscoveryError(f"HTTP {response.status_code} for {self.endpoint}")
        if response.status_code >= 500:
            raise TransientDiscoveryError(f"HTTP {response.status_code} for {self.endpoint}")

        try:
            data = response.json()
        except ValueError as exc:
            raise DiscoveryError(f"Invalid JSON from {self.endpoint}") from exc
        if not isinstance(data, list):
            raise DiscoveryError(f"Expected a list of block types from {self.endpoint}")
        return [item for item in data if isinstance(item, dict)]
