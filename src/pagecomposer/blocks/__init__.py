"""Block preferences, resolution and fallback advice."""

from .attributes import NAMESPACE_ATTRIBUTES, NamespaceAttributes, default_attributes, unique_block_id
from .fallback import Alternative, FallbackAdvisor, FallbackChoice, FeatureComparison, Recommendation
from .preferences import AUTO, BlockPreference, default_preference
from .resolver import BlockResolver, ResolvedBlock, UnresolvableBlockError

__all__ = [
    "AUTO",
    "NAMESPACE_ATTRIBUTES",
    "Alternative",
    "BlockPreference",
    "BlockResolver",
    "FallbackAdvisor",
    "FallbackChoice",
    "FeatureComparison",
    "NamespaceAttributes",
    "Recommendation",
    "ResolvedBlock",
    "UnresolvableBlockError",
    "default_attributes",
    "default_preference",
    "unique_block_id",
]
