"""Page assembly: section models, validation, the engine and serialization."""

from .engine import MISSING_ALT_WARNING, AssemblyEngine
from .models import (
    AssemblyMetadata,
    AssemblyOptions,
    AssemblyResult,
    InvalidSectionsError,
    MediaRef,
    PluginIndicator,
    SectionRequest,
    parse_sections,
)
from .serialize import block_to_dict, blocks_to_json, serialize_blocks
from .validation import BlockValidationError, ValidationLimits, validate_block

__all__ = [
    "MISSING_ALT_WARNING",
    "AssemblyEngine",
    "AssemblyMetadata",
    "AssemblyOptions",
    "AssemblyResult",
    "BlockValidationError",
    "InvalidSectionsError",
    "MediaRef",
    "PluginIndicator",
    "SectionRequest",
    "ValidationLimits",
    "block_to_dict",
    "blocks_to_json",
    "parse_sections",
    "serialize_blocks",
    "validate_block",
]
