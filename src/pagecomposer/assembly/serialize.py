"""Serialize resolved blocks to Gutenberg markup and block JSON."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from typing import Any

from pagecomposer.blocks.resolver import ResolvedBlock

BLOCK_JSON_VERSION = 2

_COMMENT_UNSAFE = (("--", "\\u002d\\u002d"), ("<", "\\u003c"), (">", "\\u003e"), ("&", "\\u0026"))
_JSON_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


def comment_name(block_name: str) -> str:
    """Gutenberg omits the ``core/`` prefix in block comments."""

    if block_name.startswith("core/"):
        return block_name[len("core/"):]
    return block_name


def serialize_attributes(attributes: dict[str, Any]) -> str:
    """Attribute JSON that cannot end or break out of the surrounding HTML comment."""

    text = json.dumps(attributes, separators=(",", ":"), ensure_ascii=False)
    for unsafe, replacement in _COMMENT_UNSAFE:
        text = text.replace(unsafe, replacement)
    # escaped quotes become \u0022; escape pairs are matched so "\\" stays intact
    return _JSON_ESCAPE_RE.sub(
        lambda match: "\\u0022" if match.group(1) == '"' else match.group(0), text
    )


def serialize_block(block: ResolvedBlock) -> str:
    name = comment_name(block.block_name)
    attrs = ""
    if block.attributes:
        attrs = " " + serialize_attributes(block.attributes)

    inner = [block.inner_html] if block.inner_html else []
    inner.extend(serialize_block(child) for child in block.inner_blocks)
    if not inner:
        return f"<!-- wp:{name}{attrs} /-->"
    body = "\n".join(inner)
    return f"<!-- wp:{name}{attrs} -->\n{body}\n<!-- /wp:{name} -->"


def serialize_blocks(blocks: Iterable[ResolvedBlock]) -> str:
    return "\n\n".join(serialize_block(block) for block in blocks)


def block_to_dict(block: ResolvedBlock) -> dict[str, Any]:
    return {
        "blockName": block.block_name,
        "attrs": dict(block.attributes),
        "innerBlocks": [block_to_dict(child) for child in block.inner_blocks],
        "innerHTML": block.inner_html,
    }


def blocks_to_json(blocks: Iterable[ResolvedBlock], *, indent: int | None = None) -> str:
    payload = {
        "version": BLOCK_JSON_VERSION,
        "blocks": [block_to_dict(block) for block in blocks],
    }
    return json.dumps(payload, indent=indent, ensure_ascii=False)
