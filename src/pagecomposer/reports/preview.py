"""Preview HTML annotated with which plugin rendered each section."""

from __future__ import annotations

from typing import Any

from bs4 import BeautifulSoup

from pagecomposer.assembly.models import AssemblyResult
from pagecomposer.blocks.resolver import ResolvedBlock
from pagecomposer.catalog.models import split_block_name

INDICATOR_CLASS = "pc-block-indicator"
FALLBACK_CLASS = "pc-fallback-block"

PLUGIN_COLORS: dict[str, str] = {
    "core": "#0073aa",
    "kadence_blocks": "#e74c3c",
    "genesis_blocks": "#27ae60",
    "stackable": "#9b59b6",
    "ultimate_addons": "#f39c12",
    "generateblocks": "#34495e",
}

_BASE_CSS = """
.pc-preview { margin: 0; padding: 0; }
.pc-content-wrapper { background: white; margin: 0 auto; max-width: 1200px; }
.pc-block-indicator { position: relative; }
.pc-block-indicator::before {
  content: attr(data-plugin); position: absolute; top: -2px; right: -2px;
  background: var(--plugin-color, #666); color: white; padding: 2px 6px;
  font-size: 10px; border-radius: 3px; font-weight: bold; text-transform: uppercase;
}
"""

_FALLBACK_CSS = """
.pc-fallback-block { border: 2px dashed #e74c3c !important; }
.pc-fallback-block::after {
  content: "FALLBACK"; position: absolute; top: 5px; left: 5px;
  background: #e74c3c; color: white; padding: 2px 6px; font-size: 10px; border-radius: 3px;
}
"""


def block_title(block_name: str) -> str:
    return split_block_name(block_name)[1].replace("-", " ").title()


def build_indicators(result: AssemblyResult) -> list[dict[str, Any]]:
    return [
        {
            "selector": f"#{indicator.section_id}",
            "plugin": indicator.plugin_name or indicator.plugin_used,
            "plugin_key": indicator.plugin_used,
            "block_title": block_title(indicator.block_name),
            "block_name": indicator.block_name,
            "is_fallback": indicator.fallback_used,
        }
        for indicator in result.plugin_indicators
    ]


def _block_html(block: ResolvedBlock) -> str:
    return block.inner_html + "".join(_block_html(inner) for inner in block.inner_blocks)


def _stylesheet(highlight_fallbacks: bool) -> str:
    css = _BASE_CSS
    css += "".join(
        f'.{INDICATOR_CLASS}[data-plugin-key="{key}"] {{ --plugin-color: {color}; }}\n'
        for key, color in PLUGIN_COLORS.items()
    )
    if highlight_fallbacks:
        css += _FALLBACK_CSS
    return css


def render_preview(
    result: AssemblyResult,
    *,
    title: str = "Pagecomposer Preview",
    highlight_fallbacks: bool = True,
) -> str:
    """Standalone HTML document with one annotated element per section."""

    soup = BeautifulSoup(
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"/></head>"
        "<body class=\"pc-preview\"><div class=\"pc-content-wrapper\"></div></body></html>",
        "html.parser",
    )
    soup.head.append(soup.new_tag("title"))
    soup.head.title.string = title
    style = soup.new_tag("style")
    style.string = _stylesheet(highlight_fallbacks)
    soup.head.append(style)
    wrapper = soup.find("div", class_="pc-content-wrapper")

    for block, indicator in zip(result.blocks, result.plugin_indicators, strict=True):
        fragment = BeautifulSoup(_block_html(block), "html.parser")
        target = fragment.find(id=indicator.section_id)
        if target is None:
            # substituted blocks have no element carrying the section id
            container = fragment.new_tag("div", id=indicator.section_id)
            container["class"] = ["wp-block-group"]
            for child in list(fragment.contents):
                container.append(child.extract())
            fragment.append(container)
            target = container

        classes = [INDICATOR_CLASS]
        if indicator.fallback_used:
            classes.append(FALLBACK_CLASS)
        existing = target.get("class") or []
        target["class"] = classes + [name for name in existing if name not in classes]
        target["data-plugin"] = indicator.plugin_name or indicator.plugin_used
        target["data-plugin-key"] = indicator.plugin_used
        target["data-block-name"] = indicator.block_name
        if indicator.suggested_block:
            target["data-suggested-block"] = indicator.suggested_block

        for child in list(fragment.contents):
            wrapper.append(child.extract())

    return str(soup)

