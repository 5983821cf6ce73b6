"""Governance record for each assembly run, one JSON file per run."""

from __future__ import annotations

import hashlib
import json
import logging
import platform
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pagecomposer import get_version
from pagecomposer.assembly.models import AssemblyResult, SectionRequest
from pagecomposer.assembly.serialize import blocks_to_json

logger = logging.getLogger(__name__)


def new_run_id(now: datetime | None = None) -> str:
    stamp = (now or datetime.now(UTC)).strftime("%Y%m%d%H%M%S")
    return f"{stamp}-{uuid.uuid4().hex[:8]}"


def block_structure_hash(result: AssemblyResult) -> str:
    return hashlib.sha256(blocks_to_json(result.blocks).encode("utf-8")).hexdigest()


def performance_impact(warning_count: int) -> str:
    if warning_count > 3:
        return "high"
    if warning_count > 1:
        return "medium"
    return "low"


def build_run_record(
    result: AssemblyResult,
    sections: Sequence[SectionRequest],
    *,
    run_id: str,
    label: str | None = None,
) -> dict[str, Any]:
    section_types = {section.id: section.content_type for section in sections}
    sections_log = [
        {
            "section_id": indicator.section_id,
            "section_type": section_types.get(indicator.section_id, "unknown"),
            "block_type_used": indicator.block_name,
            "plugin_required": indicator.plugin_used,
            "fallback_applied": indicator.fallback_used,
            "warnings": list(indicator.warnings),
        }
        for indicator in result.plugin_indicators
    ]

    plugin_usage: dict[str, dict[str, Any]] = {}
    for indicator in result.plugin_indicators:
        usage = plugin_usage.setdefault(
            indicator.plugin_used,
            {"plugin_name": indicator.plugin_name, "blocks_used": [], "usage_count": 0},
        )
        usage["usage_count"] += 1
        if indicator.block_name not in usage["blocks_used"]:
            usage["blocks_used"].append(indicator.block_name)

    metadata = result.metadata
    return {
        "run_metadata": {
            "run_id": run_id,
            "label": label,
            "timestamp": datetime.now(UTC).isoformat(),
            "status": "completed",
            "pagecomposer_version": get_version(),
            "python_version": platform.python_version(),
        },
        "sections_log": sections_log,
        "plugin_usage": plugin_usage,
        "quality_metrics": {
            "accessibility_score": metadata.accessibility_score,
            "estimated_load_time_s": metadata.estimated_load_time_s,
            "fallback_ratio": round(result.fallback_ratio, 3),
            "warning_count": len(metadata.validation_warnings),
            "performance_impact": performance_impact(len(metadata.validation_warnings)),
        },
        "final_output": {
            "total_blocks": len(result.blocks),
            "blocks_used": dict(metadata.blocks_used),
            "fallbacks_applied": metadata.fallbacks_applied,
            "validation_warnings": list(metadata.validation_warnings),
            "block_structure_hash": block_structure_hash(result),
        },
    }


def write_run_record(
    result: AssemblyResult,
    sections: Sequence[SectionRequest],
    runs_dir: Path,
    run_id: str | None = None,
    label: str | None = None,
) -> Path:
    """Write ``run-<id>.json`` into ``runs_dir`` and return its path."""

    run_id = run_id or new_run_id()
    record = build_run_record(result, sections, run_id=run_id, label=label)
    runs_dir.mkdir(parents=True, exist_ok=True)
    path = runs_dir / f"run-{run_id}.json"
    path.write_text(json.dumps(record, indent=2), encoding="utf-8")
    logger.info("Wrote run record %s", path)
    return path


def load_run_records(runs_dir: Path, limit: int = 10) -> list[dict[str, Any]]:
    """Read run records back, newest first. Unreadable files are skipped."""

    if not runs_dir.exists():
        return []
    records: list[dict[str, Any]] = []
    for file_path in sorted(
        runs_dir.glob("run-*.json"), key=lambda p: p.stat().st_mtime, reverse=True
    ):
        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Skipping unreadable run record %s", file_path)
            continue
        records.append(data)
        if len(records) >= limit:
            break
    return records
