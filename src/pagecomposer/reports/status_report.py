"""Markdown status report generator."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pagecomposer.reports.run_log import load_run_records


def write_status_report(runs_dir: Path, report_path: Path, limit: int = 10) -> None:
    """Generate a Markdown status report from run records."""

    if not runs_dir.exists():
        runs_dir.mkdir(parents=True, exist_ok=True)
    entries = load_run_records(runs_dir, limit)

    report_lines = ["# Pagecomposer Status", ""]
    generated_at = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
    report_lines.append(f"Generated: {generated_at}")
    report_lines.append("")

    if not entries:
        report_lines.append("No runs recorded yet.")
    else:
        report_lines.append("## Latest Run")
        report_lines.extend(_format_entry(entries[0]))
        report_lines.append("")

        if len(entries) > 1:
            report_lines.append("## Recent History")
            for entry in entries[1:]:
                run = entry.get("run_metadata", {})
                quality = entry.get("quality_metrics", {})
                output = entry.get("final_output", {})
                report_lines.append(
                    f"- Run {run.get('run_id')} | started={run.get('timestamp')} "
                    f"| blocks={output.get('total_blocks', 0)} "
                    f"| fallbacks={output.get('fallbacks_applied', 0)} "
                    f"| accessibility={quality.get('accessibility_score')}"
                )
            report_lines.append("")

    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text("\n".join(report_lines).strip() + "\n", encoding="utf-8")


def _format_entry(entry: dict[str, Any]) -> list[str]:
    run = entry.get("run_metadata", {})
    quality = entry.get("quality_metrics", {})
    output = entry.get("final_output", {})
    lines = [
        f"Run ID: {run.get('run_id')}",
        f"Label: {run.get('label') or '-'}",
        f"Status: {run.get('status')} | Started: {run.get('timestamp')}",
        f"Version: {run.get('pagecomposer_version')} (Python {run.get('python_version')})",
        "",
        "### Quality",
        f"- Blocks: {output.get('total_blocks', 0)}",
        f"- Fallbacks Applied: {output.get('fallbacks_applied', 0)}",
        f"- Accessibility Score: {quality.get('accessibility_score')}",
        f"- Estimated Load Time: {quality.get('estimated_load_time_s')}s",
        f"- Performance Impact: {quality.get('performance_impact')}",
    ]

    usage = entry.get("plugin_usage") or {}
    if usage:
        lines.extend(["", "### Plugin Usage"])
        for key, info in sorted(usage.items()):
            blocks = ", ".join(info.get("blocks_used", []))
            lines.append(f"- {key}: {info.get('usage_count', 0)} ({blocks})")

    warnings = output.get("validation_warnings") or []
    if warnings:
        lines.extend(["", "### Warnings"])
        lines.extend(f"- {warning}" for warning in warnings)
    return lines
