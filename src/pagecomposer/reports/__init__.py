"""Run records, status reports and annotated previews."""

from .preview import build_indicators, render_preview
from .run_log import build_run_record, load_run_records, new_run_id, write_run_record
from .status_report import write_status_report

__all__ = [
    "build_indicators",
    "build_run_record",
    "load_run_records",
    "new_run_id",
    "render_preview",
    "write_run_record",
    "write_status_report",
]
