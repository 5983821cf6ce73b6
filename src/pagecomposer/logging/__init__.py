"""Logging helpers for Pagecomposer."""

from .setup import LOGGER_NAME, RunContextFilter, configure_logging, set_run_id

__all__ = ["LOGGER_NAME", "RunContextFilter", "configure_logging", "set_run_id"]
