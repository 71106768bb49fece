"""Reporting helpers."""

from .analysis_summary import build_run_summary, latest_snapshot

__all__ = ["build_run_summary", "latest_snapshot"]
