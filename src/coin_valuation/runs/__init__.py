"""Run context helpers."""

from .context import RunContext, create_run, load_run, mark_stage, update_run_stage

__all__ = ["RunContext", "create_run", "load_run", "mark_stage", "update_run_stage"]
