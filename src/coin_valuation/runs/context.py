"""Analysis run records: one per CLI invocation that reads market data."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Literal

from sqlalchemy.orm import Session

from ..db.models import Run
from ..db.session import session_scope

StageStatus = Literal["started", "completed", "failed"]


@dataclass
class RunContext:
    run_id: str
    as_of_date: date
    created_at: datetime
    params_json: Dict[str, Any] | None
    stage: str


def create_run(
    as_of_date: date,
    params: Dict[str, Any] | None = None,
    stage: str = "initialized",
) -> RunContext:
    with session_scope() as session:
        run = Run(as_of_date=as_of_date, params_json=_serialize_params(params), stage=stage)
        session.add(run)
        session.flush()
        return _to_context(run)


def load_run(run_id: str) -> RunContext:
    with session_scope() as session:
        return _to_context(_require_run(session, run_id))


def update_run_stage(run_id: str, stage: str) -> None:
    with session_scope() as session:
        _require_run(session, run_id).stage = stage


def mark_stage(run_id: str, stage: str, status: StageStatus) -> None:
    """Record ``<stage>_<status>``, e.g. ``ingest_completed``."""
    update_run_stage(run_id, f"{stage}_{status}")


def _require_run(session: Session, run_id: str) -> Run:
    run = session.get(Run, run_id)
    if run is None:
        raise ValueError(f"Run {run_id} not found")
    return run


def _to_context(run: Run) -> RunContext:
    return RunContext(
        run_id=run.run_id,
        as_of_date=run.as_of_date,
        created_at=run.created_at,
        params_json=run.params_json,
        stage=run.stage,
    )


def _serialize_params(params: Dict[str, Any] | None) -> Dict[str, Any] | None:
    if params is None:
        return None
    return {key: _serialize_value(value) for key, value in params.items()}


def _serialize_value(value: Any) -> Any:
    # Coin symbol lists and nested option dicts come straight from the CLI.
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return _serialize_params(value)
    if isinstance(value, (list, tuple)):
        return [_serialize_value(item) for item in value]
    return value
