"""Helpers to build summaries of analysis runs for reporting."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import desc, func

from ..db.models import AnalysisSnapshot, ProviderLog, Run
from ..db.session import session_scope


def build_run_summary(run_id: str) -> dict:
    with session_scope() as session:
        run = session.get(Run, run_id)
        if not run:
            raise ValueError(f"Run {run_id} not found")
        snapshots = (
            session.query(AnalysisSnapshot)
            .filter(AnalysisSnapshot.run_id == run_id)
            .order_by(desc(AnalysisSnapshot.created_at))
            .all()
        )
        analyses = [
            {
                "id": snap.id,
                "coin": snap.coin_symbol,
                "amount": float(snap.amount),
                "horizon_years": snap.horizon_years,
                "npv": float(snap.npv),
                "irr": snap.irr,
                "action": snap.action,
            }
            for snap in snapshots
        ]
        failed_calls = (
            session.query(func.count(ProviderLog.provider_run_id))
            .filter(ProviderLog.run_id == run_id, ProviderLog.succeeded.is_(False))
            .scalar()
        )
        total_calls = (
            session.query(func.count(ProviderLog.provider_run_id)).filter(ProviderLog.run_id == run_id).scalar()
        )
        return {
            "run_id": run.run_id,
            "as_of_date": run.as_of_date.isoformat(),
            "stage": run.stage,
            "created_at": run.created_at.isoformat() if isinstance(run.created_at, datetime) else str(run.created_at),
            "analyses": analyses,
            "provider_calls": {"total": total_calls or 0, "failed": failed_calls or 0},
            "params": run.params_json,
        }


def latest_snapshot(coin_symbol: str) -> dict | None:
    """Most recent stored analysis payload for a coin, if any."""
    with session_scope() as session:
        snapshot = (
            session.query(AnalysisSnapshot)
            .filter(AnalysisSnapshot.coin_symbol == coin_symbol.upper())
            .order_by(desc(AnalysisSnapshot.created_at), desc(AnalysisSnapshot.id))
            .first()
        )
        return dict(snapshot.payload) if snapshot else None
