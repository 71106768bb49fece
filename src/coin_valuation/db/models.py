"""ORM models for coin valuation runs, prices and snapshots."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class Run(Base):
    __tablename__ = "analysis_runs"

    run_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    as_of_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    stage: Mapped[str] = mapped_column(String, default="pending")
    params_json: Mapped[dict | None] = mapped_column(JSON)

    provider_logs: Mapped[list["ProviderLog"]] = relationship(back_populates="run")
    snapshots: Mapped[list["AnalysisSnapshot"]] = relationship(back_populates="run")


class Coin(Base):
    __tablename__ = "coins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    symbol: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    ticker: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str | None]
    basket: Mapped[str] = mapped_column(String, default="small_cap")
    staking_yield: Mapped[float] = mapped_column(Float, default=0.0)

    prices: Mapped[list["PriceObservation"]] = relationship(back_populates="coin")


class PriceObservation(Base):
    __tablename__ = "price_history"
    __table_args__ = (
        UniqueConstraint("coin_id", "price_date", name="uq_price_coin_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    coin_id: Mapped[int] = mapped_column(ForeignKey("coins.id"), nullable=False)
    run_id: Mapped[str] = mapped_column(ForeignKey("analysis_runs.run_id"), nullable=False)
    price_date: Mapped[date] = mapped_column(Date, nullable=False)
    close: Mapped[float] = mapped_column(Float, nullable=False)
    volume: Mapped[float | None]

    coin: Mapped[Coin] = relationship(back_populates="prices")


class ProviderLog(Base):
    __tablename__ = "provider_logs"

    provider_run_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    run_id: Mapped[str] = mapped_column(ForeignKey("analysis_runs.run_id"), nullable=False)
    provider: Mapped[str] = mapped_column(String, nullable=False)
    endpoint: Mapped[str] = mapped_column(String, nullable=False)
    params_hash: Mapped[str] = mapped_column(String, nullable=False)
    response_hash: Mapped[str] = mapped_column(String, nullable=False)
    succeeded: Mapped[bool] = mapped_column(Boolean, default=True)
    fetched_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    run: Mapped[Run] = relationship(back_populates="provider_logs")


class AnalysisSnapshot(Base):
    __tablename__ = "analysis_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[str] = mapped_column(ForeignKey("analysis_runs.run_id"), nullable=False)
    coin_symbol: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    horizon_years: Mapped[int] = mapped_column(Integer, nullable=False)
    npv: Mapped[float] = mapped_column(Float, nullable=False)
    irr: Mapped[float | None] = mapped_column(Float)
    action: Mapped[str] = mapped_column(String, nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    run: Mapped[Run] = relationship(back_populates="snapshots")
