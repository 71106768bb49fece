"""Typer CLI for coin valuation."""

from __future__ import annotations

import importlib
import json
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import List, Optional

import typer
from rich import print as rprint
from rich.table import Table

from . import get_version
from .analysis import AnalysisRequest, AnalysisResult, AnalysisService
from .analytics import stats
from .analytics.beta import BetaEstimator
from .analytics.cashflow import irr as solve_irr
from .analytics.cashflow import npv as discount_flows
from .analytics.montecarlo import simulate_prices
from .analytics.series import align_monthly, period_returns
from .benchmarks import BenchmarkService
from .config import ConfigBundle, load_config_bundle
from .db import Base
from .db.session import backup_database, get_db_path, init_db
from .errors import CoinValuationError, NonConvergenceError
from .ingest import IngestionService
from .log import configure_logging
from .portfolio import Holding, analyze_allocation
from .providers.base import MarketDataProvider, fetch_history
from .providers.stored import StoredPriceProvider
from .reports import build_run_summary
from .runs import RunContext, create_run, load_run, mark_stage

app = typer.Typer(help="Coin Valuation CLI")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, help="Logging level (DEBUG, INFO, WARNING)"),
) -> None:
    configure_logging(log_level)


def _parse_date(value: Optional[str], default: date | None = None) -> date:
    if value:
        return datetime.strptime(value, "%Y-%m-%d").date()
    if default:
        return default
    return date.today()


def _history_start(end: date, config: ConfigBundle) -> date:
    return end - timedelta(days=round(365.25 * config.analysis.history_years))


def _parse_floats(value: str) -> list[float]:
    try:
        return [float(item) for item in value.split(",") if item.strip()]
    except ValueError as exc:
        raise typer.BadParameter(f"Expected comma-separated numbers, got {value!r}") from exc


def _build_provider(config: ConfigBundle, run: RunContext, offline: bool = False) -> MarketDataProvider:
    if offline:
        return StoredPriceProvider(run)
    module = importlib.import_module(config.provider.module)
    if hasattr(module, "build_provider"):
        return module.build_provider(run, retries=config.provider.retries)
    provider_cls = getattr(module, "Provider")
    return provider_cls(run)


def _fail(exc: Exception) -> None:
    rprint(f"[red]{getattr(exc, 'message', str(exc))}[/red]")
    details = getattr(exc, "details", None)
    if details:
        rprint(details)
    raise typer.Exit(code=1)


@app.command()
def version() -> None:
    """Print the installed version."""
    rprint(get_version())


@app.command()
def initdb() -> None:
    """Create database schema."""
    init_db(Base)
    rprint(f"[green]Database initialized at {get_db_path()}[/green]")


@app.command()
def ingest(
    symbols: Optional[List[str]] = typer.Argument(None, help="Coin symbols; defaults to the whole universe"),
    start: Optional[str] = typer.Option(None, help="Historical start date (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, help="Historical end date (YYYY-MM-DD)"),
) -> None:
    """Download daily prices into the local database."""
    config = load_config_bundle()
    end_date = _parse_date(end)
    start_date = _parse_date(start, _history_start(end_date, config))
    run = create_run(end_date, params={"stage": "ingest", "start": start_date, "symbols": symbols}, stage="ingest")
    provider = _build_provider(config, run)
    try:
        counts = IngestionService(provider, config, run).ingest(start_date, end_date, symbols or None)
    except CoinValuationError as exc:
        mark_stage(run.run_id, "ingest", "failed")
        _fail(exc)
    mark_stage(run.run_id, "ingest", "completed")
    rprint(counts)
    rprint(f"[cyan]Ingestion complete for run {run.run_id}[/cyan]")


@app.command()
def analyze(
    coin: str = typer.Argument(..., help="Coin symbol, e.g. ETH"),
    amount: float = typer.Option(10_000.0, help="Investment amount in USD"),
    years: int = typer.Option(5, help="Holding horizon in years"),
    risk_tolerance: str = typer.Option("moderate", help="conservative, moderate or aggressive"),
    staking_yield: Optional[float] = typer.Option(None, help="Annual staking yield override"),
    valuation_ratio: Optional[float] = typer.Option(None, help="On-chain MVRV or AVIV ratio"),
    portfolio_share: Optional[float] = typer.Option(None, help="Basket share of portfolio after buying (0-1)"),
    terminal_value: bool = typer.Option(False, help="Add a terminal value for staking income"),
    as_of: Optional[str] = typer.Option(None, help="As-of date (YYYY-MM-DD)"),
    offline: bool = typer.Option(False, help="Use ingested prices instead of the network"),
    save: bool = typer.Option(True, help="Store the result as a snapshot"),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON"),
) -> None:
    """Run NPV, IRR, beta, risk and Monte Carlo analysis for one coin."""
    config = load_config_bundle()
    as_of_date = _parse_date(as_of)
    try:
        request = AnalysisRequest(
            coin=coin,
            amount=amount,
            horizon_years=years,
            risk_tolerance=risk_tolerance,
            staking_yield=staking_yield,
            valuation_ratio=valuation_ratio,
            portfolio_share=portfolio_share,
            include_terminal_value=terminal_value,
            as_of=as_of_date,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    run = create_run(
        as_of_date,
        params={"stage": "analyze", "coin": coin, "amount": amount, "years": years},
        stage="analyze",
    )
    service = AnalysisService(_build_provider(config, run, offline), config, run)
    try:
        result = service.analyze(request)
    except (CoinValuationError, ValueError) as exc:
        mark_stage(run.run_id, "analyze", "failed")
        _fail(exc)
    if save:
        snapshot_id = service.save_snapshot(result)
        if not as_json:
            rprint(f"[dim]Snapshot {snapshot_id} stored for run {run.run_id}[/dim]")
    mark_stage(run.run_id, "analyze", "completed")
    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, default=str))
        return
    _print_result(result)


def _print_result(result: AnalysisResult) -> None:
    table = Table(title=f"{result.name} ({result.coin}) - ${result.amount:,.0f} over {result.horizon_years}y")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    irr_label = f"{result.irr:.2%}" if result.irr_converged else f"~{result.irr:.2%} (unconverged)"
    rows = [
        ("Current price", f"${result.current_price:,.2f}"),
        ("CAGR", f"{result.cagr:.2%}"),
        ("Projected price", f"${result.projected_prices[-1]:,.2f}"),
        ("Discount rate", f"{result.discount_rate.rate:.2%}"),
        ("NPV", f"${result.npv:,.2f}"),
        ("IRR", irr_label),
        ("ROI", f"{result.roi:.2%}"),
        ("Beta", f"{result.beta.beta:.2f} ({result.beta.confidence}, vs {result.beta.benchmark})"),
        ("Volatility", f"{result.risk.volatility:.2%}"),
        ("Max drawdown", f"{result.risk.max_drawdown:.2%}"),
        ("Sharpe ratio", f"{result.risk.sharpe_ratio:.2f}"),
        ("Daily VaR (95%)", f"{result.risk.value_at_risk:.2%}"),
        (
            f"Monte Carlo {result.monte_carlo.confidence:.0%} band",
            f"${result.monte_carlo.lower:,.0f} - ${result.monte_carlo.upper:,.0f}",
        ),
        ("Probability of loss", f"{result.monte_carlo.probability_of_loss:.1%}"),
        ("P(NPV > 0)", f"{result.npv_distribution.probability_positive:.1%}"),
        ("Liquidity", result.liquidity.status),
        ("Data reliable", "yes" if result.quality.is_reliable else "no"),
    ]
    for label, value in rows:
        table.add_row(label, value)
    rprint(table)
    rec = result.recommendation
    rprint(f"[bold]{rec.action}[/bold] (confidence {rec.confidence:.0f}/100)")
    for line in rec.reasoning:
        rprint(f"  [green]+[/green] {line}")
    for line in rec.risk_warnings + result.quality.notes:
        rprint(f"  [yellow]![/yellow] {line}")


@app.command()
def beta(
    coin: str = typer.Argument(..., help="Coin symbol"),
    as_of: Optional[str] = typer.Option(None, help="As-of date (YYYY-MM-DD)"),
    offline: bool = typer.Option(False, help="Use ingested prices instead of the network"),
) -> None:
    """Estimate a coin's beta against its benchmark."""
    config = load_config_bundle()
    as_of_date = _parse_date(as_of)
    try:
        entry = config.universe.find(coin)
    except CoinValuationError as exc:
        _fail(exc)
    run = create_run(as_of_date, params={"stage": "beta", "coin": coin}, stage="beta")
    provider = _build_provider(config, run, offline)
    benchmarks = BenchmarkService(provider, config.analysis)
    start = _history_start(as_of_date, config)
    try:
        points = fetch_history(provider, entry.ticker, start, as_of_date)
    except CoinValuationError as exc:
        _fail(exc)
    benchmark = benchmarks.snapshot_for(entry.symbol, as_of_date)
    asset, bench = align_monthly(points, benchmark.history) if benchmark.history else ([], [])
    estimate = BetaEstimator.from_config(config.analysis).estimate(
        period_returns(asset), period_returns(bench), benchmark.name
    )
    mark_stage(run.run_id, "beta", "completed")
    rprint(estimate.to_dict())


@app.command()
def npv(
    flows: str = typer.Option(..., "--flows", help="Comma-separated cash flows, e.g. --flows=-10000,3000,3000"),
    rate: float = typer.Option(..., help="Discount rate per period, e.g. 0.05"),
) -> None:
    """Net present value of a cash-flow sequence."""
    rprint(f"NPV: {discount_flows(_parse_floats(flows), rate):,.2f}")


@app.command()
def irr(
    flows: str = typer.Option(..., "--flows", help="Comma-separated cash flows, e.g. --flows=-10000,3000,3000"),
) -> None:
    """Internal rate of return of a cash-flow sequence."""
    config = load_config_bundle()
    cfg = config.analysis.irr
    try:
        value = solve_irr(_parse_floats(flows), cfg.lower, cfg.upper, cfg.tolerance, cfg.max_iterations)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except NonConvergenceError as exc:
        _fail(exc)
    rprint(f"IRR: {value:.4%}")


@app.command()
def correlation(
    asset: str = typer.Option(..., "--asset", help="Comma-separated asset returns"),
    benchmark: str = typer.Option(..., "--benchmark", help="Comma-separated benchmark returns"),
) -> None:
    """Beta, correlation and R-squared of two return series."""
    a = _parse_floats(asset)
    b = _parse_floats(benchmark)
    try:
        payload = {
            "beta": stats.beta(a, b),
            "correlation": stats.correlation(a, b),
            "r_squared": stats.r_squared(a, b),
        }
    except ZeroDivisionError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except CoinValuationError as exc:
        _fail(exc)
    rprint(payload)


@app.command()
def simulate(
    initial: float = typer.Option(10_000.0, help="Initial position value"),
    annual_return: float = typer.Option(..., help="Expected annual growth, e.g. 0.25"),
    volatility: float = typer.Option(..., help="Annual volatility, e.g. 0.7"),
    years: int = typer.Option(5, help="Horizon in years"),
    simulations: Optional[int] = typer.Option(None, help="Number of paths"),
    seed: Optional[int] = typer.Option(None, help="Random seed"),
) -> None:
    """Monte Carlo confidence bands for a position."""
    config = load_config_bundle()
    cfg = config.analysis.monte_carlo
    result = simulate_prices(
        initial_value=initial,
        annual_return=annual_return,
        annual_volatility=volatility,
        horizon_years=years,
        simulations=simulations or cfg.simulations,
        steps_per_year=cfg.steps_per_year,
        confidence=cfg.confidence,
        seed=seed if seed is not None else cfg.seed,
    )
    table = Table(title=f"{result.simulations:,} simulations, {result.confidence:.0%} band")
    for column in ("Year", "Lower", "Median", "Upper"):
        table.add_column(column, justify="right")
    for band in result.bands:
        table.add_row(str(band.year), f"{band.lower:,.0f}", f"{band.median:,.0f}", f"{band.upper:,.0f}")
    rprint(table)
    rprint(
        {
            "expected_value": round(result.expected_value, 2),
            "probability_of_loss": round(result.probability_of_loss, 4),
            "value_at_risk": round(result.value_at_risk, 2),
            "expected_shortfall": round(result.expected_shortfall, 2),
            "max_drawdown": round(result.max_drawdown, 4),
        }
    )


@app.command()
def allocate(
    holdings: List[str] = typer.Argument(..., help="Holdings as SYMBOL=VALUE, e.g. BTC=12000 ETH=4000"),
) -> None:
    """Basket weights, diversification and rebalancing for a portfolio."""
    config = load_config_bundle()
    parsed = []
    for item in holdings:
        symbol, _, value = item.partition("=")
        try:
            entry = config.universe.find(symbol)
            parsed.append(Holding(symbol=entry.symbol, basket=entry.basket, value=float(value)))
        except ValueError as exc:
            raise typer.BadParameter(f"Invalid holding {item!r}") from exc
        except CoinValuationError as exc:
            _fail(exc)
    try:
        report = analyze_allocation(parsed)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    rprint(report.to_dict())


@app.command()
def summary(run_id: str = typer.Argument(..., help="Run identifier")) -> None:
    """Show analyses and provider calls recorded for a run."""
    try:
        rprint(build_run_summary(run_id))
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def snapshot(
    run_id: str = typer.Argument(..., help="Run identifier to snapshot"),
    output: Optional[str] = typer.Option(None, help="Optional output path"),
) -> None:
    """Back up the database for archiving a run."""
    db_path = get_db_path()
    if not db_path.exists():
        raise typer.BadParameter(f"Database {db_path} not found")
    try:
        run = load_run(run_id)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    if output:
        dest = Path(output)
    else:
        dest = Path("artifacts") / f"run_{run.run_id}.db"
        dest.parent.mkdir(exist_ok=True)
    backup_database(dest)
    rprint(f"[green]Snapshot saved to {dest}[/green]")


if __name__ == "__main__":
    app()
