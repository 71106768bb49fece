"""Analysis service orchestrating data fetches and the numeric core."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from ..analytics.beta import BetaEstimate, BetaEstimator
from ..analytics.cashflow import build_cash_flows, irr, npv, roi, yearly_breakdown
from ..analytics.montecarlo import npv_distribution, simulate_prices
from ..analytics.risk import summarize_risk
from ..analytics.series import PricePoint, align_monthly, average_volume, period_returns, sort_points
from ..analytics.valuation import (
    LiquidityProfile,
    cagr_from_history,
    capm_discount_rate,
    classify_liquidity,
    project_prices,
    terminal_value,
    valuation_adjustment,
)
from ..benchmarks.service import BITCOIN, BenchmarkData, BenchmarkService
from ..config import CoinEntry, ConfigBundle
from ..db.models import AnalysisSnapshot
from ..db.session import session_scope
from ..errors import InsufficientSampleError, NonConvergenceError
from ..providers.base import MarketDataProvider, fetch_history
from ..runs.context import RunContext
from .models import AnalysisRequest, AnalysisResult
from .quality import assess_quality
from .recommendation import recommend

logger = logging.getLogger(__name__)


class AnalysisService:
    """Run a full valuation of one coin for one investment request."""

    def __init__(
        self,
        provider: MarketDataProvider,
        config: ConfigBundle,
        run: RunContext,
        benchmarks: BenchmarkService | None = None,
    ):
        self.provider = provider
        self.config = config
        self.analysis = config.analysis
        self.run = run
        self.benchmarks = benchmarks or BenchmarkService(provider, config.analysis)
        self.estimator = BetaEstimator.from_config(config.analysis)

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        coin = self.config.universe.find(request.coin)
        as_of = request.as_of or self.run.as_of_date
        start = as_of - timedelta(days=round(365.25 * self.analysis.history_years))

        # Coin history failures propagate; benchmark and rate lookups fall back.
        with ThreadPoolExecutor(max_workers=self.config.provider.max_workers) as pool:
            history_future = pool.submit(fetch_history, self.provider, coin.ticker, start, as_of)
            benchmark_future = pool.submit(self.benchmarks.snapshot_for, coin.symbol, as_of)
            rate_future = pool.submit(self.benchmarks.risk_free_rate)
            points = sort_points(history_future.result())
            benchmark = benchmark_future.result()
            risk_free = rate_future.result()

        if len(points) < 2:
            raise InsufficientSampleError(
                f"{coin.symbol} needs at least two price observations", required=2, actual=len(points)
            )
        logger.info("Analyzing %s with %d prices against %s", coin.symbol, len(points), benchmark.name)

        prices = [p.price for p in points]
        current_price = prices[-1]
        growth = cagr_from_history(points)
        beta = self._estimate_beta(points, benchmark)
        liquidity = self._liquidity(coin, points)
        valuation = self.analysis.valuation
        discount = capm_discount_rate(
            risk_free_rate=risk_free,
            beta=beta.beta,
            market_return=self.benchmarks.market_return(benchmark.key),
            valuation_shift=valuation_adjustment(
                request.valuation_ratio,
                valuation.undervalued_below,
                valuation.overvalued_above,
                valuation.undervalued_adjustment,
                valuation.overvalued_adjustment,
            ),
            liquidity_premium=liquidity.premium,
        )
        rate = discount.rate

        horizon = request.horizon_years
        projected = project_prices(current_price, growth, horizon)
        staking = request.staking_yield if request.staking_yield is not None else coin.staking_yield
        terminal = 0.0
        if request.include_terminal_value and staking > 0:
            terminal = self._terminal_value(request.amount * staking, rate)
        flows = build_cash_flows(request.amount, current_price, projected[-1], horizon, staking, terminal)

        npv_value = npv(flows, rate)
        irr_value, converged = self._solve_irr(flows)
        risk = summarize_risk(prices, periods_per_year=365, risk_free_rate=risk_free)

        mc_cfg = self.analysis.monte_carlo
        simulation = simulate_prices(
            initial_value=request.amount,
            annual_return=growth,
            annual_volatility=risk.volatility,
            horizon_years=horizon,
            simulations=mc_cfg.simulations,
            steps_per_year=mc_cfg.steps_per_year,
            confidence=mc_cfg.confidence,
            seed=mc_cfg.seed,
        )
        sale_proceeds = request.amount * projected[-1] / current_price
        income = npv([0.0] + flows[1:-1] + [flows[-1] - sale_proceeds], rate)
        distribution = npv_distribution(simulation, rate, horizon, income)
        quality = assess_quality(
            points,
            benchmark.is_fallback,
            beta,
            self.analysis.quality.min_years,
            self.analysis.quality.min_completeness,
        )
        recommendation = recommend(
            npv=npv_value,
            amount=request.amount,
            probability_of_loss=simulation.probability_of_loss,
            beta=beta,
            risk_tolerance=request.risk_tolerance,
            valuation_ratio=request.valuation_ratio,
            basket=coin.basket,
            portfolio_share=request.portfolio_share,
            undervalued_below=valuation.undervalued_below,
            overvalued_above=valuation.overvalued_above,
        )
        if not converged:
            recommendation.risk_warnings.append("IRR is an unconverged estimate")

        return AnalysisResult(
            coin=coin.symbol,
            name=coin.name,
            basket=coin.basket,
            amount=request.amount,
            horizon_years=horizon,
            as_of=as_of,
            current_price=current_price,
            cagr=growth,
            projected_prices=projected,
            cash_flows=flows,
            discount_rate=discount,
            npv=npv_value,
            irr=irr_value,
            irr_converged=converged,
            roi=roi(request.amount, sum(flows[1:])),
            terminal_value=terminal,
            yearly=yearly_breakdown(flows, rate),
            beta=beta,
            benchmark=benchmark,
            liquidity=liquidity,
            risk=risk,
            monte_carlo=simulation,
            npv_distribution=distribution,
            quality=quality,
            recommendation=recommendation,
        )

    def save_snapshot(self, result: AnalysisResult) -> int:
        with session_scope() as session:
            snapshot = AnalysisSnapshot(
                run_id=self.run.run_id,
                coin_symbol=result.coin,
                amount=result.amount,
                horizon_years=result.horizon_years,
                npv=result.npv,
                irr=result.irr,
                action=result.recommendation.action,
                payload=result.to_dict(),
            )
            session.add(snapshot)
            session.flush()
            return snapshot.id

    def _estimate_beta(self, points: list[PricePoint], benchmark: BenchmarkData) -> BetaEstimate:
        if not benchmark.history:
            return self.estimator.estimate([], [], benchmark.name)
        asset_monthly, bench_monthly = align_monthly(points, benchmark.history)
        return self.estimator.estimate(
            period_returns(asset_monthly),
            period_returns(bench_monthly),
            benchmark.name,
        )

    def _liquidity(self, coin: CoinEntry, points: list[PricePoint]) -> LiquidityProfile:
        cfg = self.analysis.liquidity
        is_bitcoin = coin.symbol.upper() == BITCOIN
        thresholds = cfg.bitcoin_thresholds if is_bitcoin else cfg.altcoin_thresholds
        default = "liquid" if coin.basket in ("bitcoin", "blue_chip") else "moderate"
        return classify_liquidity(average_volume(points, cfg.lookback_days), thresholds, cfg.premiums, default)

    def _terminal_value(self, final_income: float, rate: float) -> float:
        growth = self.analysis.terminal_growth
        if rate <= growth:
            logger.warning("Skipping terminal value: discount rate %.3f not above growth %.3f", rate, growth)
            return 0.0
        return terminal_value(final_income, growth, rate)

    def _solve_irr(self, flows: list[float]) -> tuple[float, bool]:
        cfg = self.analysis.irr
        try:
            return irr(flows, cfg.lower, cfg.upper, cfg.tolerance, cfg.max_iterations), True
        except NonConvergenceError as exc:
            logger.warning("IRR did not converge (%s); reporting estimate %.4f", exc.message, exc.estimate)
            return exc.estimate, False
