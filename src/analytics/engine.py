"""
Analytics engine: runs every component over one valuation history.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from config.settings import AnalyticsConfig
from src.analytics.attribution import AttributionDecomposer
from src.analytics.benchmark import RiskMetricsCalculator
from src.analytics.capture import CaptureRatioCalculator
from src.analytics.distribution import DistributionAnalyzer
from src.analytics.errors import AnalyticsError
from src.analytics.models import (
    AttributionBreakdown,
    Benchmark,
    CaptureRatios,
    MonthlyReturn,
    NAMED_BENCHMARKS,
    ReturnDistribution,
    RiskMetrics,
    RollingMetricPoint,
    RollingPeriodReturn,
    ValuationPoint,
    YearlyReturn,
)
from src.analytics.monthly import MonthlyAggregator, compound_yearly
from src.analytics.returns import ReturnSeries, annualized_return, build_return_series
from src.analytics.rolling import RollingMetricsCalculator, rolling_period_returns, zero_volatility_windows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyticsReport:
    """
    Everything computed for one valuation history.

    A component that failed leaves its field None (or empty) and records its
    error under the component name in ``errors``. ``warnings`` lists values
    that were produced by a degenerate-input fallback.
    """
    returns: ReturnSeries
    annualized_return: float
    annualized_benchmark_returns: Dict[Benchmark, float]
    distribution: Optional[ReturnDistribution] = None
    risk_metrics: Optional[RiskMetrics] = None
    capture_ratios: Optional[CaptureRatios] = None
    rolling_metrics: Tuple[RollingMetricPoint, ...] = ()
    rolling_returns: Tuple[RollingPeriodReturn, ...] = ()
    monthly_returns: Tuple[MonthlyReturn, ...] = ()
    yearly_returns: Tuple[YearlyReturn, ...] = ()
    attribution: Optional[AttributionBreakdown] = None
    errors: Dict[str, AnalyticsError] = field(default_factory=dict)
    warnings: Tuple[str, ...] = ()

    @property
    def complete(self) -> bool:
        """True when no component failed."""
        return not self.errors


class AnalyticsEngine:
    """
    Compute return distribution, risk metrics, capture ratios, rolling
    metrics, monthly returns and attribution from valuation points.

    Independent components run sequentially, or on a thread pool when
    ``max_workers`` is greater than 1. Attribution runs after risk metrics.
    """

    def __init__(
        self,
        config: Optional[AnalyticsConfig] = None,
        attribution_benchmark: Benchmark = Benchmark.CSI300,
        max_workers: Optional[int] = None
    ):
        """
        Initialize AnalyticsEngine.

        Args:
            config: Engine configuration; loaded from settings if None.
            attribution_benchmark: Benchmark whose beta and alpha drive the
                attribution and the rolling period comparison. Falls back to
                the first tracked benchmark when it is not tracked.
            max_workers: Thread pool size for independent components.
        """
        self.config = config or AnalyticsConfig.from_settings()
        self.attribution_benchmark = attribution_benchmark
        self.max_workers = max_workers

    def run(
        self,
        points: Sequence[ValuationPoint],
        benchmarks: Sequence[Benchmark] = NAMED_BENCHMARKS
    ) -> AnalyticsReport:
        """
        Run all analytics over a valuation history.

        Args:
            points: Valuation points in ascending date order.
            benchmarks: Named benchmarks to track.

        Returns:
            AnalyticsReport with partial results and per-component errors.

        Raises:
            DataError: If the return series itself cannot be built.
        """
        config = self.config
        returns = build_return_series(points, benchmarks)
        logger.info(f"Running analytics on {len(returns)} returns against {len(returns.benchmarks)} benchmarks")

        portfolio_annual = annualized_return(returns.portfolio, config.annualization_factor)
        benchmark_annual = {
            b: annualized_return(returns.benchmark(b), config.annualization_factor)
            for b in returns.benchmarks
        }
        chosen = self._chosen_benchmark(returns)
        rolling = RollingMetricsCalculator(
            returns, config.risk_free_rate, config.annualization_factor, config.rolling_windows
        )

        tasks: Dict[str, Callable] = {
            'distribution': lambda: DistributionAnalyzer(config.histogram_bin_count).analyze(returns.portfolio),
            'risk_metrics': lambda: RiskMetricsCalculator(
                returns, config.risk_free_rate, config.annualization_factor
            ).calculate(portfolio_annual, benchmark_annual),
            'capture_ratios': lambda: CaptureRatioCalculator(returns).calculate(),
            'rolling_metrics': rolling.calculate,
            'rolling_returns': lambda: rolling_period_returns(returns, chosen, config.rolling_return_window),
            'monthly_returns': lambda: MonthlyAggregator(returns).monthly_returns(),
        }

        results, errors = self._run_tasks(tasks)

        attribution = None
        risk_metrics = results.get('risk_metrics')
        if risk_metrics is not None:
            try:
                attribution = AttributionDecomposer(config.risk_free_rate).decompose(
                    portfolio_annual,
                    risk_metrics,
                    chosen,
                    benchmark_annual[chosen],
                    reference_return=benchmark_annual[Benchmark.AVERAGE]
                )
            except AnalyticsError as e:
                logger.error(f"attribution failed: {e}")
                errors['attribution'] = e
        else:
            logger.warning("Skipping attribution: risk metrics unavailable")

        monthly = tuple(results.get('monthly_returns') or ())
        report_warnings = self._collect_warnings(results, config.rolling_windows)

        return AnalyticsReport(
            returns=returns,
            annualized_return=portfolio_annual,
            annualized_benchmark_returns=benchmark_annual,
            distribution=results.get('distribution'),
            risk_metrics=risk_metrics,
            capture_ratios=results.get('capture_ratios'),
            rolling_metrics=tuple(results.get('rolling_metrics') or ()),
            rolling_returns=tuple(results.get('rolling_returns') or ()),
            monthly_returns=monthly,
            yearly_returns=tuple(compound_yearly(monthly)),
            attribution=attribution,
            errors=errors,
            warnings=report_warnings
        )

    def _chosen_benchmark(self, returns: ReturnSeries) -> Benchmark:
        if self.attribution_benchmark in returns.benchmarks:
            return self.attribution_benchmark
        fallback = returns.benchmarks[0]
        logger.info(f"{self.attribution_benchmark.label} not tracked; using {fallback.label} for attribution")
        return fallback

    def _run_tasks(self, tasks: Dict[str, Callable]) -> Tuple[Dict[str, object], Dict[str, AnalyticsError]]:
        results: Dict[str, object] = {}
        errors: Dict[str, AnalyticsError] = {}

        if self.max_workers and self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {name: executor.submit(task) for name, task in tasks.items()}
                for name, future in futures.items():
                    try:
                        results[name] = future.result()
                    except AnalyticsError as e:
                        logger.error(f"{name} failed: {e}")
                        errors[name] = e
        else:
            for name, task in tasks.items():
                try:
                    results[name] = task()
                except AnalyticsError as e:
                    logger.error(f"{name} failed: {e}")
                    errors[name] = e

        return results, errors

    @staticmethod
    def _collect_warnings(results: Dict[str, object], windows: Sequence[int]) -> Tuple[str, ...]:
        messages: List[str] = []

        distribution = results.get('distribution')
        if distribution is not None and distribution.degenerate:
            messages.append("distribution: constant returns, skewness and kurtosis set to 0")

        risk_metrics = results.get('risk_metrics')
        if risk_metrics is not None:
            for benchmark in risk_metrics.degenerate:
                messages.append(f"risk_metrics: zero {benchmark.label} variance, beta set to 0")

        degenerate_windows = zero_volatility_windows(results.get('rolling_metrics') or (), windows)
        if degenerate_windows:
            messages.append(
                f"rolling_metrics: {degenerate_windows} zero-volatility windows, Sharpe set to 0"
            )

        return tuple(messages)
