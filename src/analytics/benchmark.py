"""
Benchmark-relative risk metrics: beta and CAPM alpha.
"""
import logging
import warnings
from typing import Dict, Optional

import pandas as pd

from src.analytics.errors import DegenerateInputWarning
from src.analytics.models import Benchmark, RiskMetrics
from src.analytics.returns import ReturnSeries, annualized_return, negligible_variance

logger = logging.getLogger(__name__)

# Beta reported when benchmark variance is zero or undefined
DEGENERATE_BETA = 0.0


class RiskMetricsCalculator:
    """
    Calculate beta and annualized Jensen's alpha of the portfolio against
    every tracked benchmark.

    Returns and rates are percentages (1.0 == 1%).
    """

    def __init__(
        self,
        returns: ReturnSeries,
        risk_free_rate: float,
        periods_per_year: int = 252
    ):
        """
        Initialize RiskMetricsCalculator.

        Args:
            returns: Daily return series.
            risk_free_rate: Annual risk-free rate in percent.
            periods_per_year: Trading periods per year (252 for daily).
        """
        self.returns = returns
        self.risk_free_rate = risk_free_rate
        self.periods_per_year = periods_per_year

    def calculate_beta(self, benchmark: Benchmark) -> Optional[float]:
        """
        Calculate portfolio beta relative to a benchmark.

        Beta = Cov(portfolio, benchmark) / Var(benchmark), sample estimates.

        Returns:
            Beta, or None when the benchmark variance is zero or undefined.
        """
        aligned = self.returns.aligned(benchmark)
        if len(aligned) < 2:
            return None

        # Constant series can leave rounding noise in var()
        if aligned['benchmark'].nunique() < 2:
            return None

        var = aligned['benchmark'].var()
        if pd.isna(var) or negligible_variance(var, (aligned['benchmark'] ** 2).mean()):
            return None

        cov = aligned['portfolio'].cov(aligned['benchmark'])
        return float(cov / var)

    def calculate_alpha(
        self,
        beta: float,
        portfolio_annual: float,
        benchmark_annual: float
    ) -> float:
        """
        Calculate Jensen's alpha (annualized).

        Alpha = portfolio_return - (risk_free + beta * (market_return - risk_free))
        """
        expected_return = self.risk_free_rate + beta * (benchmark_annual - self.risk_free_rate)
        return portfolio_annual - expected_return

    def calculate(
        self,
        annualized_portfolio_return: Optional[float] = None,
        annualized_benchmark_returns: Optional[Dict[Benchmark, float]] = None
    ) -> RiskMetrics:
        """
        Calculate beta and alpha for every tracked benchmark.

        Args:
            annualized_portfolio_return: Override for the portfolio's
                annualized return (percent). Compounded from the series if None.
            annualized_benchmark_returns: Overrides per benchmark (percent).

        Returns:
            RiskMetrics. Benchmarks whose beta fell back to 0 are listed in
            ``degenerate``.
        """
        if annualized_portfolio_return is None:
            annualized_portfolio_return = annualized_return(
                self.returns.portfolio, self.periods_per_year
            )
        benchmark_annual = dict(annualized_benchmark_returns or {})

        betas = {}
        alphas = {}
        degenerate = []

        for benchmark in self.returns.benchmarks:
            if benchmark not in benchmark_annual:
                benchmark_annual[benchmark] = annualized_return(
                    self.returns.benchmark(benchmark), self.periods_per_year
                )

            beta = self.calculate_beta(benchmark)
            if beta is None:
                message = f"{benchmark.label} returns have zero variance; beta reported as {DEGENERATE_BETA}"
                logger.warning(message)
                warnings.warn(message, DegenerateInputWarning, stacklevel=2)
                beta = DEGENERATE_BETA
                degenerate.append(benchmark)

            betas[benchmark] = beta
            alphas[benchmark] = self.calculate_alpha(
                beta, annualized_portfolio_return, benchmark_annual[benchmark]
            )

        return RiskMetrics(
            beta=betas,
            alpha=alphas,
            annualized_portfolio_return=annualized_portfolio_return,
            annualized_benchmark_returns=benchmark_annual,
            degenerate=tuple(degenerate)
        )
