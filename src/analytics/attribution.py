"""
Performance attribution analysis.
Splits annualized return into risk-free, market, alpha and unexplained parts.
"""
import logging
from typing import Optional

from src.analytics.errors import DataError
from src.analytics.models import AttributionBreakdown, Benchmark, RiskMetrics

logger = logging.getLogger(__name__)


class AttributionDecomposer:
    """
    Decompose portfolio return along the CAPM.

    Provides:
    - Risk-free component (configured rate)
    - Market component: beta * (benchmark_return - risk_free_rate)
    - Alpha component (from RiskMetrics)
    - Unexplained residual, which closes the sum by construction
    """

    def __init__(self, risk_free_rate: float):
        """
        Initialize AttributionDecomposer.

        Args:
            risk_free_rate: Annual risk-free rate in percent.
        """
        self.risk_free_rate = risk_free_rate

    def decompose(
        self,
        annualized_return: float,
        risk_metrics: RiskMetrics,
        benchmark: Benchmark,
        benchmark_return: float,
        reference_return: Optional[float] = None
    ) -> AttributionBreakdown:
        """
        Attribute an annualized return to its CAPM components.

        Args:
            annualized_return: Portfolio annualized return in percent.
            risk_metrics: Beta and alpha per benchmark.
            benchmark: Benchmark whose beta and alpha drive the split.
            benchmark_return: That benchmark's annualized return in percent.
            reference_return: Return reported as ``benchmark_return`` in the
                breakdown (e.g. the average benchmark). Defaults to
                ``benchmark_return``.

        Returns:
            AttributionBreakdown with all components in percent.
        """
        if benchmark not in risk_metrics.beta or benchmark not in risk_metrics.alpha:
            raise DataError(f"No risk metrics for benchmark {benchmark.label}")

        beta = risk_metrics.beta[benchmark]
        risk_free_component = self.risk_free_rate
        market_return_component = beta * (benchmark_return - self.risk_free_rate)
        alpha_component = risk_metrics.alpha[benchmark]
        unexplained_component = (
            annualized_return
            - risk_free_component
            - market_return_component
            - alpha_component
        )

        logger.debug(
            f"Attribution vs {benchmark.label}: rf={risk_free_component:.2f}% "
            f"market={market_return_component:.2f}% alpha={alpha_component:.2f}% "
            f"unexplained={unexplained_component:.2f}%"
        )

        return AttributionBreakdown(
            total_return=annualized_return,
            risk_free_component=risk_free_component,
            market_return_component=market_return_component,
            alpha_component=alpha_component,
            unexplained_component=unexplained_component,
            benchmark_return=benchmark_return if reference_return is None else reference_return
        )
