"""
Portfolio Analytics Module.
Provides return series, distribution, benchmark risk metrics, capture ratios,
rolling metrics, monthly returns and performance attribution.
"""
from src.analytics.errors import (
    AnalyticsError,
    DataError,
    InsufficientDataError,
    DegenerateInputWarning,
)
from src.analytics.models import (
    Benchmark,
    NAMED_BENCHMARKS,
    ValuationPoint,
    ReturnPoint,
    MonthlyReturn,
    YearlyReturn,
    HistogramBin,
    ReturnDistribution,
    RiskMetrics,
    CaptureRatios,
    RollingMetricPoint,
    RollingPeriodReturn,
    AttributionBreakdown,
)
from src.analytics.returns import (
    ReturnSeries,
    build_return_series,
    valuations_from_frame,
    annualized_return,
    total_return,
)
from src.analytics.distribution import DistributionAnalyzer
from src.analytics.benchmark import RiskMetricsCalculator
from src.analytics.capture import CaptureRatioCalculator
from src.analytics.rolling import (
    RollingMetricsCalculator,
    SlidingWindowAccumulator,
    rolling_period_returns,
    zero_volatility_windows,
)
from src.analytics.monthly import MonthlyAggregator, compound_yearly
from src.analytics.attribution import AttributionDecomposer
from src.analytics.engine import AnalyticsEngine, AnalyticsReport

__all__ = [
    "AnalyticsError",
    "DataError",
    "InsufficientDataError",
    "DegenerateInputWarning",
    "Benchmark",
    "NAMED_BENCHMARKS",
    "ValuationPoint",
    "ReturnPoint",
    "MonthlyReturn",
    "YearlyReturn",
    "HistogramBin",
    "ReturnDistribution",
    "RiskMetrics",
    "CaptureRatios",
    "RollingMetricPoint",
    "RollingPeriodReturn",
    "AttributionBreakdown",
    "ReturnSeries",
    "build_return_series",
    "valuations_from_frame",
    "annualized_return",
    "total_return",
    "DistributionAnalyzer",
    "RiskMetricsCalculator",
    "CaptureRatioCalculator",
    "RollingMetricsCalculator",
    "SlidingWindowAccumulator",
    "rolling_period_returns",
    "zero_volatility_windows",
    "MonthlyAggregator",
    "compound_yearly",
    "AttributionDecomposer",
    "AnalyticsEngine",
    "AnalyticsReport",
]
