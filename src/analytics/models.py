"""
Value types shared by the analytics components.
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Tuple

from src.analytics.errors import DataError, InsufficientDataError


class Benchmark(Enum):
    """Benchmark identifiers."""
    SHA = "sha"
    SHE = "she"
    CSI300 = "csi300"
    AVERAGE = "avg_benchmark"

    @property
    def label(self) -> str:
        return BENCHMARK_LABELS[self]


BENCHMARK_LABELS = {
    Benchmark.SHA: "SHA",
    Benchmark.SHE: "SHE",
    Benchmark.CSI300: "CSI 300",
    Benchmark.AVERAGE: "Average Benchmark",
}

# Benchmarks measured directly; AVERAGE is derived from these
NAMED_BENCHMARKS: Tuple[Benchmark, ...] = (Benchmark.SHA, Benchmark.SHE, Benchmark.CSI300)

ROLLING_WINDOWS: Tuple[int, ...] = (30, 60, 90)


def tracked_with_average(benchmarks) -> Tuple[Benchmark, ...]:
    """Return the named benchmarks followed by the derived average."""
    named = tuple(dict.fromkeys(b for b in benchmarks if b is not Benchmark.AVERAGE))
    if not named:
        raise DataError("At least one named benchmark must be tracked")
    return named + (Benchmark.AVERAGE,)


def require_coverage(values: Dict[Benchmark, float], benchmarks, what: str = "value") -> None:
    """Raise DataError if any benchmark is missing from a mapping."""
    missing = [b.label for b in benchmarks if b not in values]
    if missing:
        raise DataError(f"Missing benchmark {what} for: {', '.join(missing)}")


@dataclass(frozen=True)
class ValuationPoint:
    """Portfolio and benchmark valuations on one calendar day."""
    date: date
    portfolio_value: float
    benchmark_values: Dict[Benchmark, float]


@dataclass(frozen=True)
class ReturnPoint:
    """Percentage returns for one period."""
    date: date
    portfolio_return: float
    benchmark_returns: Dict[Benchmark, float]


@dataclass(frozen=True)
class MonthlyReturn:
    """Compounded return for one calendar month (month is 0-11)."""
    year: int
    month: int
    return_pct: float


@dataclass(frozen=True)
class YearlyReturn:
    """Compounded return for one calendar year."""
    year: int
    return_pct: float


@dataclass(frozen=True)
class HistogramBin:
    """Single histogram bucket of daily returns."""
    range_label: str
    lower: float
    upper: float
    midpoint: float
    count: int


@dataclass(frozen=True)
class ReturnDistribution:
    """Histogram and moments of daily portfolio returns."""
    bins: Tuple[HistogramBin, ...]
    mean: float
    median: float
    skewness: float
    excess_kurtosis: float
    count: int
    degenerate: bool = False


@dataclass(frozen=True)
class RiskMetrics:
    """Beta and annualized CAPM alpha per benchmark."""
    beta: Dict[Benchmark, float]
    alpha: Dict[Benchmark, float]
    annualized_portfolio_return: float = 0.0
    annualized_benchmark_returns: Dict[Benchmark, float] = field(default_factory=dict)
    degenerate: Tuple[Benchmark, ...] = ()


@dataclass(frozen=True)
class CaptureRatios:
    """Up/down capture percentages and their ratio per benchmark."""
    up_capture: Dict[Benchmark, float]
    down_capture: Dict[Benchmark, float]
    capture_ratio: Dict[Benchmark, float]
    errors: Tuple[InsufficientDataError, ...] = ()

    def errors_for(self, benchmark: Benchmark) -> List[InsufficientDataError]:
        return [e for e in self.errors if e.benchmark is benchmark]


@dataclass(frozen=True)
class RollingMetricPoint:
    """
    Trailing-window metrics on one date.

    Window fields stay None until that window has enough history.
    """
    date: date
    volatility_30d: Optional[float] = None
    volatility_60d: Optional[float] = None
    volatility_90d: Optional[float] = None
    sharpe_30d: Optional[float] = None
    sharpe_60d: Optional[float] = None
    sharpe_90d: Optional[float] = None
    correlation_30d: Dict[Benchmark, float] = field(default_factory=dict)
    correlation_60d: Dict[Benchmark, float] = field(default_factory=dict)
    correlation_90d: Dict[Benchmark, float] = field(default_factory=dict)

    def volatility(self, window: int) -> Optional[float]:
        return getattr(self, f"volatility_{window}d")

    def sharpe(self, window: int) -> Optional[float]:
        return getattr(self, f"sharpe_{window}d")

    def correlation(self, window: int) -> Dict[Benchmark, float]:
        return getattr(self, f"correlation_{window}d")


@dataclass(frozen=True)
class RollingPeriodReturn:
    """Trailing compounded returns of portfolio and benchmark."""
    date: date
    portfolio_return: float
    benchmark_return: float
    excess_return: float


@dataclass(frozen=True)
class AttributionBreakdown:
    """Split of annualized return into CAPM components (all percentages)."""
    total_return: float
    risk_free_component: float
    market_return_component: float
    alpha_component: float
    unexplained_component: float
    benchmark_return: float

    @property
    def excess_return(self) -> float:
        """Total return in excess of the reference benchmark return."""
        return self.total_return - self.benchmark_return
