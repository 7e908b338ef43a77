"""
Return series construction from portfolio and benchmark valuations.
"""
import logging
from typing import Dict, Iterator, List, Sequence, Tuple

import numpy as np
import pandas as pd

from src.analytics.errors import DataError
from src.analytics.models import (
    Benchmark,
    NAMED_BENCHMARKS,
    ReturnPoint,
    ValuationPoint,
    require_coverage,
    tracked_with_average,
)

logger = logging.getLogger(__name__)

PORTFOLIO_COLUMN = "portfolio"

# Variances within this fraction of the mean square are rounding noise
VARIANCE_TOLERANCE = np.finfo(float).eps


def negligible_variance(variance, mean_square):
    """True where a variance is indistinguishable from zero at the values' scale."""
    return variance <= VARIANCE_TOLERANCE * mean_square


class ReturnSeries:
    """
    Read-only percentage returns for the portfolio and each benchmark.

    Backed by a DataFrame indexed by date with one ``portfolio`` column and
    one column per benchmark (named by ``Benchmark.value``), including the
    derived average benchmark. Accessors hand out copies.
    """

    def __init__(self, frame: pd.DataFrame, benchmarks: Sequence[Benchmark]):
        self._frame = frame.copy()
        self._benchmarks = tuple(benchmarks)

    def __len__(self) -> int:
        return len(self._frame)

    def __iter__(self) -> Iterator[ReturnPoint]:
        for timestamp, row in self._frame.iterrows():
            yield ReturnPoint(
                date=timestamp.date(),
                portfolio_return=float(row[PORTFOLIO_COLUMN]),
                benchmark_returns={b: float(row[b.value]) for b in self._benchmarks}
            )

    @property
    def benchmarks(self) -> Tuple[Benchmark, ...]:
        """Tracked benchmarks, derived average last."""
        return self._benchmarks

    @property
    def dates(self) -> pd.DatetimeIndex:
        return self._frame.index.copy()

    @property
    def portfolio(self) -> pd.Series:
        """Portfolio returns in percent."""
        return self._frame[PORTFOLIO_COLUMN].copy()

    def benchmark(self, benchmark: Benchmark) -> pd.Series:
        """Returns of one benchmark in percent."""
        if benchmark not in self._benchmarks:
            raise KeyError(f"Benchmark {benchmark.label} is not tracked")
        return self._frame[benchmark.value].copy()

    def aligned(self, benchmark: Benchmark) -> pd.DataFrame:
        """Portfolio and benchmark returns side by side."""
        aligned = pd.DataFrame({
            'portfolio': self._frame[PORTFOLIO_COLUMN],
            'benchmark': self.benchmark(benchmark)
        })
        return aligned

    def to_frame(self) -> pd.DataFrame:
        return self._frame.copy()


def build_return_series(
    points: Sequence[ValuationPoint],
    benchmarks: Sequence[Benchmark] = NAMED_BENCHMARKS
) -> ReturnSeries:
    """
    Convert consecutive valuation snapshots into percentage returns.

    return[i] = (value[i] - value[i-1]) / value[i-1] * 100, computed
    independently for the portfolio and each benchmark. The average
    benchmark return is the arithmetic mean of the named benchmark returns.

    Args:
        points: Valuation points in ascending date order.
        benchmarks: Named benchmarks to track.

    Returns:
        ReturnSeries with len(points) - 1 entries.

    Raises:
        DataError: Fewer than two points, unordered dates, missing benchmark
            values, or non-positive valuations.
    """
    if len(points) < 2:
        raise DataError(f"Insufficient data: need at least 2 valuation points, have {len(points)}")

    tracked = tracked_with_average(benchmarks)
    named = tracked[:-1]

    dates = pd.DatetimeIndex([pd.Timestamp(p.date) for p in points], name='date')
    if not dates.is_monotonic_increasing or dates.has_duplicates:
        raise DataError("Valuation dates must be strictly increasing")

    columns: Dict[str, List[float]] = {PORTFOLIO_COLUMN: []}
    for b in named:
        columns[b.value] = []

    for point in points:
        require_coverage(point.benchmark_values, named, what=f"value on {point.date}")
        _check_positive(point.portfolio_value, f"portfolio value on {point.date}")
        columns[PORTFOLIO_COLUMN].append(float(point.portfolio_value))
        for b in named:
            value = point.benchmark_values[b]
            _check_positive(value, f"{b.label} value on {point.date}")
            columns[b.value].append(float(value))

    values = pd.DataFrame(columns, index=dates)
    frame = (values.diff() / values.shift(1) * 100).iloc[1:]
    frame[Benchmark.AVERAGE.value] = frame[[b.value for b in named]].mean(axis=1)

    logger.debug(f"Built {len(frame)} returns for {len(named)} benchmarks")
    return ReturnSeries(frame, tracked)


def _check_positive(value: float, what: str) -> None:
    if value is None or not np.isfinite(value) or value <= 0:
        raise DataError(f"Invalid {what}: {value} (must be positive)")


def valuations_from_frame(
    frame: pd.DataFrame,
    portfolio_column: str = PORTFOLIO_COLUMN
) -> List[ValuationPoint]:
    """
    Build valuation points from a DataFrame with a date index.

    Benchmark columns are matched by ``Benchmark.value`` (e.g. ``csi300``);
    unrelated columns are ignored.
    """
    if portfolio_column not in frame.columns:
        raise DataError(f"Missing portfolio column '{portfolio_column}'")

    present = [b for b in NAMED_BENCHMARKS if b.value in frame.columns]
    index = pd.to_datetime(frame.index)

    points = []
    for timestamp, (_, row) in zip(index, frame.iterrows()):
        points.append(ValuationPoint(
            date=timestamp.date(),
            portfolio_value=float(row[portfolio_column]),
            benchmark_values={b: float(row[b.value]) for b in present}
        ))
    return points


def total_return(returns_pct: pd.Series) -> float:
    """Compound a percentage return series into a cumulative percentage."""
    if len(returns_pct) == 0:
        return 0.0
    return float(((1 + returns_pct / 100).prod() - 1) * 100)


def annualized_return(returns_pct: pd.Series, periods_per_year: int = 252) -> float:
    """
    Annualize a percentage return series by geometric compounding.

    ((prod(1 + r/100)) ** (periods_per_year / n) - 1) * 100

    Computed in log space; growth too large for a float annualizes to inf.
    """
    if len(returns_pct) == 0:
        return 0.0

    growth = float((1 + returns_pct / 100).prod())
    if growth <= 0:
        return -100.0

    with np.errstate(over='ignore'):
        annualized = float(np.expm1(np.log(growth) * periods_per_year / len(returns_pct)) * 100)
    if np.isinf(annualized):
        logger.warning(f"Annualized return overflows over {len(returns_pct)} periods; reported as inf")
    return annualized
