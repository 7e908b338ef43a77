"""
Rolling volatility, Sharpe ratio and benchmark correlation.

Windows slide one period at a time; sums, sums of squares and sums of
cross-products are updated incrementally so a full pass is linear in the
length of the series.
"""
import logging
import warnings
from collections import deque
from typing import Deque, List, Optional, Sequence, Tuple

import numpy as np

from src.analytics.errors import DataError, DegenerateInputWarning
from src.analytics.models import (
    Benchmark,
    ROLLING_WINDOWS,
    RollingMetricPoint,
    RollingPeriodReturn,
)
from src.analytics.returns import ReturnSeries, negligible_variance

logger = logging.getLogger(__name__)

# Reported when a window's standard deviation is zero or rounding noise
DEGENERATE_SHARPE = 0.0
DEGENERATE_CORRELATION = 0.0

DEFAULT_PERIOD_RETURN_WINDOW = 90

# Running sums below this fraction of the mean square are recomputed from the window
RECOUNT_TOLERANCE = np.sqrt(np.finfo(float).eps)


class SlidingWindowAccumulator:
    """
    Fixed-size trailing window over one primary series and k paired series.

    Values are shifted by the first observation before accumulating, which
    keeps the sums small and limits cancellation in the variance formula.
    Counts of value changes between neighbours detect constant windows
    exactly. Near-flat windows are recomputed directly from their values,
    and variances that are rounding noise relative to the values' scale
    read as exactly zero.
    """

    def __init__(self, size: int, n_pairs: int = 0):
        if size < 2:
            raise ValueError(f"Window size must be at least 2, got {size}")
        self.size = size
        self.n_pairs = n_pairs

        self._window: Deque[Tuple[float, np.ndarray]] = deque()
        self._shift_x: Optional[float] = None
        self._shift_y: Optional[np.ndarray] = None

        self._sum_x = 0.0
        self._sum_xx = 0.0
        self._sum_y = np.zeros(n_pairs)
        self._sum_yy = np.zeros(n_pairs)
        self._sum_xy = np.zeros(n_pairs)

        self._changes_x = 0
        self._changes_y = np.zeros(n_pairs, dtype=int)

    def __len__(self) -> int:
        return len(self._window)

    @property
    def full(self) -> bool:
        return len(self._window) == self.size

    def push(self, x: float, ys: Sequence[float] = ()) -> None:
        """Add a new observation, evicting the oldest once the window is full."""
        ys = np.asarray(ys, dtype=float)
        if ys.shape != (self.n_pairs,):
            raise ValueError(f"Expected {self.n_pairs} paired values, got {ys.shape}")

        if self._shift_x is None:
            self._shift_x = x
            self._shift_y = ys.copy()

        dx = x - self._shift_x
        dy = ys - self._shift_y

        if self._window:
            last_x, last_y = self._window[-1]
            self._changes_x += int(dx != last_x)
            self._changes_y += (dy != last_y)

        self._window.append((dx, dy))
        self._sum_x += dx
        self._sum_xx += dx * dx
        self._sum_y += dy
        self._sum_yy += dy * dy
        self._sum_xy += dx * dy

        if len(self._window) > self.size:
            old_x, old_y = self._window.popleft()
            first_x, first_y = self._window[0]
            self._changes_x -= int(old_x != first_x)
            self._changes_y -= (old_y != first_y)

            self._sum_x -= old_x
            self._sum_xx -= old_x * old_x
            self._sum_y -= old_y
            self._sum_yy -= old_y * old_y
            self._sum_xy -= old_x * old_y

    def mean(self) -> float:
        """Mean of the primary series over the window."""
        n = len(self._window)
        if n == 0:
            raise ValueError("Window is empty")
        if self._changes_x == 0:
            return self._shift_x + self._window[0][0]
        return self._shift_x + self._sum_x / n

    def _window_arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        n = len(self._window)
        xs = np.fromiter((x for x, _ in self._window), dtype=float, count=n)
        ys = np.array([y for _, y in self._window], dtype=float).reshape(n, self.n_pairs)
        return xs, ys

    def _centered_sums(self) -> Tuple[float, np.ndarray, np.ndarray]:
        """
        Centered sums of squares of x and each y, and their cross-products.

        Sums that are rounding noise relative to the mean square of the
        unshifted values come back as exactly zero.
        """
        n = len(self._window)
        ss_x = self._sum_xx - self._sum_x * self._sum_x / n
        ss_y = self._sum_yy - self._sum_y * self._sum_y / n
        cross = self._sum_xy - self._sum_x * self._sum_y / n

        square_x = (self._shift_x + self._sum_x / n) ** 2 + max(ss_x, 0.0) / n
        square_y = (self._shift_y + self._sum_y / n) ** 2 + np.maximum(ss_y, 0.0) / n

        # Running sums keep rounding from evicted values; recount near-flat windows
        near_flat_x = self._changes_x > 0 and ss_x <= RECOUNT_TOLERANCE * n * square_x
        near_flat_y = (self._changes_y > 0) & (ss_y <= RECOUNT_TOLERANCE * n * square_y)
        if near_flat_x or near_flat_y.any():
            xs, ys = self._window_arrays()
            dx = xs - xs.mean()
            dy = ys - ys.mean(axis=0)
            ss_x = float(dx @ dx)
            ss_y = (dy * dy).sum(axis=0)
            cross = dx @ dy

        if self._changes_x == 0 or negligible_variance(ss_x / n, square_x):
            ss_x = 0.0
        flat_y = (self._changes_y == 0) | negligible_variance(ss_y / n, square_y)
        ss_y = np.where(flat_y, 0.0, np.maximum(ss_y, 0.0))
        return max(ss_x, 0.0), ss_y, cross

    def variance(self) -> float:
        """Sample variance of the primary series."""
        n = len(self._window)
        if n < 2:
            raise ValueError("Variance needs at least 2 observations")
        return self._centered_sums()[0] / (n - 1)

    def std(self) -> float:
        """Sample standard deviation of the primary series."""
        return float(np.sqrt(self.variance()))

    def correlations(self) -> np.ndarray:
        """
        Pearson correlation of the primary series with each paired series.

        Pairs where either side is flat over the window yield 0.
        """
        n = len(self._window)
        if n < 2:
            raise ValueError("Correlation needs at least 2 observations")

        ss_x, ss_y, cross = self._centered_sums()

        result = np.full(self.n_pairs, DEGENERATE_CORRELATION)
        valid = (ss_y > 0) & (ss_x > 0)
        if valid.any():
            result[valid] = cross[valid] / np.sqrt(ss_x * ss_y[valid])
        return np.clip(result, -1.0, 1.0)


class RollingMetricsCalculator:
    """
    Calculate trailing-window volatility, Sharpe ratio and correlation.

    For each window length w and each series index i >= w the window covers
    returns [i - w + 1, i]:
        volatility = std * sqrt(periods_per_year)
        sharpe = (mean * periods_per_year - risk_free_rate) / volatility
    Dates before the shortest window get no point; longer windows stay None
    until they have enough history.
    """

    def __init__(
        self,
        returns: ReturnSeries,
        risk_free_rate: float,
        periods_per_year: int = 252,
        windows: Sequence[int] = ROLLING_WINDOWS
    ):
        """
        Initialize RollingMetricsCalculator.

        Args:
            returns: Daily return series (percent).
            risk_free_rate: Annual risk-free rate in percent.
            periods_per_year: Annualization factor (252 for daily).
            windows: Window lengths; each must be one of 30, 60 or 90.
        """
        unknown = [w for w in windows if w not in ROLLING_WINDOWS]
        if unknown or not windows:
            raise ValueError(f"Unsupported rolling windows: {unknown}")

        self.returns = returns
        self.risk_free_rate = risk_free_rate
        self.periods_per_year = periods_per_year
        self.windows = tuple(sorted(windows))

    def calculate(self) -> List[RollingMetricPoint]:
        """Calculate one RollingMetricPoint per date past the shortest window."""
        benchmarks = self.returns.benchmarks
        portfolio = self.returns.portfolio.to_numpy(dtype=float)
        paired = np.column_stack(
            [self.returns.benchmark(b).to_numpy(dtype=float) for b in benchmarks]
        )
        dates = self.returns.dates

        accumulators = {w: SlidingWindowAccumulator(w, len(benchmarks)) for w in self.windows}
        annualizer = np.sqrt(self.periods_per_year)
        shortest = self.windows[0]

        points = []

        for i in range(len(portfolio)):
            for acc in accumulators.values():
                acc.push(portfolio[i], paired[i])

            if i < shortest:
                continue

            fields = {}
            for w, acc in accumulators.items():
                if i < w:
                    continue
                std = acc.std()
                volatility = std * annualizer
                if volatility == 0:
                    sharpe = DEGENERATE_SHARPE
                else:
                    sharpe = (acc.mean() * self.periods_per_year - self.risk_free_rate) / volatility

                fields[f"volatility_{w}d"] = float(volatility)
                fields[f"sharpe_{w}d"] = float(sharpe)
                fields[f"correlation_{w}d"] = dict(zip(benchmarks, acc.correlations().tolist()))

            points.append(RollingMetricPoint(date=dates[i].date(), **fields))

        degenerate = zero_volatility_windows(points, self.windows)
        if degenerate:
            message = (
                f"{degenerate} rolling windows had zero volatility; "
                f"Sharpe reported as {DEGENERATE_SHARPE}"
            )
            logger.warning(message)
            warnings.warn(message, DegenerateInputWarning, stacklevel=2)

        logger.debug(f"Calculated {len(points)} rolling metric points")
        return points


def zero_volatility_windows(
    points: Sequence[RollingMetricPoint],
    windows: Sequence[int] = ROLLING_WINDOWS
) -> int:
    """Count filled windows whose volatility is zero and whose Sharpe fell back."""
    return sum(1 for point in points for w in windows if point.volatility(w) == 0)


def rolling_period_returns(
    returns: ReturnSeries,
    benchmark: Benchmark,
    window: int = DEFAULT_PERIOD_RETURN_WINDOW
) -> List[RollingPeriodReturn]:
    """
    Calculate trailing compounded returns of portfolio and benchmark.

    Each entry compounds the last ``window`` returns, i.e. the change in value
    from ``window`` periods earlier, and reports the portfolio's excess.

    Args:
        returns: Daily return series (percent).
        benchmark: Benchmark to compare against.
        window: Number of periods per trailing return.

    Returns:
        One entry per date with a full window, oldest first.
    """
    if window < 1:
        raise DataError(f"Window must be positive, got {window}")

    aligned = returns.aligned(benchmark)
    if len(aligned) < window:
        return []

    growth = (1 + aligned / 100).cumprod()
    base = growth.shift(window)
    base.iloc[window - 1] = 1.0
    trailing = ((growth / base - 1) * 100).iloc[window - 1:]

    results = []
    for timestamp, row in trailing.iterrows():
        results.append(RollingPeriodReturn(
            date=timestamp.date(),
            portfolio_return=float(row['portfolio']),
            benchmark_return=float(row['benchmark']),
            excess_return=float(row['portfolio'] - row['benchmark'])
        ))
    return results
