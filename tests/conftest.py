"""
Shared pytest fixtures for portfolio analytics tests.
"""
import pytest
import pandas as pd
import numpy as np
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.analytics.models import Benchmark, ValuationPoint, tracked_with_average
from src.analytics.returns import ReturnSeries, build_return_series


@pytest.fixture
def sample_valuations():
    """
    Generate one year of portfolio and benchmark valuations.

    Benchmarks share a common market factor; the portfolio has beta ~1.2
    to that factor plus idiosyncratic noise.
    """
    np.random.seed(42)
    n_days = 253
    dates = pd.date_range(start="2023-01-02", periods=n_days, freq='B')

    market = np.random.randn(n_days) * 0.01 + 0.0003
    benchmark_returns = {
        Benchmark.SHA: market + np.random.randn(n_days) * 0.003,
        Benchmark.SHE: market * 1.1 + np.random.randn(n_days) * 0.004,
        Benchmark.CSI300: market + np.random.randn(n_days) * 0.002,
    }
    portfolio_returns = market * 1.2 + np.random.randn(n_days) * 0.005 + 0.0002

    portfolio_values = 100000 * np.cumprod(1 + portfolio_returns)
    benchmark_values = {b: 3000 * np.cumprod(1 + r) for b, r in benchmark_returns.items()}

    return [
        ValuationPoint(
            date=dates[i].date(),
            portfolio_value=float(portfolio_values[i]),
            benchmark_values={b: float(v[i]) for b, v in benchmark_values.items()}
        )
        for i in range(n_days)
    ]


@pytest.fixture
def sample_returns(sample_valuations):
    """Return series built from sample_valuations."""
    return build_return_series(sample_valuations)


@pytest.fixture
def linear_valuations():
    """
    100 valuations rising linearly by 1% of the starting value per period,
    identical for the portfolio and CSI 300.
    """
    dates = pd.date_range(start="2024-01-01", periods=100, freq='D')
    return [
        ValuationPoint(
            date=d.date(),
            portfolio_value=100.0 + i,
            benchmark_values={Benchmark.CSI300: 100.0 + i}
        )
        for i, d in enumerate(dates)
    ]


@pytest.fixture
def make_valuations():
    """Factory building valuation points from value lists."""
    def _make(portfolio, benchmarks, start="2024-01-01", freq='D'):
        dates = pd.date_range(start=start, periods=len(portfolio), freq=freq)
        return [
            ValuationPoint(
                date=d.date(),
                portfolio_value=float(portfolio[i]),
                benchmark_values={b: float(v[i]) for b, v in benchmarks.items()}
            )
            for i, d in enumerate(dates)
        ]
    return _make


@pytest.fixture
def make_return_series():
    """
    Factory building a ReturnSeries directly from percentage returns.

    The average benchmark column is the mean of the supplied benchmarks.
    """
    def _make(portfolio, benchmarks, start="2024-01-01", freq='D'):
        dates = pd.date_range(start=start, periods=len(portfolio), freq=freq, name='date')
        frame = pd.DataFrame({'portfolio': np.asarray(portfolio, dtype=float)}, index=dates)
        for b, values in benchmarks.items():
            frame[b.value] = np.asarray(values, dtype=float)
        frame[Benchmark.AVERAGE.value] = frame[[b.value for b in benchmarks]].mean(axis=1)
        return ReturnSeries(frame, tracked_with_average(list(benchmarks)))
    return _make
