"""
Tests for DistributionAnalyzer - histogram and higher moments.
"""
import pytest
import pandas as pd
import numpy as np

from src.analytics.distribution import DistributionAnalyzer
from src.analytics.errors import DataError, DegenerateInputWarning
from src.analytics.models import Benchmark
from src.analytics.returns import build_return_series


class TestDistributionAnalyzer:
    """Tests for DistributionAnalyzer class."""

    def test_bin_counts_sum_to_observations(self, sample_returns):
        """Every return lands in exactly one bin."""
        dist = DistributionAnalyzer().analyze(sample_returns.portfolio)

        assert len(dist.bins) == 20
        assert sum(b.count for b in dist.bins) == len(sample_returns)
        assert dist.count == len(sample_returns)

    def test_median_within_range(self, sample_returns):
        returns = sample_returns.portfolio
        dist = DistributionAnalyzer().analyze(returns)

        assert returns.min() <= dist.median <= returns.max()
        assert returns.min() <= dist.mean <= returns.max()

    def test_mean_and_median(self):
        dist = DistributionAnalyzer().analyze(pd.Series([1.0, 2.0, 3.0, 10.0]))

        assert dist.mean == pytest.approx(4.0)
        # Even count: average of the two central values
        assert dist.median == pytest.approx(2.5)

    def test_odd_count_median(self):
        dist = DistributionAnalyzer().analyze(pd.Series([5.0, 1.0, 3.0]))
        assert dist.median == 3.0

    def test_symmetric_series_has_zero_skewness(self):
        """Alternating +-1% returns are symmetric around zero."""
        returns = pd.Series([1.0, -1.0, 1.0, -1.0, 1.0, -1.0, 1.0, -1.0])
        dist = DistributionAnalyzer().analyze(returns)

        assert dist.skewness == pytest.approx(0.0, abs=1e-12)
        # Two-point distribution: fourth standardized moment is 1
        assert dist.excess_kurtosis == pytest.approx(-2.0)

    def test_moments_match_population_formula(self, sample_returns):
        """Skewness and kurtosis use the population standard deviation."""
        x = sample_returns.portfolio.to_numpy()
        z = (x - x.mean()) / x.std(ddof=0)

        dist = DistributionAnalyzer().analyze(sample_returns.portfolio)

        assert dist.skewness == pytest.approx(np.mean(z ** 3))
        assert dist.excess_kurtosis == pytest.approx(np.mean(z ** 4) - 3)

    def test_right_skewed_series(self):
        returns = pd.Series([0.0] * 20 + [10.0])
        dist = DistributionAnalyzer().analyze(returns)

        assert dist.skewness > 0
        assert dist.excess_kurtosis > 0

    def test_constant_returns_report_zero_moments(self):
        """Zero standard deviation falls back to 0 instead of dividing by zero."""
        returns = pd.Series([0.3] * 50)

        with pytest.warns(DegenerateInputWarning):
            dist = DistributionAnalyzer().analyze(returns)

        assert dist.skewness == 0.0
        assert dist.excess_kurtosis == 0.0
        assert dist.degenerate is True
        assert sum(b.count for b in dist.bins) == 50

    def test_steady_growth_returns_are_degenerate(self, make_valuations):
        """A steady 1% growth series has only rounding noise in its returns."""
        values = [100 * 1.01 ** i for i in range(100)]
        series = build_return_series(
            make_valuations(values, {Benchmark.CSI300: values}), [Benchmark.CSI300]
        )

        with pytest.warns(DegenerateInputWarning):
            dist = DistributionAnalyzer().analyze(series.portfolio)

        assert dist.degenerate is True
        assert dist.skewness == 0.0
        assert dist.excess_kurtosis == 0.0
        assert dist.mean == pytest.approx(1.0)
        assert sum(b.count for b in dist.bins) == 99
        assert len(dist.bins) == 20

    def test_empty_returns_raise(self):
        with pytest.raises(DataError):
            DistributionAnalyzer().analyze(pd.Series(dtype=float))

    def test_nan_returns_raise(self):
        with pytest.raises(DataError):
            DistributionAnalyzer().analyze(pd.Series([1.0, np.nan]))

    def test_invalid_bin_count(self):
        with pytest.raises(ValueError):
            DistributionAnalyzer(bin_count=0)


class TestHistogram:
    """Tests for histogram bucketing."""

    def test_bins_partition_range(self):
        returns = pd.Series([-2.0, -1.0, 0.0, 1.0, 2.0])
        dist = DistributionAnalyzer(bin_count=4).analyze(returns)

        assert dist.bins[0].lower == -2.0
        assert dist.bins[-1].upper == 2.0
        for left, right in zip(dist.bins[:-1], dist.bins[1:]):
            assert left.upper == right.lower
        widths = {round(b.upper - b.lower, 12) for b in dist.bins}
        assert widths == {1.0}

    def test_bins_are_half_open_except_last(self):
        """Values on an inner edge go up; the maximum stays in the last bin."""
        returns = pd.Series([-2.0, -1.0, 0.0, 1.0, 2.0])
        dist = DistributionAnalyzer(bin_count=4).analyze(returns)

        assert [b.count for b in dist.bins] == [1, 1, 1, 2]

    def test_midpoint_and_label(self):
        returns = pd.Series([0.0, 1.0])
        dist = DistributionAnalyzer(bin_count=2).analyze(returns)

        assert dist.bins[0].midpoint == pytest.approx(0.25)
        assert dist.bins[0].range_label == "0.00% to 0.50%"
        assert dist.bins[1].range_label == "0.50% to 1.00%"

    def test_custom_bin_count(self, sample_returns):
        dist = DistributionAnalyzer(bin_count=7).analyze(sample_returns.portfolio)
        assert len(dist.bins) == 7
