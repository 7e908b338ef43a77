"""
Tests for RiskMetricsCalculator - beta and CAPM alpha.
"""
import pytest
import numpy as np

from src.analytics.benchmark import DEGENERATE_BETA, RiskMetricsCalculator
from src.analytics.errors import DegenerateInputWarning
from src.analytics.models import Benchmark
from src.analytics.returns import annualized_return


class TestRiskMetricsCalculator:
    """Tests for RiskMetricsCalculator class."""

    def test_identical_returns_give_unit_beta_zero_alpha(self, make_return_series):
        """A portfolio that mirrors its benchmark has beta 1 and no alpha."""
        np.random.seed(7)
        r = np.random.randn(120)
        series = make_return_series(r, {Benchmark.CSI300: r})

        metrics = RiskMetricsCalculator(series, risk_free_rate=2.0).calculate()

        assert metrics.beta[Benchmark.CSI300] == pytest.approx(1.0)
        assert metrics.alpha[Benchmark.CSI300] == pytest.approx(0.0, abs=1e-9)
        assert metrics.degenerate == ()

    def test_leveraged_portfolio_beta(self, make_return_series):
        np.random.seed(7)
        r = np.random.randn(120)
        series = make_return_series(2 * r, {Benchmark.CSI300: r})

        calc = RiskMetricsCalculator(series, risk_free_rate=2.0)
        assert calc.calculate_beta(Benchmark.CSI300) == pytest.approx(2.0)

    def test_beta_uses_sample_covariance(self, sample_returns):
        aligned = sample_returns.aligned(Benchmark.SHE)
        expected = np.cov(aligned['portfolio'], aligned['benchmark'], ddof=1)[0, 1] / \
            np.var(aligned['benchmark'], ddof=1)

        calc = RiskMetricsCalculator(sample_returns, risk_free_rate=2.0)
        assert calc.calculate_beta(Benchmark.SHE) == pytest.approx(expected)

    def test_metrics_for_every_benchmark(self, sample_returns):
        metrics = RiskMetricsCalculator(sample_returns, risk_free_rate=2.0).calculate()

        assert set(metrics.beta) == set(sample_returns.benchmarks)
        assert set(metrics.alpha) == set(sample_returns.benchmarks)
        # Sample portfolio was generated with beta ~1.2 to the market factor
        assert 0.8 < metrics.beta[Benchmark.CSI300] < 1.6

    def test_alpha_follows_capm(self, sample_returns):
        """Alpha = Rp - (Rf + beta * (Rb - Rf)) on annualized figures."""
        rf = 3.0
        metrics = RiskMetricsCalculator(sample_returns, risk_free_rate=rf).calculate()

        rp = annualized_return(sample_returns.portfolio)
        rb = annualized_return(sample_returns.benchmark(Benchmark.SHA))
        beta = metrics.beta[Benchmark.SHA]

        assert metrics.annualized_portfolio_return == pytest.approx(rp)
        assert metrics.annualized_benchmark_returns[Benchmark.SHA] == pytest.approx(rb)
        assert metrics.alpha[Benchmark.SHA] == pytest.approx(rp - (rf + beta * (rb - rf)))

    def test_annualized_overrides(self, sample_returns):
        rf = 2.0
        calc = RiskMetricsCalculator(sample_returns, risk_free_rate=rf)
        metrics = calc.calculate(
            annualized_portfolio_return=12.0,
            annualized_benchmark_returns={Benchmark.CSI300: 8.0}
        )

        beta = metrics.beta[Benchmark.CSI300]
        assert metrics.alpha[Benchmark.CSI300] == pytest.approx(12.0 - (rf + beta * (8.0 - rf)))
        # Benchmarks without an override are still compounded from the series
        assert metrics.annualized_benchmark_returns[Benchmark.SHA] == pytest.approx(
            annualized_return(sample_returns.benchmark(Benchmark.SHA))
        )

    def test_risk_free_rate_changes_alpha(self, sample_returns):
        low = RiskMetricsCalculator(sample_returns, risk_free_rate=0.0).calculate()
        high = RiskMetricsCalculator(sample_returns, risk_free_rate=5.0).calculate()

        assert low.beta == high.beta
        assert low.alpha[Benchmark.SHE] != pytest.approx(high.alpha[Benchmark.SHE])


class TestDegenerateBenchmark:
    """Zero benchmark variance falls back to beta 0 with a warning."""

    def test_constant_benchmark(self, make_return_series):
        np.random.seed(3)
        series = make_return_series(np.random.randn(60), {Benchmark.CSI300: [0.0] * 60})

        with pytest.warns(DegenerateInputWarning):
            metrics = RiskMetricsCalculator(series, risk_free_rate=2.0).calculate()

        assert metrics.beta[Benchmark.CSI300] == DEGENERATE_BETA
        assert Benchmark.CSI300 in metrics.degenerate
        # Alpha is still reported using the fallback beta
        assert np.isfinite(metrics.alpha[Benchmark.CSI300])

    def test_other_benchmarks_unaffected(self, make_return_series):
        np.random.seed(3)
        r = np.random.randn(60)
        series = make_return_series(r, {Benchmark.SHA: r, Benchmark.CSI300: [0.5] * 60})

        with pytest.warns(DegenerateInputWarning):
            metrics = RiskMetricsCalculator(series, risk_free_rate=2.0).calculate()

        assert metrics.beta[Benchmark.SHA] == pytest.approx(1.0)
        assert metrics.degenerate == (Benchmark.CSI300,)

    def test_single_return(self, make_return_series):
        series = make_return_series([1.0], {Benchmark.CSI300: [0.5]})

        with pytest.warns(DegenerateInputWarning):
            metrics = RiskMetricsCalculator(series, risk_free_rate=2.0).calculate()

        assert metrics.beta[Benchmark.CSI300] == DEGENERATE_BETA
