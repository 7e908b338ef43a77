"""
Up/down market capture ratios against each benchmark.
"""
import logging
from typing import Dict, List

import pandas as pd

from src.analytics.errors import InsufficientDataError
from src.analytics.models import Benchmark, CaptureRatios
from src.analytics.returns import ReturnSeries

logger = logging.getLogger(__name__)


class CaptureRatioCalculator:
    """
    Measure how much of the benchmark's gains and losses the portfolio captured.

    Up periods are those with a positive benchmark return, down periods those
    with a negative one; flat benchmark periods belong to neither.

        up_capture = mean(portfolio | up) / mean(benchmark | up) * 100
        down_capture = mean(portfolio | down) / mean(benchmark | down) * 100
        capture_ratio = up_capture / down_capture
    """

    def __init__(self, returns: ReturnSeries):
        self.returns = returns

    def _capture(self, benchmark: Benchmark, up: bool) -> float:
        metric = 'up_capture' if up else 'down_capture'
        aligned = self.returns.aligned(benchmark)

        if up:
            market = aligned[aligned['benchmark'] > 0]
        else:
            market = aligned[aligned['benchmark'] < 0]

        if len(market) == 0:
            raise InsufficientDataError(
                f"No {'up' if up else 'down'} periods for {benchmark.label}",
                metric=metric,
                benchmark=benchmark
            )

        benchmark_mean = market['benchmark'].mean()
        if benchmark_mean == 0:
            raise InsufficientDataError(
                f"Mean {benchmark.label} return is zero in {'up' if up else 'down'} periods",
                metric=metric,
                benchmark=benchmark
            )

        return float(market['portfolio'].mean() / benchmark_mean * 100)

    def up_capture(self, benchmark: Benchmark) -> float:
        """Up-market capture in percent."""
        return self._capture(benchmark, up=True)

    def down_capture(self, benchmark: Benchmark) -> float:
        """Down-market capture in percent. Lower is better."""
        return self._capture(benchmark, up=False)

    def capture_ratio(self, benchmark: Benchmark) -> float:
        """Up capture divided by down capture."""
        up = self.up_capture(benchmark)
        down = self.down_capture(benchmark)
        return _ratio(up, down, benchmark)

    def calculate(self) -> CaptureRatios:
        """
        Calculate capture ratios for every tracked benchmark.

        Metrics that cannot be computed are left out of the mappings and their
        InsufficientDataError is collected in ``errors``.
        """
        up_capture: Dict[Benchmark, float] = {}
        down_capture: Dict[Benchmark, float] = {}
        capture_ratio: Dict[Benchmark, float] = {}
        errors: List[InsufficientDataError] = []

        for benchmark in self.returns.benchmarks:
            for metric, target in (
                (self.up_capture, up_capture),
                (self.down_capture, down_capture),
            ):
                try:
                    target[benchmark] = metric(benchmark)
                except InsufficientDataError as e:
                    logger.info(f"Capture metric unavailable: {e}")
                    errors.append(e)

            if benchmark in up_capture and benchmark in down_capture:
                try:
                    capture_ratio[benchmark] = _ratio(
                        up_capture[benchmark], down_capture[benchmark], benchmark
                    )
                except InsufficientDataError as e:
                    logger.info(f"Capture metric unavailable: {e}")
                    errors.append(e)
            else:
                errors.append(InsufficientDataError(
                    f"Capture ratio for {benchmark.label} needs both up and down capture",
                    metric='capture_ratio',
                    benchmark=benchmark
                ))

        return CaptureRatios(
            up_capture=up_capture,
            down_capture=down_capture,
            capture_ratio=capture_ratio,
            errors=tuple(errors)
        )


def _ratio(up: float, down: float, benchmark: Benchmark) -> float:
    if down == 0 or pd.isna(down):
        raise InsufficientDataError(
            f"Down capture for {benchmark.label} is zero",
            metric='capture_ratio',
            benchmark=benchmark
        )
    return up / down
