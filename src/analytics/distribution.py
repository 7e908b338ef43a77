"""
Distribution of daily portfolio returns: histogram and higher moments.
"""
import logging
import warnings
from typing import List

import numpy as np
import pandas as pd
from scipy import stats

from src.analytics.errors import DataError, DegenerateInputWarning
from src.analytics.models import HistogramBin, ReturnDistribution
from src.analytics.returns import negligible_variance

logger = logging.getLogger(__name__)

DEFAULT_BIN_COUNT = 20

# Reported when the population variance is zero or rounding noise
DEGENERATE_MOMENT_VALUE = 0.0


class DistributionAnalyzer:
    """
    Summarize daily returns as an equal-width histogram plus mean, median,
    skewness and excess kurtosis.

    Moments use the population standard deviation:
        skewness = (1/n) * sum(((x - mean) / std) ** 3)
        excess_kurtosis = (1/n) * sum(((x - mean) / std) ** 4) - 3
    """

    def __init__(self, bin_count: int = DEFAULT_BIN_COUNT):
        if bin_count < 1:
            raise ValueError(f"bin_count must be positive, got {bin_count}")
        self.bin_count = bin_count

    def analyze(self, returns: pd.Series) -> ReturnDistribution:
        """
        Analyze a series of percentage returns.

        Args:
            returns: Daily portfolio returns in percent.

        Returns:
            ReturnDistribution over all returns.

        Raises:
            DataError: If the series is empty.
        """
        values = np.asarray(returns, dtype=float)
        if values.size == 0:
            raise DataError("Cannot analyze an empty return series")
        if not np.all(np.isfinite(values)):
            raise DataError("Return series contains NaN or infinite values")

        mean = float(np.mean(values))
        median = float(np.median(values))

        variance = float(np.var(values))
        degenerate = bool(np.ptp(values) == 0 or negligible_variance(variance, float(np.mean(values ** 2))))
        if degenerate:
            message = "Returns are constant; skewness and kurtosis reported as 0"
            logger.warning(message)
            warnings.warn(message, DegenerateInputWarning, stacklevel=2)
            skewness = DEGENERATE_MOMENT_VALUE
            kurtosis = DEGENERATE_MOMENT_VALUE
        else:
            skewness = float(stats.skew(values, bias=True))
            kurtosis = float(stats.kurtosis(values, fisher=True, bias=True))

        return ReturnDistribution(
            bins=tuple(self.histogram(values, degenerate)),
            mean=mean,
            median=median,
            skewness=skewness,
            excess_kurtosis=kurtosis,
            count=int(values.size),
            degenerate=degenerate
        )

    def histogram(self, values: np.ndarray, degenerate: bool = False) -> List[HistogramBin]:
        """
        Bucket values into equal-width bins over [min, max].

        Each bin counts [lower, upper); the last bin also includes the
        maximum. A zero-width range, or a degenerate one whose spread is
        rounding noise, is widened by 0.5 on each side.
        """
        value_range = None
        if degenerate:
            value_range = (float(np.min(values)) - 0.5, float(np.max(values)) + 0.5)
        counts, edges = np.histogram(values, bins=self.bin_count, range=value_range)

        bins = []
        for count, lower, upper in zip(counts, edges[:-1], edges[1:]):
            bins.append(HistogramBin(
                range_label=f"{lower:.2f}% to {upper:.2f}%",
                lower=float(lower),
                upper=float(upper),
                midpoint=float((lower + upper) / 2),
                count=int(count)
            ))
        return bins
