"""
Monthly and yearly compounding of daily returns.
"""
import logging
from typing import Dict, List, Sequence

import pandas as pd

from src.analytics.models import MonthlyReturn, YearlyReturn
from src.analytics.returns import ReturnSeries

logger = logging.getLogger(__name__)

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
                "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


class MonthlyAggregator:
    """
    Compound daily portfolio returns into calendar-month returns.

    Only months with at least one observed return are reported; a month
    without data is absent rather than 0%.
    """

    def __init__(self, returns: ReturnSeries):
        self.returns = returns

    def monthly_returns(self) -> List[MonthlyReturn]:
        """
        Aggregate returns by (year, month).

        Returns:
            MonthlyReturn per observed month in chronological order, month
            numbered 0-11.
        """
        daily = self.returns.portfolio
        if len(daily) == 0:
            return []

        growth = (1 + daily / 100).groupby([daily.index.year, daily.index.month]).prod()

        monthly = []
        for (year, month), value in growth.items():
            monthly.append(MonthlyReturn(
                year=int(year),
                month=int(month) - 1,
                return_pct=float((value - 1) * 100)
            ))
        return monthly

    def heatmap(self) -> pd.DataFrame:
        """
        Monthly returns pivoted for heatmap display.

        Returns:
            DataFrame with years as index, month labels as columns and NaN
            for months without data.
        """
        monthly = self.monthly_returns()
        if not monthly:
            return pd.DataFrame(columns=MONTH_LABELS)

        monthly_df = pd.DataFrame([
            {'year': m.year, 'month': MONTH_LABELS[m.month], 'return': m.return_pct}
            for m in monthly
        ])
        pivot = monthly_df.pivot(index='year', columns='month', values='return')
        return pivot.reindex(columns=MONTH_LABELS)


def compound_yearly(monthly: Sequence[MonthlyReturn]) -> List[YearlyReturn]:
    """
    Compound the monthly returns of each year.

    Uses the same formula as monthly compounding: (prod(1 + r/100) - 1) * 100.
    """
    growth: Dict[int, float] = {}
    for m in monthly:
        growth[m.year] = growth.get(m.year, 1.0) * (1 + m.return_pct / 100)

    return [
        YearlyReturn(year=year, return_pct=(growth[year] - 1) * 100)
        for year in sorted(growth)
    ]
