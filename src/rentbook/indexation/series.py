# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Published consumer-price-index values as a monthly time series."""

from __future__ import annotations

import datetime
from typing import Iterable, Optional, Tuple

import pandas as pd

from ..core.primitives import Model, MonthInt, PositiveFloat


class IndexValue(Model):
    """One published index value and the month it refers to."""

    year: int
    month: MonthInt
    value: PositiveFloat

    @property
    def period(self) -> pd.Period:
        return pd.Period(year=self.year, month=self.month, freq="M")

    @property
    def period_start(self) -> datetime.date:
        return datetime.date(self.year, self.month, 1)


class PriceIndexSeries:
    """
    Monthly index values on a ``PeriodIndex`` (freq ``M``), kept sorted.

    Instances are not mutated; ``with_value`` returns a new series.

    Example:
        >>> vpi = PriceIndexSeries.from_values([(2024, 12, 121.4), (2025, 1, 122.3)])
        >>> vpi.latest().value
        122.3
    """

    def __init__(self, values: Optional[pd.Series] = None):
        if values is None:
            values = pd.Series(dtype=float, index=pd.PeriodIndex([], freq="M"))
        if not isinstance(values.index, pd.PeriodIndex):
            raise ValueError("Index values must be indexed by a monthly PeriodIndex")
        if (values <= 0).any():
            raise ValueError("Index values must be positive")
        self._values = values.astype(float).sort_index()

    @classmethod
    def from_values(cls, values: Iterable[Tuple[int, int, float]]) -> "PriceIndexSeries":
        rows = list(values)
        index = pd.PeriodIndex(
            [pd.Period(year=y, month=m, freq="M") for y, m, _ in rows], freq="M"
        )
        series = pd.Series([float(v) for _, _, v in rows], index=index)
        # Later entries for the same month win
        series = series[~series.index.duplicated(keep="last")]
        return cls(series)

    def with_value(self, year: int, month: int, value: float) -> "PriceIndexSeries":
        """Return a copy with the value for (year, month) inserted or replaced."""
        point = IndexValue(year=year, month=month, value=value)
        rows = [(p.year, p.month, v) for p, v in self._values.items()]
        return PriceIndexSeries.from_values(rows + [(point.year, point.month, point.value)])

    def value_for(self, year: int, month: int) -> Optional[float]:
        period = pd.Period(year=year, month=month, freq="M")
        if period not in self._values.index:
            return None
        return float(self._values.loc[period])

    def latest(self) -> Optional[IndexValue]:
        if self._values.empty:
            return None
        period = self._values.index[-1]
        return IndexValue(
            year=period.year, month=period.month, value=float(self._values.iloc[-1])
        )

    def to_series(self) -> pd.Series:
        return self._values.copy()

    def __len__(self) -> int:
        return len(self._values)
