"""Summary metrics, period-over-period growth and short text insights."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from ..data_prep.field_value_utils import fmt_pct, is_missing, to_number
from .dashboard_params import INSIGHT_MIN_DISTINCT_DATES, INSIGHT_TREND_DAYS
from .distribution_utils import day_of_week_distribution, distribution

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class Metrics:
    total_units: int = 0
    unique_dates: tuple = ()
    days_in_range: int = 0
    total_value: float = 0.0
    avg_per_day: float = 0.0

    def to_dict(self) -> dict:
        return {
            'totalUnits': self.total_units,
            'uniqueDates': list(self.unique_dates),
            'daysInRange': self.days_in_range,
            'totalValue': self.total_value,
            'avgPerDay': self.avg_per_day,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Metrics':
        data = data or {}
        return cls(
            total_units=int(data.get('totalUnits', 0)),
            unique_dates=tuple(data.get('uniqueDates', ())),
            days_in_range=int(data.get('daysInRange', 0)),
            total_value=float(data.get('totalValue', 0.0)),
            avg_per_day=float(data.get('avgPerDay', 0.0)),
        )


@dataclass(frozen=True)
class Insight:
    type: str
    text: str
    data: str
    status: Optional[str] = None

    def to_dict(self) -> dict:
        out = {'type': self.type, 'text': self.text, 'data': self.data}
        if self.status is not None:
            out['status'] = self.status
        return out


@dataclass(frozen=True)
class GrowthMetrics:
    unit_growth: int = 0
    unit_growth_percentage: float = 0.0
    value_growth: float = 0.0
    value_growth_percentage: float = 0.0
    daily_volume_growth: float = 0.0
    daily_volume_growth_percentage: float = 0.0

    def to_dict(self) -> dict:
        return {
            'unitGrowth': self.unit_growth,
            'unitGrowthPercentage': self.unit_growth_percentage,
            'valueGrowth': self.value_growth,
            'valueGrowthPercentage': self.value_growth_percentage,
            'dailyVolumeGrowth': self.daily_volume_growth,
            'dailyVolumeGrowthPercentage': self.daily_volume_growth_percentage,
        }


def _distinct_dates(records: pd.DataFrame) -> list[str]:
    if records is None or records.empty or 'event_date' not in records.columns:
        return []
    return sorted({str(d) for d in records['event_date'] if not is_missing(d)})


def calculate_metrics(records: pd.DataFrame, value_field: str = 'receipt_total') -> Metrics:
    """Record count, distinct dates, summed value and records per distinct date.

    ``avg_per_day`` is 0 when no record carries a usable date.
    """
    if records is None or records.empty:
        return Metrics()
    dates = _distinct_dates(records)
    total_value = 0.0
    if value_field in records.columns:
        total_value = float(records[value_field].map(to_number).astype(float).fillna(0.0).sum())
    total_units = int(len(records))
    return Metrics(
        total_units=total_units,
        unique_dates=tuple(dates),
        days_in_range=len(dates),
        total_value=total_value,
        avg_per_day=total_units / len(dates) if dates else 0.0,
    )


def growth_metrics(current: pd.DataFrame, comparison: pd.DataFrame) -> GrowthMetrics:
    """Change of units, value and daily volume from ``comparison`` to ``current``."""
    if current is None or current.empty or comparison is None or comparison.empty:
        return GrowthMetrics()
    cur, prev = calculate_metrics(current), calculate_metrics(comparison)

    def pct(delta, base):
        return delta / base * 100.0 if base else 0.0

    unit_growth = cur.total_units - prev.total_units
    value_growth = cur.total_value - prev.total_value
    daily_growth = cur.avg_per_day - prev.avg_per_day
    return GrowthMetrics(
        unit_growth=unit_growth,
        unit_growth_percentage=pct(unit_growth, prev.total_units),
        value_growth=value_growth,
        value_growth_percentage=pct(value_growth, prev.total_value),
        daily_volume_growth=daily_growth,
        daily_volume_growth_percentage=pct(daily_growth, prev.avg_per_day),
    )


def _trend_insight(records: pd.DataFrame) -> Optional[Insight]:
    dates = _distinct_dates(records)
    if len(dates) < INSIGHT_MIN_DISTINCT_DATES:
        return None
    n = INSIGHT_TREND_DAYS
    last = set(dates[-n:])
    previous = set(dates[-2 * n:-n])
    event_dates = records['event_date']
    last_count = int(event_dates.isin(last).sum())
    previous_count = int(event_dates.isin(previous).sum())
    if previous_count == 0:
        return None
    change = (last_count - previous_count) / previous_count * 100.0
    up = last_count >= previous_count
    direction = 'up' if up else 'down'
    return Insight(
        type='trend',
        text=f"Sales are {direction} {abs(change):.1f}% in the last {n} days",
        data=fmt_pct(abs(change)),
        status='positive' if up else 'negative',
    )


def key_insights(records: pd.DataFrame, group_field: str = 'chain') -> list[Insight]:
    """Top group, best weekday and the recent trend, in that order.

    Each insight is omitted when the data cannot support it.
    """
    if records is None or records.empty:
        return []
    insights = []

    groups = distribution(records, group_field)
    if not groups.empty:
        top = groups.iloc[0]
        insights.append(Insight(
            type='retailer',
            text=f"{top['name']} is your top retailer with {top['percentage']:.1f}% of redemptions",
            data=fmt_pct(top['percentage']),
        ))

    days = day_of_week_distribution(records)
    if days['value'].sum() > 0:
        best = days.loc[days['value'].idxmax()]
        insights.append(Insight(
            type='day',
            text=f"{best['name'][:3]} is your best performing day with {best['percentage']:.1f}% of redemptions",
            data=fmt_pct(best['percentage']),
        ))

    trend = _trend_insight(records)
    if trend is not None:
        insights.append(trend)
    _LOG.debug("Generated %d insights", len(insights))
    return insights


def offer_metrics(records: pd.DataFrame, selected_offers=None) -> dict:
    """Hit totals for promotional data, optionally limited to some offers."""
    if records is None or records.empty:
        return {'totalHits': 0, 'uniqueOffers': 0, 'daysInRange': 0, 'avgHitsPerDay': 0.0, 'hitsPerOffer': {}}
    data = records
    if selected_offers and 'offer_name' in records.columns:
        wanted = {str(o).strip() for o in selected_offers}
        data = records.loc[records["offer_name"].map(lambda v: not is_missing(v) and str(v).strip() in wanted).astype(bool)]
    base = calculate_metrics(data)
    offers = distribution(data, 'offer_name')
    return {
        'totalHits': base.total_units,
        'uniqueOffers': int(len(offers)),
        'daysInRange': base.days_in_range,
        'avgHitsPerDay': base.avg_per_day,
        'hitsPerOffer': {str(n): int(v) for n, v in zip(offers['name'], offers['value'])},
    }


__all__ = [
    "Metrics",
    "Insight",
    "GrowthMetrics",
    "calculate_metrics",
    "growth_metrics",
    "key_insights",
    "offer_metrics",
]
