"""Time bucketing, trend smoothing and date-range helpers."""
from __future__ import annotations

import logging
from typing import Iterable, Optional

import pandas as pd

from ..data_prep.field_value_utils import is_missing, standardize_date, to_iso_date, to_number
from .dashboard_params import DEFAULT_VALUE_FIELD, GRANULARITIES, TREND_WINDOW

_LOG = logging.getLogger(__name__)

SERIES_COLUMNS = ['bucket_key', 'label', 'count', 'value', 'avg_value']


def _empty_series(with_trend: bool = False) -> pd.DataFrame:
    cols = SERIES_COLUMNS + (['trend'] if with_trend else [])
    return pd.DataFrame(columns=cols)


def _week_start(iso_date: str) -> str:
    ts = pd.Timestamp(iso_date)
    # Monday=0 in pandas; weeks here start on Sunday
    start = ts - pd.Timedelta(days=(ts.dayofweek + 1) % 7)
    return start.strftime('%Y-%m-%d')


def week_label(week_start: str) -> str:
    """'2024-01-07' -> 'Jan 7 - Jan 13'."""
    start = pd.Timestamp(week_start)
    end = start + pd.Timedelta(days=6)
    return f"{start:%b} {start.day} - {end:%b} {end.day}"


def _bucket_frame(records: pd.DataFrame, granularity: str, value_field: str) -> pd.DataFrame:
    source = 'hour_of_day' if granularity == 'hourly' else 'event_date'
    if source not in records.columns:
        return pd.DataFrame(columns=['key', 'amount'])
    keys = records[source]
    present = ~keys.map(is_missing)
    keys = keys[present]
    if granularity == 'hourly':
        keys = keys.map(int)
    elif granularity == 'weekly':
        keys = keys.map(_week_start)
    elif granularity == 'monthly':
        keys = keys.map(lambda d: str(d)[:7])
    if value_field in records.columns:
        amounts = records.loc[present, value_field].map(to_number)
    else:
        amounts = pd.Series(None, index=keys.index, dtype=object)
    return pd.DataFrame({'key': keys, 'amount': amounts.astype(float).fillna(0.0)})


def time_series(
    records: pd.DataFrame,
    granularity: str = 'daily',
    value_field: str = DEFAULT_VALUE_FIELD,
    window: Optional[int] = None,
) -> pd.DataFrame:
    """Bucket records by time and total the amount field per bucket.

    Args:
        records: Ingested (usually filtered) record frame.
        granularity: ``hourly`` (24 buckets, always all present), ``daily``,
            ``weekly`` (Sunday-anchored) or ``monthly``.
        value_field: Numeric field summed into ``value``; missing amounts count as 0.
        window: When given, a ``trend`` moving-average column is appended.
    Returns:
        pd.DataFrame: ``bucket_key, label, count, value, avg_value`` sorted by
            bucket key. Records without a usable date are skipped.
    """
    if granularity not in GRANULARITIES:
        raise ValueError(f"granularity must be one of {GRANULARITIES}, got {granularity!r}")

    frame = _bucket_frame(records, granularity, value_field) if records is not None and not records.empty \
        else pd.DataFrame(columns=['key', 'amount'])

    if frame.empty and granularity != 'hourly':
        out = _empty_series()
    else:
        grouped = frame.groupby('key')['amount'].agg(['size', 'sum'])
        if granularity == 'hourly':
            grouped = grouped.reindex(range(24), fill_value=0)
        grouped = grouped.sort_index()
        out = pd.DataFrame({
            'bucket_key': grouped.index.tolist(),
            'count': grouped['size'].astype('int64').to_numpy(),
            'value': grouped['sum'].astype(float).to_numpy(),
        })
        if granularity == 'hourly':
            out['label'] = out['bucket_key'].map(lambda h: f"{h}:00")
        elif granularity == 'weekly':
            out['label'] = out['bucket_key'].map(week_label)
        else:
            out['label'] = out['bucket_key']
        out['avg_value'] = (out['value'] / out['count'].where(out['count'] > 0)).fillna(0.0)
        out = out[SERIES_COLUMNS]

    if window is not None:
        out = calculate_trend_line(out, window)
    _LOG.debug("%s series with %d buckets", granularity, len(out))
    return out


def calculate_trend_line(series: pd.DataFrame, window: int = TREND_WINDOW) -> pd.DataFrame:
    """Append a ``trend`` column: moving average of ``count`` over ``window`` points.

    Output has the same length and order as ``series``; the first ``window - 1``
    points (all points, when the series is shorter than the window) get NaN.
    """
    if window is None or int(window) < 1:
        raise ValueError(f"window must be a positive integer, got {window!r}")
    out = series.copy()
    if out.empty:
        out['trend'] = pd.Series(dtype=float)
        return out
    counts = out['count'].astype(float)
    out['trend'] = counts.rolling(window=int(window), min_periods=int(window)).mean()
    return out


def apply_date_exclusions(series: pd.DataFrame, excluded_dates: Optional[Iterable] = None) -> pd.DataFrame:
    """Drop daily buckets whose date is listed in ``excluded_dates``."""
    if series is None or series.empty or not excluded_dates:
        return series
    excluded = {to_iso_date(d) for d in excluded_dates} - {None}
    keep = ~series['bucket_key'].astype(str).isin(excluded)
    return series.loc[keep].reset_index(drop=True)


# ---- Date helpers -------------------------------------------------------------
def format_month(month_str: str) -> str:
    """'2024-01' -> 'January 2024'; unparseable input is returned unchanged."""
    ts = standardize_date(f"{month_str}-01") if not is_missing(month_str) else None
    return month_str if ts is None else f"{ts:%B %Y}"


def available_months(records: pd.DataFrame) -> list[dict]:
    if records is None or records.empty or 'month' not in records.columns:
        return []
    months = sorted({str(m) for m in records['month'] if not is_missing(m)})
    return [{'value': m, 'label': format_month(m)} for m in months]


def date_range(records: pd.DataFrame) -> tuple[Optional[str], Optional[str]]:
    """(first, last) event date as ISO strings, or (None, None) without dates."""
    if records is None or records.empty or 'event_date' not in records.columns:
        return None, None
    dates = [d for d in records['event_date'] if not is_missing(d)]
    if not dates:
        return None, None
    return min(dates), max(dates)


def days_between(start_date, end_date) -> int:
    """Inclusive day count between two dates (0 when either is unusable)."""
    start, end = standardize_date(start_date), standardize_date(end_date)
    if start is None or end is None:
        return 0
    return abs((end.normalize() - start.normalize()).days) + 1


def previous_period(start_date, end_date) -> tuple[Optional[str], Optional[str]]:
    """The equally long period ending the day before ``start_date``."""
    start, end = standardize_date(start_date), standardize_date(end_date)
    if start is None or end is None:
        return None, None
    length = end.normalize() - start.normalize()
    prev_end = start.normalize() - pd.Timedelta(days=1)
    prev_start = prev_end - length
    return prev_start.strftime('%Y-%m-%d'), prev_end.strftime('%Y-%m-%d')


def previous_year_period(start_date, end_date) -> tuple[Optional[str], Optional[str]]:
    start, end = standardize_date(start_date), standardize_date(end_date)
    if start is None or end is None:
        return None, None
    year = pd.DateOffset(years=1)
    return (start - year).strftime('%Y-%m-%d'), (end - year).strftime('%Y-%m-%d')


__all__ = [
    "SERIES_COLUMNS",
    "time_series",
    "calculate_trend_line",
    "apply_date_exclusions",
    "week_label",
    "format_month",
    "available_months",
    "date_range",
    "days_between",
    "previous_period",
    "previous_year_period",
]
