"""Grouped count distributions with percentages.

Every distribution frame has at least the columns ``name``, ``value`` (record
count) and ``percentage``. Records with a missing value for the grouped field
are left out of both the counts and the percentage denominator.
"""
from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from ..data_prep.field_value_utils import is_missing, to_number
from .brand_detection import BrandInfo, brand_mapping_from_records
from .dashboard_params import (
    AGE_GROUP_ORDER,
    DAY_NAMES,
    MATRIX_TOP_PRODUCTS,
    MATRIX_TOP_RETAILERS,
)

_LOG = logging.getLogger(__name__)

DISTRIBUTION_COLUMNS = ['name', 'value', 'percentage']


def _empty(extra: Sequence[str] = ()) -> pd.DataFrame:
    return pd.DataFrame(columns=DISTRIBUTION_COLUMNS + list(extra))


def _present_values(records: pd.DataFrame, field: str) -> pd.Series:
    if records is None or records.empty or field not in records.columns:
        return pd.Series([], dtype=object)
    values = records[field]
    values = values[~values.map(is_missing)]
    return values.map(lambda v: str(v).strip())


def order_by_preference(names: Sequence[str], preferred_order: Sequence[str]) -> list[str]:
    """Names in ``preferred_order`` first (by list index), the rest alphabetically."""
    rank = {n: i for i, n in enumerate(preferred_order)}
    known = sorted((n for n in names if n in rank), key=rank.get)
    unknown = sorted(n for n in names if n not in rank)
    return known + unknown


def sort_age_groups(names: Sequence[str]) -> list[str]:
    return order_by_preference(names, AGE_GROUP_ORDER)


def distribution(
    records: pd.DataFrame,
    field: str,
    preferred_order: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Count records per distinct ``field`` value.

    Sorted by count descending with ties kept in first-seen order, unless
    ``preferred_order`` is given, in which case listed names come first in list
    order and unlisted names follow alphabetically.
    """
    names = _present_values(records, field)
    if names.empty:
        return _empty()
    counts = names.groupby(names, sort=False).size()
    total = int(counts.sum())
    out = pd.DataFrame({
        'name': counts.index.astype(str),
        'value': counts.to_numpy(dtype='int64'),
    })
    out['percentage'] = out['value'] / total * 100.0
    if preferred_order is not None:
        order = order_by_preference(out['name'].tolist(), preferred_order)
        out = out.set_index('name').loc[order].reset_index()
    else:
        out = out.sort_values('value', ascending=False, kind='stable')
    return out.reset_index(drop=True)[DISTRIBUTION_COLUMNS]


def retailer_distribution(records: pd.DataFrame) -> pd.DataFrame:
    return distribution(records, 'chain')


def gender_distribution(records: pd.DataFrame) -> pd.DataFrame:
    return distribution(records, 'gender')


def age_distribution(records: pd.DataFrame) -> pd.DataFrame:
    return distribution(records, 'age_group', preferred_order=AGE_GROUP_ORDER)


def demographic_distributions(records: pd.DataFrame) -> dict[str, pd.DataFrame]:
    return {'gender': gender_distribution(records), 'age': age_distribution(records)}


def product_distribution(
    records: pd.DataFrame,
    brand_mapping: Optional[Mapping[str, BrandInfo]] = None,
    value_field: str = 'receipt_total',
) -> pd.DataFrame:
    """Product counts enriched with brand/display names and summed value."""
    base = distribution(records, 'product_name')
    extra = ['display_name', 'brand_name', 'total_value']
    if base.empty:
        return _empty(extra)
    if brand_mapping is None:
        brand_mapping = brand_mapping_from_records(records)

    products = records['product_name'].map(lambda v: None if is_missing(v) else str(v).strip())
    if value_field in records.columns:
        amounts = records[value_field].map(to_number).astype(float).fillna(0.0)
    else:
        amounts = pd.Series(0.0, index=records.index)
    totals = amounts.groupby(products).sum()

    base['display_name'] = base['name'].map(
        lambda n: brand_mapping[n].display_name if n in brand_mapping else n)
    base['brand_name'] = base['name'].map(
        lambda n: brand_mapping[n].brand_name if n in brand_mapping else '')
    base['total_value'] = base['name'].map(totals).fillna(0.0).astype(float)
    return base


def day_of_week_distribution(records: pd.DataFrame) -> pd.DataFrame:
    """Seven rows, Sunday first, including days with no records."""
    days = _present_values(records, 'day_of_week').map(int)
    counts = days.value_counts().reindex(range(7), fill_value=0)
    total = int(counts.sum())
    out = pd.DataFrame({
        'name': DAY_NAMES,
        'day': list(range(7)),
        'value': counts.to_numpy(dtype='int64'),
    })
    out['percentage'] = out['value'] / total * 100.0 if total else 0.0
    return out[['name', 'value', 'percentage', 'day']]


def hour_of_day_distribution(records: pd.DataFrame) -> pd.DataFrame:
    """Twenty-four rows (0:00 .. 23:00), including empty hours."""
    hours = _present_values(records, 'hour_of_day').map(int)
    counts = hours.value_counts().reindex(range(24), fill_value=0)
    total = int(counts.sum())
    out = pd.DataFrame({
        'name': [f"{h}:00" for h in range(24)],
        'hour': list(range(24)),
        'value': counts.to_numpy(dtype='int64'),
    })
    out['percentage'] = out['value'] / total * 100.0 if total else 0.0
    return out[['name', 'value', 'percentage', 'hour']]


def rank_distribution(records: pd.DataFrame, field: str = 'rank_for_viewer') -> pd.DataFrame:
    """Counts per viewer rank, ordered by numeric rank."""
    out = distribution(records, field)
    if out.empty:
        return out
    key = out['name'].map(to_number).fillna(np.inf)
    return out.assign(_k=key).sort_values('_k', kind='stable').drop(columns='_k').reset_index(drop=True)


def offer_performance(records: pd.DataFrame) -> pd.DataFrame:
    """Hits per offer with share and average hits per active day."""
    base = distribution(records, 'offer_name')
    if base.empty:
        return _empty(['active_days', 'avg_hits_per_day'])
    offers = records['offer_name'].map(lambda v: None if is_missing(v) else str(v).strip())
    dates = records['event_date'] if 'event_date' in records.columns else pd.Series(None, index=records.index)
    frame = pd.DataFrame({'offer': offers, 'date': dates}).dropna()
    active = frame.groupby('offer')['date'].nunique()
    base['active_days'] = base['name'].map(active).fillna(0).astype('int64')
    base['avg_hits_per_day'] = (base['value'] / base['active_days'].replace(0, np.nan)).fillna(0.0)
    return base


def product_retailer_matrix(
    records: pd.DataFrame,
    normalize: Optional[str] = None,
    top_products: int = MATRIX_TOP_PRODUCTS,
    top_retailers: int = MATRIX_TOP_RETAILERS,
) -> pd.DataFrame:
    """Product x retailer record counts for the busiest products and retailers.

    Args:
        normalize: None for raw counts, ``"product"`` for row percentages or
            ``"retailer"`` for column percentages.
    """
    if normalize not in (None, 'product', 'retailer'):
        raise ValueError("normalize must be None, 'product' or 'retailer'")
    products = distribution(records, 'product_name')['name'].head(top_products).tolist()
    retailers = distribution(records, 'chain')['name'].head(top_retailers).tolist()
    if not products or not retailers:
        return pd.DataFrame()
    p = records['product_name'].map(lambda v: None if is_missing(v) else str(v).strip())
    r = records['chain'].map(lambda v: None if is_missing(v) else str(v).strip())
    keep = p.isin(products) & r.isin(retailers)
    matrix = pd.crosstab(p[keep], r[keep]).reindex(index=products, columns=retailers, fill_value=0)
    matrix.index.name = 'product_name'
    matrix.columns.name = 'chain'
    if normalize == 'product':
        totals = matrix.sum(axis=1).replace(0, np.nan)
        matrix = matrix.div(totals, axis=0).fillna(0.0) * 100.0
    elif normalize == 'retailer':
        totals = matrix.sum(axis=0).replace(0, np.nan)
        matrix = matrix.div(totals, axis=1).fillna(0.0) * 100.0
    return matrix


__all__ = [
    "DISTRIBUTION_COLUMNS",
    "distribution",
    "order_by_preference",
    "sort_age_groups",
    "retailer_distribution",
    "gender_distribution",
    "age_distribution",
    "demographic_distributions",
    "product_distribution",
    "day_of_week_distribution",
    "hour_of_day_distribution",
    "rank_distribution",
    "offer_performance",
    "product_retailer_matrix",
]
