"""Declarative record filtering with per-group date-exclusion windows.

A ``FilterSpec`` maps field names to typed constraints; a record matches when
it satisfies every constraint present. An ``ExclusionConfig`` then drops each
group's first/last N distinct dates (and any explicitly excluded dates).

    spec = FilterSpec({
        "chain": EnumConstraint({"Tesco", "Asda"}),
        "receipt_date": DateConstraint("2024-01-01", "2024-03-31"),
    })
    out = apply_filters(records, spec, ExclusionConfig(exclude_first_days=True),
                        grouping_key="offer_name")
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterable, Mapping, Optional, Union

import pandas as pd

from ..data_prep.field_desc_utils import DATE_SOURCE_FIELD
from ..data_prep.field_value_utils import is_missing, to_iso_date, to_number
from ..data_prep.record_store import KIND_ATTR, dataset_kind, empty_records
from .dashboard_params import ALL_SENTINEL, EXCLUDE_FIRST_COUNT, EXCLUDE_LAST_COUNT

_LOG = logging.getLogger(__name__)


# ---- Constraints -------------------------------------------------------------
@dataclass(frozen=True)
class EnumConstraint:
    """Value must be one of ``values`` (exact match after trimming)."""
    values: frozenset = frozenset()
    kind: ClassVar[str] = 'enum'

    def __post_init__(self):
        values = [self.values] if isinstance(self.values, str) else (self.values or [])
        object.__setattr__(self, 'values', frozenset(str(v).strip() for v in values))

    def is_noop(self) -> bool:
        return not self.values or ALL_SENTINEL in self.values

    def matches(self, value) -> bool:
        if is_missing(value):
            return False
        return str(value).strip() in self.values

    def to_dict(self) -> dict:
        return {'kind': self.kind, 'values': sorted(self.values)}


@dataclass(frozen=True)
class RangeConstraint:
    """Inclusive numeric range; either bound may be None."""
    min: Optional[float] = None
    max: Optional[float] = None
    kind: ClassVar[str] = 'range'

    def __post_init__(self):
        for name in ('min', 'max'):
            raw = getattr(self, name)
            if raw is None:
                continue
            num = to_number(raw)
            if num is None:
                raise ValueError(f"Range bound '{name}' must be numeric, got {raw!r}")
            object.__setattr__(self, name, num)
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"Range min {self.min} is greater than max {self.max}")

    def is_noop(self) -> bool:
        return self.min is None and self.max is None

    def matches(self, value) -> bool:
        num = to_number(value)
        if num is None:
            return False
        if self.min is not None and num < self.min:
            return False
        if self.max is not None and num > self.max:
            return False
        return True

    def to_dict(self) -> dict:
        return {'kind': self.kind, 'min': self.min, 'max': self.max}


@dataclass(frozen=True)
class DateConstraint:
    """Inclusive calendar-date range; bounds are normalized to YYYY-MM-DD."""
    min: Optional[str] = None
    max: Optional[str] = None
    kind: ClassVar[str] = 'date'

    def __post_init__(self):
        for name in ('min', 'max'):
            raw = getattr(self, name)
            if is_missing(raw):
                object.__setattr__(self, name, None)
                continue
            iso = to_iso_date(raw)
            if iso is None:
                raise ValueError(f"Date bound '{name}' is not a valid date: {raw!r}")
            object.__setattr__(self, name, iso)

    def is_noop(self) -> bool:
        return self.min is None and self.max is None

    def matches(self, iso_date) -> bool:
        if is_missing(iso_date):
            return False
        if self.min is not None and iso_date < self.min:
            return False
        if self.max is not None and iso_date > self.max:
            return False
        return True

    def to_dict(self) -> dict:
        return {'kind': self.kind, 'min': self.min, 'max': self.max}


@dataclass(frozen=True)
class TextConstraint:
    """Case-insensitive substring match."""
    substring: str = ''
    kind: ClassVar[str] = 'text'

    def is_noop(self) -> bool:
        return is_missing(self.substring)

    def matches(self, value) -> bool:
        if is_missing(value):
            return False
        return str(self.substring).strip().casefold() in str(value).casefold()

    def to_dict(self) -> dict:
        return {'kind': self.kind, 'substring': self.substring}


Constraint = Union[EnumConstraint, RangeConstraint, DateConstraint, TextConstraint]

_CONSTRAINT_KINDS = {
    'enum': lambda d: EnumConstraint(d.get('values') or ()),
    'range': lambda d: RangeConstraint(d.get('min'), d.get('max')),
    'date': lambda d: DateConstraint(d.get('min'), d.get('max')),
    'text': lambda d: TextConstraint(d.get('substring') or ''),
}


def constraint_from_dict(data: Mapping[str, Any]) -> Constraint:
    kind = (data or {}).get('kind')
    if kind not in _CONSTRAINT_KINDS:
        raise ValueError(f"Unknown constraint kind {kind!r}. Allowed: {sorted(_CONSTRAINT_KINDS)}")
    return _CONSTRAINT_KINDS[kind](data)


@dataclass(frozen=True)
class FilterSpec:
    """Field -> constraint mapping combined with logical AND."""
    constraints: Mapping[str, Constraint] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'constraints', dict(self.constraints or {}))

    def with_constraint(self, field_name: str, constraint: Constraint) -> 'FilterSpec':
        merged = dict(self.constraints)
        merged[field_name] = constraint
        return FilterSpec(merged)

    def without(self, field_name: str) -> 'FilterSpec':
        return FilterSpec({k: v for k, v in self.constraints.items() if k != field_name})

    def active_fields(self) -> list[str]:
        return [k for k, c in self.constraints.items() if not c.is_noop()]

    def to_dict(self) -> dict:
        return {k: c.to_dict() for k, c in self.constraints.items()}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Mapping]]) -> 'FilterSpec':
        return cls({k: constraint_from_dict(v) for k, v in (data or {}).items()})


def build_filter_spec(
    products: Optional[Iterable[str]] = None,
    retailers: Optional[Iterable[str]] = None,
    start_date=None,
    end_date=None,
    month: Optional[str] = None,
    offers: Optional[Iterable[str]] = None,
) -> FilterSpec:
    """FilterSpec for the dashboard's standard product/retailer/date selections."""
    constraints: dict[str, Constraint] = {}
    if products is not None:
        constraints['product_name'] = EnumConstraint(products)
    if retailers is not None:
        constraints['chain'] = EnumConstraint(retailers)
    if offers is not None:
        constraints['offer_name'] = EnumConstraint(offers)
    if not is_missing(month):
        constraints['month'] = EnumConstraint([month])
    if not is_missing(start_date) or not is_missing(end_date):
        constraints['event_date'] = DateConstraint(start_date, end_date)
    return FilterSpec(constraints)


# ---- Exclusion windows -------------------------------------------------------
@dataclass(frozen=True)
class ExclusionConfig:
    exclude_first_days: bool = False
    exclude_first_count: int = EXCLUDE_FIRST_COUNT
    exclude_last_days: bool = False
    exclude_last_count: int = EXCLUDE_LAST_COUNT
    custom_excluded_dates: frozenset = frozenset()

    def __post_init__(self):
        for name in ('exclude_first_count', 'exclude_last_count'):
            if int(getattr(self, name)) < 0:
                raise ValueError(f"{name} must be >= 0")
            object.__setattr__(self, name, int(getattr(self, name)))
        dates = set()
        for raw in self.custom_excluded_dates or ():
            iso = to_iso_date(raw)
            if iso is None:
                raise ValueError(f"Excluded date is not a valid date: {raw!r}")
            dates.add(iso)
        object.__setattr__(self, 'custom_excluded_dates', frozenset(dates))

    @property
    def is_active(self) -> bool:
        return bool(self.exclude_first_days or self.exclude_last_days or self.custom_excluded_dates)

    def to_dict(self) -> dict:
        return {
            'excludeFirstDays': bool(self.exclude_first_days),
            'excludeFirstCount': self.exclude_first_count,
            'excludeLastDays': bool(self.exclude_last_days),
            'excludeLastCount': self.exclude_last_count,
            'customExcludedDates': sorted(self.custom_excluded_dates),
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'ExclusionConfig':
        data = data or {}

        def pick(camel, snake, default):
            if camel in data:
                return data[camel]
            return data.get(snake, default)

        return cls(
            exclude_first_days=bool(pick('excludeFirstDays', 'exclude_first_days', False)),
            exclude_first_count=pick('excludeFirstCount', 'exclude_first_count', EXCLUDE_FIRST_COUNT),
            exclude_last_days=bool(pick('excludeLastDays', 'exclude_last_days', False)),
            exclude_last_count=pick('excludeLastCount', 'exclude_last_count', EXCLUDE_LAST_COUNT),
            custom_excluded_dates=frozenset(pick('customExcludedDates', 'custom_excluded_dates', ()) or ()),
        )


def excluded_dates_for(dates: Iterable[str], exclusion: ExclusionConfig) -> set[str]:
    """Exclusion set for one partition's dates.

    First/last windows only apply when the partition has more distinct dates
    than the window size; custom dates always apply.
    """
    distinct = sorted({d for d in dates if not is_missing(d)})
    excluded = set(exclusion.custom_excluded_dates)
    first_n = exclusion.exclude_first_count
    last_n = exclusion.exclude_last_count
    if exclusion.exclude_first_days and first_n > 0 and len(distinct) > first_n:
        excluded.update(distinct[:first_n])
    if exclusion.exclude_last_days and last_n > 0 and len(distinct) > last_n:
        excluded.update(distinct[-last_n:])
    return excluded


def _column(records: pd.DataFrame, name: Optional[str]) -> pd.Series:
    if name is not None and name in records.columns:
        return records[name]
    return pd.Series([None] * len(records), index=records.index, dtype=object)


def exclusion_dates_by_group(
    records: pd.DataFrame,
    exclusion: ExclusionConfig,
    grouping_key: Optional[str] = None,
) -> dict:
    """{group value: sorted excluded dates}. One ``None`` group when no key is given.

    Records without a grouping value form no partition.
    """
    if records is None or records.empty:
        return {}
    dates = _column(records, 'event_date')
    if grouping_key is None:
        return {None: sorted(excluded_dates_for(dates, exclusion))}
    keys = _column(records, grouping_key)
    by_group: dict = {}
    for key, d in zip(keys, dates):
        if is_missing(key):
            continue
        by_group.setdefault(key, []).append(d)
    return {k: sorted(excluded_dates_for(v, exclusion)) for k, v in by_group.items()}


def apply_exclusions(
    records: pd.DataFrame,
    exclusion: Optional[ExclusionConfig],
    grouping_key: Optional[str] = None,
) -> pd.DataFrame:
    if records is None or records.empty or exclusion is None or not exclusion.is_active:
        return records
    per_group = {k: set(v) for k, v in exclusion_dates_by_group(records, exclusion, grouping_key).items()}
    dates = _column(records, 'event_date')
    keys = _column(records, grouping_key) if grouping_key is not None else pd.Series(
        [None] * len(records), index=records.index, dtype=object)

    keep = []
    for key, d in zip(keys, dates):
        if grouping_key is not None and is_missing(key):
            keep.append(True)
        elif is_missing(d):
            keep.append(True)
        else:
            keep.append(d not in per_group.get(key, ()))
    out = records.loc[pd.Series(keep, index=records.index, dtype=bool)]
    _LOG.debug("Exclusion windows dropped %d of %d records", len(records) - len(out), len(records))
    return out


# ---- Filter evaluation -------------------------------------------------------
def _constraint_values(records: pd.DataFrame, field_name: str, constraint: Constraint) -> pd.Series:
    if isinstance(constraint, DateConstraint):
        date_source = DATE_SOURCE_FIELD.get(dataset_kind(records))
        if field_name in ('event_date', date_source) and 'event_date' in records.columns:
            return records['event_date']
        return _column(records, field_name).map(to_iso_date)
    return _column(records, field_name)


def apply_filters(
    records: pd.DataFrame,
    filter_spec: Optional[FilterSpec] = None,
    exclusion: Optional[ExclusionConfig] = None,
    grouping_key: Optional[str] = None,
) -> pd.DataFrame:
    """Filter records by ``filter_spec`` then drop exclusion-window dates.

    Args:
        records: Ingested record frame.
        filter_spec: Constraints to AND together; None or empty keeps every record.
        exclusion: Date-exclusion rules; None keeps every date.
        grouping_key: Field partitioning the exclusion windows (e.g. ``offer_name``).
            None treats all records as one partition.
    Returns:
        pd.DataFrame: New frame with the matching records in their original order.
    """
    if records is None:
        return empty_records()
    kind = dataset_kind(records)
    if records.empty:
        out = records.copy()
        out.attrs[KIND_ATTR] = kind
        return out

    mask = pd.Series(True, index=records.index)
    for field_name, constraint in (filter_spec.constraints if filter_spec else {}).items():
        if constraint.is_noop():
            continue
        values = _constraint_values(records, field_name, constraint)
        mask &= values.map(constraint.matches).astype(bool)

    out = apply_exclusions(records.loc[mask], exclusion, grouping_key)
    out = out.reset_index(drop=True)
    out.attrs[KIND_ATTR] = kind
    _LOG.debug("apply_filters kept %d of %d records", len(out), len(records))
    return out


# ---- Filter panel helpers ----------------------------------------------------
def _distinct_sorted(series: pd.Series) -> list:
    return sorted({str(v) for v in series if not is_missing(v)})


def available_filter_options(records: pd.DataFrame) -> dict[str, list]:
    """Sorted distinct products, retailers, months and offers present in ``records``."""
    if records is None or records.empty:
        return {'products': [], 'retailers': [], 'months': [], 'offers': []}
    return {
        'products': _distinct_sorted(_column(records, 'product_name')),
        'retailers': _distinct_sorted(_column(records, 'chain')),
        'months': _distinct_sorted(_column(records, 'month')),
        'offers': _distinct_sorted(_column(records, 'offer_name')),
    }


def toggle_selection(current: Iterable[str], value: str) -> list[str]:
    """Multi-select toggle: picking 'all' resets, emptying a selection falls back to 'all'."""
    current = list(current or [ALL_SENTINEL])
    if value == ALL_SENTINEL:
        return [ALL_SENTINEL]
    if ALL_SENTINEL in current:
        selection = [value]
    elif value in current:
        selection = [v for v in current if v != value]
    else:
        selection = current + [value]
    return selection or [ALL_SENTINEL]


__all__ = [
    "EnumConstraint",
    "RangeConstraint",
    "DateConstraint",
    "TextConstraint",
    "FilterSpec",
    "ExclusionConfig",
    "constraint_from_dict",
    "build_filter_spec",
    "excluded_dates_for",
    "exclusion_dates_by_group",
    "apply_exclusions",
    "apply_filters",
    "available_filter_options",
    "toggle_selection",
]
