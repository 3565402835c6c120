"""Record store: ingestion of uploaded rows into the normalized frame.

Every engine function takes the frame produced here. Ingestion runs schema
detection once, cleans values, and appends the derived date fields:

    event_date   YYYY-MM-DD string (or None)
    month        YYYY-MM string (or None)
    day_of_week  0 = Sunday .. 6 = Saturday (or None)
    hour_of_day  0..23 (or None)

The frame is object-dtype with None for missing cells so rows serialize to JSON
without NaN. Engine functions never modify it in place.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

import pandas as pd

from .field_desc_utils import (
    DATE_SOURCE_FIELD,
    PROMOTIONAL,
    TRANSACTIONAL,
    prepare_field_names,
)
from .field_value_utils import (
    MalformedDateError,
    is_missing,
    none_for_missing,
    prepare_field_values,
    standardize_date,
)

_LOG = logging.getLogger(__name__)

DERIVED_FIELDS = ['event_date', 'month', 'day_of_week', 'hour_of_day']

# Attribute on DataFrame.attrs recording the dataset kind
KIND_ATTR = 'dataset_kind'


def _derive_date_fields(values: pd.Series) -> tuple[pd.DataFrame, int]:
    rows = []
    malformed = 0
    for v in values:
        try:
            ts = standardize_date(v, strict=True)
        except MalformedDateError:
            malformed += 1
            ts = None
        if ts is None:
            rows.append((None, None, None, None))
        else:
            # pandas dayofweek is Monday=0; shift to Sunday=0
            rows.append((
                ts.strftime('%Y-%m-%d'),
                ts.strftime('%Y-%m'),
                (ts.dayofweek + 1) % 7,
                int(ts.hour),
            ))
    derived = pd.DataFrame(rows, columns=DERIVED_FIELDS, index=values.index, dtype=object)
    return derived, malformed


def ingest_records(rows: Any, kind: Optional[str] = None) -> pd.DataFrame:
    """Normalize uploaded rows into the record frame.

    Args:
        rows: Sequence of flat mappings, or a DataFrame.
        kind: ``"transactional"`` or ``"promotional"``; detected from headers when None.
    Returns:
        pd.DataFrame: Object-dtype frame with canonical columns plus derived fields.
            ``df.attrs["dataset_kind"]`` records the kind.
    """
    df = rows.astype(object) if isinstance(rows, pd.DataFrame) else pd.DataFrame(list(rows or []), dtype=object)
    df = df.drop(columns=[c for c in DERIVED_FIELDS if c in df.columns])
    df, kind = prepare_field_names(df, kind)
    df = prepare_field_values(df, kind)

    date_field = DATE_SOURCE_FIELD[kind]
    source = df[date_field] if date_field in df.columns else pd.Series([None] * len(df), index=df.index, dtype=object)
    derived, malformed = _derive_date_fields(source)
    df = pd.concat([df, derived], axis=1).reset_index(drop=True)
    df.attrs[KIND_ATTR] = kind

    if malformed:
        _LOG.warning("%d of %d records have an unparseable %s; they are skipped by date-based computations",
                     malformed, len(df), date_field)
    _LOG.debug("Ingested %d %s records with %d columns", len(df), kind, df.shape[1])
    return df


def frame_from_records(records: Iterable[Mapping[str, Any]], kind: Optional[str] = None) -> pd.DataFrame:
    """Rebuild a frame from already-ingested row dicts (e.g. a snapshot's salesData).

    No cleaning is re-run; the rows are trusted to be in canonical shape.
    """
    df = none_for_missing(pd.DataFrame(list(records or []), dtype=object))
    if kind is None:
        kind = PROMOTIONAL if 'created_at' in df.columns and 'receipt_date' not in df.columns else TRANSACTIONAL
    for col in DERIVED_FIELDS:
        if col not in df.columns:
            df[col] = None
    df.attrs[KIND_ATTR] = kind
    return df


def records_from_frame(df: pd.DataFrame) -> list[dict]:
    """JSON-safe list of row dicts: None for missing values, plain ints/floats."""
    out = []
    for row in df.to_dict(orient='records'):
        clean = {}
        for k, v in row.items():
            if is_missing(v) and not isinstance(v, str):
                clean[k] = None
            elif isinstance(v, pd.Timestamp):
                clean[k] = v.isoformat()
            elif hasattr(v, 'item') and not isinstance(v, (str, bytes)):
                clean[k] = v.item()
            else:
                clean[k] = v
        out.append(clean)
    return out


def dataset_kind(df: pd.DataFrame) -> str:
    return df.attrs.get(KIND_ATTR, TRANSACTIONAL)


def empty_records(kind: str = TRANSACTIONAL) -> pd.DataFrame:
    df = pd.DataFrame(columns=DERIVED_FIELDS, dtype=object)
    df.attrs[KIND_ATTR] = kind
    return df


def ingestion_report(df: pd.DataFrame) -> dict:
    """Summary of an ingested frame: size, kind, missing counts, malformed dates."""
    kind = dataset_kind(df)
    date_field = DATE_SOURCE_FIELD[kind]
    missing = {c: int(df[c].map(is_missing).sum()) for c in df.columns if c not in DERIVED_FIELDS}
    malformed = 0
    if date_field in df.columns and 'event_date' in df.columns:
        has_raw = ~df[date_field].map(is_missing).astype(bool)
        malformed = int((has_raw & df['event_date'].isna()).sum())
    return {
        'rows': int(len(df)),
        'columns': [c for c in df.columns],
        'dataset_kind': kind,
        'missing': missing,
        'malformed_dates': malformed,
    }
