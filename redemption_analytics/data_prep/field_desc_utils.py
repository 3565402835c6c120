# -*- coding: utf-8 -*-

"""
Field preparation module for redemption analytics

This module contains utility functions for processing field names in uploaded
tables, harmonizing them to the canonical names the engine works with. Schema
detection happens here once; downstream code assumes the canonical shape.
"""

import re

import pandas as pd

TRANSACTIONAL = 'transactional'
PROMOTIONAL = 'promotional'
DATASET_KINDS = (TRANSACTIONAL, PROMOTIONAL)

# Column the per-record event date is derived from, per dataset kind
DATE_SOURCE_FIELD = {
    TRANSACTIONAL: 'receipt_date',
    PROMOTIONAL: 'created_at',
}

_SHARED_ALIASES = {
    'customer_id': 'user_id',
    'customer': 'user_id',
    'user': 'user_id',
    'userid': 'user_id',
    'sex': 'gender',
    'age': 'age_group',
    'age_range': 'age_group',
    'age_bracket': 'age_group',
}

COLUMN_MAPPINGS = {
    TRANSACTIONAL: {
        **_SHARED_ALIASES,
        'date': 'receipt_date',
        'transaction_date': 'receipt_date',
        'purchase_date': 'receipt_date',
        'order_date': 'receipt_date',
        'timestamp': 'receipt_date',
        'product': 'product_name',
        'item': 'product_name',
        'item_name': 'product_name',
        'product_title': 'product_name',
        'retailer': 'chain',
        'store': 'chain',
        'merchant': 'chain',
        'shop': 'chain',
        'outlet': 'chain',
        'amount': 'receipt_total',
        'total': 'receipt_total',
        'price': 'receipt_total',
        'spend': 'receipt_total',
    },
    PROMOTIONAL: {
        **_SHARED_ALIASES,
        'id': 'hit_id',
        'offer_hit_id': 'hit_id',
        'engagement_id': 'hit_id',
        'timestamp': 'created_at',
        'date': 'created_at',
        'hit_date': 'created_at',
        'engagement_date': 'created_at',
        'offer': 'offer_name',
        'campaign': 'offer_name',
        'promotion': 'offer_name',
        'deal': 'offer_name',
        'rank': 'rank_for_viewer',
    },
}

_PROMOTIONAL_MARKERS = {'offer_name', 'hit_id', 'rank_for_viewer', 'offer', 'campaign', 'offer_hit_id'}
_TRANSACTIONAL_MARKERS = {'receipt_date', 'receipt_total', 'product_name', 'chain', 'receipt_id'}

# question_1 / Question 01 / proposition-3 style survey headers
_SURVEY_FIELD_RE = re.compile(r'^(question|proposition)_?(\d+)$')


def preprocess_field_name(text):
    """
    Normalize a raw header into snake_case.

    Example: "Receipt Date" -> receipt_date
    Example: "  Offer-Name " -> offer_name
    Example: "Question 1" -> question_01
    """
    text = str(text).strip().lower()
    text = re.sub(r'[^0-9a-z]+', '_', text).strip('_')
    m = _SURVEY_FIELD_RE.match(text)
    if m:
        return f"{m.group(1)}_{int(m.group(2)):02d}"
    return text


def preprocess_field_names(columns):
    """Vectorized wrapper to preprocess a list/iterable of column names."""
    return [preprocess_field_name(c) for c in columns]


def detect_dataset_kind(columns):
    """Guess whether a table holds receipts or offer hits from its headers.

    Promotional only when offer markers are present and no receipt marker is.
    """
    names = set(preprocess_field_names(columns))
    if names & _TRANSACTIONAL_MARKERS:
        return TRANSACTIONAL
    if names & _PROMOTIONAL_MARKERS:
        return PROMOTIONAL
    return TRANSACTIONAL


def map_field_names(columns, kind):
    """Return {original_header: canonical_name} for the given dataset kind.

    Canonical names already present win over aliases so an upload carrying both
    ``date`` and ``receipt_date`` keeps the explicit column.
    """
    if kind not in COLUMN_MAPPINGS:
        raise ValueError(f"kind must be one of {DATASET_KINDS}, got {kind!r}")
    aliases = COLUMN_MAPPINGS[kind]
    cleaned = {c: preprocess_field_name(c) for c in columns}
    present = set(cleaned.values())
    mapping = {}
    for original, clean in cleaned.items():
        target = aliases.get(clean, clean)
        if target != clean and target in present:
            target = clean
        mapping[original] = target
    return mapping


def prepare_field_names(df, kind=None):
    """Rename the frame's columns to canonical names.

    Args:
        df (pd.DataFrame): Raw uploaded table.
        kind (str|None): Dataset kind; detected from the headers when None.
    Returns:
        tuple[pd.DataFrame, str]: Renamed copy and the dataset kind used.
    """
    if kind is None:
        kind = detect_dataset_kind(df.columns)
    mapping = map_field_names(df.columns, kind)
    out = df.rename(columns=mapping)
    if out.columns.duplicated().any():
        # Two raw headers collapsed to one name; keep the first non-empty value
        merged = {}
        for name in pd.unique(out.columns):
            block = out.loc[:, out.columns == name]
            merged[name] = block.bfill(axis=1).iloc[:, 0] if block.shape[1] > 1 else block.iloc[:, 0]
        out = pd.DataFrame(merged, index=out.index)
    return out, kind


def survey_question_numbers(columns, prefix='proposition_'):
    """Sorted two-digit question numbers present as ``<prefix>NN`` columns."""
    nums = set()
    for c in columns:
        c = str(c)
        if c.startswith(prefix) and c[len(prefix):].isdigit():
            nums.add(f"{int(c[len(prefix):]):02d}")
    return sorted(nums)
