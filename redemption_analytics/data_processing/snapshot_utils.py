"""Snapshots: frozen, replayable bundles of records, filters and results.

A snapshot carries the raw records (``salesData``) together with the filter
configuration, so replaying the filter pipeline on the embedded records must
reproduce the embedded ``filteredData`` and ``metrics``.

    snap = build_snapshot(records, spec, ExclusionConfig(exclude_first_days=True),
                          grouping_key="offer_name", client_name="Acme")
    payload = snapshot_to_json(snap)
    assert verify_snapshot(snapshot_from_json(payload))
"""
from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

import pandas as pd

from ..data_prep.record_store import dataset_kind, frame_from_records, records_from_frame
from .brand_detection import (
    brand_mapping_from_records,
    brand_mapping_to_dict,
    extract_brand_names,
    get_client_name,
)
from .dashboard_params import SHARE_MAX_SIZE_MB, SHARE_ROW_LIMIT
from .distribution_utils import product_distribution, retailer_distribution
from .filter_utils import ExclusionConfig, FilterSpec, apply_filters
from .metrics_utils import calculate_metrics
from .survey_utils import parse_survey

_LOG = logging.getLogger(__name__)

REQUIRED_KEYS = ('salesData', 'filteredData', 'brandMapping', 'metrics', 'brandNames')


@dataclass(frozen=True)
class Snapshot:
    sales_data: list
    filtered_data: list
    metrics: dict
    retailer_distribution: list
    product_distribution: list
    brand_mapping: dict
    brand_names: list
    client_name: str
    survey_data: dict
    filters: dict
    excluded_dates: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return copy.deepcopy({
            'salesData': self.sales_data,
            'filteredData': self.filtered_data,
            'metrics': self.metrics,
            'retailerDistribution': self.retailer_distribution,
            'productDistribution': self.product_distribution,
            'brandMapping': self.brand_mapping,
            'brandNames': self.brand_names,
            'clientName': self.client_name,
            'surveyData': self.survey_data,
            'filters': self.filters,
            'excludedDates': self.excluded_dates,
        })


def build_snapshot(
    records: pd.DataFrame,
    filter_spec: Optional[FilterSpec] = None,
    exclusion: Optional[ExclusionConfig] = None,
    grouping_key: Optional[str] = None,
    client_name: Optional[str] = None,
    question_numbers: Optional[Iterable] = None,
) -> Snapshot:
    """Run the pipeline once and freeze every output into a ``Snapshot``.

    Brand detection runs over the full record set; every other result is
    computed on the filtered records. All outputs are deep copies, so later
    changes to ``records`` cannot alter the snapshot.
    """
    filter_spec = filter_spec or FilterSpec()
    exclusion = exclusion or ExclusionConfig()
    filtered = apply_filters(records, filter_spec, exclusion, grouping_key)

    brand_mapping = brand_mapping_from_records(records)
    brand_names = extract_brand_names(brand_mapping)
    exclusion_dict = exclusion.to_dict()
    excluded_dates = exclusion_dict.pop('customExcludedDates')

    snapshot = Snapshot(
        sales_data=records_from_frame(records),
        filtered_data=records_from_frame(filtered),
        metrics=calculate_metrics(filtered).to_dict(),
        retailer_distribution=records_from_frame(retailer_distribution(filtered)),
        product_distribution=records_from_frame(product_distribution(filtered, brand_mapping)),
        brand_mapping=brand_mapping_to_dict(brand_mapping),
        brand_names=brand_names,
        client_name=get_client_name(client_name, brand_names),
        survey_data=parse_survey(filtered, question_numbers).to_dict(),
        filters={
            'filterSpec': filter_spec.to_dict(),
            'exclusion': exclusion_dict,
            'groupingKey': grouping_key,
            'datasetKind': dataset_kind(records),
        },
        excluded_dates=excluded_dates,
    )
    _LOG.debug("Built snapshot: %d of %d records after filters",
               len(snapshot.filtered_data), len(snapshot.sales_data))
    return copy.deepcopy(snapshot)


def _as_dict(data: Any) -> dict:
    return data.to_dict() if isinstance(data, Snapshot) else dict(data or {})


def replay_snapshot(data: Any) -> Snapshot:
    """Recompute a snapshot from its embedded records and configuration."""
    data = _as_dict(data)
    filters = data.get('filters') or {}
    records = frame_from_records(data.get('salesData') or [], filters.get('datasetKind'))
    exclusion_dict = dict(filters.get('exclusion') or {})
    exclusion_dict['customExcludedDates'] = data.get('excludedDates') or []
    question_numbers = list(((data.get('surveyData') or {}).get('questions') or {}).keys())
    return build_snapshot(
        records,
        FilterSpec.from_dict(filters.get('filterSpec')),
        ExclusionConfig.from_dict(exclusion_dict),
        grouping_key=filters.get('groupingKey'),
        client_name=data.get('clientName'),
        question_numbers=question_numbers,
    )


def verify_snapshot(data: Any) -> bool:
    """True when replaying reproduces the embedded filteredData and metrics."""
    data = _as_dict(data)
    replayed = replay_snapshot(data).to_dict()
    ok = True
    for key in ('filteredData', 'metrics'):
        if replayed[key] != data.get(key):
            _LOG.warning("Snapshot replay mismatch in %s", key)
            ok = False
    return ok


def validate_snapshot(data: Any) -> dict:
    """Structural check of a snapshot payload: {isValid, issues, stats}."""
    if data is None:
        return {'isValid': False, 'issues': ['Data object is null or undefined'], 'stats': {}}
    data = _as_dict(data)
    issues = []
    for key in ('salesData', 'filteredData'):
        if data.get(key) is None:
            issues.append(f"Missing {key}")
        elif not isinstance(data[key], list):
            issues.append(f"{key} is not a list")
    for key in ('brandMapping', 'metrics'):
        if not isinstance(data.get(key), Mapping):
            issues.append(f"Missing or invalid {key}")
    if not isinstance(data.get('brandNames'), list):
        issues.append("Missing or invalid brandNames")
    return {
        'isValid': not issues,
        'issues': issues,
        'stats': {
            'salesDataLength': len(data.get('salesData') or []),
            'filteredDataLength': len(data.get('filteredData') or []),
            'brandNamesCount': len(data.get('brandNames') or []),
            'hasMetrics': bool(data.get('metrics')),
            'hasRetailerDistribution': bool(data.get('retailerDistribution')),
            'hasProductDistribution': bool(data.get('productDistribution')),
        },
    }


def optimize_for_sharing(
    rows: Iterable[Mapping],
    anonymize_retailers: bool = False,
    hide_totals: bool = False,
    limit: int = SHARE_ROW_LIMIT,
    fields: Optional[Iterable[str]] = None,
) -> list[dict]:
    """Trim record rows for sharing: first ``limit`` rows, optional field subset,
    retailers renamed 'Retailer N' in order of appearance, totals blanked."""
    rows = list(rows or [])[:max(int(limit), 0)]
    fields = list(fields) if fields is not None else None
    retailer_alias: dict = {}
    out = []
    for row in rows:
        item = {f: row[f] for f in fields if f in row} if fields is not None else dict(row)
        if anonymize_retailers and item.get('chain'):
            if item['chain'] not in retailer_alias:
                retailer_alias[item['chain']] = f"Retailer {len(retailer_alias) + 1}"
            item['chain'] = retailer_alias[item['chain']]
        if hide_totals:
            for key in ('receipt_total', 'value'):
                if key in item:
                    item[key] = None
        out.append(item)
    return out


def payload_size_mb(data: Any) -> float:
    text = json.dumps(_as_dict(data) if isinstance(data, Snapshot) else data, default=str)
    return len(text.encode('utf-8')) / (1024 * 1024)


def check_size_for_sharing(data: Any, max_size_mb: float = SHARE_MAX_SIZE_MB) -> dict:
    size = payload_size_mb(data)
    within = size <= max_size_mb
    if within:
        message = f"Data size is {size:.2f} MB, which is within the {max_size_mb} MB limit."
    else:
        message = (f"Data size is {size:.2f} MB, which exceeds the {max_size_mb} MB limit. "
                   "Please reduce the amount of data being shared.")
    return {'isWithinLimit': within, 'sizeInMB': size, 'message': message}


def snapshot_to_json(snapshot: Snapshot, indent: Optional[int] = None) -> str:
    return json.dumps(snapshot.to_dict(), indent=indent, allow_nan=False)


def snapshot_from_json(text: str) -> dict:
    return json.loads(text)


__all__ = [
    "Snapshot",
    "build_snapshot",
    "replay_snapshot",
    "verify_snapshot",
    "validate_snapshot",
    "optimize_for_sharing",
    "payload_size_mb",
    "check_size_for_sharing",
    "snapshot_to_json",
    "snapshot_from_json",
]
