"""Brand prefix detection for product names.

Products from one manufacturer usually share leading words ("Acme Choco Bar",
"Acme Choco Bites"). The shared word prefix becomes the brand and the rest of
the name becomes the short display name used in charts.
"""
from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

import pandas as pd

from ..data_prep.field_value_utils import is_missing
from .dashboard_params import DEFAULT_CLIENT_NAME

_LOG = logging.getLogger(__name__)

OTHER_BRAND = 'Other'


@dataclass(frozen=True)
class BrandInfo:
    original: str
    brand_name: str
    display_name: str

    def to_dict(self) -> dict:
        return {
            'original': self.original,
            'brandName': self.brand_name,
            'displayName': self.display_name,
        }


def _distinct_names(product_names: Iterable) -> list[str]:
    seen = {}
    for name in product_names:
        if is_missing(name):
            continue
        name = str(name).strip()
        seen.setdefault(name, None)
    return list(seen)


def detect_brands(product_names: Iterable) -> dict[str, BrandInfo]:
    """Greedy common-prefix-by-word brand detection.

    A word at position ``i`` joins the brand when at least two distinct names
    share the words ``0..i``. The walk stops at the first unshared word.
    Single-word names get an empty brand; a name covered entirely by its
    brand keeps the full name as display name.

    Args:
        product_names: Product names; duplicates and blanks are ignored.
    Returns:
        dict[str, BrandInfo]: Keyed by the (stripped) original name.
    """
    names = _distinct_names(product_names)
    split = {name: name.split() for name in names}

    prefix_counts: Counter = Counter()
    for words in split.values():
        for i in range(len(words)):
            prefix_counts[tuple(words[:i + 1])] += 1

    result = {}
    for name, words in split.items():
        brand_words: list[str] = []
        if len(words) > 1:
            for i in range(len(words)):
                if prefix_counts[tuple(words[:i + 1])] >= 2:
                    brand_words.append(words[i])
                else:
                    break
        brand = ' '.join(brand_words)
        display = ' '.join(words[len(brand_words):]) or name
        result[name] = BrandInfo(original=name, brand_name=brand, display_name=display)

    _LOG.debug("Detected %d brands across %d products",
               len({b.brand_name for b in result.values() if b.brand_name}), len(result))
    return result


def brand_mapping_from_records(records: pd.DataFrame, field: str = 'product_name') -> dict[str, BrandInfo]:
    if field not in records.columns:
        return {}
    return detect_brands(records[field].tolist())


def extract_brand_names(brand_mapping: Mapping[str, BrandInfo]) -> list[str]:
    """Sorted distinct non-empty brand names."""
    return sorted({info.brand_name for info in (brand_mapping or {}).values() if info.brand_name})


def products_by_brand(brand_mapping: Mapping[str, BrandInfo]) -> dict[str, list[str]]:
    """Group original product names under their brand ('Other' when no brand)."""
    groups: dict[str, list[str]] = defaultdict(list)
    for name, info in (brand_mapping or {}).items():
        groups[info.brand_name or OTHER_BRAND].append(name)
    return {brand: sorted(items) for brand, items in sorted(groups.items())}


def display_name(product_name, brand_mapping: Mapping[str, BrandInfo]) -> Optional[str]:
    if is_missing(product_name):
        return None
    info = (brand_mapping or {}).get(str(product_name).strip())
    return info.display_name if info else str(product_name)


def brand_mapping_to_dict(brand_mapping: Mapping[str, BrandInfo]) -> dict[str, dict]:
    return {name: info.to_dict() for name, info in (brand_mapping or {}).items()}


def brand_mapping_from_dict(data: Mapping[str, Mapping]) -> dict[str, BrandInfo]:
    out = {}
    for name, entry in (data or {}).items():
        out[name] = BrandInfo(
            original=entry.get('original', name),
            brand_name=entry.get('brandName', entry.get('brand_name', '')) or '',
            display_name=entry.get('displayName', entry.get('display_name', name)) or name,
        )
    return out


def get_client_name(client_name: Optional[str] = None, brand_names: Optional[Iterable[str]] = None,
                    default: str = DEFAULT_CLIENT_NAME) -> str:
    """Explicit client name, else the detected brands joined, else the default."""
    if not is_missing(client_name):
        return str(client_name).strip()
    brands = [b for b in (brand_names or []) if b]
    if brands:
        return ', '.join(brands)
    return default


__all__ = [
    "BrandInfo",
    "detect_brands",
    "brand_mapping_from_records",
    "extract_brand_names",
    "products_by_brand",
    "display_name",
    "brand_mapping_to_dict",
    "brand_mapping_from_dict",
    "get_client_name",
]
