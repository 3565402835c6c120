""" Field value preparation module for redemption analytics. Cleans raw cell values
into the canonical shapes the engine expects.
Example: "$1,234.50" -> 1234.5
Example: "03/07/2024" -> Timestamp('2024-03-07') """
import re
from datetime import date, datetime

import pandas as pd

from .field_desc_utils import PROMOTIONAL, TRANSACTIONAL


class MalformedDateError(ValueError):
    """Raised when a non-empty date value cannot be parsed."""

    def __init__(self, value):
        super().__init__(f"Unparseable date value: {value!r}")
        self.value = value


def is_missing(value):
    """True for None, NaN/NaT and blank strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


_DATE_PATTERNS = [
    (re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})$'), ('m', 'd', 'y')),  # MM/DD/YYYY
    (re.compile(r'^(\d{1,2})-(\d{1,2})-(\d{4})$'), ('m', 'd', 'y')),  # MM-DD-YYYY
    (re.compile(r'^(\d{4})/(\d{1,2})/(\d{1,2})$'), ('y', 'm', 'd')),  # YYYY/MM/DD
]


def _parse_date_text(text):
    for pattern, order in _DATE_PATTERNS:
        m = pattern.match(text)
        if m:
            parts = dict(zip(order, (int(g) for g in m.groups())))
            try:
                return pd.Timestamp(year=parts['y'], month=parts['m'], day=parts['d'])
            except ValueError:
                return None
    try:
        ts = pd.Timestamp(text)
    except (ValueError, TypeError, OverflowError):
        return None
    return None if pd.isna(ts) else ts


def standardize_date(value, strict=False):
    """Parse a date-like value into a naive ``pd.Timestamp``.

    Accepts ISO dates/datetimes, MM/DD/YYYY, MM-DD-YYYY and YYYY/MM/DD strings as
    well as date/datetime objects. Timezone-aware values are converted to UTC.

    Args:
        value: Raw cell value.
        strict (bool): Raise ``MalformedDateError`` instead of returning None when
            a non-empty value cannot be parsed.
    Returns:
        pd.Timestamp|None: None for missing (and, when not strict, malformed) input.
    """
    if is_missing(value):
        return None
    if isinstance(value, (pd.Timestamp, datetime, date)):
        ts = pd.Timestamp(value)
    else:
        ts = _parse_date_text(str(value).strip())
    if ts is None:
        if strict:
            raise MalformedDateError(value)
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert('UTC').tz_localize(None)
    return ts


def to_iso_date(value):
    """Normalize a date-like value to a ``YYYY-MM-DD`` string (None if unparseable)."""
    ts = standardize_date(value)
    return None if ts is None else ts.strftime('%Y-%m-%d')


def clean_numeric(value):
    """Strip currency symbols and thousands separators and parse a float.

    Returns None when nothing numeric remains.
    """
    if is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = re.sub(r'[$£€¥₹,]', '', str(value))
    cleaned = re.sub(r'[^\d.\-]', '', cleaned).strip()
    try:
        return float(cleaned)
    except ValueError:
        return None


def to_number(value):
    """Lenient numeric read used by aggregations; None when not numeric."""
    if is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def clean_text(value):
    """Trim, collapse inner whitespace and drop surrounding double quotes."""
    if is_missing(value):
        return None
    text = re.sub(r'\s+', ' ', str(value).strip())
    text = re.sub(r'^"|"$', '', text).strip()
    return text or None


_AGE_LABELS = [
    ('under 18', 'Under 18'),
    ('16-24', '16-24'),
    ('25-34', '25-34'),
    ('35-44', '35-44'),
    ('45-54', '45-54'),
    ('55-64', '55-64'),
    ('65+', '65+'),
    ('over 65', '65+'),
]


def standardize_age_group(value):
    """Map free-form ages ("34", "over 65", "25-34 yrs") onto the canonical groups."""
    text = clean_text(value)
    if text is None:
        return None
    low = text.lower()
    for key, label in _AGE_LABELS:
        if key in low:
            return label
    m = re.search(r'(\d+)', low)
    if m:
        age = int(m.group(1))
        if age < 18:
            return 'Under 18'
        if age <= 24:
            return '16-24'
        if age <= 34:
            return '25-34'
        if age <= 44:
            return '35-44'
        if age <= 54:
            return '45-54'
        if age <= 64:
            return '55-64'
        return '65+'
    return text


def standardize_gender(value):
    text = clean_text(value)
    if text is None:
        return None
    low = text.lower()
    if low in ('m', 'male', 'man'):
        return 'Male'
    if low in ('f', 'female', 'woman'):
        return 'Female'
    if 'other' in low or 'non-binary' in low or 'nonbinary' in low:
        return 'Other'
    return text


VALUE_TRANSFORMERS = {
    TRANSACTIONAL: {
        'receipt_total': clean_numeric,
        'product_name': clean_text,
        'chain': clean_text,
        'age_group': standardize_age_group,
        'gender': standardize_gender,
    },
    PROMOTIONAL: {
        'hit_id': clean_text,
        'offer_name': clean_text,
        'age_group': standardize_age_group,
        'gender': standardize_gender,
    },
}


def prepare_field_values(df, kind):
    """Apply the value transformers for ``kind`` to the columns present.

    Every other cell is kept as-is except that missing markers become None.
    """
    out = df.copy()
    for col, fn in VALUE_TRANSFORMERS.get(kind, {}).items():
        if col in out.columns:
            out[col] = out[col].map(fn)
    return none_for_missing(out)


def none_for_missing(df):
    """Object-dtype copy of ``df`` with every NaN/NaT replaced by None."""
    obj = df.astype(object)
    return obj.where(obj.notna(), None)


""" Display helpers used by insights and exports.
Example: 1234 -> "1,234 units" """
def fmt_units(value):
    """Format a count with thousands separators and a 'units' suffix."""
    try:
        return f"{value:,.0f} units"
    except (ValueError, TypeError):
        return "Invalid value"


def fmt_pct(value, digits=1):
    """Format a percentage value: 12.345 -> '12.3%'."""
    try:
        return f"{value:.{digits}f}%"
    except (ValueError, TypeError):
        return "Invalid value"
