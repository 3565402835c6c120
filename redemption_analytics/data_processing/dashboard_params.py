"""
Centralized Parameters for Redemption Analytics

This module provides a single place to define the engine's tunable parameters.
Deployment-specific values can be overridden through environment variables
(loaded from a local .env file when present).
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name, default):
    raw = os.getenv(name)
    if raw is None or str(raw).strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


def _env_float(name, default):
    raw = os.getenv(name)
    if raw is None or str(raw).strip() == '':
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number, got {raw!r}")


# =============================================================================
# FILTERING PARAMETERS
# =============================================================================

# Sentinel used by multi-select filters to mean "every value"
ALL_SENTINEL = 'all'

# Date-exclusion windows applied per offer (or other grouping key)
EXCLUDE_FIRST_COUNT = _env_int('EXCLUDE_FIRST_COUNT', 7)
EXCLUDE_LAST_COUNT = _env_int('EXCLUDE_LAST_COUNT', 3)

# Grouping key used for exclusion windows on promotional data
DEFAULT_EXCLUSION_GROUPING_KEY = 'offer_name'

# =============================================================================
# TIME SERIES PARAMETERS
# =============================================================================

# Moving-average window (in points) for the trend line
TREND_WINDOW = _env_int('TREND_WINDOW', 7)

GRANULARITIES = ('hourly', 'daily', 'weekly', 'monthly')
DEFAULT_GRANULARITY = 'daily'

# Amount field summed into each time bucket
DEFAULT_VALUE_FIELD = 'receipt_total'

# =============================================================================
# AGGREGATION PARAMETERS
# =============================================================================

# Canonical display order for age groups; unknown groups sort alphabetically after
AGE_GROUP_ORDER = ['16-24', '25-34', '35-44', '45-54', '55-64', '65+', 'Under 18']

DAY_NAMES = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']

# Label used for missing demographics in response breakdowns
NOT_SPECIFIED = 'Not Specified'

# Product x retailer matrix size
MATRIX_TOP_PRODUCTS = 10
MATRIX_TOP_RETAILERS = 5

# =============================================================================
# SURVEY PARAMETERS
# =============================================================================

SURVEY_DELIMITER = ';'
QUESTION_PREFIX = 'question_'
PROPOSITION_PREFIX = 'proposition_'

# =============================================================================
# INSIGHT PARAMETERS
# =============================================================================

# Trend insight compares the last N distinct dates with the N before them
INSIGHT_TREND_DAYS = 7
# ...and is only emitted once this many distinct dates exist
INSIGHT_MIN_DISTINCT_DATES = 15

# =============================================================================
# SHARING PARAMETERS
# =============================================================================

SHARE_ROW_LIMIT = _env_int('SHARE_ROW_LIMIT', 1000)
SHARE_MAX_SIZE_MB = _env_float('SHARE_MAX_SIZE_MB', 5.0)
DEFAULT_CLIENT_NAME = 'Client'
