"""
Core Module - Constants.

============================================================
RESPONSIBILITY
============================================================
Defines pipeline-wide constants.

- Single source of truth for fixed names and tags
- Deny-list of identifying fields
- Archive layout and metadata
- Default cloud resource names

============================================================
"""

from typing import FrozenSet

# ============================================================
# SYSTEM CONSTANTS
# ============================================================

SYSTEM_NAME = "health-analytics-export"
SYSTEM_VERSION = "1.0.0"

# ============================================================
# ANONYMIZATION
# ============================================================

USER_ID_FIELD = "userId"
ANONYMOUS_USER_ID_FIELD = "anonymousUserId"
EXPORTED_AT_FIELD = "exportedAt"
EVENT_TIME_FIELD = "timestamp"

# Sleep entries are keyed by the night they describe
SLEEP_TIME_FIELD = "date"

# Fields never allowed on an anonymized record
DENY_LIST: FrozenSet[str] = frozenset({
    "userId",
    "email",
    "fullName",
    "profilePicture",
})

# ============================================================
# ARCHIVE
# ============================================================

ARCHIVE_PREFIX = "daily-exports/"
ARCHIVE_FILE_TEMPLATE = "daily-export-{date}.json"
ARCHIVE_CONTENT_TYPE = "application/json"
DATA_CLASSIFICATION = "anonymized_phi"
EXPORT_PURPOSE = "analytics_ml_training"

# ============================================================
# CLOUD DEFAULTS
# ============================================================

DEFAULT_BUCKET = "cht-analytics-data-lake"
DEFAULT_DATASET = "cht_analytics"
DEFAULT_LOCATION = "US"
DATASET_DESCRIPTION = "CHT Analytics Data Warehouse for ML and Trend Analysis"

# ============================================================
# SCHEDULING
# ============================================================

DEFAULT_SCHEDULE_HOUR = 2
DEFAULT_SCHEDULE_MINUTE = 0
DEFAULT_LOOKBACK_DAYS = 30
SAMPLE_QUERY_LOOKBACK_DAYS = 7
