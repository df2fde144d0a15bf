"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MIN_PERIOD = 1
MAX_PERIOD = 10
DEFAULT_MAX_PERIODS = 6
PARTIAL_ABSENCE_MAX_PERIODS = 6
PARTIAL_ABSENCE_REASON = "partial absence"

MIN_ROLL_NUMBER = 1
MAX_ROLL_NUMBER = 100
MIN_GRADE = 1
MAX_GRADE = 12
MAX_NAME_LENGTH = 20
DEFAULT_GRADE = 6

DEFAULT_PAGE_SIZE = 50

BACKUP_FORMAT_VERSION = "1.0.0"
DEFAULT_BACKUP_RETENTION = 20
DEFAULT_AUTOSAVE_INTERVAL_SEC = 30
DEFAULT_AUTOBACKUP_INTERVAL_MIN = 5

HISTORY_RETENTION_DAYS = 90
NOTIFICATION_RETENTION_DAYS = 7
OPTIMIZE_ENTRY_THRESHOLD = 10000

SETTINGS_ID = "default"
BULK_ENTITY_ID = "bulk"
