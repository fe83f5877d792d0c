"""Constants for draftkit"""

import string

# ==================== Time Units (milliseconds) ====================
TIME_UNITS = {
    "year": 24 * 60 * 60 * 1000 * 365,
    "month": (24 * 60 * 60 * 1000 * 365) / 12,
    "week": 7 * 24 * 60 * 60 * 1000,
    "day": 24 * 60 * 60 * 1000,
    "hour": 60 * 60 * 1000,
    "minute": 60 * 1000,
    "second": 1000,
}

# ==================== Draft Sync ====================
SAVE_DELAY = 3.0  # seconds - debounce window before a draft flush
SAVE_ACTION_LOG_THROTTLE = 5 * 60.0  # 5 minutes - doc.save action log throttle
SAVED_STATE_RESET_DELAY = SAVE_DELAY  # seconds before SAVED falls back to NO_CHANGES
DEFAULT_LOCALES = ["en"]
CLIENT_USER = "draftkit-client"  # modifiedBy for client saves without a user

# ==================== In-Memory Draft ====================
DEFAULT_ROOT_KEY = "block"
IN_MEMORY_DOC_ID = "custom-block"

# ==================== Array Maps ====================
ARRAY_KEY = "_array"
ARRAY_ITEM_KEY = "_arrayKey"
ARRAY_KEY_LENGTH = 6
ARRAY_KEY_CHARS = string.ascii_uppercase + string.ascii_lowercase + string.digits

# ==================== Document Paths ====================
FIELDS_PREFIX = "fields"
SYS_PREFIX = "sys"
SYS_MODIFIED_AT = "sys.modifiedAt"
SYS_MODIFIED_BY = "sys.modifiedBy"
SYS_LOCALES = "sys.locales"
ONEOF_TYPE_KEY = "_type"

# ==================== File Paths ====================
DATABASE_PATH = "data/draftkit.db"
LOG_FILE_DEFAULT = "data/draftkit.log"

# ==================== Database Configuration ====================
DB_MAX_CONNECTIONS = 20
DB_STALE_TIMEOUT = 300  # 5 minutes
DB_WRITE_RETRIES = 3
DB_JOURNAL_MODE = "wal"
DB_SYNCHRONOUS = "NORMAL"
DB_BUSY_TIMEOUT = 5000  # 5 seconds
DB_CACHE_SIZE = -64 * 1000  # 64MB

# ==================== Database Pragmas ====================
DB_PRAGMAS = {
    "journal_mode": DB_JOURNAL_MODE,
    "synchronous": DB_SYNCHRONOUS,
    "busy_timeout": DB_BUSY_TIMEOUT,
    "cache_size": DB_CACHE_SIZE,
}
