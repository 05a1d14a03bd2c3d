"""Application-wide constants.

This module defines constants used throughout the application
to avoid magic numbers and ensure consistency.
"""

# Tenant slugs
SLUG_PATTERN = r"^[a-z0-9-]{3,30}$"
MIN_SLUG_LENGTH = 3
MAX_SLUG_LENGTH = 30
NAMESPACE_PREFIX = "t_"
MAX_NAMESPACE_LENGTH = 63  # PostgreSQL identifier limit

DEFAULT_RESERVED_SLUGS = (
    "admin",
    "api",
    "app",
    "assets",
    "billing",
    "blog",
    "cdn",
    "dashboard",
    "dev",
    "docs",
    "ftp",
    "help",
    "login",
    "mail",
    "public",
    "root",
    "shop",
    "smtp",
    "staging",
    "static",
    "status",
    "support",
    "test",
    "www",
)

# String field lengths
MAX_EMAIL_LENGTH = 255
MAX_NAME_LENGTH = 255
MAX_TITLE_LENGTH = 200
MAX_USERNAME_LENGTH = 60
MAX_REASON_LENGTH = 255
MAX_PATH_LENGTH = 1024

# Password requirements
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
BCRYPT_ROUNDS = 12

# Tenant filesystem layout
TENANT_DIRECTORIES = ("content", "uploads", "cache", "backups", "logs")
PRIVATE_DIRECTORIES = ("backups", "logs")
PRIVATE_DIRECTORY_MODE = 0o700
PUBLIC_DIRECTORY_MODE = 0o755
CONFIG_FILE_NAME = "config.yaml"
CONFIG_FILE_MODE = 0o640
ENTRY_POINT_NAME = "index.html"
ACCESS_LOG_NAME = "access.log"
SECRET_KEY_NAMES = (
    "auth_key",
    "secure_auth_key",
    "logged_in_key",
    "nonce_key",
    "auth_salt",
    "secure_auth_salt",
    "logged_in_salt",
    "nonce_salt",
)
SECRET_BYTES = 48

# Token settings
ACCESS_TOKEN_JTI_LENGTH = 32

# Secret key requirements
MIN_SECRET_KEY_LENGTH = 32
DEFAULT_INSECURE_SECRET = "change-me-in-production"

# Monitoring
WARNING_THRESHOLD_PERCENT = 80.0
VIOLATION_THRESHOLD_PERCENT = 100.0
HIGH_WARNING_THRESHOLD_PERCENT = 90.0
CRITICAL_THRESHOLD_PERCENT = 150.0
ACTIVITY_WINDOW_SECONDS = 300
TRAFFIC_WINDOW_SECONDS = 3600

# Background jobs
ORPHAN_MIN_AGE_SECONDS = 3600
EXPIRY_JOB_TIMEOUT_SECONDS = 300
UNPAID_JOB_TIMEOUT_SECONDS = 600
USAGE_JOB_TIMEOUT_SECONDS = 600
BACKUP_JOB_TIMEOUT_SECONDS = 1800
