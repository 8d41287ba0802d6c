"""
Constants and configuration values for artifact-downloader.

This module contains the hardcoded endpoints, limits, timeouts and other
constants used throughout the application.
"""

# Provider identifiers
APP_STORE_CONNECT_PROVIDER = "app-store-connect"
APP_DISTRIBUTION_PROVIDER = "app-distribution"
PROVIDER_NAMES = (APP_STORE_CONNECT_PROVIDER, APP_DISTRIBUTION_PROVIDER)
PROVIDER_DISPLAY_NAMES = {
    APP_STORE_CONNECT_PROVIDER: "App Store Connect",
    APP_DISTRIBUTION_PROVIDER: "Firebase App Distribution",
}

# App Store Connect / Xcode Cloud
APP_STORE_CONNECT_API_BASE = "https://api.appstoreconnect.apple.com/v1"
APP_STORE_CONNECT_AUDIENCE = "appstoreconnect-v1"
APP_STORE_CONNECT_TOKEN_LIFETIME_SECONDS = 20 * 60
APP_STORE_CONNECT_MAX_PAGE_SIZE = 200
XCODE_CLOUD_ARCHIVE_ACTION = "ARCHIVE"

# Firebase App Distribution
FIREBASE_MANAGEMENT_API_BASE = "https://firebase.googleapis.com/v1beta1"
FIREBASE_DISTRIBUTION_API_BASE = "https://firebaseappdistribution.googleapis.com/v1"
FIREBASE_SCOPES = ("https://www.googleapis.com/auth/cloud-platform",)
FIREBASE_MAX_PAGE_SIZE = 100
FIREBASE_DEFAULT_TOKEN_LIFETIME_SECONDS = 5 * 60

# Tokens are refreshed this many seconds before they expire
TOKEN_REFRESH_MARGIN_SECONDS = 60

# Search and resolution limits
DEFAULT_SEARCH_LIMIT = 3
OVERFETCH_MULTIPLIER = 3
MIN_OVERFETCH_COUNT = 20
LATEST_CANDIDATE_LIMIT = 10
ID_SEARCH_LIMIT = 50
LATEST_KEYWORD = "latest"
UNKNOWN_VERSION = "unknown"

# Network settings (in seconds / bytes)
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_CONNECTOR_LIMIT = 10
DEFAULT_CHUNK_SIZE = 8192
BYTES_PER_MEGABYTE = 1024 * 1024
FILE_SIZE_MB_LOGGING_THRESHOLD = 1.0
HTTP_STATUS_ERROR_THRESHOLD = 400

# Artifact type vocabulary
ARTIFACT_TYPE_DEVELOPMENT = "development"
ARTIFACT_TYPE_AD_HOC = "ad_hoc"
ARTIFACT_TYPE_APP_STORE = "app_store"
ARTIFACT_TYPE_LOGS = "logs"
ARTIFACT_TYPE_XCRESULT = "xcresult"
ARTIFACT_TYPE_XCARCHIVE = "xcarchive"
ARTIFACT_TYPE_IPA = "ipa"
ARTIFACT_TYPE_APK = "apk"
ARTIFACT_TYPE_AAB = "aab"
ARTIFACT_TYPE_ARCHIVE = "archive"
ARTIFACT_TYPES = (
    ARTIFACT_TYPE_DEVELOPMENT,
    ARTIFACT_TYPE_AD_HOC,
    ARTIFACT_TYPE_APP_STORE,
    ARTIFACT_TYPE_LOGS,
    ARTIFACT_TYPE_XCRESULT,
    ARTIFACT_TYPE_XCARCHIVE,
    ARTIFACT_TYPE_IPA,
    ARTIFACT_TYPE_APK,
    ARTIFACT_TYPE_AAB,
    ARTIFACT_TYPE_ARCHIVE,
)
# iOS distribution builds are all installable IPA files
IPA_COMPATIBLE_TYPES = frozenset(
    {
        ARTIFACT_TYPE_DEVELOPMENT,
        ARTIFACT_TYPE_AD_HOC,
        ARTIFACT_TYPE_APP_STORE,
        ARTIFACT_TYPE_IPA,
    }
)

# File extensions
IPA_EXTENSION = ".ipa"
APK_EXTENSION = ".apk"
AAB_EXTENSION = ".aab"
XCARCHIVE_EXTENSION = ".xcarchive"

# Platforms
PLATFORM_IOS = "ios"
PLATFORM_ANDROID = "android"
PLATFORM_CHOICES = ("all", PLATFORM_IOS, PLATFORM_ANDROID)

# Configuration
APP_NAME = "artifact-downloader"
CONFIG_FILE_NAME = "config.yaml"
LOCAL_CONFIG_FILE_NAMES = ("config.yaml", "config.local.yaml")
APPSTORE_KEY_ID_ENV_VAR = "APPSTORE_KEY_ID"
APPSTORE_ISSUER_ID_ENV_VAR = "APPSTORE_ISSUER_ID"
APPSTORE_PRIVATE_KEY_PATH_ENV_VAR = "APPSTORE_PRIVATE_KEY_PATH"
FIREBASE_PROJECT_ID_ENV_VAR = "FIREBASE_PROJECT_ID"
FIREBASE_SERVICE_ACCOUNT_PATH_ENV_VAR = "FIREBASE_SERVICE_ACCOUNT_PATH"

# CLI defaults
DEFAULT_OUTPUT_PATH = "./downloads"
OUTPUT_FORMATS = ("table", "json")
MAX_TABLE_FILE_NAME_LENGTH = 38

# Logging configuration
LOGGER_NAME = "artifact_downloader"
LOG_LEVEL_ENV_VAR = "ARTIFACT_DOWNLOADER_LOG_LEVEL"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
