"""
Project-wide constants for the Content Understanding client
"""  # noqa: D200, D212, D415

# ==============================================================================
# Service Protocol
# ==============================================================================

DEFAULT_API_VERSION = "2025-11-01"
DEFAULT_USER_AGENT = "cu-sample-code"

OPERATION_LOCATION_HEADER = "Operation-Location"
SUBSCRIPTION_KEY_HEADER = "Ocp-Apim-Subscription-Key"
USER_AGENT_HEADER = "x-ms-useragent"

JSON_CONTENT_TYPE = "application/json"
BINARY_CONTENT_TYPE = "application/octet-stream"

PREBUILT_DOCUMENT_ANALYZER_ID = "prebuilt-documentAnalyzer"
NETWORK_TIMEOUT = 30.0  # seconds, per HTTP request

# Token scope for Azure AD authentication
COGNITIVE_SERVICES_SCOPE = "https://cognitiveservices.azure.com/.default"
TOKEN_REFRESH_MARGIN = 300  # seconds before expiry

# ==============================================================================
# Polling Configuration
# ==============================================================================

POLL_INTERVAL = 2.0  # seconds
POLL_TIMEOUT = 120.0  # seconds
LONG_RUNNING_POLL_TIMEOUT = 600.0  # video/audio and pro mode workloads
MAX_POLL_INTERVAL = 30.0  # seconds, exponential policy cap
BACKOFF_MULTIPLIER = 2.0
BACKOFF_JITTER = 0.25

# Raw error bodies are truncated to this many characters in diagnostics
ERROR_BODY_PREVIEW = 500

# ==============================================================================
# Blob Storage Layout
# ==============================================================================

LABEL_FILE_SUFFIX = ".labels.json"
OCR_RESULT_FILE_SUFFIX = ".result.json"
KNOWLEDGE_SOURCE_LIST_FILE_NAME = "sources.jsonl"
SAS_EXPIRY_HOURS = 1

# Pro mode and training only accept document data
SUPPORTED_DOCUMENT_TYPES = frozenset(
    {".pdf", ".tiff", ".jpg", ".jpeg", ".png", ".bmp", ".heif"}
)
