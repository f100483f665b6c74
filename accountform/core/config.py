# =============================================================================
# Form Definition
# =============================================================================

DRAFT_STORAGE_KEY = "account-form-draft"
DRAFT_RETENTION_DAYS = 7
DRAFT_DEBOUNCE_SECONDS = 1.0  # Store default; the account form uses 2.0

STEP_TRANSITION_SECONDS = 0.2  # Exit/enter animation window between steps


# =============================================================================
# Company Lookup (INSEE Sirene)
# =============================================================================

INSEE_API_BASE = "https://api.insee.fr/api-sirene/3.11"
INSEE_API_KEY_HEADER = "X-INSEE-Api-Key-Integration"
INSEE_RESULT_LIMIT = 20
LOOKUP_TIMEOUT_SECONDS = 10.0
SEARCH_DEBOUNCE_SECONDS = 0.3
SEARCH_MIN_LENGTH = 2

# Placeholder tokens the registry returns for unknown address parts
ADDRESS_PLACEHOLDER_TOKENS = frozenset({"ND", "N/A", "NC", ""})

UNNAMED_COMPANY = "Entreprise sans nom"


# =============================================================================
# Submission Limits
# =============================================================================

MAX_DOCUMENT_SIZE_MB = 10  # Rendered recap PDF
MAX_ATTACHMENT_SIZE_MB = 5  # User-supplied KBIS
MAX_PAYLOAD_SIZE_MB = 8  # Total encoded payload after compression
MAX_LEGAL_DOCUMENT_SIZE_MB = 10  # Upload ceiling checked by the field validator

IMAGE_COMPRESSION_THRESHOLD_MB = 1
IMAGE_MAX_DIMENSION = 2048
IMAGE_JPEG_QUALITY = 80

GZIP_MAGIC = b"\x1f\x8b"

RECAP_FILENAME_TEMPLATE = "recapitulatif-{company}-{date}.pdf"


# =============================================================================
# Security
# =============================================================================

RATE_LIMIT_WINDOW_SECONDS = 15 * 60
RATE_LIMIT_MAX_REQUESTS = 100
CSRF_TOKEN_TTL_SECONDS = 60 * 60
CSRF_HEADER_NAME = "X-CSRF-Token"
SESSION_COOKIE_NAME = "af_session"
ENCRYPTION_AAD = b"account-form-data"
SANITIZE_MAX_LENGTH = 1000


# =============================================================================
# Validation Limits
# =============================================================================

COMPANY_NAME_MIN_LENGTH = 2
COMPANY_NAME_MAX_LENGTH = 100
ADDRESS_MIN_LENGTH = 5
CITY_MIN_LENGTH = 2
SIGNATURE_MIN_LENGTH = 10
