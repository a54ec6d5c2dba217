# =============================================================================
# Extraction Provider (Gemini)
# =============================================================================

# Priority order; later entries are only used when earlier ones are unavailable
# for the configured key/region.
PREFERRED_MODELS: tuple[str, ...] = (
    "gemini-2.5-flash",
    "gemini-2.0-flash",
    "gemini-1.5-flash",
)

GEMINI_API_KEY_PROVIDER = "google-gen-ai"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_TIMEOUT_SECONDS = 60.0

DEFAULT_TEMPERATURE = 0.2
DEFAULT_TOP_K = 32
DEFAULT_TOP_P = 0.95


# =============================================================================
# Output Token Caps
# =============================================================================

QR_MAX_OUTPUT_TOKENS = 512
EXTRACTION_MAX_OUTPUT_TOKENS = 2048
EXTRACTION_RELAXED_MAX_OUTPUT_TOKENS = 4096
SEX_STAGE_MAX_OUTPUT_TOKENS = 128


# =============================================================================
# Caches (seconds)
# =============================================================================

OCR_CACHE_TTL_SECONDS = 24 * 60 * 60
OCR_CACHE_SWEEP_SECONDS = 600
OCR_CACHE_KEY_PREFIX = "ocr:gemini:"

COOKIE_TTL_SECONDS = 5 * 60
VERIFY_TTL_SECONDS = 2 * 60
VERIFIER_FETCH_TIMEOUT_SECONDS = 15.0


# =============================================================================
# Remote Verifier (PhilSys)
# =============================================================================

PSA_VERIFY_URL = "https://verify.philsys.gov.ph/api/verify"
COOKIE_GRABBER_URL = (
    "https://cookie-grabber-easy.vercel.app/api/grab"
    "?url=https%3A%2F%2Fverify.philsys.gov.ph"
)
VERIFIER_ORIGIN = "https://verify.philsys.gov.ph"
VERIFY_COOKIE_NAME = "__verify-token"
PSA_ISSUER = "PSA"
PCN_LENGTH = 16


# =============================================================================
# Validation Limits
# =============================================================================

MAX_IMAGE_SIZE_MB = 10
ALLOWED_IMAGE_CONTENT_TYPES: frozenset[str] = frozenset(
    {
        "image/png",
        "image/jpeg",
        "image/jpg",
        "image/webp",
        "image/gif",
    }
)

NAME_MAX_LENGTH = 100
PAGE_SIZE_DEFAULT = 10
PAGE_SIZE_MAX = 100

DEFAULT_VERIFICATION_TYPES: tuple[str, ...] = ("PSA", "PHILSYS", "VOTERS")


# =============================================================================
# Error Handling
# =============================================================================

ERROR_BODY_MAX_CHARS = 200  # Maximum chars from error response bodies
