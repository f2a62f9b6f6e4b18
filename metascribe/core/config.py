"""
Application Configuration and Constants
=======================================

Global constants used throughout the Metascribe application. This module is
the single source of truth for:

- Supported image formats and their MIME types
- Remote API endpoint, default model and the generation prompt
- Batch scheduling and network parameters
- CSV export layout

Note:
    All constants use UPPER_SNAKE_CASE naming convention. User-editable
    settings (API key, model) live in ``EngineConfig`` and are persisted by
    ``metascribe.utils.config_manager``.
"""

# ============================================================================
# APPLICATION SETTINGS
# ============================================================================

APP_NAME = "Metascribe"
APP_VERSION = "1.0.0"
GEOMETRY = "1200x800"

# ============================================================================
# IMAGE FORMATS
# ============================================================================

# File extensions accepted for processing (lower case, with leading dot)
SUPPORTED_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")

# Static extension -> MIME lookup used when inlining image bytes
MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}
DEFAULT_MIME_TYPE = "image/jpeg"

# ============================================================================
# REMOTE API
# ============================================================================

GOOGLE_AI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL_ID = "gemini-2.5-flash"

# Environment variable that overrides the stored API key at process start
API_KEY_ENV_VAR = "GEMINI_API_KEY"

METADATA_PROMPT = (
    "Generate a title, description, and relevant tags for this image. "
    "Format the response as JSON with 'title', 'description', and 'tags' fields."
)

# Maximum time to wait for a single generateContent call
REQUEST_TIMEOUT_SECONDS = 60

# Timeout for lightweight calls (model listing / connection test)
LIST_MODELS_TIMEOUT_SECONDS = 15

# ============================================================================
# BATCH PROCESSING
# ============================================================================

# Number of remote calls allowed in flight at once
DEFAULT_CONCURRENCY = 3

SCHEDULE_GROUPS = "groups"  # strict barrier between fixed-size groups
SCHEDULE_POOL = "pool"      # sliding window, new task as soon as a slot frees
SCHEDULE_STRATEGIES = (SCHEDULE_GROUPS, SCHEDULE_POOL)

ERROR_RECORD_TITLE = "Error Processing Image"
ERROR_RECORD_TAGS = ("error",)

# ============================================================================
# CSV EXPORT
# ============================================================================

CSV_FIELDNAMES = ("filename", "title", "description", "tags", "filepath")
CSV_TAG_SEPARATOR = ", "
DEFAULT_EXPORT_FILENAME = "image-metadata.csv"

# Characters that spreadsheet applications treat as formula prefixes
CSV_INJECTION_CHARS = "=+-@"

# ============================================================================
# UI
# ============================================================================

TOAST_DURATION_MS = 5000
PREVIEW_SIZE = (64, 64)
