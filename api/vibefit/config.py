import os
from typing import Optional

LOG_LEVEL = os.environ.get("VIBEFIT_LOG_LEVEL", "INFO").upper()

GEMINI_API_KEY: Optional[str] = os.environ.get("GEMINI_API_KEY") or None

ANALYSIS_MODEL = os.environ.get("VIBEFIT_ANALYSIS_MODEL", "gemini-2.5-flash")
IMAGE_MODEL = os.environ.get("VIBEFIT_IMAGE_MODEL", "gemini-3-pro-image-preview")
IMAGE_FALLBACK_MODEL = os.environ.get(
    "VIBEFIT_IMAGE_FALLBACK_MODEL", "gemini-2.5-flash-image"
)
EDIT_MODEL = os.environ.get("VIBEFIT_EDIT_MODEL", "gemini-2.5-flash-image")
# Editing runs on a single model unless a second one is configured.
EDIT_FALLBACK_MODEL: Optional[str] = os.environ.get("VIBEFIT_EDIT_FALLBACK_MODEL") or None
CHAT_MODEL = os.environ.get("VIBEFIT_CHAT_MODEL", "gemini-3-pro-preview")
CHAT_FALLBACK_MODEL = os.environ.get("VIBEFIT_CHAT_FALLBACK_MODEL", "gemini-2.5-flash")
TRANSCRIBE_MODEL = os.environ.get("VIBEFIT_TRANSCRIBE_MODEL", "gemini-2.5-flash")

THINKING_BUDGET = int(os.environ.get("VIBEFIT_THINKING_BUDGET", "32768"))

MAX_REQUEST_BYTES = int(float(os.environ.get("VIBEFIT_MAX_REQUEST_MB", "50")) * 1024 * 1024)

_DEFAULT_CORS_ORIGINS = [
    "http://localhost",
    "http://localhost:3000",
    "http://127.0.0.1",
    "http://127.0.0.1:3000",
]

_cors_env = os.environ.get("VIBEFIT_CORS_ORIGINS")
if _cors_env:
    CORS_ALLOW_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip()]
else:
    CORS_ALLOW_ORIGINS = _DEFAULT_CORS_ORIGINS

CORS_ALLOW_ORIGIN_REGEX = os.environ.get(
    "VIBEFIT_CORS_ORIGIN_REGEX", r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"
)
