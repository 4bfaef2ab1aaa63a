"""Shared utilities: datetime, generators, sanitization."""

from app.shared.utils.datetime import ensure_utc, hours_since, utc_now
from app.shared.utils.generators import generate_cuid
from app.shared.utils.sanitization import InputSanitizer, clean_text, validate_key

__all__ = [
    "generate_cuid",
    "utc_now",
    "ensure_utc",
    "hours_since",
    "InputSanitizer",
    "clean_text",
    "validate_key",
]
