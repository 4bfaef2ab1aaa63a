"""Input sanitization for free text stored on workflows and approvals."""

import re
from typing import Any, ClassVar

import nh3


class InputSanitizer:
    """
    Strip markup from user text before it is stored and later rendered into
    notification bodies (comments, reasons, notes, instance metadata).
    """

    ALLOWED_TAGS: ClassVar[set[str]] = set()
    KEY_PATTERN: ClassVar[re.Pattern[str]] = re.compile(r"^[a-zA-Z0-9_.:-]+$")
    TENANT_ID_PATTERN: ClassVar[re.Pattern[str]] = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")

    @classmethod
    def clean_text(cls, value: str) -> str:
        """Remove all HTML tags with nh3 and trim surrounding whitespace."""
        if not value:
            return value
        return nh3.clean(value, tags=cls.ALLOWED_TAGS, attributes={}).strip()

    @classmethod
    def validate_key(cls, value: str) -> str:
        """Validate entity types, event names and resolver keys.

        Raises:
            ValueError: If the key contains characters outside the allowlist.
        """
        if not value or not cls.KEY_PATTERN.match(value):
            raise ValueError("Invalid key format (use letters, digits, '_', '-', '.', ':')")
        return value

    @classmethod
    def is_valid_tenant_id(cls, value: str | None) -> bool:
        """Agency ids: letters, digits, '_' and '-', at most 64 characters."""
        return bool(value) and cls.TENANT_ID_PATTERN.fullmatch(value) is not None

    @classmethod
    def clean_mapping(cls, data: dict[str, Any], max_depth: int = 20) -> dict[str, Any]:
        """Recursively clean string values in a metadata mapping.

        Raises:
            ValueError: If nesting exceeds max_depth.
        """
        if max_depth <= 0:
            raise ValueError("Metadata nested too deeply")
        cleaned: dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, str):
                cleaned[key] = cls.clean_text(value)
            elif isinstance(value, dict):
                cleaned[key] = cls.clean_mapping(value, max_depth=max_depth - 1)
            elif isinstance(value, list):
                cleaned[key] = [
                    cls.clean_text(v)
                    if isinstance(v, str)
                    else cls.clean_mapping(v, max_depth=max_depth - 1)
                    if isinstance(v, dict)
                    else v
                    for v in value
                ]
            else:
                cleaned[key] = value
        return cleaned


def clean_text(value: str | None) -> str | None:
    """Clean optional free text; None passes through."""
    if value is None:
        return None
    return InputSanitizer.clean_text(value)


def validate_key(value: str) -> str:
    """Validate and return a key; raises ValueError if invalid."""
    return InputSanitizer.validate_key(value)
