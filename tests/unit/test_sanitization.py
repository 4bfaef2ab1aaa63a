"""Input sanitization (nh3) and key validation tests."""

import pytest

from app.shared.utils.sanitization import InputSanitizer, clean_text, validate_key


def test_clean_text_strips_markup() -> None:
    """Tags are removed and surrounding whitespace trimmed."""
    assert InputSanitizer.clean_text("  <b>Approved</b> <script>alert(1)</script> ") == "Approved"


def test_clean_text_passes_none_and_empty() -> None:
    """None and empty strings pass through unchanged."""
    assert clean_text(None) is None
    assert clean_text("") == ""


@pytest.mark.parametrize("key", ["expense", "leave_request", "po.created", "hr:onboarding-v2"])
def test_validate_key_accepts_allowlist(key) -> None:
    """Letters, digits, underscore, hyphen, dot and colon are allowed."""
    assert validate_key(key) == key


@pytest.mark.parametrize("key", ["", "has space", "semi;colon", "<tag>"])
def test_validate_key_rejects_other_characters(key) -> None:
    """Anything else raises ValueError."""
    with pytest.raises(ValueError):
        validate_key(key)


@pytest.mark.parametrize(
    "value, valid",
    [("agency-a", True), ("AGENCY_42", True), ("a" * 64, True), ("a" * 65, False), ("bad tenant!", False), ("", False), (None, False)],
)
def test_tenant_id_format(value, valid) -> None:
    """Agency ids are short slugs safe to log and echo."""
    assert InputSanitizer.is_valid_tenant_id(value) is valid


def test_clean_mapping_cleans_nested_strings() -> None:
    """Strings inside nested dicts and lists are cleaned; other values kept."""
    cleaned = InputSanitizer.clean_mapping(
        {
            "amount": 120,
            "note": "<i>urgent</i>",
            "lines": ["<b>a</b>", {"memo": "<u>b</u>"}, 3],
            "owner": {"name": " <em>Ann</em> "},
        }
    )
    assert cleaned == {
        "amount": 120,
        "note": "urgent",
        "lines": ["a", {"memo": "b"}, 3],
        "owner": {"name": "Ann"},
    }


def test_clean_mapping_depth_limit() -> None:
    """Nesting deeper than max_depth raises ValueError."""
    data: dict = {}
    node = data
    for _ in range(5):
        node["child"] = {}
        node = node["child"]
    with pytest.raises(ValueError):
        InputSanitizer.clean_mapping(data, max_depth=3)
