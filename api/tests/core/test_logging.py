"""Tests for log processors."""

from src.core.context import clear_context, set_request_id
from src.core.logging import add_request_context, mask_sensitive_data, mask_value


def test_mask_long_secret() -> None:
    assert mask_value("access_token", "abcdefgh") == "ab****gh"


def test_mask_short_secret() -> None:
    assert mask_value("password", "abc") == "***"


def test_plain_keys_untouched() -> None:
    assert mask_value("username", "alice") == "alice"


def test_nested_values_are_masked() -> None:
    event = {"event": "login", "headers": {"Authorization": "Bearer abcdef"}}

    masked = mask_sensitive_data(None, "info", event)

    assert masked["event"] == "login"
    assert masked["headers"]["Authorization"].startswith("Be")
    assert "abcd" not in masked["headers"]["Authorization"]


def test_request_context_is_added() -> None:
    set_request_id("req-7")
    try:
        event = add_request_context(None, "info", {"event": "report_created"})
    finally:
        clear_context()

    assert event["request_id"] == "req-7"
