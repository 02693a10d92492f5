import json
import logging

import pytest

from telemetry.logging_utils import JsonFormatter
from telemetry.pii import sanitize_log_payload, scrub_text
from telemetry.retry import retry_with_backoff


def test_retry_recovers_after_transient_errors():
    attempts = []
    delays = []

    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise ConnectionError("reset")
        return "ok"

    assert retry_with_backoff(flaky, retries=3, base_delay=0.1, jitter=0, sleep=delays.append) == "ok"
    assert delays == [0.1, 0.2]


def test_retry_reraises_after_last_attempt():
    delays = []

    def broken():
        raise ConnectionError("down")

    with pytest.raises(ConnectionError):
        retry_with_backoff(broken, retries=2, jitter=0, sleep=delays.append)
    assert len(delays) == 1


def test_retry_ignores_unlisted_exceptions():
    def bad():
        raise KeyError("id")

    with pytest.raises(KeyError):
        retry_with_backoff(bad, retry_exceptions=(ConnectionError,), sleep=lambda _: None)


def test_scrub_text_masks_contact_details():
    text = scrub_text("call 0901 234 567 or mail kim@example.com")
    assert "kim@example.com" not in text
    assert "0901 234 567" not in text
    assert "[EMAIL_[HASH:" in text
    assert "[PHONE_[HASH:" in text


def test_scrub_text_masks_id_numbers_as_ids():
    text = scrub_text("RRN 900101-1234567, CCCD 079123456789")
    assert "900101-1234567" not in text
    assert "079123456789" not in text
    assert text.count("[ID_[HASH:") == 2
    assert "PHONE" not in text


def test_sanitize_redacts_secrets():
    cleaned = sanitize_log_payload(
        {"authorization": "Bearer abc", "refresh_token": "r", "city_id": "hcm", "nested": {"password": "x"}}
    )
    assert cleaned == {
        "authorization": "[REDACTED]",
        "refresh_token": "[REDACTED]",
        "city_id": "hcm",
        "nested": {"password": "[REDACTED]"},
    }


def test_json_formatter_emits_structured_line():
    record = logging.LogRecord("locations.pager", logging.INFO, __file__, 1, "pager_load_more_complete", None, None)
    record.limit = 24
    record.access_token = "eyJhbGciOiJIUzI1NiJ9.eyJzdWIiOiIxIn0.sig"

    line = json.loads(JsonFormatter().format(record))

    assert line["message"] == "pager_load_more_complete"
    assert line["service"] == "vinahome"
    assert line["limit"] == 24
    assert line["access_token"] == "[REDACTED]"
    assert line["timestamp"].startswith("20")
