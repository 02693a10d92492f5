from __future__ import annotations

import hashlib
import re
from typing import Any, Dict, List, Mapping, Tuple

# Supabase access tokens are JWTs.
JWT_RE = re.compile(r"\beyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+")
EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
# Korean resident registration number (YYMMDD-NNNNNNN).
RRN_RE = re.compile(r"\b\d{6}-[1-8]\d{6}\b")
# Vietnamese citizen identity card (CCCD), 12 digits.
CCCD_RE = re.compile(r"\b0\d{11}\b")
# Vietnamese and Korean phone numbers: optional country code, at least 10 characters.
PHONE_RE = re.compile(r"\+?\d[\d\s().-]{8,}\d")

# One pass, earlier alternatives win; ID shapes are also valid phone shapes.
_MASKS: List[Tuple[str, re.Pattern, str]] = [
    ("jwt", JWT_RE, "TOKEN"),
    ("email", EMAIL_RE, "EMAIL"),
    ("rrn", RRN_RE, "ID"),
    ("cccd", CCCD_RE, "ID"),
    ("phone", PHONE_RE, "PHONE"),
]
_PII_RE = re.compile("|".join(f"(?P<{group}>{pattern.pattern})" for group, pattern, _ in _MASKS))
_LABELS = {group: label for group, _, label in _MASKS}

SECRET_FIELDS = {
    "authorization",
    "access_token",
    "refresh_token",
    "token",
    "password",
    "service_role_key",
    "supabase_key",
    "api_key",
}

MAX_VALUE_LENGTH = 500


def _digest(text: str) -> str:
    return "[HASH:" + hashlib.sha256(text.encode("utf-8")).hexdigest()[:12] + "]"


def _mask(match: re.Match) -> str:
    label = _LABELS[match.lastgroup]
    if label == "TOKEN":
        return "[TOKEN]"
    return f"[{label}_{_digest(match.group(0))}]"


def scrub_text(text: str) -> str:
    """Redact bearer tokens, emails, ID numbers and phone numbers from free text."""
    if not text:
        return text
    return _PII_RE.sub(_mask, text)


def is_secret_field(key: str) -> bool:
    name = key.lower()
    return name in SECRET_FIELDS or name.endswith(("_token", "_secret"))


def scrub_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return sanitize_log_payload(value)
    if isinstance(value, (list, tuple, set)):
        return [scrub_value(item) for item in value]
    if not isinstance(value, str):
        return value
    scrubbed = scrub_text(value)
    return _digest(scrubbed) if len(scrubbed) > MAX_VALUE_LENGTH else scrubbed


def sanitize_log_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Structured log fields with secrets replaced and PII masked."""
    return {
        key: "[REDACTED]" if value is not None and is_secret_field(str(key)) else scrub_value(value)
        for key, value in payload.items()
    }
