"""Normalization of raw submitted rows into storable values."""

from __future__ import annotations

import re
from datetime import UTC, datetime, tzinfo
from zoneinfo import ZoneInfo

# Accepted in addition to ISO 8601, which ``datetime.fromisoformat`` covers.
_FALLBACK_FORMATS = (
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
)

_SCRIPT_STYLE_RE = re.compile(r"<(script|style)[^>]*?>.*?</\1>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
_LONE_LT_RE = re.compile(r"<(?![a-zA-Z/!?])")
_WHITESPACE_RE = re.compile(r"[\r\n\t ]+")
_OCTET_RE = re.compile(r"%[a-fA-F0-9]{2}")

_COMPACT_DATE_DIGITS = 8


def to_utc_timestamp(value: str, timezone: tzinfo | str = UTC) -> int:
    """Convert a submitted date/time string to UTC epoch seconds.

    Naive values are read as wall-clock time in ``timezone``. Values that
    carry their own offset keep it. An all-digit value longer than eight
    digits is taken to already be epoch seconds; eight digits or fewer are
    read as a compact ISO date such as ``20261101``.

    Raises:
        ValueError: If the value is not a recognizable date/time.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty timestamp")
    if text.isdigit() and len(text) > _COMPACT_DATE_DIGITS:
        return int(text)

    tz = ZoneInfo(timezone) if isinstance(timezone, str) else timezone
    parsed = _parse_datetime(text)
    if parsed.tzinfo is None or parsed.tzinfo.utcoffset(parsed) is None:
        parsed = parsed.replace(tzinfo=tz)
    return int(parsed.astimezone(UTC).timestamp())


def _parse_datetime(text: str) -> datetime:
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"unrecognized timestamp: {text!r}")


def sanitize_text_field(value: str) -> str:
    """Reduce ``value`` to single-line plain text.

    Tags (and the bodies of script/style elements) are removed, a lone ``<``
    is kept as ``&lt;``, whitespace runs collapse to one space and
    percent-encoded octets are dropped. This is not output escaping.
    """
    filtered = str(value)
    if "<" in filtered:
        filtered = _LONE_LT_RE.sub("&lt;", filtered)
        filtered = _SCRIPT_STYLE_RE.sub("", filtered)
        filtered = _TAG_RE.sub("", filtered)
    filtered = _WHITESPACE_RE.sub(" ", filtered)

    found_octets = False
    while _OCTET_RE.search(filtered):
        filtered = _OCTET_RE.sub("", filtered)
        found_octets = True
    if found_octets:
        filtered = re.sub(r" +", " ", filtered)

    return filtered.strip()


__all__ = ["sanitize_text_field", "to_utc_timestamp"]
