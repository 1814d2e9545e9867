"""Minimal Influx line protocol codec.

Only the measurement and tag set are decoded; the field set and timestamp
are carried verbatim since enrichment never touches them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .errors import LineProtocolError

_MEASUREMENT_SPECIALS = ", "
_TAG_SPECIALS = ",= "


def _find_unescaped(text: str, char: str, start: int = 0, *, quotes: bool = False) -> int:
    """Index of the first ``char`` not escaped by a backslash, or -1."""
    in_quotes = False
    index = start
    while index < len(text):
        current = text[index]
        if current == "\\":
            index += 2
            continue
        if quotes and current == '"':
            in_quotes = not in_quotes
        elif current == char and not in_quotes:
            return index
        index += 1
    return -1


def _split_unescaped(text: str, char: str) -> list[str]:
    parts: list[str] = []
    start = 0
    while True:
        index = _find_unescaped(text, char, start)
        if index < 0:
            parts.append(text[start:])
            return parts
        parts.append(text[start:index])
        start = index + 1


_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t", "\f": "\\f"}


def _escape(text: str, specials: str) -> str:
    # a trailing backslash would escape the separator that follows
    text = text.rstrip("\\")
    for char, escaped in _CONTROL_ESCAPES.items():
        text = text.replace(char, escaped)
    for char in specials:
        text = text.replace(char, "\\" + char)
    return text


def _unescape(text: str, specials: str) -> str:
    out: list[str] = []
    index = 0
    while index < len(text):
        current = text[index]
        if current == "\\" and index + 1 < len(text) and text[index + 1] in specials:
            out.append(text[index + 1])
            index += 2
            continue
        out.append(current)
        index += 1
    return "".join(out)


@dataclass
class Metric:
    """One telemetry sample."""

    name: str
    tags: dict[str, str] = field(default_factory=dict)
    fields: str = ""
    timestamp: Optional[str] = None

    def get_tag(self, key: str) -> Optional[str]:
        return self.tags.get(key)

    def add_tag(self, key: str, value: str) -> None:
        self.tags[key] = value


def parse_line(line: str) -> Metric:
    """Parse one line of line protocol.

    Raises
    ------
    LineProtocolError
        If the line has no measurement, a malformed tag or no fields.
    """
    text = line.strip()
    if not text or text.startswith("#"):
        raise LineProtocolError("empty line or comment")

    head_end = _find_unescaped(text, " ")
    if head_end < 0:
        raise LineProtocolError(f"missing field set: {text!r}")
    head = text[:head_end]
    rest = text[head_end + 1 :].lstrip(" ")

    fields_end = _find_unescaped(rest, " ", quotes=True)
    if fields_end < 0:
        fields_text, timestamp = rest, None
    else:
        fields_text, timestamp = rest[:fields_end], rest[fields_end + 1 :].strip() or None
    if not fields_text:
        raise LineProtocolError(f"missing field set: {text!r}")
    if timestamp is not None and not timestamp.lstrip("-").isdigit():
        raise LineProtocolError(f"invalid timestamp {timestamp!r}")

    parts = _split_unescaped(head, ",")
    name = _unescape(parts[0], _MEASUREMENT_SPECIALS)
    if not name:
        raise LineProtocolError(f"missing measurement: {text!r}")

    tags: dict[str, str] = {}
    for part in parts[1:]:
        separator = _find_unescaped(part, "=")
        if separator <= 0 or separator == len(part) - 1:
            raise LineProtocolError(f"malformed tag {part!r}")
        key = _unescape(part[:separator], _TAG_SPECIALS)
        tags[key] = _unescape(part[separator + 1 :], _TAG_SPECIALS)

    return Metric(name=name, tags=tags, fields=fields_text, timestamp=timestamp)


def format_line(metric: Metric) -> str:
    """Serialize ``metric`` to line protocol with tags sorted by key."""
    head = [_escape(metric.name, _MEASUREMENT_SPECIALS)]
    for key in sorted(metric.tags):
        escaped_key = _escape(key, _TAG_SPECIALS)
        escaped_value = _escape(metric.tags[key], _TAG_SPECIALS)
        if not escaped_key or not escaped_value:
            continue
        head.append(f"{escaped_key}={escaped_value}")
    line = ",".join(head) + " " + metric.fields
    if metric.timestamp is not None:
        line += " " + metric.timestamp
    return line


__all__ = ["Metric", "format_line", "parse_line"]
