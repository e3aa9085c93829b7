"""Recover the structured directive the assistant appends to its reply.

The model is asked to finish a reply that should trigger a side effect with a
sentinel followed by a JSON object, e.g.::

    Lovely choice! BOOKING_REQUEST: {"type": "room", "data": {...}}

Only the balanced-brace object after the sentinel is parsed; the directive is
removed from the text shown to the guest.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

BOOKING_MARKER = "BOOKING_REQUEST:"
AVAILABILITY_MARKER = "CHECK_AVAILABILITY:"

BOOKING = "booking"
AVAILABILITY = "availability"

MARKERS = {
    BOOKING_MARKER: BOOKING,
    AVAILABILITY_MARKER: AVAILABILITY,
}


class DirectiveError(ValueError):
    """A sentinel was present but what followed it was not a usable directive."""

    def __init__(self, message: str, text: str = ""):
        super().__init__(message)
        self.text = text


@dataclass
class Directive:
    kind: str
    payload: Dict[str, Any] = field(default_factory=dict)
    text: str = ""

    @property
    def type(self) -> str:
        return self.payload["type"]

    @property
    def data(self) -> Dict[str, Any]:
        return self.payload["data"]


def find_json_object(text: str, start: int = 0) -> Optional[Tuple[int, int]]:
    """Return the (begin, end) slice of the first balanced {...} at or after start."""
    begin = text.find("{", start)
    if begin == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(begin, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return begin, index + 1
    return None


def _find_marker(text: str) -> Optional[Tuple[int, str]]:
    found = [(text.find(marker), marker) for marker in MARKERS]
    found = [(pos, marker) for pos, marker in found if pos != -1]
    return min(found) if found else None


def _join(before: str, after: str) -> str:
    before, after = before.strip(), after.strip()
    # Models like to wrap the directive in a code fence
    if before.endswith("```json"):
        before = before[: -len("```json")].rstrip()
    elif before.endswith("```"):
        before = before[:-3].rstrip()
    if after.startswith("```"):
        after = after[3:].lstrip()
    return "\n\n".join(part for part in (before, after) if part)


def extract_directive(text: str) -> Optional[Directive]:
    if not text:
        return None
    located = _find_marker(text)
    if located is None:
        return None

    position, marker = located
    visible = _join(text[:position], "")

    span = find_json_object(text, position + len(marker))
    if span is None:
        raise DirectiveError(f"No complete JSON object after {marker}", visible)

    begin, end = span
    try:
        payload = json.loads(text[begin:end])
    except json.JSONDecodeError as exc:
        raise DirectiveError(f"Invalid JSON after {marker}: {exc}", visible) from exc

    if not isinstance(payload, dict) or "type" not in payload or not isinstance(payload.get("data"), dict):
        raise DirectiveError(f"{marker} payload must be an object with 'type' and 'data'", visible)

    return Directive(
        kind=MARKERS[marker],
        payload=payload,
        text=_join(text[:position], text[end:]),
    )
