"""Duration parsing for the refresh interval: Go-style strings -> seconds."""

from __future__ import annotations

import re

_UNIT_SECONDS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # micro sign
    "μs": 1e-6,  # greek mu
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

# Multi-letter units must come before their single-letter prefixes.
_COMPONENT_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """Parse a duration string into seconds.

    Accepts the format used by the original tool's config files: an optional
    sign followed by one or more ``<number><unit>`` components, e.g. ``300ms``,
    ``1.5s``, ``2m``, ``1h30m``. Valid units are ``ns``, ``us`` (or ``µs``),
    ``ms``, ``s``, ``m`` and ``h``. A bare ``0`` is allowed.

    Raises:
        ValueError: If the string is empty, has a component without a unit,
            or uses an unknown unit.
    """
    text = value.strip()
    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    if text == "0":
        return 0.0
    if not text:
        msg = f"invalid duration {value!r}"
        raise ValueError(msg)

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _COMPONENT_RE.match(text, pos)
        if match is None:
            msg = f"invalid duration {value!r}: expected <number><unit> at {text[pos:]!r}"
            raise ValueError(msg)
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    return sign * total
