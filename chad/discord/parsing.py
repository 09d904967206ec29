from __future__ import annotations

import re
import unicodedata

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)([smhd])")
_DURATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}

MAX_DICE = 10
MAX_SIDES = 100

VERDICT_COLORS = (
    ("verdict: true", 0x27AE60),   # green
    ("verdict: false", 0xE74C3C),  # red
    ("partially true", 0xF39C12),  # orange
)
DEFAULT_VERDICT_COLOR = 0x95A5A6  # grey


def parse_duration(text: str) -> float | None:
    """
    Parse `90s`, `5m`, `2h`, `1d` or combinations like `1h30m` into seconds.
    Returns None for anything else.
    """
    text = text.strip().lower()
    if not text:
        return None
    pos, total = 0, 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            return None
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        return None
    return total


def parse_dice(arg: str) -> tuple[int, int]:
    """`2d6` -> (2, 6), `20` -> (1, 20); out-of-range or malformed parts keep the 1d6 default."""
    count, sides = 1, 6
    arg = arg.strip().lower()
    if not arg:
        return count, sides
    if "d" in arg:
        parts = arg.split("d")
        if len(parts) == 2:
            if parts[0].isdigit() and 0 < int(parts[0]) <= MAX_DICE:
                count = int(parts[0])
            if parts[1].isdigit() and 0 < int(parts[1]) <= MAX_SIDES:
                sides = int(parts[1])
    elif arg.isdigit() and 0 < int(arg) <= MAX_SIDES:
        sides = int(arg)
    return count, sides


def looks_like_text(content: str) -> bool:
    """True when a model reply should be sent as a message rather than used as a reaction."""
    if not content:
        return False
    ch = content[0]
    return ch.isalnum() or unicodedata.category(ch).startswith("P")


def verdict_color(analysis: str) -> int:
    lowered = analysis.lower()
    for marker, color in VERDICT_COLORS:
        if marker in lowered:
            return color
    return DEFAULT_VERDICT_COLOR
