"""
Name pattern rendering.

Variables:
    {{Anchor}}        anchor text of the media reference
    {{FileName}}      document name without extension
    {{DirName}}       name of the document's parent folder
    {{DATE:<format>}} current date, Moment-style format tokens

Example: "{{FileName}}_{{Anchor}}{{DATE:_YYYY-MM-DD}}" for ![tony](...) in
"bar.md" on 2022-05-08 renders "bar_tony_2022-05-08".
"""

from __future__ import annotations

import re
from datetime import datetime

from ..fs.storage import Document


DATE_VARIABLE = re.compile(r"{{DATE:(.+?)}}")

# Longest tokens first so "YYYY" wins over "YY"
_MOMENT_TOKENS = re.compile(
    r"\[[^\]]*\]|YYYY|YY|MMMM|MMM|MM|M|DD|D|dddd|ddd|HH|H|hh|h|mm|m|ss|s|A|a"
)

_MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def _render_token(token: str, when: datetime) -> str:
    if token.startswith("["):
        return token[1:-1]

    hour12 = when.hour % 12 or 12
    values = {
        "YYYY": f"{when.year:04d}",
        "YY": f"{when.year % 100:02d}",
        "MMMM": _MONTH_NAMES[when.month - 1],
        "MMM": _MONTH_NAMES[when.month - 1][:3],
        "MM": f"{when.month:02d}",
        "M": str(when.month),
        "DD": f"{when.day:02d}",
        "D": str(when.day),
        "dddd": _WEEKDAY_NAMES[when.weekday()],
        "ddd": _WEEKDAY_NAMES[when.weekday()][:3],
        "HH": f"{when.hour:02d}",
        "H": str(when.hour),
        "hh": f"{hour12:02d}",
        "h": str(hour12),
        "mm": f"{when.minute:02d}",
        "m": str(when.minute),
        "ss": f"{when.second:02d}",
        "s": str(when.second),
        "A": "AM" if when.hour < 12 else "PM",
        "a": "am" if when.hour < 12 else "pm",
    }
    return values[token]


def format_date(fmt: str, when: datetime) -> str:
    """Format `when` with Moment-style tokens; unknown characters pass through."""
    return _MOMENT_TOKENS.sub(lambda m: _render_token(m.group(0), when), fmt)


def render_name_pattern(pattern: str, *, anchor: str, document: Document, now: datetime) -> str:
    """
    Expand a name pattern for one media reference.

    Args:
        pattern: Template string.
        anchor: Anchor text of the reference (may be empty).
        document: Document containing the reference.
        now: Timestamp used for DATE variables.

    Returns:
        The rendered base name (unsanitized).
    """
    text = DATE_VARIABLE.sub(lambda m: format_date(m.group(1), now), pattern)
    return (
        text.replace("{{Anchor}}", anchor)
        .replace("{{FileName}}", document.basename)
        .replace("{{DirName}}", document.parent_name)
    )
