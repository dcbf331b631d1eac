"""
Safety check for user-supplied include patterns.

A pattern is accepted only if:
- it compiles with the `re` module
- its star height is at most 1 (no quantified group containing another
  quantifier, e.g. "(a+)+" or "(.*a)*"), the usual cause of catastrophic
  backtracking
- it uses at most MAX_REPETITIONS repetition operators
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional


MAX_STAR_HEIGHT = 1
MAX_REPETITIONS = 25

# (?:  (?=  (?!  (?<=  (?<!  (?>  (?P<name>  (?P=name)  (?<name>  (?i)  (?i:
_GROUP_PREFIX = re.compile(r"\?(?:P<\w+>|P=\w+|<=|<!|<\w+>|[:=!>]|[aiLmsux-]+:?)")
_BRACE_QUANTIFIER = re.compile(r"\{(?:\d+,?\d*|,\d+)\}")


@dataclass(frozen=True)
class ValidationResult:
    """Pattern validation result"""

    valid: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


def _skip_class(pattern: str, i: int) -> int:
    """Return the index just past the character class starting at pattern[i] == '['."""
    n = len(pattern)
    i += 1
    if i < n and pattern[i] == "^":
        i += 1
    # A leading ']' is literal
    if i < n and pattern[i] == "]":
        i += 1
    while i < n and pattern[i] != "]":
        i += 2 if pattern[i] == "\\" else 1
    return i + 1


def _quantifier_end(pattern: str, i: int) -> Optional[int]:
    """If a quantifier starts at i, return the index past it (incl. lazy/possessive mark)."""
    if i >= len(pattern):
        return None
    if pattern[i] in "*+?":
        end = i + 1
    else:
        m = _BRACE_QUANTIFIER.match(pattern, i)
        if not m:
            return None
        end = m.end()
    if end < len(pattern) and pattern[end] in "?+":
        end += 1
    return end


def measure_pattern(pattern: str) -> tuple[int, int]:
    """
    Compute (star height, repetition count) of a compilable pattern.

    Every quantifier counts, including "?" and "{n,m}".
    """
    # Max star height seen per open group; index 0 is the whole pattern
    stack = [0]
    repetitions = 0
    i = 0
    n = len(pattern)

    while i < n:
        ch = pattern[i]
        if ch == "\\":
            height = 0
            i += 2
        elif ch == "[":
            height = 0
            i = _skip_class(pattern, i)
        elif ch == "(":
            stack.append(0)
            i += 1
            m = _GROUP_PREFIX.match(pattern, i)
            if m:
                i = m.end()
            continue
        elif ch == ")":
            height = stack.pop() if len(stack) > 1 else 0
            i += 1
        else:
            height = 0
            i += 1

        end = _quantifier_end(pattern, i)
        if end is not None:
            repetitions += 1
            height += 1
            i = end

        stack[-1] = max(stack[-1], height)

    return max(stack), repetitions


def validate_include_pattern(pattern: str) -> ValidationResult:
    """
    Check that an include pattern is a valid, non-catastrophic regex.

    Args:
        pattern: Regex source entered by the user.

    Returns:
        ValidationResult: valid, or an error message explaining why not.
    """
    if not isinstance(pattern, str):
        return ValidationResult(valid=False, error="Pattern must be a string")

    try:
        re.compile(pattern)
    except re.error as exc:
        return ValidationResult(valid=False, error=f"Invalid regex: {exc}")

    star_height, repetitions = measure_pattern(pattern)
    if star_height > MAX_STAR_HEIGHT:
        return ValidationResult(
            valid=False,
            error="Unsafe regex: nested quantifiers can cause catastrophic backtracking",
        )
    if repetitions > MAX_REPETITIONS:
        return ValidationResult(
            valid=False,
            error=f"Unsafe regex: more than {MAX_REPETITIONS} repetition operators",
        )

    return ValidationResult(valid=True)
