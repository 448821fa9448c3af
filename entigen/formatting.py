# File: entigen/formatting.py
"""
EntiGen - Output Formatting Pass
=================================
The single, final whitespace pass applied when a ``ClassSource`` is
serialized.  Structural edits never make layout decisions; they only
reorder nodes.  This module decides where blank lines go:

1. Class members: exactly one blank line between adjacent members and no
   blank line directly inside the class braces (``normalize_members``).
2. File text (``normalize_whitespace``):
   - ``declare (strict_types = 1) ;`` → ``declare(strict_types=1);``
     followed by exactly one blank line
   - exactly one blank line after ``<?php`` unless a declare follows it
   - one blank line between the last ``use`` import and the class
   - any run of 3+ newlines collapsed to a single blank line
   - a single trailing newline, and a leading ``<?php`` tag
"""

from __future__ import annotations

import logging
import re
from typing import List, Sequence, TypeVar

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.formatting")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns
# ---------------------------------------------------------------------------

_DECLARE_RE: re.Pattern[str] = re.compile(
    r"declare\s*\(\s*strict_types\s*=\s*1\s*\)\s*;"
)
_AFTER_DECLARE_RE: re.Pattern[str] = re.compile(
    r"(declare\(strict_types=1\);)[ \t]*\n+(?=\S)"
)
_AFTER_OPEN_TAG_RE: re.Pattern[str] = re.compile(
    r"\A(<\?php)[ \t]*\n+(?!declare\b)(?=\S)"
)
_USE_BEFORE_CLASS_RE: re.Pattern[str] = re.compile(
    r"^(use\s+[^;]+;[ \t]*\n)"
    r"(?=[ \t]*(?:#\[|/\*\*|(?:(?:final|abstract|readonly)\s+)*class\b))",
    re.MULTILINE,
)
_TRAILING_SPACE_RE: re.Pattern[str] = re.compile(r"[ \t]+$", re.MULTILINE)
_MULTI_BLANK_RE: re.Pattern[str] = re.compile(r"\n{3,}")

OPEN_TAG: str = "<?php"

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Member spacing
# ---------------------------------------------------------------------------


def normalize_members(nodes: Sequence[T], blank: T, is_blank) -> List[T]:
    """
    Return *nodes* with blank markers rebuilt: none at either edge and
    exactly one between adjacent members.
    """
    members: List[T] = [n for n in nodes if not is_blank(n)]
    result: List[T] = []
    for i, member in enumerate(members):
        if i > 0:
            result.append(blank)
        result.append(member)
    return result


# ---------------------------------------------------------------------------
# File-level whitespace
# ---------------------------------------------------------------------------


def normalize_whitespace(code: str) -> str:
    """Apply the file-level blank-line rules to rendered source."""
    code = _DECLARE_RE.sub("declare(strict_types=1);", code)
    code = _AFTER_DECLARE_RE.sub(r"\1\n\n", code)
    code = _AFTER_OPEN_TAG_RE.sub(r"\1\n\n", code)
    code = _USE_BEFORE_CLASS_RE.sub(r"\1\n", code)
    code = _TRAILING_SPACE_RE.sub("", code)
    code = _MULTI_BLANK_RE.sub("\n\n", code)

    code = code.strip("\n") + "\n"
    if not code.startswith(OPEN_TAG):
        code = f"{OPEN_TAG}\n\n{code}"
    return code


__all__: List[str] = [
    "normalize_members",
    "normalize_whitespace",
    "OPEN_TAG",
]
