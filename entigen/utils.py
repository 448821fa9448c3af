# File: entigen/utils.py
"""
EntiGen - Utility Functions & Helpers
=======================================
String transformation, identifier checks, pluralisation, file I/O and
timing helpers used throughout the generation pipeline.

- String conversions are ``@lru_cache``'d; the same entity and property
  names are converted many times per run.
- File writes go through a temporary file and ``os.replace`` so a crash
  never leaves a half-written entity behind.
"""

from __future__ import annotations

import functools
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import FrozenSet, List, Optional, Protocol

import inflection

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")

IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
CLASS_NAME_RE: re.Pattern[str] = re.compile(r"^[A-Z][A-Za-z0-9_]*$")
ENTITY_NAME_RE: re.Pattern[str] = re.compile(r"^[A-Z][A-Za-z0-9]+$")

# PHP reserved words that cannot name a property or class
PHP_RESERVED_WORDS: FrozenSet[str] = frozenset({
    "__halt_compiler", "abstract", "and", "array", "as", "break",
    "callable", "case", "catch", "class", "clone", "const", "continue",
    "declare", "default", "die", "do", "echo", "else", "elseif", "empty",
    "enddeclare", "endfor", "endforeach", "endif", "endswitch", "endwhile",
    "enum", "eval", "exit", "extends", "final", "for", "foreach",
    "function", "global", "goto", "if", "implements", "include",
    "include_once", "instanceof", "insteadof", "interface", "isset",
    "list", "match", "namespace", "new", "or", "print", "private",
    "protected", "public", "readonly", "require", "require_once",
    "return", "static", "switch", "throw", "trait", "try", "unset", "use",
    "var", "while", "xor", "yield",
})


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("BlogPost")
        'blog_post'
        >>> to_snake_case("HTTPLog")
        'http_log'
        >>> to_snake_case("already_snake")
        'already_snake'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


@functools.lru_cache(maxsize=None)
def lcfirst(name: str) -> str:
    """Lower-case the first character only (``BlogPost`` -> ``blogPost``)."""
    if not name:
        return ""
    return name[0].lower() + name[1:]


@functools.lru_cache(maxsize=None)
def ucfirst(name: str) -> str:
    """Upper-case the first character only (``title`` -> ``Title``)."""
    if not name:
        return ""
    return name[0].upper() + name[1:]


@functools.lru_cache(maxsize=None)
def short_class_name(name: str) -> str:
    """``App\\Entity\\Post`` -> ``Post``; short names pass through."""
    return name.rsplit("\\", 1)[-1]


def qualify_class_name(name: str, namespace: str) -> str:
    """Prefix *namespace* unless *name* is already fully qualified."""
    if "\\" in name:
        return name.lstrip("\\")
    prefix: str = namespace.strip("\\")
    if not prefix:
        return name
    return prefix + "\\" + name


# ---------------------------------------------------------------------------
# Identifier checks
# ---------------------------------------------------------------------------


def is_valid_identifier(name: str) -> bool:
    """True for a PHP identifier that is not a reserved word."""
    return bool(IDENTIFIER_RE.match(name or "")) and name.lower() not in PHP_RESERVED_WORDS


def is_valid_class_name(name: str) -> bool:
    """True for an upper-camel class short name."""
    return bool(CLASS_NAME_RE.match(name or "")) and name.lower() not in PHP_RESERVED_WORDS


def is_valid_entity_name(name: str) -> bool:
    """Entity names are stricter: upper-first, alphanumeric, 2+ chars."""
    return bool(ENTITY_NAME_RE.match(name or "")) and name.lower() not in PHP_RESERVED_WORDS


# ---------------------------------------------------------------------------
# Pluralisation
# ---------------------------------------------------------------------------


class Pluralizer(Protocol):
    """Anything that can pluralise and singularise an English word."""

    def pluralize(self, word: str) -> str: ...

    def singularize(self, word: str) -> str: ...


class InflectionPluralizer:
    """Default ``Pluralizer`` backed by the ``inflection`` package."""

    __slots__ = ()

    def pluralize(self, word: str) -> str:
        return inflection.pluralize(word)

    def singularize(self, word: str) -> str:
        return inflection.singularize(word)


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: str, atomic: bool = True) -> int:
    """
    Write *content* to *path*.

    When *atomic* is True, writes to a temporary file in the same directory
    first and then ``os.replace``s it over the target.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode("utf-8")
    byte_count: int = len(encoded)

    if atomic:
        fd: int
        tmp_path: str
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(encoded)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, str(path))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    else:
        path.write_bytes(encoded)

    logger.debug("Wrote %d bytes to %s", byte_count, path)
    return byte_count


def read_file(path: Path) -> Optional[str]:
    """Read a file as UTF-8, or ``None`` when it does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling pipeline steps.

    Usage:
        with Timer("mutate Post") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug(
            "Timer [%s]: %.4f seconds",
            self.label,
            self.elapsed,
        )

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_snake_case",
    "lcfirst",
    "ucfirst",
    "short_class_name",
    "qualify_class_name",
    "is_valid_identifier",
    "is_valid_class_name",
    "is_valid_entity_name",
    "IDENTIFIER_RE",
    "CLASS_NAME_RE",
    "ENTITY_NAME_RE",
    "PHP_RESERVED_WORDS",
    "Pluralizer",
    "InflectionPluralizer",
    "ensure_directory",
    "write_file",
    "read_file",
    "Timer",
]

logger.debug("entigen.utils loaded - %d public symbols.", len(__all__))
