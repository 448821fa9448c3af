# File: entigen/errors.py
"""
EntiGen - Error Types
======================
Exception taxonomy for the generation pipeline.

    EntigenError
    ├── ValidationError              bad identifier / kind / type, raised
    │                                before any file is touched
    ├── StructuralParseError         a file is not a single entity class
    ├── CrossFileError               an inverse-side target failed
    └── ConcurrentModificationError  another run holds the file lock

Duplicate definitions are never raised: mutators replace the stale member.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class EntigenError(Exception):
    """Base error carrying a machine-readable code and context."""

    default_code: str = "ENTIGEN_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.code: str = code or self.default_code
        self.details: Dict[str, Any] = details or {}

    def __str__(self) -> str:
        return self.message


class ValidationError(EntigenError):
    """Invalid identifier, unknown relation kind or unrecognised dbType."""

    default_code = "VALIDATION_ERROR"


class StructuralParseError(EntigenError):
    """The source does not parse as the single-class entity grammar."""

    default_code = "STRUCTURAL_PARSE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        line: Optional[int] = None,
        path: Optional[str] = None,
        code: Optional[str] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if line is not None:
            details["line"] = line
        if path is not None:
            details["path"] = path
        location: str = ""
        if path is not None:
            location = f"{path}: "
        if line is not None:
            location += f"line {line}: "
        super().__init__(f"{location}{message}", code=code, details=details)
        self.reason: str = message
        self.line: Optional[int] = line
        self.path: Optional[str] = path


class CrossFileError(EntigenError):
    """An inverse-queue target could not be loaded, parsed or saved."""

    default_code = "CROSS_FILE_ERROR"

    def __init__(self, target: str, cause: BaseException) -> None:
        super().__init__(
            f"Could not patch inverse side in '{target}': {cause}",
            details={"target": target, "cause": type(cause).__name__},
        )
        self.target: str = target
        self.cause: BaseException = cause


class ConcurrentModificationError(EntigenError):
    """Raised when a target file is already locked by another invocation."""

    default_code = "FILE_LOCKED"


__all__: List[str] = [
    "EntigenError",
    "ValidationError",
    "StructuralParseError",
    "CrossFileError",
    "ConcurrentModificationError",
]
