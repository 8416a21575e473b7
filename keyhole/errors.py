"""Error definitions for the Keyhole optimizer."""

from __future__ import annotations

from enum import Enum, auto
from typing import Sequence


class ErrorCategory(Enum):
    """Categorises fatal errors so hosts can map them to exit codes."""

    PARSE = auto()
    REFERENCE = auto()
    CONFIGURATION = auto()
    FILE_IO = auto()
    OTHER = auto()


class KeyholeError(Exception):
    """Base exception for all custom errors."""

    category = ErrorCategory.OTHER


class ParseError(KeyholeError):
    """Raised when a language artifact does not have a recognised shape."""

    category = ErrorCategory.PARSE

    def __init__(self, filename: str, reason: str) -> None:
        self.filename = filename
        self.reason = reason
        super().__init__(
            f"Failed to parse language file {filename}: {reason}. Note that "
            "bundling of language files is not supported. Each language file "
            "has to be its own chunk."
        )


class MissingReferenceError(KeyholeError):
    """Raised when language artifacts exist but none is the reference language."""

    category = ErrorCategory.REFERENCE

    def __init__(self, language: str, filenames: Sequence[str]) -> None:
        self.language = language
        self.filenames = list(filenames)
        listing = ", ".join(self.filenames)
        super().__init__(
            f"Reference language file for '{language}' not found among the "
            f"language files: {listing}."
        )


class ConfigurationError(KeyholeError):
    """Raised when the configuration cannot be loaded or is invalid."""

    category = ErrorCategory.CONFIGURATION


class OutputWriteError(KeyholeError):
    """Raised when rewritten artifacts cannot be written back."""

    category = ErrorCategory.FILE_IO
