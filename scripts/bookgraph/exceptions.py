"""Exceptions raised by bookgraph."""


class BookGraphError(Exception):
    """Base exception for bookgraph operations."""


class ConfigError(BookGraphError):
    """Raised when book.yaml or the book layout is missing or invalid."""


class StructuralParseError(BookGraphError):
    """The outline cannot be turned into a chapter tree."""

    def __init__(self, message, line=None):
        self.line = line
        if line is not None:
            message = f"SUMMARY line {line}: {message}"
        super().__init__(message)
