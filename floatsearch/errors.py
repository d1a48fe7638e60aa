"""
Error types surfaced by the float search engine.

``ValidationError`` means the request can be fixed by changing its input.
``ExecutionError`` means the warehouse call failed and may succeed on retry.
"""

from __future__ import annotations


class ValidationError(ValueError):
    """A filter or paging value is malformed. ``field`` names the offender."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class ExecutionError(RuntimeError):
    """
    The warehouse call failed (timeout, transport, malformed query).

    ``query`` holds the query text with placeholders only; bound values are
    never attached to the error.
    """

    def __init__(self, message: str, *, query: str | None = None, operation: str | None = None):
        super().__init__(message)
        self.message = message
        self.query = query
        self.operation = operation

    def __str__(self) -> str:
        prefix = f"{self.operation}: " if self.operation else ""
        if self.query:
            return f"{prefix}{self.message} [query: {self.query}]"
        return f"{prefix}{self.message}"


__all__ = ["ValidationError", "ExecutionError"]
