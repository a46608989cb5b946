"""
Exception classes for the TLD reconciler.

All exceptions inherit from TldReconcilerError and provide structured
error information with codes, messages, and optional details.
"""

from typing import Optional


class TldReconcilerError(Exception):
    """Base exception for all TLD reconciler errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(TldReconcilerError):
    """Raised when an upstream source fails structural validation."""

    pass


class NetworkError(TldReconcilerError):
    """Raised when downloading a source fails (transport, TLS, HTTP status)."""

    pass


class ParseError(TldReconcilerError):
    """Raised when stored content cannot be decoded at all (e.g. invalid JSON)."""

    pass


class PersistenceError(TldReconcilerError):
    """Raised when persistence operations fail (file I/O, corrupt JSON)."""

    pass


class ConfigError(TldReconcilerError):
    """Raised when configuration cannot be loaded or is invalid."""

    pass
