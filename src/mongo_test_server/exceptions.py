"""Errors raised while managing a test server."""

from typing import Any, Dict, Optional


class ServerError(Exception):
    """Server management error with user-friendly messages."""

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\n{self.suggestion}"
        return self.message


class LaunchError(ServerError):
    """The server process died before it accepted connections."""


class ReadinessTimeoutError(ServerError):
    """The server never answered the readiness probe."""


class MisconfigurationError(ServerError):
    """The coordinator cannot work with its current configuration."""
