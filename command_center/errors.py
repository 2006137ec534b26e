"""
Exception taxonomy for the command center.

Route handlers in command_center_server.py translate these into HTTP
responses; everything else becomes a generic 500.
"""
from typing import Optional


class CommandCenterError(Exception):
    """Base class for all command center errors."""
    pass


class ConfigError(CommandCenterError):
    """Raised when configuration is invalid or credentials are missing."""
    pass


class ValidationError(CommandCenterError):
    """Raised when a request payload fails validation."""
    pass


class RecordNotFound(CommandCenterError):
    """Raised when a single-record update references an unknown id."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class CommandError(CommandCenterError):
    """Raised when the openclaw CLI fails, times out or writes to stderr."""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message)
        self.details = details


class UpstreamError(CommandCenterError):
    """Raised when an external HTTP collaborator answers with an error."""

    def __init__(self, message: str, status: Optional[int] = None, details: str = ""):
        super().__init__(message)
        self.status = status
        self.details = details
