"""
Custom exception types for roadmap_status.

The hierarchy separates conditions that abort a status computation from
collaborator failures that only degrade individual results:

- StructuralError: the roadmap document is malformed; the run aborts.
- MissingInputError: the roadmap document does not exist; the run aborts.
- CollaboratorUnavailable: an accessor, probe or scorer failed. Inside the
  pipeline this becomes a failed/indeterminate result with a diagnostic.
- ConfigurationError: settings could not be parsed.

Every error renders to a machine-readable payload through error_payload();
stack traces are never part of that payload.
"""

from __future__ import annotations

from typing import Any


class RoadmapStatusError(Exception):
    """Base exception for all roadmap_status errors."""

    code = "roadmap_status_error"
    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class StructuralError(RoadmapStatusError):
    """Raised when the roadmap document cannot be interpreted."""

    code = "structural_error"
    status_code = 422


class MissingInputError(RoadmapStatusError):
    """Raised when the roadmap document is absent."""

    code = "missing_input"
    status_code = 404

    def __init__(self, path: str):
        super().__init__(f"{path} missing", {"path": path})
        self.path = path


class CollaboratorUnavailable(RoadmapStatusError):
    """Raised when an external collaborator call fails."""

    code = "collaborator_unavailable"
    status_code = 502

    def __init__(self, collaborator: str, reason: str):
        super().__init__(
            f"{collaborator} unavailable: {reason}",
            {"collaborator": collaborator, "reason": reason},
        )
        self.collaborator = collaborator
        self.reason = reason


class ConfigurationError(RoadmapStatusError):
    """Raised when configuration values are invalid."""

    code = "configuration_error"
    status_code = 400


def error_payload(exc: BaseException) -> tuple[int, dict[str, Any]]:
    """Build the externally visible (status, body) pair for an exception.

    Unknown exception types are reported as internal errors with their
    message only.
    """
    if isinstance(exc, RoadmapStatusError):
        body: dict[str, Any] = {"error": exc.code, "message": exc.message}
        if exc.details:
            body["details"] = exc.details
        return exc.status_code, body
    return 500, {"error": "internal_error", "message": str(exc) or type(exc).__name__}


__all__ = [
    "RoadmapStatusError",
    "StructuralError",
    "MissingInputError",
    "CollaboratorUnavailable",
    "ConfigurationError",
    "error_payload",
]
