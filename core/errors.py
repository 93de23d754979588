# ============================================================================
# ERROR TAXONOMY
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - Typed errors shared by services and routes
# PURPOSE: One exception type per failure class, each with an HTTP status
# CREATED: 14 SEP 2026
# ============================================================================
"""
Error Taxonomy

Every error raised by the resolvers, the orchestrator and the import
pipeline derives from IrradianceError. Routes never inspect messages; the
application-level exception handler maps `http_status` and `to_dict()`
straight onto the response.

    IrradianceError
    ├── ValidationError          400
    ├── CoverageError            400  out_of_coverage
    ├── UpstreamError            502  upstream_error
    │   └── EmptyResultError     404  empty_result
    ├── NotFoundError            404  not_found
    ├── AuthenticationError      401
    ├── ConflictError            409  (VersionExists / VersionInProgress)
    ├── IntegrityError           422
    └── ResolutionExhaustedError 502  carries one attempt per tier
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from core.contracts import FailureReason


class IrradianceError(Exception):
    """Base class for all service errors."""

    http_status: int = 500
    reason: Optional[FailureReason] = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(IrradianceError):
    """Malformed coordinates, rows or request fields."""
    http_status = 400
    reason = FailureReason.VALIDATION_ERROR


class CoverageError(IrradianceError):
    """Coordinate lies outside a tier's coverage area."""
    http_status = 400
    reason = FailureReason.OUT_OF_COVERAGE


class UpstreamError(IrradianceError):
    """External API failed: transport error, timeout, non-2xx, malformed body."""
    http_status = 502
    reason = FailureReason.UPSTREAM_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class EmptyResultError(UpstreamError):
    """Upstream answered but carried no usable data."""
    http_status = 404
    reason = FailureReason.EMPTY_RESULT


class NotFoundError(IrradianceError):
    """Unknown dataset or version, or no active version to serve from."""
    http_status = 404
    reason = FailureReason.NOT_FOUND


class AuthenticationError(IrradianceError):
    """Missing or unknown bearer token."""
    http_status = 401


class ConflictError(IrradianceError):
    """
    Import state conflict.

    `kind` is "VersionExists", "VersionInProgress", "DatasetExists" or
    "InvalidState".
    """
    http_status = 409

    VERSION_EXISTS = "VersionExists"
    VERSION_IN_PROGRESS = "VersionInProgress"
    DATASET_EXISTS = "DatasetExists"
    INVALID_STATE = "InvalidState"

    def __init__(self, message: str, kind: str = INVALID_STATE):
        super().__init__(message)
        self.kind = kind

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "conflict": self.kind}


class IntegrityError(IrradianceError):
    """Finalize row count does not match what was stored."""
    http_status = 422

    def __init__(self, message: str, expected: Optional[int] = None,
                 actual: Optional[int] = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"error": self.message}
        if self.expected is not None:
            data["expected"] = self.expected
            data["actual"] = self.actual
        return data


@dataclass(frozen=True)
class TierAttempt:
    """Outcome of one tier during an orchestrated lookup."""
    tier: str
    reason: FailureReason
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"tier": self.tier, "reason": self.reason.value, "message": self.message}


class ResolutionExhaustedError(IrradianceError):
    """Every tier failed; carries one attempt record per tier."""
    http_status = 502

    def __init__(self, attempts: List[TierAttempt]):
        self.attempts = list(attempts)
        summary = "; ".join(
            f"{a.tier}: {a.reason.value} ({a.message})" for a in self.attempts
        )
        super().__init__(f"No irradiance source available: {summary}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "attempts": [a.to_dict() for a in self.attempts],
        }


__all__ = [
    "IrradianceError",
    "ValidationError",
    "CoverageError",
    "UpstreamError",
    "EmptyResultError",
    "NotFoundError",
    "ConflictError",
    "AuthenticationError",
    "IntegrityError",
    "TierAttempt",
    "ResolutionExhaustedError",
]
