"""
Error Taxonomy

Structured errors raised by the three pipeline stages and mapped to
responses by handlers.py.

- ValidationError: malformed, missing or out-of-range input (400)
- NotFoundError: referenced scenario or entity absent (404)
- UpstreamUnavailable: narrative service failure, recovered by fallback (503)
- InternalError: unexpected exception, reported with a correlation id (500)
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Stable, searchable error codes."""
    VALIDATION_FAILED = "VALIDATION_001"
    VALIDATION_MISSING_FIELD = "VALIDATION_002"
    NOT_FOUND = "NOT_FOUND_001"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_001"
    UPSTREAM_INVALID_RESPONSE = "UPSTREAM_002"
    INTERNAL_ERROR = "SYSTEM_001"


HTTP_STATUS_MAP: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_FAILED: 400,
    ErrorCode.VALIDATION_MISSING_FIELD: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.UPSTREAM_UNAVAILABLE: 503,
    ErrorCode.UPSTREAM_INVALID_RESPONSE: 502,
    ErrorCode.INTERNAL_ERROR: 500,
}


class PipelineError(Exception):
    """
    Base exception with structured error information.

    Attributes:
        code: ErrorCode value
        message: Human-readable message
        details: Extra context for the response body
        http_status: Status code used at the transport boundary
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        http_status: Optional[int] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.http_status = http_status or HTTP_STATUS_MAP.get(code, 500)
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "code": self.code.value,
            "details": self.details,
        }


class ValidationError(PipelineError):
    """Input rejected before any external call is made."""

    def __init__(self, field: str, message: str, missing: bool = False):
        code = ErrorCode.VALIDATION_MISSING_FIELD if missing else ErrorCode.VALIDATION_FAILED
        super().__init__(code, message, details={"field": field})
        self.field = field


class NotFoundError(PipelineError):
    """A scenario or other entity referenced by id does not exist."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            ErrorCode.NOT_FOUND,
            f"{entity} not found",
            details={"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class UpstreamUnavailable(PipelineError):
    """The narrative service failed or returned nothing usable."""

    def __init__(self, message: str, invalid_response: bool = False):
        code = (ErrorCode.UPSTREAM_INVALID_RESPONSE if invalid_response
                else ErrorCode.UPSTREAM_UNAVAILABLE)
        super().__init__(code, message)


class InternalError(PipelineError):
    """
    Wraps an unexpected exception.

    The public message is always generic; the original exception text is kept
    only as a best-effort diagnostic.
    """

    def __init__(self, correlation_id: str, diagnostic: Optional[str] = None):
        super().__init__(
            ErrorCode.INTERNAL_ERROR,
            "Internal server error",
            details={"correlationId": correlation_id},
        )
        self.correlation_id = correlation_id
        self.diagnostic = diagnostic

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["message"] = self.diagnostic or "Unknown error"
        return body
