"""
ReviewDesk API Errors & Envelopes
=================================

Error type, request validation helpers, and the success / error envelopes
every review operation returns.

Envelopes:
    {"success": True,  "message": "...", "data": ..., "timestamp": "..."}
    {"success": False, "error": {"code", "message", "statusCode"}, "timestamp": "..."}
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable

from ..store import StoreError, get_path

logger = logging.getLogger(__name__)

_STORE_ERROR_MAP = {
    "NOT_FOUND": ("Document not found", 404),
    "ALREADY_EXISTS": ("Document already exists", 409),
    "INVALID_ARGUMENT": ("Invalid argument provided", 400),
    "UNAVAILABLE": ("Document store unavailable", 503),
}


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string (document timestamp format)."""
    return datetime.now(timezone.utc).isoformat()


class APIError(Exception):
    """Error carrying a machine-readable code and an HTTP status."""

    def __init__(self, message: str, code: str = "UNKNOWN_ERROR", status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"APIError(code={self.code!r}, status_code={self.status_code}, message={self.message!r})"


def handle_store_error(error: Exception) -> APIError:
    """
    Map a storage failure to an APIError.

    APIError passes through untouched; anything unknown becomes
    INTERNAL_ERROR / 500.
    """
    if isinstance(error, APIError):
        return error

    if isinstance(error, StoreError) and error.code in _STORE_ERROR_MAP:
        message, status = _STORE_ERROR_MAP[error.code]
        logger.warning(f"Store error ({error.code}): {error}")
        return APIError(message, error.code, status)

    logger.error(f"Unexpected storage error: {error!r}")
    return APIError("Internal server error", "INTERNAL_ERROR", 500)


# ============================================================================
# VALIDATION
# ============================================================================

def validate_required(data: Dict[str, Any], required_fields: Iterable[str]) -> None:
    """
    Raise VALIDATION_ERROR listing every missing field.

    Fields may be dotted paths; None, absent and "" all count as missing.
    """
    if not isinstance(data, dict):
        raise APIError("Request body must be an object", "VALIDATION_ERROR", 400)

    missing = [
        f for f in required_fields
        if get_path(data, f) is None or get_path(data, f) == ""
    ]
    if missing:
        raise APIError(f"Missing required fields: {', '.join(missing)}", "VALIDATION_ERROR", 400)


def validate_document_id(doc_id: Any) -> None:
    if not isinstance(doc_id, str) or not doc_id.strip():
        raise APIError("Invalid document ID", "VALIDATION_ERROR", 400)


# ============================================================================
# ENVELOPES
# ============================================================================

def format_response(data: Any, message: str = "Success") -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": utc_now(),
    }


def format_error(error: Exception) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {
            "code": getattr(error, "code", None) or "UNKNOWN_ERROR",
            "message": str(error) or "An unknown error occurred",
            "statusCode": getattr(error, "status_code", None) or 500,
        },
        "timestamp": utc_now(),
    }
