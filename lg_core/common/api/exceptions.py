# lg_core/common/api/exceptions.py

from __future__ import annotations

import logging
import uuid
from typing import Any

from django.db import DatabaseError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, NotAuthenticated, PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


def ensure_request_id(request) -> str:
    """
    Ensures request has a stable request_id attribute and returns it.
    Safe to call from middleware and DRF exception handler.
    """
    rid = getattr(request, "request_id", None) if request is not None else None
    if not rid:
        rid = uuid.uuid4().hex
        if request is not None:
            setattr(request, "request_id", rid)
    return rid


def build_error_envelope(*, request=None, code: str, message: str, details: Any = None) -> dict[str, Any]:
    """
    Canonical error envelope.
    Reusable from Django views (JsonResponse) and DRF (Response).
    """
    rid = ensure_request_id(request)
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": rid,
        }
    }


class ConflictError(APIException):
    """
    409 Conflict that still flows through the global exception handler.
    Use when business rules block an action (e.g. invitation already consumed).
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict."
    default_code = "conflict"

    def __init__(self, detail=None, code=None):
        super().__init__(detail=detail or self.default_detail, code=code or self.default_code)


class NotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class StorageError(APIException):
    """
    The backing store rejected a read/write on a path where that is fatal
    (lead persistence, membership mutation).
    """
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Storage operation failed."
    default_code = "storage_error"


class UnsupportedOperationError(APIException):
    """
    Raised when the backing schema lacks a column an operation needs.
    Never fall back to process-local state instead.
    """
    status_code = status.HTTP_501_NOT_IMPLEMENTED
    default_detail = "Operation not supported by the current schema."
    default_code = "unsupported_operation"


def _code_for(exc: Exception, http_status: int) -> str:
    if isinstance(exc, ValidationError):
        return "validation_error"
    if isinstance(exc, NotAuthenticated):
        return "not_authenticated"
    if isinstance(exc, PermissionDenied):
        return "permission_denied"
    if isinstance(exc, Http404):
        return "not_found"
    if isinstance(exc, APIException):
        return getattr(exc, "default_code", "api_error") or "api_error"
    if http_status >= 500:
        return "server_error"
    return "error"


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")
    response = drf_exception_handler(exc, context)

    if response is None and isinstance(exc, DatabaseError):
        # store errors that escaped a service boundary
        logger.error("Unhandled storage error request_id=%s", ensure_request_id(request), exc_info=exc)
        return Response(
            build_error_envelope(
                request=request,
                code=StorageError.default_code,
                message=str(StorageError.default_detail),
                details=None,
            ),
            status=StorageError.status_code,
        )

    # Truly unhandled error
    if response is None:
        logger.error("Unhandled API error request_id=%s", ensure_request_id(request), exc_info=exc)
        return Response(
            build_error_envelope(
                request=request,
                code="server_error",
                message="Unexpected server error.",
                details=None,
            ),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    http_status = response.status_code
    code = _code_for(exc, http_status)

    data = response.data

    # Message + details rules:
    # 1) {"detail": "..."} -> message=detail, details=None
    # 2) {"detail": "...", ...} -> message=detail, details={...without detail}
    # 3) otherwise -> message="Request failed.", details=data
    message = "Request failed."
    details = data

    if isinstance(data, dict) and "detail" in data:
        message = str(data.get("detail"))
        rest = {k: v for k, v in data.items() if k != "detail"}
        details = rest or None

    return Response(
        build_error_envelope(
            request=request,
            code=code,
            message=message,
            details=details,
        ),
        status=http_status,
        headers=response.headers,
    )
