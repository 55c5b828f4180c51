from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.serializers import as_serializer_error

DEFAULT_ERROR_STATUS = status.HTTP_400_BAD_REQUEST

ERROR_STATUS_MAP = {
    "ValidationError": status.HTTP_400_BAD_REQUEST,
    "NotFound": status.HTTP_404_NOT_FOUND,
    "MethodNotAllowed": status.HTTP_405_METHOD_NOT_ALLOWED,
    "UnsupportedMediaType": status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    "InternalServerError": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "ServiceUnavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _normalize_details(details: Any) -> Any:
    if isinstance(details, ValidationError):
        return as_serializer_error(details)
    if isinstance(details, Mapping):
        return dict(details)
    if isinstance(details, Exception):
        return {"type": details.__class__.__name__}
    return details


def success_payload(data: Any, *, timestamp: Optional[str] = None) -> Dict[str, Any]:
    return {
        "success": True,
        "data": data,
        "metadata": {"timestamp": timestamp or utc_timestamp()},
    }


def error_payload(
    code: str,
    message: str,
    details: Optional[Any] = None,
    *,
    timestamp: Optional[str] = None,
) -> Dict[str, Any]:
    if not isinstance(code, str):
        raise TypeError("error_payload requires code to be a string")
    if not isinstance(message, str):
        raise TypeError("error_payload requires message to be a string")

    code = code.strip()
    message = message.strip()

    if not code:
        raise ValueError("error_payload requires a non-empty code")
    if not message:
        raise ValueError("error_payload requires a non-empty message")

    error: Dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = _normalize_details(details)
    return {
        "success": False,
        "error": error,
        "timestamp": timestamp or utc_timestamp(),
    }


def success_response(
    data: Any,
    http_status: int = status.HTTP_200_OK,
    *,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    """Wrap ``data`` in the success envelope."""
    return Response(success_payload(data), status=http_status, headers=headers)


def error_response(
    code: str,
    message: str,
    details: Optional[Any] = None,
    http_status: Optional[int] = None,
    *,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    """
    Return a consistently structured error response for API endpoints.

    Args:
        code: Machine-readable error identifier, e.g. ``ValidationError``.
        message: Human-readable explanation of the error.
        details: Optional context, e.g. per-field validation errors.
        http_status: Explicit HTTP status code to override the default mapping.
        headers: Optional response headers to include alongside the payload.
    """
    payload = error_payload(code, message, details)
    status_code = (
        int(http_status)
        if http_status is not None
        else ERROR_STATUS_MAP.get(payload["error"]["code"], DEFAULT_ERROR_STATUS)
    )

    if headers is not None and not isinstance(headers, Mapping):
        raise TypeError("error_response headers must be a mapping if provided")
    if not 100 <= status_code <= 599:
        raise ValueError("error_response status must be a valid HTTP status code")

    headers_dict = (
        {str(key): str(value) for key, value in headers.items()} if headers else None
    )

    return Response(payload, status=status_code, headers=headers_dict)
