from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import (
    MethodNotAllowed,
    NotFound,
    ParseError,
    UnsupportedMediaType,
    ValidationError,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from apps.api.utils import error_response
from apps.common import get_logger

logger = get_logger(__name__).bind(component="api", layer="exception")

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred."

STATUS_CODE_DEFAULTS: Dict[int, Tuple[str, str]] = {
    status.HTTP_400_BAD_REQUEST: ("ValidationError", "Invalid request."),
    status.HTTP_404_NOT_FOUND: ("NotFound", "The requested resource was not found."),
    status.HTTP_405_METHOD_NOT_ALLOWED: ("MethodNotAllowed", "Method not allowed."),
    status.HTTP_406_NOT_ACCEPTABLE: ("NotAcceptable", "Not acceptable."),
    status.HTTP_415_UNSUPPORTED_MEDIA_TYPE: (
        "UnsupportedMediaType",
        "Unsupported media type.",
    ),
    status.HTTP_500_INTERNAL_SERVER_ERROR: (
        "InternalServerError",
        INTERNAL_ERROR_MESSAGE,
    ),
    status.HTTP_503_SERVICE_UNAVAILABLE: (
        "ServiceUnavailable",
        "Service temporarily unavailable.",
    ),
}


class ApplicationError(Exception):
    """
    Domain-level application error meant to be raised from services or views.

    Args:
        code: Machine readable error code, e.g. ``NotFound``.
        message: Human readable explanation of the error.
        status_code: Optional explicit HTTP status. If omitted, code mapping is used.
        details: Optional structured details for clients.
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details

    def to_response(self) -> Response:
        return error_response(
            self.code,
            self.message,
            self.details,
            http_status=self.status_code,
        )


def global_exception_handler(exc: Exception, context: Dict[str, Any]) -> Response:
    """
    Central exception handler for DRF views returning the error envelope.

    Anything that is not a known API error is logged with its stack and
    answered with a generic 500 that carries no details.
    """

    bound_logger = _bind_logger(context)

    if isinstance(exc, ApplicationError):
        bound_logger.info(
            "Handled application error",
            code=exc.code,
            status=exc.status_code,
        )
        return exc.to_response()

    response = drf_exception_handler(exc, context)
    if response is not None:
        return _from_drf_exception(exc, response, bound_logger)

    bound_logger.exception(
        "An unexpected error occurred",
        error=str(exc),
        exception=exc.__class__.__name__,
    )
    return error_response(
        "InternalServerError",
        INTERNAL_ERROR_MESSAGE,
        http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def _bind_logger(context: Dict[str, Any]):
    log = logger
    view = context.get("view")
    request = context.get("request")
    if view:
        view_name = getattr(view, "__class__", type(view)).__name__
        log = log.bind(view=view_name)
    if request is not None:
        log = log.bind(
            method=getattr(request, "method", None),
            path=getattr(request, "path", None),
        )
    return log


def _from_drf_exception(
    exc: Exception, response: Response, bound_logger
) -> Response:
    status_code = response.status_code
    payload = response.data
    code, message, details = _normalize_payload(exc, payload, status_code)
    headers = dict(response.headers) if getattr(response, "headers", None) else None
    if headers:
        headers.pop("Content-Type", None)

    if status_code >= 500:
        bound_logger.error(
            "Converted server error",
            code=code,
            status=status_code,
        )
    else:
        bound_logger.info("Converted API exception", code=code, status=status_code)

    return error_response(
        code,
        message,
        details,
        http_status=status_code,
        headers=headers,
    )


def _normalize_payload(
    exc: Exception,
    payload: Any,
    status_code: int,
) -> Tuple[str, str, Optional[Any]]:
    if isinstance(exc, ValidationError):
        return ("ValidationError", "Invalid request.", payload)
    if isinstance(exc, ParseError):
        return (
            "ValidationError",
            _extract_message(payload, "Malformed request.", status_code),
            None,
        )
    if isinstance(exc, (NotFound, Http404)):
        return (
            "NotFound",
            _extract_message(payload, "The requested resource was not found.", status_code),
            None,
        )
    if isinstance(exc, MethodNotAllowed):
        return (
            "MethodNotAllowed",
            _extract_message(payload, "Method not allowed.", status_code),
            None,
        )
    if isinstance(exc, UnsupportedMediaType):
        return (
            "UnsupportedMediaType",
            _extract_message(payload, "Unsupported media type.", status_code),
            None,
        )

    code, default_message = STATUS_CODE_DEFAULTS.get(
        status_code,
        (
            "InternalServerError" if status_code >= 500 else "RequestFailed",
            INTERNAL_ERROR_MESSAGE if status_code >= 500 else "Request failed.",
        ),
    )
    details = payload if _include_details(status_code, payload) else None
    message = _extract_message(payload, default_message, status_code)
    return code, message, details


def _include_details(status_code: int, payload: Any) -> bool:
    if status_code >= 500:
        return False
    return isinstance(payload, (dict, list)) and payload not in (None, {})


def _extract_message(payload: Any, fallback: str, status_code: int) -> str:
    if status_code >= 500:
        return INTERNAL_ERROR_MESSAGE
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict):
        detail = payload.get("detail")
        if isinstance(detail, str):
            return detail
    if isinstance(payload, list) and payload and isinstance(payload[0], str):
        return payload[0]
    return fallback


__all__ = ["ApplicationError", "global_exception_handler"]
