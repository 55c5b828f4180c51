from typing import Any, Optional

from django.conf import settings
from django.http import HttpRequest

from apps.api.utils import error_response
from apps.common import get_logger

logger = get_logger(__name__).bind(component="api", layer="validation")

ACCOUNT_HEADER = "X-Account-Id"


def _default_account_id() -> int:
    return int(getattr(settings, "DEFAULT_ACCOUNT_ID", 1))


def _parse_account_id(raw: Any) -> Optional[int]:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def resolve_account_id(request: HttpRequest) -> Any:
    """
    Work out which catalog account the request reads from.

    Returns the account id, or a DRF error Response when the header is
    present but is not a positive integer.
    """
    headers = getattr(request, "headers", None) or {}
    raw = headers.get(ACCOUNT_HEADER)
    if raw is None or str(raw).strip() == "":
        account_id = _default_account_id()
        logger.debug("No account header; using default account", account_id=account_id)
        return account_id
    account_id = _parse_account_id(raw)
    if account_id is None:
        logger.warning("Invalid account header", value=raw)
        return error_response(
            "ValidationError",
            "Invalid account identifier.",
            {"accountId": ["Account ID must be a positive integer."]},
        )
    return account_id


def validate_request_context(request: HttpRequest, view_class, view_kwargs) -> Any:
    """
    Performs request level validation for catalog API views.
    Returns a DRF Response when validation fails; otherwise None and
    attaches ``account_id`` to the request instance.
    """
    view_name = getattr(view_class, "__name__", "")

    logger.debug(
        "Running request context validation",
        view=view_name,
        method=getattr(request, "method", None),
    )

    if not getattr(view_class, "requires_account", False):
        return None

    resolved = resolve_account_id(request)
    if not isinstance(resolved, int):
        return resolved
    request.account_id = resolved
    return None


def get_account_id(request: HttpRequest) -> int:
    """Account id attached by the middleware, or the configured default."""
    account_id = getattr(request, "account_id", None)
    return account_id if account_id is not None else _default_account_id()
