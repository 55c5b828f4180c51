from django.http import JsonResponse

from apps.api.exceptions import INTERNAL_ERROR_MESSAGE
from apps.api.utils import error_payload
from apps.common import get_logger

logger = get_logger(__name__).bind(component="api", layer="handler")


def not_found(request, exception=None):
    """Django-level 404 for paths that match no route."""
    logger.info("Route not found", method=request.method, path=request.path)
    return JsonResponse(
        error_payload("NotFound", "The requested resource was not found."),
        status=404,
    )


def server_error(request):
    """Django-level 500 for failures raised outside DRF views."""
    logger.error("Unhandled server error", method=request.method, path=request.path)
    return JsonResponse(
        error_payload("InternalServerError", INTERNAL_ERROR_MESSAGE), status=500
    )
