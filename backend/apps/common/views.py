from django.db import DatabaseError
from django.http import JsonResponse

from apps.api.utils import error_payload, success_payload
from .database import get_default_pool
from .logger import get_logger

logger = get_logger(__name__).bind(component='common', layer='health')


def _db_check(pool=None):
    pool = pool or get_default_pool()
    try:
        latency = pool.ping()
        logger.debug('Database health check succeeded', alias=pool.alias, latency_ms=latency)
        return {'status': 'ok', 'latency_ms': latency}
    except DatabaseError as e:
        # Driver text can carry host and login details; it stays in the log.
        logger.warning('Database health check encountered operational error', alias=pool.alias, error=str(e))
        return {'status': 'fail'}


def live_health(request):
    """Liveness probe: process is up and can service requests."""
    logger.debug('Liveness probe served')
    return JsonResponse(success_payload({'status': 'ok'}))


def ready_health(request):
    """Readiness probe: verifies the catalog database answers."""
    checks = {'database': _db_check()}
    failing = [name for name, r in checks.items() if r.get('status') == 'fail']
    logger.info('Readiness probe evaluated', failing_components=failing)
    if failing:
        return JsonResponse(
            error_payload('ServiceUnavailable', 'A dependency is not ready.', {'checks': checks}),
            status=503,
        )
    return JsonResponse(success_payload({'status': 'ok', 'checks': checks}))
