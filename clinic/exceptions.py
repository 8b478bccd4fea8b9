"""
Domain errors and the unified API exception handler.

Services raise :class:`TransitionError` for lifecycle violations and
:class:`ConflictError` when a write collides with existing rows.  The
handler turns every failure into ``{"ok": false, "error": {...}}`` so
the client can always render a recoverable error state.
"""
import logging

from django.db import IntegrityError
from django.db.models import ProtectedError
from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class TransitionError(ValueError):
    """Requested status change is not an edge of the entity's lifecycle."""

    def __init__(self, machine: str, current: str, new: str):
        self.machine = machine
        self.current = current
        self.new = new
        super().__init__(f'{machine}: cannot move from {current} to {new}')


class ConflictError(Exception):
    """A write lost against a uniqueness rule or a concurrent change."""


def _error(code: str, message, status: int) -> Response:
    return Response({'ok': False, 'error': {'code': code, 'message': message}}, status=status)


def api_exception_handler(exc, context):
    if isinstance(exc, TransitionError):
        return _error('invalid_transition', str(exc), 400)
    if isinstance(exc, ConflictError):
        return _error('conflict', str(exc), 409)
    if isinstance(exc, ProtectedError):
        return _error('conflict', 'record is referenced by other records and cannot be deleted', 409)
    if isinstance(exc, IntegrityError):
        logger.warning('integrity error: %s', exc)
        return _error('conflict', 'record conflicts with existing data', 409)
    if isinstance(exc, PermissionError):
        return _error('forbidden', str(exc), 403)
    if isinstance(exc, ValueError):
        return _error('invalid', str(exc), 400)

    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled error in %s', context.get('view'))
        return _error('server_error', str(exc), 500)
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = str(resp.data)
    return Response({'ok': False, 'error': {'code': 'api_error', 'message': detail}}, status=resp.status_code)
