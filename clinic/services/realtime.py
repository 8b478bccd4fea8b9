"""
Change notifications for the dashboard's live screens.

Every committed write publishes a small "table changed" event on the
channel group of that table.  Events carry no row data: subscribers
treat them as invalidation hints and re-fetch, so duplicates or
reordering are harmless.
"""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.cache import cache
from django.db import transaction
from django.utils import timezone

logger = logging.getLogger(__name__)

TABLES = frozenset({
    'patients',
    'departments',
    'beds',
    'opd_queues',
    'admissions',
    'inventory_items',
    'inventory_categories',
    'inventory_batches',
    'inventory_transactions',
    'prescriptions',
    'prescription_items',
    'profiles',
    'appointments',
})

UPDATES_GROUP = 'updates'

# Tables whose rows feed the cached dashboard summary.
SUMMARY_TABLES = frozenset({'patients', 'beds', 'opd_queues', 'admissions', 'inventory_items'})


def group_for(table: str) -> str:
    return f'table.{table}'


def _send(table: str, event: str, object_id) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    payload = {
        'type': 'table.changed',
        'table': table,
        'event': event,
        'id': object_id,
        'ts': timezone.now().isoformat(),
    }
    try:
        async_to_sync(channel_layer.group_send)(group_for(table), payload)
    except Exception:
        # Best effort: the write has already committed.
        logger.exception('failed to publish change for %s', table)


def _committed(table: str, event: str, object_id) -> None:
    if table in SUMMARY_TABLES:
        from clinic.services.dashboard import summary_cache_key
        cache.delete(summary_cache_key(timezone.localdate()))
    _send(table, event, object_id)


def notify_changed(table: str, event: str = 'update', object_id=None) -> None:
    """Publish ``table`` changed once the surrounding transaction commits."""
    if table not in TABLES:
        raise ValueError(f'unknown table {table}')
    transaction.on_commit(lambda: _committed(table, event, object_id))


def broadcast_refresh(keys: list[str]) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    now = timezone.now()
    event = {'type': 'broadcast.refresh', 'version': int(now.timestamp()), 'ts': now.isoformat(), 'keys': keys[:50]}
    async_to_sync(channel_layer.group_send)(UPDATES_GROUP, event)
