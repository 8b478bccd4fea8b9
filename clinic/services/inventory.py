"""
Inventory items, batches and stock movements.

``InventoryItem.current_stock`` is the authoritative on-hand count.  Every
write that moves stock locks the item row, applies the signed delta and
records an :class:`~clinic.models.InventoryTransaction` in the same
transaction, so the counter always equals the sum of the transactions.
"""
import logging
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from clinic.exceptions import ConflictError
from clinic.models import InventoryBatch, InventoryCategory, InventoryItem, InventoryTransaction
from clinic.services.audit import log_action
from clinic.services.filters import InventoryFilter, is_set
from clinic.services.realtime import notify_changed
from clinic.services.rules import is_expiring_soon, stock_status

logger = logging.getLogger(__name__)

ITEM_FIELDS = (
    'name', 'category', 'item_type', 'description', 'unit', 'manufacturer',
    'minimum_stock', 'maximum_stock', 'unit_price', 'expiry_alert_days',
)

# Sign applied to the quantity an operator enters for each movement type.
# Adjustments carry their own sign.
MOVEMENT_SIGNS = {
    'purchase': 1,
    'return': 1,
    'wastage': -1,
    'dispensation': -1,
}
MANUAL_TYPES = ('adjustment', 'return', 'wastage')


def apply_stock_movement(item: InventoryItem, delta: int, transaction_type: str, *, user=None, batch=None,
                         unit_price=None, reference_id: str = '', reference_type: str = '',
                         notes: str = '') -> InventoryTransaction:
    """Move ``item`` stock by ``delta`` and record it.

    ``item`` must already be locked by the caller (``select_for_update``)
    inside an open transaction.
    """
    new_stock = item.current_stock + delta
    if new_stock < 0:
        raise ValueError(f'insufficient stock for {item.name}: {item.current_stock} on hand, {-delta} requested')
    item.current_stock = new_stock
    item.save(update_fields=['current_stock', 'updated_at'])
    tx = InventoryTransaction.objects.create(
        item=item,
        batch=batch,
        transaction_type=transaction_type,
        quantity=delta,
        unit_price=unit_price,
        reference_id=reference_id,
        reference_type=reference_type,
        performed_by=user,
        notes=notes,
    )
    notify_changed('inventory_transactions', 'insert', tx.id)
    notify_changed('inventory_items', 'update', item.id)
    return tx


def _create_batch(item: InventoryItem, *, batch_number: str, quantity: int, expiry_date=None,
                  manufacturing_date=None, purchase_price: Optional[Decimal] = None, supplier: str = '') -> InventoryBatch:
    if quantity <= 0:
        raise ValueError('batch quantity must be positive')
    try:
        with transaction.atomic():
            batch = InventoryBatch.objects.create(
                item=item,
                batch_number=batch_number,
                quantity=quantity,
                expiry_date=expiry_date,
                manufacturing_date=manufacturing_date,
                purchase_price=purchase_price,
                supplier=supplier,
            )
    except IntegrityError:
        raise ConflictError(f'batch {batch_number} already exists for {item.name}')
    notify_changed('inventory_batches', 'insert', batch.id)
    return batch


@transaction.atomic
def create_item(current_user, *, initial_batch: Optional[dict] = None, **fields) -> InventoryItem:
    """Create an item, optionally receiving its first batch as a purchase."""
    data = {k: v for k, v in fields.items() if k in ITEM_FIELDS}
    data.setdefault('expiry_alert_days', settings.DEFAULT_EXPIRY_ALERT_DAYS)
    item = InventoryItem.objects.create(current_stock=0, **data)
    notify_changed('inventory_items', 'insert', item.id)
    if initial_batch:
        item = InventoryItem.objects.select_for_update().get(id=item.id)
        batch = _create_batch(item, **initial_batch)
        apply_stock_movement(item, batch.quantity, 'purchase', user=current_user, batch=batch,
                             unit_price=batch.purchase_price, notes='initial stock')
    log_action(user=current_user, action='inventory_item_create', object_type='inventory_item', object_id=item.id)
    return item


@transaction.atomic
def update_item(current_user, item_id: int, **fields) -> InventoryItem:
    item = InventoryItem.objects.select_for_update().get(id=item_id)
    changed = []
    for field in ITEM_FIELDS:
        if field in fields:
            setattr(item, field, fields[field])
            changed.append(field)
    if changed:
        item.save(update_fields=changed + ['updated_at'])
        log_action(user=current_user, action='inventory_item_update', object_type='inventory_item',
                   object_id=item.id, detail={'fields': changed})
        notify_changed('inventory_items', 'update', item.id)
    return item


@transaction.atomic
def receive_batch(current_user, item_id: int, **batch_fields) -> InventoryBatch:
    item = InventoryItem.objects.select_for_update().get(id=item_id)
    batch = _create_batch(item, **batch_fields)
    apply_stock_movement(item, batch.quantity, 'purchase', user=current_user, batch=batch,
                         unit_price=batch.purchase_price, reference_type='batch', reference_id=str(batch.id))
    log_action(user=current_user, action='inventory_batch_receive', object_type='inventory_batch',
               object_id=batch.id, detail={'itemId': item.id, 'quantity': batch.quantity})
    logger.info('received batch %s of item %s (+%s)', batch.batch_number, item.id, batch.quantity)
    return batch


def movement_delta(transaction_type: str, quantity: int) -> int:
    """Signed stock change for an operator-entered movement."""
    if transaction_type == 'adjustment':
        if quantity == 0:
            raise ValueError('adjustment quantity cannot be zero')
        return quantity
    if quantity <= 0:
        raise ValueError(f'{transaction_type} quantity must be positive')
    return MOVEMENT_SIGNS[transaction_type] * quantity


@transaction.atomic
def record_movement(current_user, item_id: int, *, transaction_type: str, quantity: int, notes: str = '',
                    batch_id: Optional[int] = None) -> InventoryTransaction:
    """Record an adjustment, return or wastage against an item."""
    if transaction_type not in MANUAL_TYPES:
        raise ValueError(f'{transaction_type} cannot be recorded manually')
    item = InventoryItem.objects.select_for_update().get(id=item_id)
    batch = None
    if batch_id is not None:
        batch = InventoryBatch.objects.get(id=batch_id, item=item)
    delta = movement_delta(transaction_type, quantity)
    tx = apply_stock_movement(item, delta, transaction_type, user=current_user, batch=batch, notes=notes)
    log_action(user=current_user, action='inventory_movement', object_type='inventory_item', object_id=item.id,
               detail={'type': transaction_type, 'quantity': delta})
    return tx


def list_items(filters: InventoryFilter) -> list[InventoryItem]:
    """Items matching ``filters``; stock status is derived, so that filter runs in Python."""
    qs = InventoryItem.objects.select_related('category')
    if is_set(filters.category_id):
        qs = qs.filter(category_id=filters.category_id)
    if is_set(filters.item_type):
        qs = qs.filter(item_type=filters.item_type)
    if filters.q:
        qs = qs.filter(Q(name__icontains=filters.q) | Q(manufacturer__icontains=filters.q))
    items = list(qs.order_by('name', 'id'))
    if is_set(filters.stock):
        items = [i for i in items if stock_status(i.current_stock, i.minimum_stock) == filters.stock]
    return items


def critical_items_count() -> int:
    return sum(
        1 for current, minimum in InventoryItem.objects.values_list('current_stock', 'minimum_stock')
        if stock_status(current, minimum) == 'critical'
    )


def expiring_batches(now=None) -> list[InventoryBatch]:
    """Active batches inside their item's expiry alert window, soonest first."""
    now = now or timezone.now()
    today = timezone.localtime(now).date()
    # Widest window any item uses bounds the query; each row is then checked against its own item.
    horizon = max(InventoryItem.objects.values_list('expiry_alert_days', flat=True), default=0)
    qs = (
        InventoryBatch.objects.select_related('item')
        .filter(status='active', expiry_date__isnull=False, expiry_date__gte=today,
                expiry_date__lte=today + timedelta(days=horizon))
        .order_by('expiry_date', 'id')
    )
    return [b for b in qs if is_expiring_soon(b.expiry_date, b.item.expiry_alert_days, now=now)]


@transaction.atomic
def expire_batches(now=None) -> int:
    """Mark active batches past their expiry date as ``expired``."""
    now = now or timezone.now()
    today = timezone.localtime(now).date()
    ids = list(
        InventoryBatch.objects.select_for_update()
        .filter(status='active', expiry_date__lt=today)
        .values_list('id', flat=True)
    )
    if ids:
        InventoryBatch.objects.filter(id__in=ids).update(status='expired')
        notify_changed('inventory_batches', 'update')
        logger.info('marked %s batches expired', len(ids))
    return len(ids)


def list_transactions(item_id: Optional[int] = None, limit: int = 100):
    qs = InventoryTransaction.objects.select_related('item', 'batch', 'performed_by')
    if item_id is not None:
        qs = qs.filter(item_id=item_id)
    return qs.order_by('-created_at', '-id')[:limit]


def create_category(current_user, *, name: str, description: str = '') -> InventoryCategory:
    try:
        with transaction.atomic():
            category = InventoryCategory.objects.create(name=name, description=description)
    except IntegrityError:
        raise ConflictError(f'category {name} already exists')
    log_action(user=current_user, action='category_create', object_type='inventory_category', object_id=category.id)
    notify_changed('inventory_categories', 'insert', category.id)
    return category


@transaction.atomic
def update_category(current_user, category: InventoryCategory, **fields) -> InventoryCategory:
    changed = [f for f in ('name', 'description') if f in fields]
    for field in changed:
        setattr(category, field, fields[field])
    if changed:
        category.save(update_fields=changed)
        notify_changed('inventory_categories', 'update', category.id)
    return category


@transaction.atomic
def delete_category(current_user, category: InventoryCategory) -> None:
    cid = category.id
    category.delete()
    log_action(user=current_user, action='category_delete', object_type='inventory_category', object_id=cid)
    notify_changed('inventory_categories', 'delete', cid)
