import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone

from clinic.models import InventoryItem, Patient, Prescription, PrescriptionItem
from clinic.services import lifecycle
from clinic.services.audit import log_action
from clinic.services.filters import PrescriptionFilter, is_set
from clinic.services.inventory import apply_stock_movement
from clinic.services.realtime import notify_changed

logger = logging.getLogger(__name__)

LINE_FIELDS = ('item', 'dosage', 'frequency', 'duration', 'quantity', 'instructions')


@transaction.atomic
def create_prescription(current_user, *, patient: Patient, doctor, lines: list[dict], diagnosis: str = '',
                        notes: str = '', follow_up_date=None, admission=None, opd_queue=None) -> Prescription:
    """Write a pending prescription with at least one line."""
    if not lines:
        raise ValueError('a prescription needs at least one item')
    for line in lines:
        if line.get('quantity', 0) <= 0:
            raise ValueError('line quantity must be positive')
    prescription = Prescription.objects.create(
        patient=patient,
        doctor=doctor,
        admission=admission,
        opd_queue=opd_queue,
        status=lifecycle.INITIAL_STATES[lifecycle.PRESCRIPTION],
        diagnosis=diagnosis,
        notes=notes,
        follow_up_date=follow_up_date,
    )
    PrescriptionItem.objects.bulk_create([
        PrescriptionItem(prescription=prescription, **{k: v for k, v in line.items() if k in LINE_FIELDS})
        for line in lines
    ])
    log_action(user=current_user, action='prescription_create', object_type='prescription',
               object_id=prescription.id, detail={'lines': len(lines)})
    notify_changed('prescriptions', 'insert', prescription.id)
    notify_changed('prescription_items', 'insert')
    return prescription


def dispense(current_user, prescription_id: int) -> Prescription:
    """Hand out every line of a pending prescription, or nothing.

    The prescription and all referenced items are locked (items in id
    order) before stock is checked, so the stock decision and the
    decrement see the same counts.
    """
    with transaction.atomic():
        prescription = Prescription.objects.select_for_update().get(id=prescription_id)
        lifecycle.ensure_transition(lifecycle.PRESCRIPTION, prescription.status, 'dispensed')
        lines = list(prescription.items.all())
        if not lines:
            raise ValueError('prescription has no items')

        item_ids = sorted({line.item_id for line in lines})
        items = {i.id: i for i in InventoryItem.objects.select_for_update().filter(id__in=item_ids).order_by('id')}

        needed: dict[int, int] = {}
        for line in lines:
            needed[line.item_id] = needed.get(line.item_id, 0) + line.quantity
        short = [
            f'{items[item_id].name} (need {qty}, have {items[item_id].current_stock})'
            for item_id, qty in needed.items()
            if items[item_id].current_stock < qty
        ]
        if short:
            raise ValueError('insufficient stock: ' + ', '.join(short))

        for line in lines:
            item = items[line.item_id]
            apply_stock_movement(
                item,
                -line.quantity,
                'dispensation',
                user=current_user,
                unit_price=item.unit_price,
                reference_id=str(prescription.id),
                reference_type='prescription',
            )

        prescription.status = 'dispensed'
        prescription.dispensed_at = timezone.now()
        prescription.dispensed_by = current_user
        prescription.save(update_fields=['status', 'dispensed_at', 'dispensed_by', 'updated_at'])
        log_action(user=current_user, action='prescription_dispense', object_type='prescription',
                   object_id=prescription.id, detail={'lines': len(lines)})
        notify_changed('prescriptions', 'update', prescription.id)
    logger.info('dispensed prescription %s (%s lines)', prescription.id, len(lines))
    return prescription


@transaction.atomic
def cancel(current_user, prescription_id: int, reason: str = '') -> Prescription:
    prescription = Prescription.objects.select_for_update().get(id=prescription_id)
    lifecycle.ensure_transition(lifecycle.PRESCRIPTION, prescription.status, 'cancelled')
    prescription.status = 'cancelled'
    prescription.save(update_fields=['status', 'updated_at'])
    log_action(user=current_user, action='prescription_cancel', object_type='prescription',
               object_id=prescription.id, detail={'reason': reason})
    notify_changed('prescriptions', 'update', prescription.id)
    return prescription


def list_prescriptions(filters: PrescriptionFilter):
    qs = Prescription.objects.select_related('patient', 'doctor').prefetch_related('items__item')
    if is_set(filters.status):
        qs = qs.filter(status=filters.status)
    if is_set(filters.patient_id):
        qs = qs.filter(patient_id=filters.patient_id)
    if is_set(filters.doctor_id):
        qs = qs.filter(doctor_id=filters.doctor_id)
    return qs.order_by('-created_at', '-id')


def get_prescription(prescription_id: int) -> Optional[Prescription]:
    return (
        Prescription.objects.select_related('patient', 'doctor', 'dispensed_by')
        .prefetch_related('items__item')
        .filter(id=prescription_id)
        .first()
    )
