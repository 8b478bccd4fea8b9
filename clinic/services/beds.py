import logging
from typing import Optional

from django.db import IntegrityError, transaction

from clinic.exceptions import ConflictError
from clinic.models import Admission, Bed, Department
from clinic.services import lifecycle
from clinic.services.audit import log_action
from clinic.services.filters import BedFilter, is_set
from clinic.services.realtime import notify_changed
from clinic.services.rules import occupancy_rate

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('bed_number', 'department', 'bed_type', 'floor_number', 'room_number', 'status')


def _has_active_admission(bed_id: int) -> bool:
    return Admission.objects.filter(bed_id=bed_id, status=Admission.STATUS_ADMITTED).exists()


def create_bed(current_user, *, bed_number: str, department: Department, bed_type: str = 'general',
               status: str = Bed.STATUS_AVAILABLE, floor_number: Optional[int] = None,
               room_number: str = '') -> Bed:
    lifecycle.validate_bed_status_change(Bed.STATUS_AVAILABLE, status, has_active_admission=False)
    try:
        with transaction.atomic():
            bed = Bed.objects.create(
                bed_number=bed_number,
                department=department,
                bed_type=bed_type,
                status=status,
                floor_number=floor_number,
                room_number=room_number,
            )
    except IntegrityError:
        raise ConflictError(f'bed number {bed_number} already exists')
    log_action(user=current_user, action='bed_create', object_type='bed', object_id=bed.id)
    notify_changed('beds', 'insert', bed.id)
    return bed


def bulk_bed_numbers(count: int, starting_number: int, prefix: str = '') -> list[tuple[str, str]]:
    """Return ``(bed_number, room_number)`` pairs such as ``("W-101", "R101")``."""
    pairs = []
    for n in range(starting_number, starting_number + count):
        bed_number = f'{prefix}-{n}' if prefix else str(n)
        pairs.append((bed_number, f'R{n}'))
    return pairs


def bulk_create_beds(current_user, *, department: Department, count: int, starting_number: int,
                     prefix: str = '', bed_type: str = 'general', floor_number: Optional[int] = None) -> list[Bed]:
    """Create ``count`` consecutively numbered beds; one duplicate aborts all."""
    beds = [
        Bed(
            bed_number=bed_number,
            department=department,
            bed_type=bed_type,
            floor_number=floor_number,
            room_number=room_number,
            status=Bed.STATUS_AVAILABLE,
        )
        for bed_number, room_number in bulk_bed_numbers(count, starting_number, prefix)
    ]
    numbers = [b.bed_number for b in beds]
    try:
        with transaction.atomic():
            taken = list(Bed.objects.filter(bed_number__in=numbers).values_list('bed_number', flat=True))
            if taken:
                raise ConflictError(f'bed numbers already exist: {", ".join(sorted(taken))}')
            for bed in beds:
                bed.save()
    except IntegrityError:
        raise ConflictError('some bed numbers already exist')
    log_action(user=current_user, action='bed_bulk_create', object_type='bed', object_id=None,
               detail={'count': len(beds), 'departmentId': department.id})
    notify_changed('beds', 'insert')
    logger.info('created %s beds in department %s', len(beds), department.id)
    return beds


def update_bed(current_user, bed_id: int, **fields) -> Bed:
    """Edit a bed.  Status edits may not break the bed/admission coupling."""
    try:
        with transaction.atomic():
            bed = Bed.objects.select_for_update().get(id=bed_id)
            if 'status' in fields:
                lifecycle.validate_bed_status_change(bed.status, fields['status'],
                                                     has_active_admission=_has_active_admission(bed.id))
            if 'department' in fields and fields['department'].id != bed.department_id and _has_active_admission(bed.id):
                raise ConflictError('cannot move an occupied bed to another department')
            changed = []
            for field in EDITABLE_FIELDS:
                if field in fields:
                    setattr(bed, field, fields[field])
                    changed.append(field)
            if changed:
                bed.save(update_fields=changed + ['updated_at'])
    except IntegrityError:
        raise ConflictError(f'bed number {fields.get("bed_number")} already exists')
    if changed:
        log_action(user=current_user, action='bed_update', object_type='bed', object_id=bed.id,
                   detail={'fields': changed})
        notify_changed('beds', 'update', bed.id)
    return bed


@transaction.atomic
def delete_bed(current_user, bed_id: int) -> None:
    bed = Bed.objects.select_for_update().get(id=bed_id)
    if bed.status == Bed.STATUS_OCCUPIED or _has_active_admission(bed.id):
        raise ConflictError('an occupied bed cannot be deleted')
    bed.delete()
    log_action(user=current_user, action='bed_delete', object_type='bed', object_id=bed_id)
    notify_changed('beds', 'delete', bed_id)


def list_beds(filters: BedFilter):
    qs = Bed.objects.select_related('department')
    if is_set(filters.department_id):
        qs = qs.filter(department_id=filters.department_id)
    if is_set(filters.status):
        qs = qs.filter(status=filters.status)
    if is_set(filters.bed_type):
        qs = qs.filter(bed_type=filters.bed_type)
    return qs.order_by('bed_number')


def available_beds(department_id: int):
    return Bed.objects.filter(department_id=department_id, status=Bed.STATUS_AVAILABLE).order_by('bed_number')


def bed_stats(beds) -> dict:
    counts = {status: 0 for status, _ in Bed.STATUS_CHOICES}
    by_type = {bed_type: 0 for bed_type, _ in Bed.TYPE_CHOICES}
    total = 0
    for bed in beds:
        counts[bed.status] = counts.get(bed.status, 0) + 1
        by_type[bed.bed_type] = by_type.get(bed.bed_type, 0) + 1
        total += 1
    return {
        'total': total,
        'available': counts[Bed.STATUS_AVAILABLE],
        'occupied': counts[Bed.STATUS_OCCUPIED],
        'maintenance': counts[Bed.STATUS_MAINTENANCE],
        'reserved': counts[Bed.STATUS_RESERVED],
        'byType': by_type,
        'occupancyRate': occupancy_rate(counts[Bed.STATUS_OCCUPIED], total),
    }
