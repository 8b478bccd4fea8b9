"""
OPD queue: token issue and visit status changes.

Tokens are unique per (department, calendar day).  The database holds
that as a unique constraint; :func:`enqueue` computes ``max + 1`` and,
if a concurrent writer took the same number first, recomputes and
retries inside a fresh savepoint.
"""
import logging
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from clinic.exceptions import ConflictError
from clinic.models import Department, OPDQueue, Patient, QueueTransition
from clinic.services import lifecycle
from clinic.services.audit import log_action
from clinic.services.filters import QueueFilter, is_set
from clinic.services.patients import create_patient
from clinic.services.realtime import notify_changed
from clinic.services.rules import next_token

logger = logging.getLogger(__name__)


def _existing_tokens(department_id: int, queue_date) -> list[int]:
    return list(
        OPDQueue.objects.filter(department_id=department_id, queue_date=queue_date)
        .values_list('token_number', flat=True)
    )


@transaction.atomic
def enqueue(current_user, *, department: Department, patient: Optional[Patient] = None,
            new_patient: Optional[dict] = None, priority: str = 'normal', symptoms: str = '',
            vitals: Optional[dict] = None, notes: str = '', doctor=None) -> OPDQueue:
    """Put a patient in today's queue of ``department`` and issue a token.

    Either an existing ``patient`` or ``new_patient`` registration data is
    required; a new registration is rolled back if no token can be issued.
    """
    if patient is None:
        if not new_patient:
            raise ValueError('patient or new patient details are required')
        patient = create_patient(current_user, **new_patient)

    now = timezone.now()
    queue_date = timezone.localdate(now)
    attempts = settings.OPD_TOKEN_MAX_ATTEMPTS
    for attempt in range(1, attempts + 1):
        token = next_token(_existing_tokens(department.id, queue_date))
        try:
            with transaction.atomic():
                entry = OPDQueue.objects.create(
                    patient=patient,
                    department=department,
                    doctor=doctor,
                    queue_date=queue_date,
                    token_number=token,
                    priority=priority,
                    status=lifecycle.INITIAL_STATES[lifecycle.OPD_QUEUE],
                    check_in_time=now,
                    symptoms=symptoms,
                    vitals=vitals or {},
                    notes=notes,
                )
        except IntegrityError:
            logger.warning('token %s taken for department %s on %s, attempt %s/%s',
                           token, department.id, queue_date, attempt, attempts)
            continue
        QueueTransition.objects.create(entry=entry, from_status=None, to_status=entry.status,
                                       operator=current_user, reason='checked in')
        log_action(user=current_user, action='opd_enqueue', object_type='opd_queue', object_id=entry.id,
                   detail={'token': token, 'departmentId': department.id})
        notify_changed('opd_queues', 'insert', entry.id)
        logger.info('issued token %s in department %s', token, department.id)
        return entry
    raise ConflictError(f'could not issue a token for department {department.id}, please retry')


def change_status(current_user, entry_id: int, new_status: str, *, reason: str = '', doctor=None) -> OPDQueue:
    """Move a visit along ``waiting -> in_consultation -> completed`` (or cancel it).

    The row is locked for the read-validate-write so concurrent operators
    cannot both apply a transition from the same state.
    """
    with transaction.atomic():
        entry = OPDQueue.objects.select_for_update().get(id=entry_id)
        old_status = entry.status
        lifecycle.ensure_transition(lifecycle.OPD_QUEUE, old_status, new_status)
        now = timezone.now()
        entry.status = new_status
        update_fields = ['status']
        if new_status == 'in_consultation':
            entry.consultation_start_time = now
            update_fields.append('consultation_start_time')
            if doctor is not None:
                entry.doctor = doctor
                update_fields.append('doctor')
        elif new_status == 'completed':
            entry.consultation_end_time = now
            update_fields.append('consultation_end_time')
        entry.save(update_fields=update_fields)
        QueueTransition.objects.create(
            entry=entry,
            from_status=old_status,
            to_status=new_status,
            operator=current_user,
            reason=reason,
        )
        notify_changed('opd_queues', 'update', entry.id)
    logger.info('opd entry %s: %s -> %s', entry.id, old_status, new_status)
    return entry


def list_queue(filters: QueueFilter):
    qs = OPDQueue.objects.select_related('patient', 'department', 'doctor').filter(queue_date=filters.day)
    if is_set(filters.department_id):
        qs = qs.filter(department_id=filters.department_id)
    if is_set(filters.status):
        qs = qs.filter(status=filters.status)
    if is_set(filters.doctor_id):
        qs = qs.filter(doctor_id=filters.doctor_id)
    return qs.order_by('department_id', 'token_number')


def queue_stats(entries) -> dict:
    counts = {status: 0 for status, _ in OPDQueue.STATUS_CHOICES}
    total = 0
    for entry in entries:
        counts[entry.status] = counts.get(entry.status, 0) + 1
        total += 1
    return {
        'total': total,
        'waiting': counts['waiting'],
        'inConsultation': counts['in_consultation'],
        'completed': counts['completed'],
        'cancelled': counts['cancelled'],
    }
