"""
Appointment booking.

A doctor cannot hold two active appointments whose time ranges overlap
on the same date.  Every booking or rescheduling locks the doctor's
profile row before checking, so bookings for one doctor run one at a
time even when the doctor has no appointment that day yet.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import transaction

from clinic.exceptions import ConflictError
from clinic.models import Appointment
from clinic.services import lifecycle
from clinic.services.audit import log_action
from clinic.services.filters import AppointmentFilter, is_set
from clinic.services.realtime import notify_changed

logger = logging.getLogger(__name__)

User = get_user_model()

EDITABLE_FIELDS = (
    'patient', 'doctor', 'department', 'appointment_date', 'appointment_time',
    'duration_minutes', 'appointment_type', 'reason', 'notes',
)
MIN_DURATION = 15
MAX_DURATION = 120


def _span(day: date, start: time, minutes: int) -> tuple[datetime, datetime]:
    begin = datetime.combine(day, start)
    return begin, begin + timedelta(minutes=minutes)


def overlaps(a_start: time, a_minutes: int, b_start: time, b_minutes: int, day: date) -> bool:
    a0, a1 = _span(day, a_start, a_minutes)
    b0, b1 = _span(day, b_start, b_minutes)
    return a0 < b1 and b0 < a1


def _lock_doctor(doctor_id: int) -> None:
    User.objects.select_for_update().only('id').get(pk=doctor_id)


def _check_free(doctor_id: int, day: date, start: time, minutes: int, exclude_id: Optional[int] = None) -> None:
    _lock_doctor(doctor_id)
    qs = Appointment.objects.select_for_update().filter(
        doctor_id=doctor_id, appointment_date=day, status__in=Appointment.ACTIVE_STATUSES
    )
    if exclude_id is not None:
        qs = qs.exclude(id=exclude_id)
    for other in qs:
        if overlaps(start, minutes, other.appointment_time, other.duration_minutes, day):
            raise ConflictError(
                f'doctor already has an appointment at {other.appointment_time:%H:%M} on {day:%Y-%m-%d}'
            )


def _check_duration(minutes: int) -> None:
    if not MIN_DURATION <= minutes <= MAX_DURATION:
        raise ValueError(f'duration must be between {MIN_DURATION} and {MAX_DURATION} minutes')


@transaction.atomic
def create_appointment(current_user, *, patient, doctor, department, appointment_date: date,
                       appointment_time: time, duration_minutes: int = 30,
                       appointment_type: str = 'consultation', reason: str = '', notes: str = '') -> Appointment:
    _check_duration(duration_minutes)
    _check_free(doctor.id, appointment_date, appointment_time, duration_minutes)
    appointment = Appointment.objects.create(
        patient=patient,
        doctor=doctor,
        department=department,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        duration_minutes=duration_minutes,
        appointment_type=appointment_type,
        status=lifecycle.INITIAL_STATES[lifecycle.APPOINTMENT],
        reason=reason,
        notes=notes,
    )
    log_action(user=current_user, action='appointment_create', object_type='appointment', object_id=appointment.id)
    notify_changed('appointments', 'insert', appointment.id)
    return appointment


@transaction.atomic
def update_appointment(current_user, appointment_id: int, **fields) -> Appointment:
    appointment = Appointment.objects.select_for_update().get(id=appointment_id)
    if lifecycle.is_terminal(lifecycle.APPOINTMENT, appointment.status):
        raise ValueError(f'a {appointment.status} appointment cannot be edited')
    changed = []
    for field in EDITABLE_FIELDS:
        if field in fields:
            setattr(appointment, field, fields[field])
            changed.append(field)
    if not changed:
        return appointment
    _check_duration(appointment.duration_minutes)
    if {'doctor', 'appointment_date', 'appointment_time', 'duration_minutes'} & set(changed):
        _check_free(appointment.doctor_id, appointment.appointment_date, appointment.appointment_time,
                    appointment.duration_minutes, exclude_id=appointment.id)
    appointment.save(update_fields=changed + ['updated_at'])
    log_action(user=current_user, action='appointment_update', object_type='appointment',
               object_id=appointment.id, detail={'fields': changed})
    notify_changed('appointments', 'update', appointment.id)
    return appointment


@transaction.atomic
def change_status(current_user, appointment_id: int, new_status: str) -> Appointment:
    appointment = Appointment.objects.select_for_update().get(id=appointment_id)
    old_status = appointment.status
    lifecycle.ensure_transition(lifecycle.APPOINTMENT, old_status, new_status)
    appointment.status = new_status
    appointment.save(update_fields=['status', 'updated_at'])
    log_action(user=current_user, action='appointment_status', object_type='appointment',
               object_id=appointment.id, detail={'from': old_status, 'to': new_status})
    notify_changed('appointments', 'update', appointment.id)
    logger.info('appointment %s: %s -> %s', appointment.id, old_status, new_status)
    return appointment


@transaction.atomic
def delete_appointment(current_user, appointment: Appointment) -> None:
    aid = appointment.id
    appointment.delete()
    log_action(user=current_user, action='appointment_delete', object_type='appointment', object_id=aid)
    notify_changed('appointments', 'delete', aid)


def list_appointments(filters: AppointmentFilter):
    qs = Appointment.objects.select_related('patient', 'doctor', 'department')
    if filters.day is not None:
        qs = qs.filter(appointment_date=filters.day)
    if is_set(filters.doctor_id):
        qs = qs.filter(doctor_id=filters.doctor_id)
    if is_set(filters.department_id):
        qs = qs.filter(department_id=filters.department_id)
    if is_set(filters.status):
        qs = qs.filter(status=filters.status)
    return qs.order_by('appointment_date', 'appointment_time', 'id')
