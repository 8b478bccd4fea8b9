"""
Inpatient admissions and the bed they hold.

A bed is ``occupied`` exactly while one admission referencing it is
``admitted``.  Admitting, discharging and transferring therefore update
the admission and the bed in one transaction, with the bed row locked
so two admissions cannot claim the same bed.
"""
import logging
from decimal import Decimal
from typing import Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from clinic.exceptions import ConflictError
from clinic.models import Admission, Bed, Department, Patient
from clinic.services import lifecycle
from clinic.services.audit import log_action
from clinic.services.filters import AdmissionFilter, is_set
from clinic.services.realtime import notify_changed

logger = logging.getLogger(__name__)

RELEASE_STATUSES = (Bed.STATUS_AVAILABLE, Bed.STATUS_MAINTENANCE)


def admit(current_user, *, patient: Patient, bed_id: int, department: Department, admitting_doctor,
          admission_type: str = 'planned', diagnosis: str = '', treatment_plan: str = '') -> Admission:
    with transaction.atomic():
        bed = Bed.objects.select_for_update().get(id=bed_id)
        if bed.department_id != department.id:
            raise ValueError(f'bed {bed.bed_number} does not belong to department {department.name}')
        if bed.status != Bed.STATUS_AVAILABLE:
            raise ConflictError(f'bed {bed.bed_number} is not available ({bed.status})')
        if Admission.objects.filter(patient=patient, status=Admission.STATUS_ADMITTED).exists():
            raise ConflictError(f'patient {patient.patient_number} is already admitted')
        try:
            with transaction.atomic():
                admission = Admission.objects.create(
                    patient=patient,
                    bed=bed,
                    department=department,
                    admitting_doctor=admitting_doctor,
                    admission_date=timezone.now(),
                    admission_type=admission_type,
                    status=lifecycle.INITIAL_STATES[lifecycle.ADMISSION],
                    diagnosis=diagnosis,
                    treatment_plan=treatment_plan,
                )
        except IntegrityError:
            raise ConflictError(f'bed {bed.bed_number} already holds an active admission')
        bed.status = Bed.STATUS_OCCUPIED
        bed.save(update_fields=['status', 'updated_at'])
        log_action(user=current_user, action='admission_create', object_type='admission', object_id=admission.id,
                   detail={'bedId': bed.id, 'patientId': patient.id})
        notify_changed('admissions', 'insert', admission.id)
        notify_changed('beds', 'update', bed.id)
    logger.info('admitted patient %s to bed %s', patient.id, bed.bed_number)
    return admission


def _close(current_user, admission_id: int, new_status: str, *, release_to: str,
           discharge_summary: Optional[str] = None, total_cost: Optional[Decimal] = None) -> Admission:
    if release_to not in RELEASE_STATUSES:
        raise ValueError(f'bed can only be released to {" or ".join(RELEASE_STATUSES)}')
    with transaction.atomic():
        admission = Admission.objects.select_for_update().get(id=admission_id)
        bed = Bed.objects.select_for_update().get(id=admission.bed_id)
        old_status = admission.status
        lifecycle.ensure_transition(lifecycle.ADMISSION, old_status, new_status)

        admission.status = new_status
        admission.discharge_date = timezone.now()
        update_fields = ['status', 'discharge_date', 'updated_at']
        if discharge_summary is not None:
            admission.discharge_summary = discharge_summary
            update_fields.append('discharge_summary')
        if total_cost is not None:
            admission.total_cost = total_cost
            update_fields.append('total_cost')
        admission.save(update_fields=update_fields)

        bed.status = release_to
        bed.save(update_fields=['status', 'updated_at'])

        log_action(user=current_user, action=f'admission_{new_status}', object_type='admission',
                   object_id=admission.id, detail={'bedId': bed.id, 'bedStatus': release_to})
        notify_changed('admissions', 'update', admission.id)
        notify_changed('beds', 'update', bed.id)
    logger.info('admission %s: %s -> %s, bed %s -> %s', admission.id, old_status, new_status, bed.bed_number, release_to)
    return admission


def discharge(current_user, admission_id: int, *, discharge_summary: Optional[str] = None,
              total_cost: Optional[Decimal] = None, release_to: str = Bed.STATUS_AVAILABLE) -> Admission:
    return _close(current_user, admission_id, Admission.STATUS_DISCHARGED, release_to=release_to,
                  discharge_summary=discharge_summary, total_cost=total_cost)


def transfer(current_user, admission_id: int, *, release_to: str = Bed.STATUS_AVAILABLE) -> Admission:
    """Close the stay as ``transferred`` (patient moved out of this facility's bed)."""
    return _close(current_user, admission_id, Admission.STATUS_TRANSFERRED, release_to=release_to)


def list_admissions(filters: AdmissionFilter):
    qs = Admission.objects.select_related('patient', 'bed', 'department', 'admitting_doctor')
    if is_set(filters.status):
        qs = qs.filter(status=filters.status)
    if is_set(filters.department_id):
        qs = qs.filter(department_id=filters.department_id)
    return qs.order_by('-admission_date')


def admission_stats(today=None) -> dict:
    today = today or timezone.localdate()
    active = Admission.objects.filter(status=Admission.STATUS_ADMITTED)
    return {
        'active': active.count(),
        'emergency': active.filter(admission_type='emergency').count(),
        'planned': active.filter(admission_type='planned').count(),
        'dischargedToday': Admission.objects.filter(
            status=Admission.STATUS_DISCHARGED, discharge_date__date=today
        ).count(),
        'admittedToday': Admission.objects.filter(admission_date__date=today).count(),
    }
