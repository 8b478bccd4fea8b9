import logging
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q

from clinic.exceptions import ConflictError
from clinic.models import Patient
from clinic.services.audit import log_action
from clinic.services.realtime import notify_changed
from clinic.services.rules import generate_patient_number

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    'full_name', 'date_of_birth', 'gender', 'blood_group', 'phone', 'email', 'address',
    'emergency_contact_name', 'emergency_contact_phone', 'allergies', 'chronic_conditions',
)


def create_patient(current_user, **fields) -> Patient:
    """Register a patient under a freshly generated, never reused number.

    Runs in a savepoint so it can join a caller's transaction (e.g. when
    a walk-in is registered and queued in one step).
    """
    data = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
    attempts = settings.PATIENT_NUMBER_MAX_ATTEMPTS
    for attempt in range(1, attempts + 1):
        try:
            with transaction.atomic():
                patient = Patient.objects.create(patient_number=generate_patient_number(), **data)
        except IntegrityError:
            logger.info('patient number collision, attempt %s/%s', attempt, attempts)
            continue
        log_action(user=current_user, action='patient_create', object_type='patient', object_id=patient.id,
                   detail={'patientNumber': patient.patient_number})
        notify_changed('patients', 'insert', patient.id)
        return patient
    raise ConflictError('could not allocate a unique patient number')


@transaction.atomic
def update_patient(current_user, patient: Patient, **fields) -> Patient:
    changed = []
    for field in EDITABLE_FIELDS:
        if field in fields:
            setattr(patient, field, fields[field])
            changed.append(field)
    if changed:
        patient.save(update_fields=changed + ['updated_at'])
        log_action(user=current_user, action='patient_update', object_type='patient', object_id=patient.id,
                   detail={'fields': changed})
        notify_changed('patients', 'update', patient.id)
    return patient


@transaction.atomic
def delete_patient(current_user, patient: Patient) -> None:
    pid = patient.id
    # PROTECT on visits/admissions/prescriptions raises ProtectedError here.
    patient.delete()
    log_action(user=current_user, action='patient_delete', object_type='patient', object_id=pid)
    notify_changed('patients', 'delete', pid)


def search_patients(q: Optional[str] = None):
    qs = Patient.objects.all()
    if q:
        qs = qs.filter(Q(full_name__icontains=q) | Q(patient_number__icontains=q) | Q(phone__icontains=q))
    return qs.order_by('full_name', 'id')
