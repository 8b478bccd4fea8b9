import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework import status

from clinic.exceptions import ConflictError
from clinic.models import AuditEvent, OPDQueue, Patient, QueueTransition
from clinic.services import opd
from clinic.tests.base import ClinicAPITestCase

pytestmark = pytest.mark.django_db


def test_tokens_are_sequential_per_department(receptionist, patient, department, other_department):
    first = opd.enqueue(receptionist, department=department, patient=patient)
    second = opd.enqueue(receptionist, department=department, patient=patient)
    elsewhere = opd.enqueue(receptionist, department=other_department, patient=patient)
    assert (first.token_number, second.token_number) == (1, 2)
    assert elsewhere.token_number == 1
    assert first.queue_date == timezone.localdate()
    assert first.status == 'waiting'
    assert QueueTransition.objects.filter(entry=first, from_status=None, to_status='waiting').exists()
    assert AuditEvent.objects.filter(action='opd_enqueue', object_id=str(first.id)).exists()


def test_cancelled_tokens_are_not_reused(receptionist, patient, department):
    first = opd.enqueue(receptionist, department=department, patient=patient)
    opd.enqueue(receptionist, department=department, patient=patient)
    opd.change_status(receptionist, first.id, 'cancelled', reason='left')
    third = opd.enqueue(receptionist, department=department, patient=patient)
    assert third.token_number == 3


def test_enqueue_can_register_a_walk_in(receptionist, department):
    entry = opd.enqueue(
        receptionist,
        department=department,
        new_patient={'full_name': 'Rohan Mehta', 'date_of_birth': '1985-02-03', 'phone': '9000000002'},
        priority='urgent',
    )
    assert entry.patient.patient_number.startswith('PAT')
    assert Patient.objects.filter(full_name='Rohan Mehta').count() == 1
    assert entry.priority == 'urgent'


def test_enqueue_requires_a_patient(receptionist, department):
    with pytest.raises(ValueError):
        opd.enqueue(receptionist, department=department)


def test_stale_token_read_is_retried(monkeypatch, receptionist, patient, department):
    today = timezone.localdate()
    OPDQueue.objects.create(patient=patient, department=department, queue_date=today, token_number=4)
    real = opd._existing_tokens
    calls = []

    def stale_then_real(department_id, queue_date):
        calls.append(queue_date)
        if len(calls) == 1:
            # Simulates a concurrent writer that took token 4 after our read.
            return [1, 2, 3]
        return real(department_id, queue_date)

    monkeypatch.setattr(opd, '_existing_tokens', stale_then_real)
    entry = opd.enqueue(receptionist, department=department, patient=patient)

    assert entry.token_number == 5
    assert len(calls) == 2
    tokens = list(OPDQueue.objects.filter(department=department, queue_date=today)
                  .values_list('token_number', flat=True))
    assert sorted(tokens) == [4, 5]


def test_gives_up_after_bounded_attempts(monkeypatch, settings, receptionist, patient, department):
    settings.OPD_TOKEN_MAX_ATTEMPTS = 3
    OPDQueue.objects.create(patient=patient, department=department, queue_date=timezone.localdate(), token_number=1)
    monkeypatch.setattr(opd, '_existing_tokens', lambda department_id, queue_date: [])
    with pytest.raises(ConflictError):
        opd.enqueue(receptionist, department=department, patient=patient)
    assert OPDQueue.objects.filter(department=department).count() == 1


def test_database_rejects_duplicate_tokens(patient, department):
    today = timezone.localdate()
    OPDQueue.objects.create(patient=patient, department=department, queue_date=today, token_number=1)
    with pytest.raises(IntegrityError), transaction.atomic():
        OPDQueue.objects.create(patient=patient, department=department, queue_date=today, token_number=1)


def test_status_flow_stamps_times_and_logs_transitions(receptionist, doctor, patient, department):
    entry = opd.enqueue(receptionist, department=department, patient=patient)
    entry = opd.change_status(doctor, entry.id, 'in_consultation', doctor=doctor)
    assert entry.consultation_start_time is not None
    assert entry.doctor == doctor
    entry = opd.change_status(doctor, entry.id, 'completed')
    assert entry.consultation_end_time is not None
    history = list(entry.transitions.order_by('id').values_list('from_status', 'to_status'))
    assert history == [(None, 'waiting'), ('waiting', 'in_consultation'), ('in_consultation', 'completed')]


def test_invalid_transition_leaves_row_untouched(receptionist, patient, department):
    entry = opd.enqueue(receptionist, department=department, patient=patient)
    with pytest.raises(ValueError):
        opd.change_status(receptionist, entry.id, 'completed')
    entry.refresh_from_db()
    assert entry.status == 'waiting'
    assert entry.transitions.count() == 1


class QueueAPITests(ClinicAPITestCase):
    def test_enqueue_and_list(self):
        client = self.authenticate(self.receptionist)
        response = client.post('/api/opd/enqueue', {
            'patientId': self.patient.id, 'departmentId': self.department.id,
            'symptoms': '<b>fever</b>', 'vitals': {'pulse': 88},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['data']['tokenNumber'], 1)
        self.assertEqual(response.data['data']['symptoms'], 'fever')
        self.assertEqual(response.data['data']['vitals'], {'pulse': 88})

        response = client.get('/api/opd/queue', {'departmentId': self.department.id, 'status': 'all'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stats']['total'], 1)
        self.assertEqual(response.data['stats']['waiting'], 1)
        row = response.data['data'][0]
        self.assertEqual(row['patientNumber'], self.patient.patient_number)
        self.assertIsNotNone(row['waitTimeMinutes'])

    def test_invalid_transition_returns_error_shape(self):
        entry = opd.enqueue(self.receptionist, department=self.department, patient=self.patient)
        response = self.authenticate(self.receptionist).post(f'/api/opd/queue/{entry.id}/status',
                                                             {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIs(response.data['ok'], False)
        self.assertEqual(response.data['error']['code'], 'invalid_transition')

    def test_detail_includes_history(self):
        entry = opd.enqueue(self.receptionist, department=self.department, patient=self.patient)
        client = self.authenticate(self.receptionist)
        client.post(f'/api/opd/queue/{entry.id}/status', {'status': 'cancelled', 'reason': 'left'}, format='json')
        response = client.get(f'/api/opd/queue/{entry.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([h['to'] for h in response.data['data']['transitionHistory']], ['waiting', 'cancelled'])
        self.assertIsNone(response.data['data']['waitTimeMinutes'])

    def test_pharmacist_cannot_enqueue(self):
        response = self.authenticate(self.pharmacist).post('/api/opd/enqueue', {
            'patientId': self.patient.id, 'departmentId': self.department.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
