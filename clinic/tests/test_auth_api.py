"""
Authentication, role checks and the error envelope.
"""
import pytest
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from clinic.models import AuditEvent, Patient, Profile
from clinic.serializers.common import clean_text
from clinic.services import admissions, opd
from clinic.tests.base import ClinicAPITestCase

pytestmark = pytest.mark.django_db


def test_login_returns_jwt_and_legacy_token():
    Profile.objects.create_user(username='u_jwt', password='P@ssw0rd1', role='nurse')
    r = APIClient().post(reverse('login_view'), {'username': 'u_jwt', 'password': 'P@ssw0rd1'}, format='json')
    assert r.status_code == 200
    assert r.data['token'] and r.data['jwt_access'] and r.data['jwt_refresh']
    assert r.data['user']['role'] == 'nurse'


def test_login_ignores_role_in_payload():
    u = Profile.objects.create_user(username='u1', password='P@ssw0rd1', role='receptionist')
    r = APIClient().post(reverse('login_view'),
                         {'username': 'u1', 'password': 'P@ssw0rd1', 'role': 'admin'}, format='json')
    assert r.status_code == 200
    u.refresh_from_db()
    assert u.role == 'receptionist'


def test_bad_password_is_audited():
    Profile.objects.create_user(username='u2', password='P@ssw0rd1')
    r = APIClient().post(reverse('login_view'), {'username': 'u2', 'password': 'nope'}, format='json')
    assert r.status_code == 400
    assert r.data['ok'] is False
    assert AuditEvent.objects.filter(action='login', detail__result='fail').exists()


def test_token_and_jwt_both_authenticate():
    Profile.objects.create_user(username='u3', password='P@ssw0rd1', role='doctor')
    client = APIClient()
    r = client.post(reverse('login_view'), {'username': 'u3', 'password': 'P@ssw0rd1'}, format='json')
    token, access = r.data['token'], r.data['jwt_access']

    client.credentials(HTTP_AUTHORIZATION=f'Token {token}')
    assert client.get('/api/auth/me').status_code == 200
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
    assert client.get('/api/auth/me').data['user']['username'] == 'u3'


def test_anonymous_requests_are_rejected_with_envelope():
    r = APIClient().get('/api/patients')
    assert r.status_code == 401
    assert r.data['ok'] is False
    assert r.data['error']['code'] == 'api_error'


def test_clean_text_strips_markup_but_keeps_symbols():
    assert clean_text('  BP < 120 & <i>stable</i> ') == 'BP < 120 & stable'
    assert clean_text('&lt;script&gt;alert(1)&lt;/script&gt;') == 'alert(1)'
    assert clean_text(None) == ''


def test_health_endpoint():
    r = APIClient().get('/healthz')
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True}


class PatientsAPITests(ClinicAPITestCase):
    def test_register_search_and_detail(self):
        client = self.authenticate(self.receptionist)
        response = client.post('/api/patients', {
            'fullName': 'Priya <i>Nair</i>', 'dateOfBirth': '1992-07-01', 'gender': 'female',
            'phone': '9876543210', 'bloodGroup': 'O+',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        data = response.data['data']
        self.assertEqual(data['fullName'], 'Priya Nair')
        self.assertTrue(data['patientNumber'].startswith('PAT'))

        response = client.get('/api/patients', {'q': '98765'})
        self.assertEqual([p['id'] for p in response.data['data']], [data['id']])

        response = client.patch(f'/api/patients/{data["id"]}', {'phone': '9000000000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['patientNumber'], data['patientNumber'])

    def test_clinical_text_is_kept_verbatim(self):
        client = self.authenticate(self.receptionist)
        response = client.post('/api/patients', {
            'fullName': 'Ravi Kumar', 'dateOfBirth': '1980-01-01',
            'chronicConditions': 'BP < 120 & sugar <b>ok</b>',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        patient = Patient.objects.get(id=response.data['data']['id'])
        self.assertEqual(patient.chronic_conditions, 'BP < 120 & sugar ok')

    def test_patient_number_cannot_be_overwritten(self):
        client = self.authenticate(self.receptionist)
        response = client.patch(f'/api/patients/{self.patient.id}', {'patientNumber': 'HACK'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.patient.refresh_from_db()
        self.assertEqual(self.patient.patient_number, 'PAT00000001001')

    def test_referenced_patient_cannot_be_deleted(self):
        opd.enqueue(self.receptionist, department=self.department, patient=self.patient)
        response = self.authenticate(self.receptionist).delete(f'/api/patients/{self.patient.id}')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error']['code'], 'conflict')
        self.assertTrue(Patient.objects.filter(id=self.patient.id).exists())

    def test_pharmacist_can_read_but_not_register(self):
        client = self.authenticate(self.pharmacist)
        self.assertEqual(client.get('/api/patients').status_code, status.HTTP_200_OK)
        response = client.post('/api/patients', {'fullName': 'X Y', 'dateOfBirth': '2000-01-01'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class SettingsAPITests(ClinicAPITestCase):
    def test_admin_manages_departments_and_doctors(self):
        client = self.authenticate(self.admin_user)
        response = client.post('/api/departments', {'name': 'Cardiology'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        dept_id = response.data['data']['id']
        response = client.post('/api/departments', {'name': 'Cardiology'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = client.post('/api/staff', {'username': 'drcardio', 'fullName': 'Dr. Cardio', 'role': 'doctor',
                                              'departmentId': dept_id, 'specialization': 'Cardiology'},
                               format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = client.get('/api/doctors', {'departmentId': dept_id})
        self.assertEqual([d['username'] for d in response.data['data']], ['drcardio'])

    def test_referenced_doctor_and_department_cannot_be_deleted(self):
        admissions.admit(self.doctor, patient=self.patient, bed_id=self.bed.id, department=self.department,
                         admitting_doctor=self.doctor)
        client = self.authenticate(self.admin_user)
        self.assertEqual(client.delete(f'/api/staff/{self.doctor.id}').status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(client.delete(f'/api/departments/{self.department.id}').status_code,
                         status.HTTP_409_CONFLICT)

    def test_non_admin_cannot_create_department(self):
        response = self.authenticate(self.doctor).post('/api/departments', {'name': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
