from datetime import date, time

import pytest
from rest_framework import status

from clinic.exceptions import ConflictError, TransitionError
from clinic.services import appointments
from clinic.services.appointments import overlaps
from clinic.services.filters import AppointmentFilter
from clinic.tests.base import ClinicAPITestCase

pytestmark = pytest.mark.django_db

DAY = date(2030, 3, 4)


def book(user, patient, doctor, department, start, minutes=30):
    return appointments.create_appointment(user, patient=patient, doctor=doctor, department=department,
                                           appointment_date=DAY, appointment_time=start, duration_minutes=minutes)


def test_overlap_is_half_open():
    assert overlaps(time(9, 0), 30, time(9, 15), 30, DAY)
    assert not overlaps(time(9, 0), 30, time(9, 30), 30, DAY)
    assert overlaps(time(9, 0), 120, time(10, 0), 15, DAY)


def test_doctor_cannot_be_double_booked(receptionist, patient, doctor, department):
    book(receptionist, patient, doctor, department, time(9, 0))
    with pytest.raises(ConflictError):
        book(receptionist, patient, doctor, department, time(9, 15))
    book(receptionist, patient, doctor, department, time(9, 30))


def test_booking_locks_the_doctor_row_first(receptionist, patient, doctor, department, monkeypatch):
    locked = []
    original = appointments._lock_doctor

    def spy(doctor_id):
        locked.append(doctor_id)
        original(doctor_id)

    monkeypatch.setattr(appointments, '_lock_doctor', spy)
    a = book(receptionist, patient, doctor, department, time(8, 0))
    assert locked == [doctor.id]
    appointments.update_appointment(receptionist, a.id, notes='bring reports')
    assert locked == [doctor.id]
    appointments.update_appointment(receptionist, a.id, appointment_time=time(8, 30))
    assert locked == [doctor.id, doctor.id]


def test_inactive_appointments_free_the_slot(receptionist, patient, doctor, department):
    first = book(receptionist, patient, doctor, department, time(11, 0))
    appointments.change_status(receptionist, first.id, 'cancelled')
    second = book(receptionist, patient, doctor, department, time(11, 0))
    assert second.status == 'scheduled'


def test_rescheduling_checks_overlap_but_ignores_itself(receptionist, patient, doctor, department):
    a = book(receptionist, patient, doctor, department, time(9, 0))
    b = book(receptionist, patient, doctor, department, time(10, 0))
    appointments.update_appointment(receptionist, a.id, appointment_time=time(9, 10))
    with pytest.raises(ConflictError):
        appointments.update_appointment(receptionist, b.id, appointment_time=time(9, 20))


def test_duration_bounds(receptionist, patient, doctor, department):
    with pytest.raises(ValueError):
        book(receptionist, patient, doctor, department, time(9, 0), minutes=10)
    with pytest.raises(ValueError):
        book(receptionist, patient, doctor, department, time(9, 0), minutes=150)


def test_status_walk_and_no_show(receptionist, patient, doctor, department):
    a = book(receptionist, patient, doctor, department, time(9, 0))
    appointments.change_status(receptionist, a.id, 'confirmed')
    appointments.change_status(doctor, a.id, 'in_progress')
    a = appointments.change_status(doctor, a.id, 'no_show')
    assert a.status == 'no_show'
    with pytest.raises(TransitionError):
        appointments.change_status(doctor, a.id, 'completed')
    with pytest.raises(ValueError):
        appointments.update_appointment(receptionist, a.id, notes='late')


def test_list_filters(receptionist, patient, doctor, department):
    a = book(receptionist, patient, doctor, department, time(9, 0))
    b = book(receptionist, patient, doctor, department, time(10, 0))
    appointments.change_status(receptionist, b.id, 'confirmed')
    assert [x.id for x in appointments.list_appointments(AppointmentFilter(day=DAY))] == [a.id, b.id]
    assert [x.id for x in appointments.list_appointments(AppointmentFilter(status='confirmed'))] == [b.id]
    assert not appointments.list_appointments(AppointmentFilter(day=date(2030, 3, 5))).exists()


class AppointmentAPITests(ClinicAPITestCase):
    def test_double_booking_returns_409(self):
        client = self.authenticate(self.receptionist)
        payload = {
            'patientId': self.patient.id, 'doctorId': self.doctor.id, 'departmentId': self.department.id,
            'appointmentDate': DAY.isoformat(), 'appointmentTime': '14:00', 'durationMinutes': 45,
            'appointmentType': 'follow_up', 'reason': '<script>x</script>review',
        }
        response = client.post('/api/appointments', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['data']['appointmentTime'], '14:00')
        self.assertNotIn('<script>', response.data['data']['reason'])

        payload['appointmentTime'] = '14:30'
        response = client.post('/api/appointments', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIs(response.data['ok'], False)

    def test_status_endpoint(self):
        a = book(self.receptionist, self.patient, self.doctor, self.department, time(9, 0))
        client = self.authenticate(self.receptionist)
        response = client.post(f'/api/appointments/{a.id}/status', {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = client.post(f'/api/appointments/{a.id}/status', {'status': 'confirmed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'confirmed')
