from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from rest_framework import status

from clinic.exceptions import ConflictError, TransitionError
from clinic.models import Admission, Bed
from clinic.services import admissions, beds
from clinic.services.filters import BedFilter
from clinic.tests.base import ClinicAPITestCase

pytestmark = pytest.mark.django_db


def test_bulk_numbering_and_rooms():
    assert beds.bulk_bed_numbers(3, 101, 'W') == [('W-101', 'R101'), ('W-102', 'R102'), ('W-103', 'R103')]
    assert beds.bulk_bed_numbers(1, 7) == [('7', 'R7')]


def test_bulk_create_is_all_or_nothing(admin_user, department):
    Bed.objects.create(bed_number='W-102', department=department)
    with pytest.raises(ConflictError):
        beds.bulk_create_beds(admin_user, department=department, count=3, starting_number=101, prefix='W')
    assert Bed.objects.count() == 1

    created = beds.bulk_create_beds(admin_user, department=department, count=2, starting_number=201, prefix='W')
    assert [b.bed_number for b in created] == ['W-201', 'W-202']


def test_admit_then_discharge_keeps_bed_in_sync(doctor, patient, department, bed):
    admission = admissions.admit(doctor, patient=patient, bed_id=bed.id, department=department,
                                 admitting_doctor=doctor, diagnosis='pneumonia')
    bed.refresh_from_db()
    assert admission.status == 'admitted'
    assert bed.status == 'occupied'

    admissions.discharge(doctor, admission.id, discharge_summary='recovered', total_cost=Decimal('1500.00'))
    admission.refresh_from_db()
    bed.refresh_from_db()
    assert admission.status == 'discharged'
    assert admission.discharge_date is not None
    assert admission.total_cost == Decimal('1500.00')
    assert bed.status == 'available'


def test_admit_and_discharge_leave_other_beds_alone(doctor, patient, department, bed):
    spare = Bed.objects.create(bed_number='GM-102', department=department, room_number='R102')
    repair = Bed.objects.create(bed_number='GM-103', department=department, room_number='R103',
                                status=Bed.STATUS_MAINTENANCE)
    before = {b.id: (b.status, b.updated_at) for b in Bed.objects.filter(id__in=[spare.id, repair.id])}

    admission = admissions.admit(doctor, patient=patient, bed_id=bed.id, department=department,
                                 admitting_doctor=doctor)
    after_admit = {b.id: (b.status, b.updated_at) for b in Bed.objects.filter(id__in=[spare.id, repair.id])}
    assert after_admit == before

    admissions.discharge(doctor, admission.id)
    after_discharge = {b.id: (b.status, b.updated_at) for b in Bed.objects.filter(id__in=[spare.id, repair.id])}
    assert after_discharge == before
    assert before[spare.id][0] == 'available'
    assert before[repair.id][0] == 'maintenance'


def test_discharge_can_send_bed_to_maintenance(doctor, patient, department, bed):
    admission = admissions.admit(doctor, patient=patient, bed_id=bed.id, department=department,
                                 admitting_doctor=doctor)
    admissions.discharge(doctor, admission.id, release_to='maintenance')
    bed.refresh_from_db()
    assert bed.status == 'maintenance'


def test_admit_requires_available_bed_in_same_department(doctor, patient, department, other_department, bed):
    with pytest.raises(ValueError):
        admissions.admit(doctor, patient=patient, bed_id=bed.id, department=other_department,
                         admitting_doctor=doctor)
    bed.status = 'maintenance'
    bed.save()
    with pytest.raises(ConflictError):
        admissions.admit(doctor, patient=patient, bed_id=bed.id, department=department, admitting_doctor=doctor)
    assert not Admission.objects.exists()


def test_second_admission_to_occupied_bed_is_rejected(doctor, patient, department, bed):
    admissions.admit(doctor, patient=patient, bed_id=bed.id, department=department, admitting_doctor=doctor)
    with pytest.raises(ConflictError):
        admissions.admit(doctor, patient=patient, bed_id=bed.id, department=department, admitting_doctor=doctor)
    assert Admission.objects.filter(bed=bed, status='admitted').count() == 1


def test_database_allows_one_active_admission_per_bed(doctor, patient, department, bed):
    Admission.objects.create(patient=patient, bed=bed, department=department, admitting_doctor=doctor)
    with pytest.raises(IntegrityError), transaction.atomic():
        Admission.objects.create(patient=patient, bed=bed, department=department, admitting_doctor=doctor)


def test_discharged_admission_cannot_be_discharged_again(doctor, patient, department, bed):
    admission = admissions.admit(doctor, patient=patient, bed_id=bed.id, department=department,
                                 admitting_doctor=doctor)
    admissions.transfer(doctor, admission.id)
    with pytest.raises(TransitionError):
        admissions.discharge(doctor, admission.id)
    admission.refresh_from_db()
    assert admission.status == 'transferred'


def test_manual_bed_edits_respect_admissions(admin_user, doctor, patient, department, bed):
    with pytest.raises(TransitionError):
        beds.update_bed(admin_user, bed.id, status='occupied')
    admissions.admit(doctor, patient=patient, bed_id=bed.id, department=department, admitting_doctor=doctor)
    with pytest.raises(TransitionError):
        beds.update_bed(admin_user, bed.id, status='available')
    with pytest.raises(ConflictError):
        beds.delete_bed(admin_user, bed.id)
    updated = beds.update_bed(admin_user, bed.id, room_number='R9')
    assert updated.room_number == 'R9'


def test_stats_and_filters(admin_user, doctor, patient, department, bed):
    beds.bulk_create_beds(admin_user, department=department, count=3, starting_number=1, prefix='ICU',
                          bed_type='icu')
    admissions.admit(doctor, patient=patient, bed_id=bed.id, department=department, admitting_doctor=doctor,
                     admission_type='emergency')
    stats = beds.bed_stats(beds.list_beds(BedFilter()))
    assert stats['total'] == 4
    assert stats['occupied'] == 1
    assert stats['occupancyRate'] == 25
    assert stats['byType']['icu'] == 3
    assert beds.list_beds(BedFilter(bed_type='icu')).count() == 3
    assert beds.available_beds(department.id).count() == 3

    summary = admissions.admission_stats()
    assert summary['active'] == 1
    assert summary['emergency'] == 1
    assert summary['admittedToday'] == 1


class AdmissionAPITests(ClinicAPITestCase):
    def test_admit_discharge_roundtrip(self):
        client = self.authenticate(self.doctor)
        payload = {
            'patientId': self.patient.id, 'bedId': self.bed.id, 'departmentId': self.department.id,
            'doctorId': self.doctor.id, 'admissionType': 'emergency',
        }
        response = client.post('/api/admissions', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        admission_id = response.data['data']['id']
        self.assertEqual(response.data['data']['stayDays'], 1)

        payload.pop('admissionType')
        response = client.post('/api/admissions', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error']['code'], 'conflict')

        response = client.post(f'/api/admissions/{admission_id}/discharge', {'totalCost': '250.50'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'discharged')
        self.assertEqual(response.data['data']['totalCost'], '250.50')

        response = client.get('/api/admissions', {'status': 'all'})
        self.assertEqual([a['id'] for a in response.data['data']], [admission_id])
        response = client.get('/api/admissions')
        self.assertEqual(response.data['data'], [])

    def test_bed_delete_blocked_by_history(self):
        admission = admissions.admit(self.doctor, patient=self.patient, bed_id=self.bed.id,
                                     department=self.department, admitting_doctor=self.doctor)
        admissions.discharge(self.doctor, admission.id)
        response = self.authenticate(self.admin_user).delete(f'/api/beds/{self.bed.id}')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_bulk_endpoint(self):
        response = self.authenticate(self.admin_user).post('/api/beds/bulk', {
            'departmentId': self.department.id, 'count': 2, 'startingNumber': 10, 'prefix': 'GW',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual([b['bedNumber'] for b in response.data['data']], ['GW-10', 'GW-11'])
        self.assertEqual([b['roomNumber'] for b in response.data['data']], ['R10', 'R11'])
