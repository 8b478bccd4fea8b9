from datetime import date

from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient, APITestCase

from clinic.models import Bed, Department, InventoryCategory, InventoryItem, Patient

User = get_user_model()

PASSWORD = 'P@ssw0rd1'


def make_user(username, role, department=None):
    return User.objects.create_user(username=username, password=PASSWORD, role=role,
                                    full_name=username.title(), department=department)


class ClinicAPITestCase(APITestCase):
    def setUp(self) -> None:
        """One department with a bed, a patient, a stocked category and a user per role."""
        cache.clear()
        self.department = Department.objects.create(name='General Medicine')
        self.admin_user = make_user('admin1', 'admin')
        self.doctor = make_user('doctor1', 'doctor', self.department)
        self.receptionist = make_user('reception1', 'receptionist')
        self.pharmacist = make_user('pharmacist1', 'pharmacist')
        self.store_manager = make_user('store1', 'inventory_manager')
        self.patient = Patient.objects.create(
            patient_number='PAT00000001001',
            full_name='Asha Verma',
            date_of_birth=date(1990, 5, 17),
            gender='female',
            phone='9000000001',
        )
        self.bed = Bed.objects.create(bed_number='GM-101', department=self.department, room_number='R101')
        self.category = InventoryCategory.objects.create(name='Analgesics')
        self.item = InventoryItem.objects.create(name='Paracetamol 500mg', category=self.category, unit='tablet',
                                                 current_stock=0, minimum_stock=10)

    def authenticate(self, user) -> APIClient:
        """Return an APIClient authenticated as ``user``."""
        client = APIClient()
        client.force_authenticate(user=user)
        return client
