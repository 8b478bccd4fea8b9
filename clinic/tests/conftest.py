from datetime import date

import pytest
from rest_framework.test import APIClient

from clinic.models import Bed, Department, InventoryCategory, InventoryItem, Patient
from clinic.tests.base import make_user


@pytest.fixture
def department(db):
    return Department.objects.create(name='General Medicine')


@pytest.fixture
def other_department(db):
    return Department.objects.create(name='Pediatrics')


@pytest.fixture
def admin_user(db):
    return make_user('admin1', 'admin')


@pytest.fixture
def doctor(db, department):
    return make_user('doctor1', 'doctor', department)


@pytest.fixture
def receptionist(db):
    return make_user('reception1', 'receptionist')


@pytest.fixture
def pharmacist(db):
    return make_user('pharmacist1', 'pharmacist')


@pytest.fixture
def store_manager(db):
    return make_user('store1', 'inventory_manager')


@pytest.fixture
def patient(db):
    return Patient.objects.create(patient_number='PAT00000001001', full_name='Asha Verma',
                                  date_of_birth=date(1990, 5, 17), gender='female', phone='9000000001')


@pytest.fixture
def bed(db, department):
    return Bed.objects.create(bed_number='GM-101', department=department, room_number='R101')


@pytest.fixture
def category(db):
    return InventoryCategory.objects.create(name='Analgesics')


@pytest.fixture
def item(db, category):
    return InventoryItem.objects.create(name='Paracetamol 500mg', category=category, unit='tablet',
                                        current_stock=0, minimum_stock=10)


@pytest.fixture
def client_for():
    def make(user) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return make


@pytest.fixture(autouse=True)
def _clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()
