import pytest
from rest_framework import status

from clinic.exceptions import TransitionError
from clinic.models import InventoryItem, InventoryTransaction, Prescription
from clinic.services import inventory, prescriptions
from clinic.tests.base import ClinicAPITestCase

pytestmark = pytest.mark.django_db


@pytest.fixture
def stocked(store_manager, category):
    a = InventoryItem.objects.create(name='Paracetamol', category=category, unit='tablet', minimum_stock=5)
    b = InventoryItem.objects.create(name='Cough syrup', category=category, unit='bottle', minimum_stock=1)
    inventory.receive_batch(store_manager, a.id, batch_number='PA1', quantity=20)
    inventory.receive_batch(store_manager, b.id, batch_number='CS1', quantity=2)
    return a, b


def _line(item, quantity):
    return {'item': item, 'dosage': '1 tab', 'frequency': 'TID', 'duration': '5 days', 'quantity': quantity}


def test_prescription_needs_lines(doctor, patient):
    with pytest.raises(ValueError):
        prescriptions.create_prescription(doctor, patient=patient, doctor=doctor, lines=[])


def test_dispense_decrements_every_line(doctor, pharmacist, patient, stocked):
    a, b = stocked
    p = prescriptions.create_prescription(doctor, patient=patient, doctor=doctor, lines=[_line(a, 15), _line(b, 2)])
    prescriptions.dispense(pharmacist, p.id)

    p.refresh_from_db()
    a.refresh_from_db()
    b.refresh_from_db()
    assert p.status == 'dispensed'
    assert p.dispensed_by == pharmacist
    assert (a.current_stock, b.current_stock) == (5, 0)
    moves = InventoryTransaction.objects.filter(transaction_type='dispensation', reference_id=str(p.id))
    assert sorted(moves.values_list('quantity', flat=True)) == [-15, -2]
    assert set(moves.values_list('reference_type', flat=True)) == {'prescription'}


def test_insufficient_stock_dispenses_nothing(doctor, pharmacist, patient, stocked):
    a, b = stocked
    p = prescriptions.create_prescription(doctor, patient=patient, doctor=doctor, lines=[_line(a, 5), _line(b, 3)])
    with pytest.raises(ValueError, match='Cough syrup'):
        prescriptions.dispense(pharmacist, p.id)

    p.refresh_from_db()
    a.refresh_from_db()
    assert p.status == 'pending'
    assert a.current_stock == 20
    assert not InventoryTransaction.objects.filter(transaction_type='dispensation').exists()


def test_repeated_lines_for_same_item_are_summed(doctor, pharmacist, patient, stocked):
    _, b = stocked
    p = prescriptions.create_prescription(doctor, patient=patient, doctor=doctor, lines=[_line(b, 1), _line(b, 2)])
    with pytest.raises(ValueError):
        prescriptions.dispense(pharmacist, p.id)
    b.refresh_from_db()
    assert b.current_stock == 2


def test_cancelled_prescription_cannot_be_dispensed(doctor, pharmacist, patient, stocked):
    a, _ = stocked
    p = prescriptions.create_prescription(doctor, patient=patient, doctor=doctor, lines=[_line(a, 1)])
    prescriptions.cancel(doctor, p.id, reason='duplicate')
    with pytest.raises(TransitionError):
        prescriptions.dispense(pharmacist, p.id)
    a.refresh_from_db()
    assert a.current_stock == 20


class PrescriptionAPITests(ClinicAPITestCase):
    def setUp(self) -> None:
        super().setUp()
        inventory.receive_batch(self.store_manager, self.item.id, batch_number='PA1', quantity=20)

    def test_doctor_writes_pharmacist_dispenses(self):
        response = self.authenticate(self.doctor).post('/api/prescriptions', {
            'patientId': self.patient.id,
            'diagnosis': 'viral fever',
            'items': [{'itemId': self.item.id, 'dosage': '500mg', 'frequency': 'BID', 'duration': '3 days',
                       'quantity': 6}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        pid = response.data['data']['id']
        self.assertEqual(response.data['data']['status'], 'pending')
        self.assertEqual(response.data['data']['items'][0]['itemName'], 'Paracetamol 500mg')

        response = self.authenticate(self.doctor).post(f'/api/prescriptions/{pid}/dispense')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        pharmacy = self.authenticate(self.pharmacist)
        response = pharmacy.post(f'/api/prescriptions/{pid}/dispense')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'dispensed')
        self.item.refresh_from_db()
        self.assertEqual(self.item.current_stock, 14)

        response = pharmacy.post(f'/api/prescriptions/{pid}/dispense')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'invalid_transition')

    def test_zero_quantity_line_rejected(self):
        response = self.authenticate(self.doctor).post('/api/prescriptions', {
            'patientId': self.patient.id,
            'items': [{'itemId': self.item.id, 'dosage': '1', 'frequency': 'OD', 'duration': '1 day',
                       'quantity': 0}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Prescription.objects.exists())

    def test_list_filters_by_status(self):
        p1 = prescriptions.create_prescription(self.doctor, patient=self.patient, doctor=self.doctor,
                                               lines=[_line(self.item, 1)])
        p2 = prescriptions.create_prescription(self.doctor, patient=self.patient, doctor=self.doctor,
                                               lines=[_line(self.item, 1)])
        prescriptions.cancel(self.doctor, p2.id)
        response = self.authenticate(self.doctor).get('/api/prescriptions', {'status': 'pending'})
        self.assertEqual([p['id'] for p in response.data['data']], [p1.id])
