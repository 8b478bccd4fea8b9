"""
Management command to populate the database with demo data.
"""
import random
from datetime import date, time, timedelta

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from clinic.models import Bed, Department, InventoryCategory, Patient
from clinic.services import admissions, appointments, beds, inventory, opd, patients

User = get_user_model()

DEPARTMENTS = [
    ('General Medicine', 'Adult internal medicine', 'GM'),
    ('Pediatrics', 'Children under 14', 'PD'),
    ('Orthopedics', 'Bones and joints', 'OR'),
]

NAMES = ['Asha Verma', 'Rohan Mehta', 'Priya Nair', 'Karan Singh', 'Meera Iyer', 'Vikram Rao', 'Sara Khan',
         'Arjun Das', 'Neha Gupta', 'Imran Sheikh']

ITEMS = [
    ('Paracetamol 500mg', 'Analgesics', 'medicine', 'tablet', 200),
    ('Amoxicillin 250mg', 'Antibiotics', 'medicine', 'capsule', 100),
    ('Saline 0.9% 500ml', 'IV fluids', 'consumable', 'bottle', 50),
    ('Surgical gloves', 'Consumables', 'consumable', 'pair', 300),
]


class Command(BaseCommand):
    help = 'Populate database with demo data'

    def add_arguments(self, parser):
        parser.add_argument('--seed', type=int, default=42)

    @transaction.atomic
    def handle(self, *args, **options):
        random.seed(options['seed'])
        call_command('ensure_staff_users', stdout=self.stdout)
        admin = User.objects.get(username='admin1')

        depts = self.create_departments(admin)
        doctors = self.create_doctors(admin, depts)
        self.create_beds(admin, depts)
        people = self.create_patients(admin)
        self.create_queue(admin, depts, doctors, people)
        self.create_admissions(admin, depts, doctors, people)
        self.create_inventory(admin)
        self.create_appointments(admin, depts, doctors, people)
        self.stdout.write(self.style.SUCCESS('Demo data created.'))

    def create_departments(self, admin):
        depts = []
        for name, description, _ in DEPARTMENTS:
            dept = Department.objects.filter(name=name).first()
            if dept is None:
                dept = Department.objects.create(name=name, description=description)
            depts.append(dept)
        return depts

    def create_doctors(self, admin, depts):
        doctors = []
        for i, dept in enumerate(depts, start=1):
            doctor, _ = User.objects.get_or_create(
                username=f'dr{i}',
                defaults={'role': 'doctor', 'full_name': f'Dr. {NAMES[-i]}', 'department': dept},
            )
            doctors.append(doctor)
        return doctors

    def create_beds(self, admin, depts):
        for (_, _, prefix), dept in zip(DEPARTMENTS, depts):
            if not Bed.objects.filter(department=dept).exists():
                beds.bulk_create_beds(admin, department=dept, count=6, starting_number=101, prefix=prefix)

    def create_patients(self, admin):
        people = list(Patient.objects.all()[:len(NAMES)])
        for name in NAMES[len(people):]:
            dob = date(random.randint(1950, 2018), random.randint(1, 12), random.randint(1, 28))
            people.append(patients.create_patient(
                admin,
                full_name=name,
                date_of_birth=dob,
                gender=random.choice(['male', 'female']),
                phone=f'9{random.randint(100000000, 999999999)}',
            ))
        return people

    def create_queue(self, admin, depts, doctors, people):
        for patient in people[:6]:
            i = random.randrange(len(depts))
            entry = opd.enqueue(admin, department=depts[i], patient=patient,
                                priority=random.choice(['normal', 'normal', 'urgent']), symptoms='fever, cough')
            if random.random() < 0.5:
                opd.change_status(admin, entry.id, 'in_consultation', doctor=doctors[i])

    def create_admissions(self, admin, depts, doctors, people):
        for patient, dept, doctor in zip(people[6:8], depts, doctors):
            bed = beds.available_beds(dept.id).first()
            if bed is not None:
                admissions.admit(admin, patient=patient, bed_id=bed.id, department=dept, admitting_doctor=doctor,
                                 admission_type='planned', diagnosis='observation')

    def create_inventory(self, admin):
        today = timezone.localdate()
        for name, category_name, item_type, unit, qty in ITEMS:
            category, _ = InventoryCategory.objects.get_or_create(name=category_name)
            if category.items.filter(name=name).exists():
                continue
            inventory.create_item(
                admin,
                name=name,
                category=category,
                item_type=item_type,
                unit=unit,
                minimum_stock=qty // 4,
                initial_batch={
                    'batch_number': f'B{random.randint(1000, 9999)}',
                    'quantity': qty,
                    'expiry_date': today + timedelta(days=random.choice([20, 90, 365])),
                },
            )

    def create_appointments(self, admin, depts, doctors, people):
        tomorrow = timezone.localdate() + timedelta(days=1)
        if doctors[0].appointments.filter(appointment_date=tomorrow).exists():
            return
        for n, patient in enumerate(people[:4]):
            appointments.create_appointment(
                admin,
                patient=patient,
                doctor=doctors[0],
                department=depts[0],
                appointment_date=tomorrow,
                appointment_time=time(9 + n, 0),
                duration_minutes=30,
            )
