"""
URL mappings for the hospital operations API.

Trailing slashes are omitted (``APPEND_SLASH = False``); object routes
take the primary key in the path.
"""
from django.urls import path, include

from .auth_views import jwt_logout_view, jwt_refresh_view, login_view, me_view
from .views import admissions, appointments, beds, dashboard, health, inventory, opd, patients, prescriptions
from .views import staff

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh_view'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout_view'),
    path('api/auth/me', me_view),
    # Dashboard
    path('api/dashboard/summary', dashboard.summary),
    path('api/dashboard/daily-stats', dashboard.daily_stats),
    # Patients
    path('api/patients', patients.patients),
    path('api/patients/<int:pk>', patients.patient_detail),
    # OPD queue
    path('api/opd/queue', opd.queue_list),
    path('api/opd/enqueue', opd.enqueue),
    path('api/opd/queue/<int:pk>', opd.queue_entry_detail),
    path('api/opd/queue/<int:pk>/status', opd.queue_entry_status),
    # Beds
    path('api/beds', beds.beds),
    path('api/beds/bulk', beds.beds_bulk),
    path('api/beds/stats', beds.bed_stats),
    path('api/beds/available', beds.available_beds),
    path('api/beds/<int:pk>', beds.bed_detail),
    # Admissions
    path('api/admissions', admissions.admissions),
    path('api/admissions/stats', admissions.admission_stats),
    path('api/admissions/<int:pk>', admissions.admission_detail),
    path('api/admissions/<int:pk>/discharge', admissions.discharge),
    path('api/admissions/<int:pk>/transfer', admissions.transfer),
    # Inventory
    path('api/inventory/items', inventory.items),
    path('api/inventory/items/<int:pk>', inventory.item_detail),
    path('api/inventory/items/<int:pk>/batches', inventory.receive_batch),
    path('api/inventory/items/<int:pk>/movements', inventory.record_movement),
    path('api/inventory/expiring', inventory.expiring_batches),
    path('api/inventory/transactions', inventory.transactions),
    path('api/inventory/categories', inventory.categories),
    path('api/inventory/categories/<int:pk>', inventory.category_detail),
    # Prescriptions
    path('api/prescriptions', prescriptions.prescriptions),
    path('api/prescriptions/<int:pk>', prescriptions.prescription_detail),
    path('api/prescriptions/<int:pk>/dispense', prescriptions.dispense),
    path('api/prescriptions/<int:pk>/cancel', prescriptions.cancel),
    # Appointments
    path('api/appointments', appointments.appointments),
    path('api/appointments/<int:pk>', appointments.appointment_detail),
    path('api/appointments/<int:pk>/status', appointments.appointment_status),
    # Settings
    path('api/departments', staff.departments),
    path('api/departments/<int:pk>', staff.department_detail),
    path('api/staff', staff.staff),
    path('api/staff/<int:pk>', staff.staff_detail),
    path('api/doctors', staff.doctors),
]
