"""
Django admin registrations for the clinic models.

Lets superusers inspect and correct rows at ``/admin/``.  Stock counts
and statuses are read-only here; change them through the API so the
transaction log and bed/admission coupling stay consistent.
"""
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import (
    Admission,
    Appointment,
    AuditEvent,
    Bed,
    DailyStats,
    Department,
    InventoryBatch,
    InventoryCategory,
    InventoryItem,
    InventoryTransaction,
    OPDQueue,
    Patient,
    Prescription,
    PrescriptionItem,
    Profile,
    QueueTransition,
)


@admin.register(Profile)
class ProfileAdmin(UserAdmin):
    list_display = ('username', 'full_name', 'role', 'department', 'is_staff', 'is_superuser')
    list_filter = ('role', 'department')
    search_fields = ('username', 'full_name', 'email')
    fieldsets = UserAdmin.fieldsets + (
        ('Hospital', {'fields': ('role', 'full_name', 'department', 'phone', 'specialization')}),
    )


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'head_doctor', 'created_at')
    search_fields = ('name',)


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('patient_number', 'full_name', 'date_of_birth', 'gender', 'phone')
    search_fields = ('patient_number', 'full_name', 'phone')
    readonly_fields = ('patient_number',)


@admin.register(Bed)
class BedAdmin(admin.ModelAdmin):
    list_display = ('bed_number', 'department', 'bed_type', 'status', 'floor_number', 'room_number')
    list_filter = ('department', 'bed_type', 'status')
    search_fields = ('bed_number',)
    readonly_fields = ('status',)


class QueueTransitionInline(admin.TabularInline):
    model = QueueTransition
    extra = 0
    readonly_fields = ('from_status', 'to_status', 'operator', 'timestamp', 'reason')


@admin.register(OPDQueue)
class OPDQueueAdmin(admin.ModelAdmin):
    list_display = ('queue_date', 'department', 'token_number', 'patient', 'priority', 'status')
    list_filter = ('queue_date', 'department', 'status', 'priority')
    search_fields = ('patient__full_name', 'patient__patient_number')
    readonly_fields = ('token_number', 'queue_date', 'status')
    inlines = [QueueTransitionInline]


@admin.register(Admission)
class AdmissionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'bed', 'department', 'status', 'admission_date', 'discharge_date')
    list_filter = ('status', 'department', 'admission_type')
    search_fields = ('patient__full_name', 'patient__patient_number', 'bed__bed_number')
    readonly_fields = ('status', 'bed')


@admin.register(InventoryCategory)
class InventoryCategoryAdmin(admin.ModelAdmin):
    list_display = ('id', 'name')
    search_fields = ('name',)


class InventoryBatchInline(admin.TabularInline):
    model = InventoryBatch
    extra = 0
    readonly_fields = ('quantity',)


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'item_type', 'current_stock', 'minimum_stock', 'unit')
    list_filter = ('category', 'item_type')
    search_fields = ('name', 'manufacturer')
    readonly_fields = ('current_stock',)
    inlines = [InventoryBatchInline]


@admin.register(InventoryTransaction)
class InventoryTransactionAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'item', 'transaction_type', 'quantity', 'performed_by', 'reference_type', 'reference_id')
    list_filter = ('transaction_type',)
    search_fields = ('item__name', 'reference_id')

    def has_change_permission(self, request, obj=None):
        return False


class PrescriptionItemInline(admin.TabularInline):
    model = PrescriptionItem
    extra = 0


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'status', 'created_at', 'dispensed_at')
    list_filter = ('status',)
    search_fields = ('patient__full_name', 'patient__patient_number')
    readonly_fields = ('status', 'dispensed_at', 'dispensed_by')
    inlines = [PrescriptionItemInline]


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('appointment_date', 'appointment_time', 'doctor', 'patient', 'status')
    list_filter = ('appointment_date', 'status', 'department')
    search_fields = ('patient__full_name', 'doctor__full_name')


@admin.register(DailyStats)
class DailyStatsAdmin(admin.ModelAdmin):
    list_display = ('date', 'total_opd_patients', 'total_admissions', 'total_discharges', 'beds_occupied', 'revenue')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'action', 'user', 'object_type', 'object_id')
    list_filter = ('action', 'object_type')
    search_fields = ('object_id',)
