from rest_framework import serializers

from clinic.models import Appointment, Department, Patient, Profile
from clinic.serializers.common import CleanCharField, IdOrAllField, choice_or_all
from clinic.services.appointments import MAX_DURATION, MIN_DURATION
from clinic.services.filters import AppointmentFilter


class AppointmentSerializer(serializers.Serializer):
    patientId = serializers.PrimaryKeyRelatedField(source='patient', queryset=Patient.objects.all())
    doctorId = serializers.PrimaryKeyRelatedField(source='doctor', queryset=Profile.objects.filter(role='doctor'))
    departmentId = serializers.PrimaryKeyRelatedField(source='department', queryset=Department.objects.all())
    appointmentDate = serializers.DateField(source='appointment_date')
    appointmentTime = serializers.TimeField(source='appointment_time')
    durationMinutes = serializers.IntegerField(source='duration_minutes', min_value=MIN_DURATION,
                                               max_value=MAX_DURATION, default=30)
    appointmentType = serializers.ChoiceField(source='appointment_type', choices=Appointment.TYPE_CHOICES,
                                              default='consultation')
    reason = CleanCharField(required=False, allow_blank=True, default='')
    notes = CleanCharField(required=False, allow_blank=True, default='')


class AppointmentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Appointment.STATUS_CHOICES)


class AppointmentQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    doctorId = IdOrAllField()
    departmentId = IdOrAllField()
    status = choice_or_all(Appointment.STATUS_CHOICES)

    def to_filter(self) -> AppointmentFilter:
        vd = self.validated_data
        return AppointmentFilter(
            day=vd.get('date'),
            doctor_id=vd['doctorId'],
            department_id=vd['departmentId'],
            status=vd['status'],
        )
