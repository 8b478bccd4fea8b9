from django.utils import timezone
from rest_framework import serializers

from clinic.models import Department, OPDQueue, Patient, Profile
from clinic.serializers.common import CleanCharField, IdOrAllField, choice_or_all
from clinic.serializers.patients import PatientSerializer
from clinic.services.filters import QueueFilter


class VitalsSerializer(serializers.Serializer):
    bloodPressure = serializers.CharField(required=False, allow_blank=True, max_length=20)
    pulse = serializers.IntegerField(required=False, min_value=0, max_value=300)
    temperature = serializers.DecimalField(required=False, max_digits=4, decimal_places=1)
    weight = serializers.DecimalField(required=False, max_digits=5, decimal_places=1)
    spo2 = serializers.IntegerField(required=False, min_value=0, max_value=100)

    def to_internal_value(self, data):
        values = super().to_internal_value(data)
        # JSONField storage: keep decimals as strings.
        return {k: (str(v) if not isinstance(v, (int, str)) else v) for k, v in values.items()}


class EnqueueSerializer(serializers.Serializer):
    patientId = serializers.PrimaryKeyRelatedField(source='patient', queryset=Patient.objects.all(),
                                                   required=False, allow_null=True)
    newPatient = PatientSerializer(source='new_patient', required=False, allow_null=True)
    departmentId = serializers.PrimaryKeyRelatedField(source='department', queryset=Department.objects.all())
    doctorId = serializers.PrimaryKeyRelatedField(source='doctor', queryset=Profile.objects.filter(role='doctor'),
                                                  required=False, allow_null=True)
    priority = serializers.ChoiceField(choices=OPDQueue.PRIORITY_CHOICES, default='normal')
    symptoms = CleanCharField(required=False, allow_blank=True, default='')
    vitals = VitalsSerializer(required=False)
    notes = CleanCharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if not attrs.get('patient') and not attrs.get('new_patient'):
            raise serializers.ValidationError('patientId or newPatient is required')
        if attrs.get('patient') and attrs.get('new_patient'):
            raise serializers.ValidationError('give either patientId or newPatient, not both')
        return attrs


class QueueStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OPDQueue.STATUS_CHOICES)
    reason = CleanCharField(required=False, allow_blank=True, default='', max_length=255)
    doctorId = serializers.PrimaryKeyRelatedField(source='doctor', queryset=Profile.objects.filter(role='doctor'),
                                                  required=False, allow_null=True)


class QueueQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    departmentId = IdOrAllField()
    status = choice_or_all(OPDQueue.STATUS_CHOICES)
    doctorId = IdOrAllField()

    def to_filter(self) -> QueueFilter:
        vd = self.validated_data
        return QueueFilter(
            day=vd.get('date') or timezone.localdate(),
            department_id=vd['departmentId'],
            status=vd['status'],
            doctor_id=vd['doctorId'],
        )
