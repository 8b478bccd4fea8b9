from rest_framework import serializers

from clinic.models import Admission, Bed, Department, Patient, Profile
from clinic.serializers.common import CleanCharField, IdOrAllField
from clinic.services.admissions import RELEASE_STATUSES
from clinic.services.filters import AdmissionFilter


class AdmitSerializer(serializers.Serializer):
    patientId = serializers.PrimaryKeyRelatedField(source='patient', queryset=Patient.objects.all())
    bedId = serializers.IntegerField(source='bed_id')
    departmentId = serializers.PrimaryKeyRelatedField(source='department', queryset=Department.objects.all())
    doctorId = serializers.PrimaryKeyRelatedField(source='admitting_doctor',
                                                  queryset=Profile.objects.filter(role='doctor'))
    admissionType = serializers.ChoiceField(source='admission_type', choices=Admission.TYPE_CHOICES,
                                            default='planned')
    diagnosis = CleanCharField(required=False, allow_blank=True, default='')
    treatmentPlan = CleanCharField(source='treatment_plan', required=False, allow_blank=True, default='')

    def validate_bedId(self, v):
        if not Bed.objects.filter(id=v).exists():
            raise serializers.ValidationError('bed not found')
        return v


class DischargeSerializer(serializers.Serializer):
    dischargeSummary = CleanCharField(source='discharge_summary', required=False, allow_blank=True)
    totalCost = serializers.DecimalField(source='total_cost', max_digits=12, decimal_places=2, min_value=0,
                                         required=False, allow_null=True)
    releaseBedTo = serializers.ChoiceField(source='release_to', choices=RELEASE_STATUSES,
                                           default=Bed.STATUS_AVAILABLE)


class TransferSerializer(serializers.Serializer):
    releaseBedTo = serializers.ChoiceField(source='release_to', choices=RELEASE_STATUSES,
                                           default=Bed.STATUS_AVAILABLE)


class AdmissionQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['all', *[c[0] for c in Admission.STATUS_CHOICES]],
                                     required=False, default=Admission.STATUS_ADMITTED)
    departmentId = IdOrAllField()

    def to_filter(self) -> AdmissionFilter:
        return AdmissionFilter(status=self.validated_data['status'], department_id=self.validated_data['departmentId'])
