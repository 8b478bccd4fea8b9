from rest_framework import serializers

from clinic.models import Admission, InventoryItem, OPDQueue, Patient, Prescription
from clinic.serializers.common import CleanCharField, IdOrAllField, choice_or_all
from clinic.services.filters import PrescriptionFilter


class PrescriptionLineSerializer(serializers.Serializer):
    itemId = serializers.PrimaryKeyRelatedField(source='item', queryset=InventoryItem.objects.all())
    dosage = CleanCharField(max_length=100)
    frequency = CleanCharField(max_length=100)
    duration = CleanCharField(max_length=100)
    quantity = serializers.IntegerField(min_value=1)
    instructions = CleanCharField(required=False, allow_blank=True, default='')


class PrescriptionSerializer(serializers.Serializer):
    patientId = serializers.PrimaryKeyRelatedField(source='patient', queryset=Patient.objects.all())
    admissionId = serializers.PrimaryKeyRelatedField(source='admission', queryset=Admission.objects.all(),
                                                     required=False, allow_null=True)
    opdQueueId = serializers.PrimaryKeyRelatedField(source='opd_queue', queryset=OPDQueue.objects.all(),
                                                    required=False, allow_null=True)
    diagnosis = CleanCharField(required=False, allow_blank=True, default='')
    notes = CleanCharField(required=False, allow_blank=True, default='')
    followUpDate = serializers.DateField(source='follow_up_date', required=False, allow_null=True)
    items = PrescriptionLineSerializer(source='lines', many=True, allow_empty=False)

    def validate(self, attrs):
        patient = attrs['patient']
        for key in ('admission', 'opd_queue'):
            linked = attrs.get(key)
            if linked is not None and linked.patient_id != patient.id:
                raise serializers.ValidationError(f'{key} belongs to another patient')
        return attrs


class CancelSerializer(serializers.Serializer):
    reason = CleanCharField(required=False, allow_blank=True, default='', max_length=255)


class PrescriptionQuerySerializer(serializers.Serializer):
    status = choice_or_all(Prescription.STATUS_CHOICES)
    patientId = IdOrAllField()
    doctorId = IdOrAllField()

    def to_filter(self) -> PrescriptionFilter:
        vd = self.validated_data
        return PrescriptionFilter(status=vd['status'], patient_id=vd['patientId'], doctor_id=vd['doctorId'])
