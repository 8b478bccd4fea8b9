from django.utils import timezone
from rest_framework import serializers

from clinic.models import Patient
from clinic.serializers.common import CleanCharField, clean_text


class PatientSerializer(serializers.Serializer):
    """Registration / edit payload.  ``patientNumber`` is never accepted."""
    fullName = CleanCharField(source='full_name', max_length=255)
    dateOfBirth = serializers.DateField(source='date_of_birth')
    gender = serializers.ChoiceField(choices=Patient.GENDER_CHOICES, required=False, allow_blank=True)
    bloodGroup = serializers.ChoiceField(
        source='blood_group',
        choices=['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-'],
        required=False,
        allow_blank=True,
    )
    phone = CleanCharField(required=False, allow_blank=True, max_length=32)
    email = serializers.EmailField(required=False, allow_blank=True)
    address = CleanCharField(required=False, allow_blank=True)
    emergencyContactName = CleanCharField(source='emergency_contact_name', required=False, allow_blank=True,
                                          max_length=255)
    emergencyContactPhone = CleanCharField(source='emergency_contact_phone', required=False, allow_blank=True,
                                           max_length=32)
    allergies = CleanCharField(required=False, allow_blank=True)
    chronicConditions = CleanCharField(source='chronic_conditions', required=False, allow_blank=True)

    def validate_fullName(self, v):
        if len(v) < 2:
            raise serializers.ValidationError('name must be at least 2 characters')
        return v

    def validate_dateOfBirth(self, v):
        if v > timezone.localdate():
            raise serializers.ValidationError('date of birth cannot be in the future')
        return v


class PatientSearchSerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=200)

    def validate_q(self, v):
        return clean_text(v)
