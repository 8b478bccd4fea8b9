from rest_framework import serializers

from clinic.models import Department, Profile
from clinic.serializers.common import CleanCharField


class DepartmentSerializer(serializers.Serializer):
    name = CleanCharField(max_length=255)
    description = CleanCharField(required=False, allow_blank=True, default='')
    headDoctorId = serializers.PrimaryKeyRelatedField(source='head_doctor', queryset=Profile.objects.all(),
                                                      required=False, allow_null=True)


class StaffSerializer(serializers.Serializer):
    username = serializers.RegexField(r'^[\w.@+-]+$', max_length=150)
    password = serializers.CharField(required=False, allow_blank=True, write_only=True, min_length=8)
    fullName = CleanCharField(source='full_name', max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=Profile.ROLE_CHOICES, default='doctor')
    departmentId = serializers.PrimaryKeyRelatedField(source='department', queryset=Department.objects.all(),
                                                      required=False, allow_null=True)
    phone = CleanCharField(required=False, allow_blank=True, max_length=32)
    specialization = CleanCharField(required=False, allow_blank=True, max_length=255)


class StaffQuerySerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=Profile.ROLE_CHOICES, required=False)
    departmentId = serializers.IntegerField(required=False)
    q = serializers.CharField(required=False, allow_blank=True)
