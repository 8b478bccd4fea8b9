from rest_framework import serializers

from clinic.models import Bed, Department
from clinic.serializers.common import CleanCharField, IdOrAllField, choice_or_all
from clinic.services.filters import BedFilter


class BedSerializer(serializers.Serializer):
    bedNumber = CleanCharField(source='bed_number', max_length=50)
    departmentId = serializers.PrimaryKeyRelatedField(source='department', queryset=Department.objects.all())
    bedType = serializers.ChoiceField(source='bed_type', choices=Bed.TYPE_CHOICES, default='general')
    status = serializers.ChoiceField(choices=Bed.STATUS_CHOICES, default=Bed.STATUS_AVAILABLE)
    floorNumber = serializers.IntegerField(source='floor_number', required=False, allow_null=True, min_value=0)
    roomNumber = CleanCharField(source='room_number', required=False, allow_blank=True, max_length=20, default='')


class BulkBedSerializer(serializers.Serializer):
    departmentId = serializers.PrimaryKeyRelatedField(source='department', queryset=Department.objects.all())
    count = serializers.IntegerField(min_value=1, max_value=100)
    startingNumber = serializers.IntegerField(source='starting_number', min_value=1)
    prefix = CleanCharField(required=False, allow_blank=True, max_length=20, default='')
    bedType = serializers.ChoiceField(source='bed_type', choices=Bed.TYPE_CHOICES, default='general')
    floorNumber = serializers.IntegerField(source='floor_number', required=False, allow_null=True, min_value=0)


class BedQuerySerializer(serializers.Serializer):
    departmentId = IdOrAllField()
    status = choice_or_all(Bed.STATUS_CHOICES)
    bedType = choice_or_all(Bed.TYPE_CHOICES)

    def to_filter(self) -> BedFilter:
        vd = self.validated_data
        return BedFilter(department_id=vd['departmentId'], status=vd['status'], bed_type=vd['bedType'])
