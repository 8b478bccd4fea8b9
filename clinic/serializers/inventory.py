from django.conf import settings
from rest_framework import serializers

from clinic.models import InventoryCategory, InventoryItem
from clinic.serializers.common import CleanCharField, IdOrAllField, choice_or_all, clean_text
from clinic.services.filters import InventoryFilter
from clinic.services.inventory import MANUAL_TYPES
from clinic.services.rules import STOCK_STATUSES


class BatchSerializer(serializers.Serializer):
    batchNumber = CleanCharField(source='batch_number', max_length=100)
    quantity = serializers.IntegerField(min_value=1)
    manufacturingDate = serializers.DateField(source='manufacturing_date', required=False, allow_null=True)
    expiryDate = serializers.DateField(source='expiry_date', required=False, allow_null=True)
    purchasePrice = serializers.DecimalField(source='purchase_price', max_digits=12, decimal_places=2,
                                             min_value=0, required=False, allow_null=True)
    supplier = CleanCharField(required=False, allow_blank=True, max_length=255, default='')

    def validate(self, attrs):
        made, expires = attrs.get('manufacturing_date'), attrs.get('expiry_date')
        if made and expires and expires < made:
            raise serializers.ValidationError('expiry date is before manufacturing date')
        return attrs


class InventoryItemSerializer(serializers.Serializer):
    name = CleanCharField(max_length=255)
    categoryId = serializers.PrimaryKeyRelatedField(source='category', queryset=InventoryCategory.objects.all())
    itemType = serializers.ChoiceField(source='item_type', choices=InventoryItem.TYPE_CHOICES, default='medicine')
    description = CleanCharField(required=False, allow_blank=True, default='')
    unit = CleanCharField(max_length=50)
    manufacturer = CleanCharField(required=False, allow_blank=True, max_length=255, default='')
    minimumStock = serializers.IntegerField(source='minimum_stock', min_value=0, default=0)
    maximumStock = serializers.IntegerField(source='maximum_stock', min_value=0, required=False, allow_null=True)
    unitPrice = serializers.DecimalField(source='unit_price', max_digits=12, decimal_places=2, min_value=0,
                                        required=False, allow_null=True)
    expiryAlertDays = serializers.IntegerField(source='expiry_alert_days', min_value=0, max_value=3650,
                                               default=lambda: settings.DEFAULT_EXPIRY_ALERT_DAYS)
    initialBatch = BatchSerializer(source='initial_batch', required=False, allow_null=True)

    def validate(self, attrs):
        lo, hi = attrs.get('minimum_stock'), attrs.get('maximum_stock')
        if lo is not None and hi is not None and hi < lo:
            raise serializers.ValidationError('maximum stock is below minimum stock')
        return attrs


class MovementSerializer(serializers.Serializer):
    transactionType = serializers.ChoiceField(source='transaction_type', choices=MANUAL_TYPES)
    quantity = serializers.IntegerField()
    batchId = serializers.IntegerField(source='batch_id', required=False, allow_null=True)
    notes = CleanCharField(required=False, allow_blank=True, default='')


class InventoryQuerySerializer(serializers.Serializer):
    categoryId = IdOrAllField()
    itemType = choice_or_all(InventoryItem.TYPE_CHOICES)
    stock = choice_or_all(STOCK_STATUSES)
    q = serializers.CharField(required=False, allow_blank=True)

    def to_filter(self) -> InventoryFilter:
        vd = self.validated_data
        return InventoryFilter(
            category_id=vd['categoryId'],
            item_type=vd['itemType'],
            stock=vd['stock'],
            q=clean_text(vd.get('q')) or None,
        )


class CategorySerializer(serializers.Serializer):
    name = CleanCharField(max_length=255)
    description = CleanCharField(required=False, allow_blank=True, default='')
