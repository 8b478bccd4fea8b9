"""
Inventory endpoints: items, batches, stock movements and categories.

Stock counts are only ever changed through the movement services; the
item edit endpoint cannot touch ``currentStock``.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from clinic.models import InventoryBatch, InventoryCategory, InventoryItem, InventoryTransaction
from clinic.permissions import IsInventoryOrReadOnly
from clinic.serializers.inventory import (
    BatchSerializer,
    CategorySerializer,
    InventoryItemSerializer,
    InventoryQuerySerializer,
    MovementSerializer,
)
from clinic.services import inventory as inventory_service
from clinic.services.rules import days_until_expiry, is_expired, stock_status


def serialize_item(i: InventoryItem) -> dict:
    return {
        'id': i.id,
        'name': i.name,
        'categoryId': i.category_id,
        'categoryName': i.category.name,
        'itemType': i.item_type,
        'description': i.description,
        'unit': i.unit,
        'manufacturer': i.manufacturer,
        'currentStock': i.current_stock,
        'minimumStock': i.minimum_stock,
        'maximumStock': i.maximum_stock,
        'unitPrice': str(i.unit_price) if i.unit_price is not None else None,
        'expiryAlertDays': i.expiry_alert_days,
        'stockStatus': stock_status(i.current_stock, i.minimum_stock),
    }


def serialize_batch(b: InventoryBatch, now=None) -> dict:
    return {
        'id': b.id,
        'itemId': b.item_id,
        'batchNumber': b.batch_number,
        'quantity': b.quantity,
        'manufacturingDate': b.manufacturing_date.isoformat() if b.manufacturing_date else None,
        'expiryDate': b.expiry_date.isoformat() if b.expiry_date else None,
        'daysUntilExpiry': days_until_expiry(b.expiry_date, now) if b.expiry_date else None,
        'isExpired': is_expired(b.expiry_date, now) if b.expiry_date else False,
        'purchasePrice': str(b.purchase_price) if b.purchase_price is not None else None,
        'supplier': b.supplier,
        'status': b.status,
    }


def serialize_transaction(t: InventoryTransaction) -> dict:
    return {
        'id': t.id,
        'itemId': t.item_id,
        'itemName': t.item.name,
        'batchId': t.batch_id,
        'transactionType': t.transaction_type,
        'quantity': t.quantity,
        'unitPrice': str(t.unit_price) if t.unit_price is not None else None,
        'referenceId': t.reference_id,
        'referenceType': t.reference_type,
        'performedBy': t.performed_by.username if t.performed_by else None,
        'notes': t.notes,
        'createdAt': t.created_at.isoformat(),
    }


def serialize_category(c: InventoryCategory) -> dict:
    return {'id': c.id, 'name': c.name, 'description': c.description}


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsInventoryOrReadOnly])
def items(request):
    if request.method == 'POST':
        s = InventoryItemSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        item = inventory_service.create_item(request.user, **s.validated_data)
        item = InventoryItem.objects.select_related('category').get(pk=item.pk)
        return Response({'ok': True, 'data': serialize_item(item)}, status=status.HTTP_201_CREATED)

    q = InventoryQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = [serialize_item(i) for i in inventory_service.list_items(q.to_filter())]
    return Response({'ok': True, 'data': data})


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsInventoryOrReadOnly])
def item_detail(request, pk: int):
    item = get_object_or_404(InventoryItem.objects.select_related('category'), pk=pk)
    if request.method == 'PATCH':
        s = InventoryItemSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        fields = dict(s.validated_data)
        fields.pop('initial_batch', None)
        inventory_service.update_item(request.user, pk, **fields)
        item = InventoryItem.objects.select_related('category').get(pk=pk)
        return Response({'ok': True, 'data': serialize_item(item)})

    now = timezone.now()
    data = serialize_item(item)
    data['batches'] = [serialize_batch(b, now) for b in item.batches.order_by('expiry_date', 'id')]
    return Response({'ok': True, 'data': data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsInventoryOrReadOnly])
def receive_batch(request, pk: int):
    get_object_or_404(InventoryItem, pk=pk)
    s = BatchSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    batch = inventory_service.receive_batch(request.user, pk, **s.validated_data)
    return Response({'ok': True, 'data': serialize_batch(batch)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsInventoryOrReadOnly])
def record_movement(request, pk: int):
    """Adjustment (signed), return (+) or wastage (-) against an item."""
    get_object_or_404(InventoryItem, pk=pk)
    s = MovementSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    tx = inventory_service.record_movement(request.user, pk, **s.validated_data)
    tx = InventoryTransaction.objects.select_related('item', 'performed_by').get(pk=tx.pk)
    return Response({'ok': True, 'data': serialize_transaction(tx)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def expiring_batches(request):
    now = timezone.now()
    data = []
    for b in inventory_service.expiring_batches(now):
        row = serialize_batch(b, now)
        row['itemName'] = b.item.name
        data.append(row)
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def transactions(request):
    item_id = request.query_params.get('itemId')
    item_id = int(item_id) if item_id and item_id.isdigit() else None
    data = [serialize_transaction(t) for t in inventory_service.list_transactions(item_id)]
    return Response({'ok': True, 'data': data})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsInventoryOrReadOnly])
def categories(request):
    if request.method == 'POST':
        s = CategorySerializer(data=request.data)
        s.is_valid(raise_exception=True)
        category = inventory_service.create_category(request.user, **s.validated_data)
        return Response({'ok': True, 'data': serialize_category(category)}, status=status.HTTP_201_CREATED)
    return Response({'ok': True, 'data': [serialize_category(c) for c in InventoryCategory.objects.order_by('name')]})


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsInventoryOrReadOnly])
def category_detail(request, pk: int):
    category = get_object_or_404(InventoryCategory, pk=pk)
    if request.method == 'DELETE':
        inventory_service.delete_category(request.user, category)
        return Response(status=status.HTTP_204_NO_CONTENT)
    s = CategorySerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    category = inventory_service.update_category(request.user, category, **s.validated_data)
    return Response({'ok': True, 'data': serialize_category(category)})
