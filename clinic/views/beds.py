from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from clinic.models import Bed
from clinic.permissions import IsAdminOrReadOnly, IsClinicalOrReadOnly
from clinic.serializers.beds import BedQuerySerializer, BedSerializer, BulkBedSerializer
from clinic.services import beds as bed_service
from clinic.services.filters import BedFilter


def serialize_bed(b: Bed) -> dict:
    return {
        'id': b.id,
        'bedNumber': b.bed_number,
        'departmentId': b.department_id,
        'departmentName': b.department.name,
        'bedType': b.bed_type,
        'status': b.status,
        'floorNumber': b.floor_number,
        'roomNumber': b.room_number,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def beds(request):
    if request.method == 'POST':
        s = BedSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        bed = bed_service.create_bed(request.user, **s.validated_data)
        return Response({'ok': True, 'data': serialize_bed(bed)}, status=status.HTTP_201_CREATED)

    q = BedQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = [serialize_bed(b) for b in bed_service.list_beds(q.to_filter())]
    return Response({'ok': True, 'data': data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def beds_bulk(request):
    """Create ``count`` beds numbered ``prefix-N`` from ``startingNumber``; all or nothing."""
    s = BulkBedSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    created = bed_service.bulk_create_beds(request.user, **s.validated_data)
    return Response({'ok': True, 'data': [serialize_bed(b) for b in created]}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def bed_stats(request):
    q = BedQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    f = q.to_filter()
    # Stats are over a department (or all); status/type filters would skew the rate.
    qs = bed_service.list_beds(BedFilter(department_id=f.department_id))
    return Response({'ok': True, 'data': bed_service.bed_stats(qs)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def available_beds(request):
    dept_id = request.query_params.get('departmentId')
    if not dept_id or not str(dept_id).isdigit():
        return Response({'ok': False, 'error': {'code': 'invalid', 'message': 'departmentId is required'}},
                        status=status.HTTP_400_BAD_REQUEST)
    beds_qs = bed_service.available_beds(int(dept_id)).select_related('department')
    return Response({'ok': True, 'data': [serialize_bed(b) for b in beds_qs]})


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsClinicalOrReadOnly])
def bed_detail(request, pk: int):
    get_object_or_404(Bed, pk=pk)
    if request.method == 'DELETE':
        if request.user.role != 'admin':
            return Response({'ok': False, 'error': {'code': 'forbidden', 'message': 'only admins delete beds'}},
                            status=status.HTTP_403_FORBIDDEN)
        bed_service.delete_bed(request.user, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    s = BedSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    bed = bed_service.update_bed(request.user, pk, **s.validated_data)
    return Response({'ok': True, 'data': serialize_bed(bed)})
