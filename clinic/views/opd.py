"""
OPD queue endpoints.

Check-in issues a token that is unique within the department for the
day; status updates walk the visit through consultation.  Every change
is recorded as a :class:`~clinic.models.QueueTransition`.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from clinic.models import OPDQueue
from clinic.permissions import IsClinicalOrReadOnly
from clinic.serializers.opd import EnqueueSerializer, QueueQuerySerializer, QueueStatusSerializer
from clinic.services import opd as opd_service
from clinic.services.rules import wait_time_minutes


def serialize_entry(e: OPDQueue, now=None) -> dict:
    return {
        'id': e.id,
        'tokenNumber': e.token_number,
        'queueDate': e.queue_date.isoformat(),
        'patientId': e.patient_id,
        'patientName': e.patient.full_name,
        'patientNumber': e.patient.patient_number,
        'departmentId': e.department_id,
        'departmentName': e.department.name,
        'doctorId': e.doctor_id,
        'doctorName': e.doctor.display_name if e.doctor else None,
        'priority': e.priority,
        'status': e.status,
        'checkInTime': e.check_in_time.isoformat(),
        'consultationStartTime': e.consultation_start_time.isoformat() if e.consultation_start_time else None,
        'consultationEndTime': e.consultation_end_time.isoformat() if e.consultation_end_time else None,
        'waitTimeMinutes': wait_time_minutes(e.check_in_time, now) if e.status == 'waiting' else None,
        'symptoms': e.symptoms,
        'vitals': e.vitals,
        'notes': e.notes,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def queue_list(request):
    """A day's queue (default today) in token order, with status counts."""
    q = QueueQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    filters = q.to_filter()
    entries = list(opd_service.list_queue(filters))
    now = timezone.now()
    return Response({
        'ok': True,
        'date': filters.day.isoformat(),
        'stats': opd_service.queue_stats(entries),
        'data': [serialize_entry(e, now) for e in entries],
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalOrReadOnly])
def enqueue(request):
    s = EnqueueSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    entry = opd_service.enqueue(request.user, **s.validated_data)
    return Response({'ok': True, 'data': serialize_entry(entry)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def queue_entry_detail(request, pk: int):
    entry = get_object_or_404(OPDQueue.objects.select_related('patient', 'department', 'doctor'), pk=pk)
    data = serialize_entry(entry)
    data['transitionHistory'] = [
        {
            'from': t.from_status,
            'to': t.to_status,
            'operator': t.operator.username if t.operator else '',
            'timestamp': t.timestamp.isoformat(),
            'reason': t.reason,
        }
        for t in entry.transitions.select_related('operator').order_by('timestamp', 'id')
    ]
    return Response({'ok': True, 'data': data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalOrReadOnly])
def queue_entry_status(request, pk: int):
    get_object_or_404(OPDQueue, pk=pk)
    s = QueueStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    entry = opd_service.change_status(request.user, pk, vd['status'], reason=vd['reason'], doctor=vd.get('doctor'))
    entry = OPDQueue.objects.select_related('patient', 'department', 'doctor').get(pk=entry.pk)
    return Response({'ok': True, 'data': serialize_entry(entry)})
