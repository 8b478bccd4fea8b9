from __future__ import annotations

from django.http import Http404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from clinic.models import Prescription
from clinic.permissions import IsPharmacy, IsPrescriberOrReadOnly
from clinic.serializers.prescriptions import CancelSerializer, PrescriptionQuerySerializer, PrescriptionSerializer
from clinic.services import prescriptions as prescription_service


def serialize_prescription(p: Prescription) -> dict:
    return {
        'id': p.id,
        'patientId': p.patient_id,
        'patientName': p.patient.full_name,
        'doctorId': p.doctor_id,
        'doctorName': p.doctor.display_name,
        'admissionId': p.admission_id,
        'opdQueueId': p.opd_queue_id,
        'status': p.status,
        'diagnosis': p.diagnosis,
        'notes': p.notes,
        'followUpDate': p.follow_up_date.isoformat() if p.follow_up_date else None,
        'dispensedAt': p.dispensed_at.isoformat() if p.dispensed_at else None,
        'createdAt': p.created_at.isoformat(),
        'items': [
            {
                'id': line.id,
                'itemId': line.item_id,
                'itemName': line.item.name,
                'dosage': line.dosage,
                'frequency': line.frequency,
                'duration': line.duration,
                'quantity': line.quantity,
                'instructions': line.instructions,
            }
            for line in p.items.all()
        ],
    }


def _load(pk: int) -> Prescription:
    p = prescription_service.get_prescription(pk)
    if p is None:
        raise Http404('prescription not found')
    return p


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPrescriberOrReadOnly])
def prescriptions(request):
    if request.method == 'POST':
        s = PrescriptionSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        p = prescription_service.create_prescription(request.user, doctor=request.user, **s.validated_data)
        return Response({'ok': True, 'data': serialize_prescription(_load(p.id))}, status=status.HTTP_201_CREATED)

    q = PrescriptionQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = [serialize_prescription(p) for p in prescription_service.list_prescriptions(q.to_filter())]
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def prescription_detail(request, pk: int):
    return Response({'ok': True, 'data': serialize_prescription(_load(pk))})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPharmacy])
def dispense(request, pk: int):
    """Dispense every line or none; stock shortfalls return 400 with the items short."""
    _load(pk)
    prescription_service.dispense(request.user, pk)
    return Response({'ok': True, 'data': serialize_prescription(_load(pk))})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel(request, pk: int):
    if request.user.role not in ('admin', 'doctor', 'pharmacist'):
        raise PermissionError('only prescribers and pharmacists can cancel prescriptions')
    _load(pk)
    s = CancelSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    prescription_service.cancel(request.user, pk, reason=s.validated_data['reason'])
    return Response({'ok': True, 'data': serialize_prescription(_load(pk))})
