"""
Inpatient admission endpoints.

Admit, discharge and transfer each move the bed in the same
transaction as the admission, so the bed board and the admission list
never disagree.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from clinic.models import Admission
from clinic.permissions import IsClinicalOrReadOnly
from clinic.serializers.admissions import (
    AdmissionQuerySerializer,
    AdmitSerializer,
    DischargeSerializer,
    TransferSerializer,
)
from clinic.services import admissions as admission_service
from clinic.services.rules import stay_duration_days

RELATED = ('patient', 'bed', 'department', 'admitting_doctor')


def serialize_admission(a: Admission, now=None) -> dict:
    return {
        'id': a.id,
        'patientId': a.patient_id,
        'patientName': a.patient.full_name,
        'patientNumber': a.patient.patient_number,
        'bedId': a.bed_id,
        'bedNumber': a.bed.bed_number,
        'departmentId': a.department_id,
        'departmentName': a.department.name,
        'admittingDoctorId': a.admitting_doctor_id,
        'admittingDoctorName': a.admitting_doctor.display_name,
        'admissionDate': a.admission_date.isoformat(),
        'dischargeDate': a.discharge_date.isoformat() if a.discharge_date else None,
        'admissionType': a.admission_type,
        'status': a.status,
        'diagnosis': a.diagnosis,
        'treatmentPlan': a.treatment_plan,
        'dischargeSummary': a.discharge_summary,
        'totalCost': str(a.total_cost) if a.total_cost is not None else None,
        'stayDays': stay_duration_days(a.admission_date, a.discharge_date, now=now),
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsClinicalOrReadOnly])
def admissions(request):
    if request.method == 'POST':
        s = AdmitSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        admission = admission_service.admit(request.user, **s.validated_data)
        admission = Admission.objects.select_related(*RELATED).get(pk=admission.pk)
        return Response({'ok': True, 'data': serialize_admission(admission)}, status=status.HTTP_201_CREATED)

    q = AdmissionQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    now = timezone.now()
    data = [serialize_admission(a, now) for a in admission_service.list_admissions(q.to_filter())]
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def admission_stats(request):
    return Response({'ok': True, 'data': admission_service.admission_stats()})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def admission_detail(request, pk: int):
    admission = get_object_or_404(Admission.objects.select_related(*RELATED), pk=pk)
    return Response({'ok': True, 'data': serialize_admission(admission)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalOrReadOnly])
def discharge(request, pk: int):
    get_object_or_404(Admission, pk=pk)
    s = DischargeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    admission_service.discharge(request.user, pk, **s.validated_data)
    admission = Admission.objects.select_related(*RELATED).get(pk=pk)
    return Response({'ok': True, 'data': serialize_admission(admission)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalOrReadOnly])
def transfer(request, pk: int):
    get_object_or_404(Admission, pk=pk)
    s = TransferSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    admission_service.transfer(request.user, pk, **s.validated_data)
    admission = Admission.objects.select_related(*RELATED).get(pk=pk)
    return Response({'ok': True, 'data': serialize_admission(admission)})
