"""
Patient registry endpoints.

Any signed-in staff member may search patients; front desk and ward
staff register and edit them.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from clinic.models import Patient
from clinic.permissions import IsClinicalOrReadOnly
from clinic.serializers.patients import PatientSearchSerializer, PatientSerializer
from clinic.services import patients as patient_service
from clinic.services.rules import age_years


def serialize_patient(p: Patient) -> dict:
    return {
        'id': p.id,
        'patientNumber': p.patient_number,
        'fullName': p.full_name,
        'dateOfBirth': p.date_of_birth.isoformat(),
        'age': age_years(p.date_of_birth),
        'gender': p.gender,
        'bloodGroup': p.blood_group,
        'phone': p.phone,
        'email': p.email,
        'address': p.address,
        'emergencyContactName': p.emergency_contact_name,
        'emergencyContactPhone': p.emergency_contact_phone,
        'allergies': p.allergies,
        'chronicConditions': p.chronic_conditions,
        'createdAt': p.created_at.isoformat(),
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsClinicalOrReadOnly])
def patients(request):
    """``GET`` searches by name, number or phone; ``POST`` registers a patient."""
    if request.method == 'POST':
        s = PatientSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        patient = patient_service.create_patient(request.user, **s.validated_data)
        return Response({'ok': True, 'data': serialize_patient(patient)}, status=status.HTTP_201_CREATED)

    q = PatientSearchSerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = patient_service.search_patients(q.validated_data.get('q'))
    total = qs.count()
    page = q.validated_data.get('page') or 1
    page_size = q.validated_data.get('pageSize') or 50
    start = (page - 1) * page_size
    data = [serialize_patient(p) for p in qs[start:start + page_size]]
    return Response({'ok': True, 'data': data, 'pagination': {'total': total, 'page': page, 'pageSize': page_size}})


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsClinicalOrReadOnly])
def patient_detail(request, pk: int):
    patient = get_object_or_404(Patient, pk=pk)
    if request.method == 'GET':
        data = serialize_patient(patient)
        data['activeAdmission'] = patient.admissions.filter(status='admitted').values_list('id', flat=True).first()
        return Response({'ok': True, 'data': data})
    if request.method == 'DELETE':
        patient_service.delete_patient(request.user, patient)
        return Response(status=status.HTTP_204_NO_CONTENT)

    s = PatientSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    patient = patient_service.update_patient(request.user, patient, **s.validated_data)
    return Response({'ok': True, 'data': serialize_patient(patient)})
