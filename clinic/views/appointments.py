from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from clinic.models import Appointment
from clinic.permissions import IsClinicalOrReadOnly
from clinic.serializers.appointments import (
    AppointmentQuerySerializer,
    AppointmentSerializer,
    AppointmentStatusSerializer,
)
from clinic.services import appointments as appointment_service

RELATED = ('patient', 'doctor', 'department')


def serialize_appointment(a: Appointment) -> dict:
    return {
        'id': a.id,
        'patientId': a.patient_id,
        'patientName': a.patient.full_name,
        'doctorId': a.doctor_id,
        'doctorName': a.doctor.display_name,
        'departmentId': a.department_id,
        'departmentName': a.department.name,
        'appointmentDate': a.appointment_date.isoformat(),
        'appointmentTime': a.appointment_time.strftime('%H:%M'),
        'durationMinutes': a.duration_minutes,
        'appointmentType': a.appointment_type,
        'status': a.status,
        'reason': a.reason,
        'notes': a.notes,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsClinicalOrReadOnly])
def appointments(request):
    if request.method == 'POST':
        s = AppointmentSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        appt = appointment_service.create_appointment(request.user, **s.validated_data)
        return Response({'ok': True, 'data': serialize_appointment(appt)}, status=status.HTTP_201_CREATED)

    q = AppointmentQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = [serialize_appointment(a) for a in appointment_service.list_appointments(q.to_filter())]
    return Response({'ok': True, 'data': data})


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsClinicalOrReadOnly])
def appointment_detail(request, pk: int):
    appt = get_object_or_404(Appointment.objects.select_related(*RELATED), pk=pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': serialize_appointment(appt)})
    if request.method == 'DELETE':
        appointment_service.delete_appointment(request.user, appt)
        return Response(status=status.HTTP_204_NO_CONTENT)

    s = AppointmentSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    appointment_service.update_appointment(request.user, pk, **s.validated_data)
    appt = Appointment.objects.select_related(*RELATED).get(pk=pk)
    return Response({'ok': True, 'data': serialize_appointment(appt)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalOrReadOnly])
def appointment_status(request, pk: int):
    get_object_or_404(Appointment, pk=pk)
    s = AppointmentStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appointment_service.change_status(request.user, pk, s.validated_data['status'])
    appt = Appointment.objects.select_related(*RELATED).get(pk=pk)
    return Response({'ok': True, 'data': serialize_appointment(appt)})
