"""
Settings screen: departments and staff profiles.

Only administrators may change these.  Deleting a department or a
doctor that clinical records still reference is refused with 409.
"""
from __future__ import annotations

from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from clinic.models import Department
from clinic.permissions import IsAdminOrReadOnly
from clinic.serializers.staff import DepartmentSerializer, StaffQuerySerializer, StaffSerializer
from clinic.services import staff as staff_service

User = get_user_model()


def serialize_department(d: Department) -> dict:
    return {
        'id': d.id,
        'name': d.name,
        'description': d.description,
        'headDoctorId': d.head_doctor_id,
    }


def serialize_staff(u) -> dict:
    return {
        'id': u.id,
        'username': u.username,
        'fullName': u.display_name,
        'email': u.email,
        'role': u.role,
        'departmentId': u.department_id,
        'phone': u.phone,
        'specialization': u.specialization,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def departments(request):
    if request.method == 'POST':
        s = DepartmentSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        dept = staff_service.create_department(request.user, **s.validated_data)
        return Response({'ok': True, 'data': serialize_department(dept)}, status=status.HTTP_201_CREATED)
    return Response({'ok': True, 'data': [serialize_department(d) for d in Department.objects.order_by('name')]})


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def department_detail(request, pk: int):
    dept = get_object_or_404(Department, pk=pk)
    if request.method == 'DELETE':
        staff_service.delete_department(request.user, dept)
        return Response(status=status.HTTP_204_NO_CONTENT)
    s = DepartmentSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    dept = staff_service.update_department(request.user, dept, **s.validated_data)
    return Response({'ok': True, 'data': serialize_department(dept)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def staff(request):
    if request.method == 'POST':
        s = StaffSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        user = staff_service.create_staff(request.user, **s.validated_data)
        return Response({'ok': True, 'data': serialize_staff(user)}, status=status.HTTP_201_CREATED)

    q = StaffQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = staff_service.list_staff(role=vd.get('role'), department_id=vd.get('departmentId'), q=vd.get('q'))
    return Response({'ok': True, 'data': [serialize_staff(u) for u in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def doctors(request):
    """Doctors, optionally in one department, for pickers on the clinical screens."""
    dept_id = request.query_params.get('departmentId')
    qs = staff_service.list_staff(role='doctor', department_id=int(dept_id) if dept_id and dept_id.isdigit() else None)
    return Response({'ok': True, 'data': [serialize_staff(u) for u in qs]})


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def staff_detail(request, pk: int):
    user = get_object_or_404(User, pk=pk)
    if request.method == 'DELETE':
        staff_service.delete_staff(request.user, user)
        return Response(status=status.HTTP_204_NO_CONTENT)
    s = StaffSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    fields = dict(s.validated_data)
    fields.pop('username', None)
    password = fields.pop('password', None)
    user = staff_service.update_staff(request.user, user, **fields)
    if password:
        user.set_password(password)
        user.save(update_fields=['password'])
    return Response({'ok': True, 'data': serialize_staff(user)})
