"""Departments and staff profiles managed from the settings screen."""
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q

from clinic.exceptions import ConflictError
from clinic.models import Department
from clinic.services.audit import log_action
from clinic.services.realtime import notify_changed

User = get_user_model()

STAFF_FIELDS = ('full_name', 'role', 'department', 'phone', 'specialization', 'email')


def create_department(current_user, *, name: str, description: str = '', head_doctor=None) -> Department:
    try:
        with transaction.atomic():
            dept = Department.objects.create(name=name, description=description, head_doctor=head_doctor)
    except IntegrityError:
        raise ConflictError(f'department {name} already exists')
    log_action(user=current_user, action='department_create', object_type='department', object_id=dept.id)
    notify_changed('departments', 'insert', dept.id)
    return dept


def update_department(current_user, dept: Department, **fields) -> Department:
    changed = [f for f in ('name', 'description', 'head_doctor') if f in fields]
    for field in changed:
        setattr(dept, field, fields[field])
    if changed:
        try:
            with transaction.atomic():
                dept.save(update_fields=changed)
        except IntegrityError:
            raise ConflictError(f'department {dept.name} already exists')
        log_action(user=current_user, action='department_update', object_type='department', object_id=dept.id,
                   detail={'fields': changed})
        notify_changed('departments', 'update', dept.id)
    return dept


@transaction.atomic
def delete_department(current_user, dept: Department) -> None:
    did = dept.id
    # Beds, queues, admissions and appointments PROTECT their department.
    dept.delete()
    log_action(user=current_user, action='department_delete', object_type='department', object_id=did)
    notify_changed('departments', 'delete', did)


def list_staff(*, role: Optional[str] = None, department_id=None, q: Optional[str] = None):
    qs = User.objects.select_related('department').filter(is_active=True)
    if role:
        qs = qs.filter(role=role)
    if department_id:
        qs = qs.filter(department_id=department_id)
    if q:
        qs = qs.filter(Q(full_name__icontains=q) | Q(username__icontains=q) | Q(specialization__icontains=q))
    return qs.order_by('full_name', 'username')


def create_staff(current_user, *, username: str, password: Optional[str] = None, **fields):
    data = {k: v for k, v in fields.items() if k in STAFF_FIELDS}
    if User.objects.filter(username=username).exists():
        raise ConflictError(f'username {username} is taken')
    with transaction.atomic():
        user = User(username=username, **data)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save()
    log_action(user=current_user, action='staff_create', object_type='profile', object_id=user.id,
               detail={'role': user.role})
    notify_changed('profiles', 'insert', user.id)
    return user


@transaction.atomic
def update_staff(current_user, user, **fields):
    changed = [f for f in STAFF_FIELDS if f in fields]
    for field in changed:
        setattr(user, field, fields[field])
    if changed:
        user.save(update_fields=changed + ['updated_at'])
        notify_changed('profiles', 'update', user.id)
    return user


@transaction.atomic
def delete_staff(current_user, user) -> None:
    """Remove a staff profile; doctors still referenced by clinical rows cannot be deleted."""
    if current_user is not None and user.pk == current_user.pk:
        raise PermissionError('cannot delete your own account')
    uid = user.id
    user.delete()
    log_action(user=current_user, action='staff_delete', object_type='profile', object_id=uid)
    notify_changed('profiles', 'delete', uid)
