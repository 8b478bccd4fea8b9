"""
Role based permission classes.

Every staff member may read the operational screens; mutations are
restricted to the roles that own them.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS

ADMIN_ROLES = {"admin"}
CLINICAL_ROLES = {"admin", "doctor", "nurse", "receptionist"}
PRESCRIBER_ROLES = {"admin", "doctor"}
PHARMACY_ROLES = {"admin", "pharmacist"}
INVENTORY_ROLES = {"admin", "pharmacist", "inventory_manager"}


def _has_role(request, roles) -> bool:
    user = getattr(request, "user", None)
    return bool(user and user.is_authenticated and getattr(user, "role", None) in roles)


class IsAdminRole(BasePermission):
    """Allow access only to administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _has_role(request, ADMIN_ROLES)


class IsClinicalOrReadOnly(BasePermission):
    """Front desk and ward staff write; everyone else reads."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return _has_role(request, CLINICAL_ROLES)


class IsPrescriberOrReadOnly(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return _has_role(request, PRESCRIBER_ROLES)


class IsPharmacy(BasePermission):
    """Dispensing is limited to pharmacists (and admins)."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _has_role(request, PHARMACY_ROLES)


class IsInventoryOrReadOnly(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return _has_role(request, INVENTORY_ROLES)


class IsAdminOrReadOnly(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return _has_role(request, ADMIN_ROLES)
