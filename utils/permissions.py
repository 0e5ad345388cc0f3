# ==================== UTILS/PERMISSIONS.PY ====================
from rest_framework import permissions


class IsVendor(permissions.BasePermission):
    """Permission to check if user has a vendor account"""
    message = 'Only vendors can perform this action.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.user_type == 'vendor')


class IsLotVendor(permissions.BasePermission):
    """Permission to check if user is the vendor of the parking lot"""

    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True
        return obj.vendor == request.user


class IsReservationOwnerOrLotVendor(permissions.BasePermission):
    """Permission for reservation - either the booking user or the lot vendor"""

    def has_object_permission(self, request, view, obj):
        return obj.user == request.user or obj.parking_lot.vendor == request.user
