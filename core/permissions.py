"""
Role-based permissions for the API.

Authentication sets ``request.user``; these classes only look at its role
and, for object checks, at ownership.
"""
from rest_framework import permissions


def is_admin(user) -> bool:
    return bool(user and user.is_authenticated and getattr(user, 'is_admin', False))


class IsAdminRole(permissions.BasePermission):
    """Allow access only to users with the admin role."""
    message = 'Admin role required'

    def has_permission(self, request, view):
        return is_admin(request.user)


class IsClientRole(permissions.BasePermission):
    """Allow access only to users with the client role."""
    message = 'Client role required'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, 'is_client', False))


class IsAdminOrReadOnly(permissions.BasePermission):
    """
    Read access for everyone, write access for admins.
    Used by the public product catalog.
    """

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True
        return is_admin(request.user)


class IsSelfOrAdmin(permissions.BasePermission):
    """Object-level check: the object is the requesting user, or the user is an admin."""
    message = 'Not authorized to access this user'

    def has_object_permission(self, request, view, obj):
        if is_admin(request.user):
            return True
        return obj.pk == request.user.pk
