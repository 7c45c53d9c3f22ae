from rest_framework.permissions import BasePermission


class IsAdmin(BasePermission):
    """Allows access only to users with the admin role"""
    message = 'Access denied. Admin only.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, 'is_admin', False))


def is_owner_or_admin(user, owner_id):
    return user.is_admin or user.id == owner_id
