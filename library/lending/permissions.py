from rest_framework import permissions


class IsLibraryAdmin(permissions.BasePermission):
    message = 'Administration page only'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, 'is_library_admin', False))
