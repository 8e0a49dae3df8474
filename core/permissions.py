"""
Custom permission classes for the Tasker Marketplace.

Lifecycle rules (who may start a job, accept an application, ...) are
enforced by the operations in core.jobs, core.applications and
core.ratings; these classes only gate endpoints by account role.
"""

from rest_framework import permissions


class IsCustomer(permissions.BasePermission):
    """
    Allows only customers (and admins) to access the endpoint.

    Usage:
        class MyView(APIView):
            permission_classes = [IsAuthenticated, IsCustomer]
    """

    message = 'Only customers can perform this action.'
    code = 'forbidden'

    def has_permission(self, request, view):
        """
        Check if user is authenticated and may post jobs.

        Args:
            request: HTTP request object
            view: View being accessed

        Returns:
            bool: True for customers and admins, False otherwise
        """
        if not request.user or not request.user.is_authenticated:
            return False

        return request.user.is_customer() or request.user.is_admin()


class IsTasker(permissions.BasePermission):
    """
    Allows only taskers to access the endpoint.

    Usage:
        class MyView(APIView):
            permission_classes = [IsAuthenticated, IsTasker]
    """

    message = 'Only taskers can perform this action.'
    code = 'forbidden'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        return request.user.is_tasker()


class IsJobOwnerOrAdmin(permissions.BasePermission):
    """
    Object-level permission for owner-only job views.

    Works on Job instances and on anything exposing a ``job`` attribute.
    """

    message = 'Only the job owner can access this resource.'
    code = 'forbidden'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        job = getattr(obj, 'job', obj)
        return job.is_owned_by(request.user)
