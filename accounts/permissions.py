"""
Role based permission classes for the portal API.

Applicants may only act on their own applications; administrators may act
on every application.
"""

from rest_framework import permissions


class IsPortalAdmin(permissions.BasePermission):
    """
    Permission check for administrator role.
    """
    message = "Only administrators may perform this action."

    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            request.user.is_admin_user()
        )


class IsApplicant(permissions.BasePermission):
    """
    Permission check for applicant role.
    """
    message = "Only applicants may perform this action."

    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            request.user.is_applicant()
        )


class IsOwnerOrPortalAdmin(permissions.BasePermission):
    """
    Object level check: administrators see everything, applicants only
    objects whose ``applicant`` is themselves.
    """
    message = "You do not have access to this application."

    def has_object_permission(self, request, view, obj):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        if user.is_admin_user():
            return True
        return getattr(obj, 'applicant_id', None) == user.pk
