"""
Clinic-scoped authorization for sync and record endpoints.
"""
from rest_framework import permissions, status
from rest_framework.exceptions import APIException

from apps.authz.models import ClinicMembership, RoleChoices
from apps.core.observability.correlation import bind_user_context


class ClinicRequired(APIException):
    """Raised when the authenticated user has no clinic association."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'No clinic associated with this account. Please set up your clinic first.'
    default_code = 'clinic_required'


def resolve_clinic(user):
    """
    Return the clinic the user works in, or None.

    The clinic a doctor owns takes precedence over any clinic they were
    connected to as staff.
    """
    if not user or not user.is_authenticated:
        return None

    memberships = (
        ClinicMembership.objects
        .select_related('clinic')
        .filter(user=user, is_active=True)
        .order_by('created_at')
    )
    owned = memberships.filter(clinic__owner=user).first()
    if owned:
        return owned.clinic

    first = memberships.first()
    return first.clinic if first else None


class HasClinic(permissions.BasePermission):
    """
    Allow authenticated users with an active clinic membership.

    Users without a clinic get a 400 (ClinicRequired) instead of a 403 so the
    client can route them to clinic setup.
    """

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        clinic = resolve_clinic(request.user)
        if clinic is None:
            raise ClinicRequired()

        request.clinic = clinic
        bind_user_context(request.user, clinic)
        return True


class IsDoctor(permissions.BasePermission):
    """Allow only users with the doctor role."""

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return request.user.role == RoleChoices.DOCTOR


class ClinicScopedMixin:
    """
    View mixin exposing the caller's clinic.

    Relies on HasClinic having populated request.clinic; falls back to
    resolving it again for views that use a different permission set.
    """

    def get_clinic(self):
        clinic = getattr(self.request, 'clinic', None)
        if clinic is None:
            clinic = resolve_clinic(self.request.user)
        if clinic is None:
            raise ClinicRequired()
        return clinic
