from rest_framework.permissions import BasePermission

from organizations.models import OrganizationMembership
from tenancy.rbac import role_can, role_matrix_for


def _active_membership(request, organization):
    membership = (
        OrganizationMembership.objects.filter(
            organization=organization,
            user=request.user,
            is_active=True,
        )
        .only("id", "role")
        .first()
    )
    request.tenant_membership = membership
    return membership


class IsTenantRoleAllowed(BasePermission):
    message = "User role is not allowed for this action in the current organization."

    def has_permission(self, request, view):
        user = request.user
        organization = getattr(request, "organization", None)

        if not user or not user.is_authenticated:
            return False

        if organization is None:
            return False

        if user.is_superuser:
            return True

        membership = _active_membership(request, organization)
        if membership is None:
            return False

        matrix = role_matrix_for(getattr(view, "tenant_resource_key", ""), organization=organization)
        return role_can(matrix, membership.role, request.method)
