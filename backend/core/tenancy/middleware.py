import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.http import JsonResponse
from django_tenants.utils import get_public_schema_name

from organizations.models import Organization
from tenancy.context import reset_current_organization, set_current_organization


@dataclass(frozen=True)
class TenantResolutionResult:
    organization: Optional[Organization]
    error_response: Optional[JsonResponse] = None


class TenantContextMiddleware:
    """Bind the request organization to `request.organization` and the tenant context.

    Resolution order (legacy mode):
    - `X-Org-ID` header (organization `tenant_code`);
    - tenant subdomain of the request host.

    With django-tenants enabled, the schema middleware has already set
    `request.tenant`; this middleware only bridges it and checks the header.
    """

    def __init__(self, get_response):
        self.get_response = get_response
        self.logger = logging.getLogger(__name__)
        self.tenant_id_header = getattr(settings, "TENANT_ID_HEADER", "X-Org-ID")
        self.required_path_prefixes = tuple(
            getattr(settings, "TENANT_REQUIRED_PATH_PREFIXES", ["/api/"])
        )
        self.exempt_path_prefixes = tuple(
            getattr(settings, "TENANT_EXEMPT_PATH_PREFIXES", ["/api/auth/token/"])
        )
        self.public_hosts = set(
            host.lower() for host in getattr(settings, "TENANT_PUBLIC_HOSTS", [])
        )
        self.reserved_subdomains = set(
            subdomain.lower()
            for subdomain in getattr(settings, "TENANT_RESERVED_SUBDOMAINS", [])
        )
        self.base_domain = getattr(settings, "TENANT_BASE_DOMAIN", "").lower()

    def __call__(self, request):
        request.correlation_id = self._resolve_correlation_id(request)
        resolution = self._resolve_organization(request)

        if resolution.error_response is not None:
            resolution.error_response["X-Correlation-ID"] = request.correlation_id
            return resolution.error_response

        token = set_current_organization(resolution.organization)
        request.organization = resolution.organization
        try:
            response = self.get_response(request)
            response["X-Correlation-ID"] = request.correlation_id
            return response
        finally:
            reset_current_organization(token)

    def _tenant_required(self, path: str) -> bool:
        if path.startswith(self.exempt_path_prefixes):
            return False
        return path.startswith(self.required_path_prefixes)

    def _resolve_organization(self, request) -> TenantResolutionResult:
        if not self._tenant_required(request.path):
            return TenantResolutionResult(organization=None)

        if getattr(settings, "DJANGO_TENANTS_ENABLED", False):
            return self._resolve_from_django_tenants(request)

        header_value = request.headers.get(self.tenant_id_header, "").strip().lower()
        host_organization = self._organization_from_host(request.get_host())

        if header_value:
            header_organization = (
                Organization.objects.filter(tenant_code=header_value, is_active=True)
                .only("id", "tenant_code", "rbac_overrides")
                .first()
            )
            if header_organization is None:
                return self._error("Invalid organization identifier.", status=404)

            if host_organization is not None and host_organization.id != header_organization.id:
                return self._error("Organization mismatch between host and header.", status=400)

            return TenantResolutionResult(organization=header_organization)

        if host_organization is not None:
            return TenantResolutionResult(organization=host_organization)

        self.logger.warning(
            "tenant.resolve.missing path=%s correlation_id=%s",
            request.path,
            request.correlation_id,
        )
        return self._error(
            f"Organization not provided. Send {self.tenant_id_header} or use a tenant subdomain.",
            status=400,
        )

    def _resolve_from_django_tenants(self, request) -> TenantResolutionResult:
        tenant = getattr(request, "tenant", None)
        organization = None
        if tenant is not None and getattr(tenant, "schema_name", "") != get_public_schema_name():
            organization = tenant

        header_value = request.headers.get(self.tenant_id_header, "").strip().lower()
        if header_value and organization is not None and organization.tenant_code != header_value:
            return self._error("Organization mismatch between host and header.", status=400)

        if organization is None:
            return self._error(
                f"Organization not provided. Send {self.tenant_id_header} or use a tenant subdomain.",
                status=400,
            )

        return TenantResolutionResult(organization=organization)

    def _organization_from_host(self, host_with_port: str) -> Optional[Organization]:
        host = host_with_port.split(":", 1)[0].lower()
        if not host or host in self.public_hosts:
            return None

        subdomain = self._extract_subdomain(host)
        if not subdomain or subdomain in self.reserved_subdomains:
            return None

        return (
            Organization.objects.filter(subdomain=subdomain, is_active=True)
            .only("id", "tenant_code", "rbac_overrides")
            .first()
        )

    def _extract_subdomain(self, host: str) -> Optional[str]:
        if self.base_domain:
            suffix = self.base_domain
            if not suffix.startswith("."):
                suffix = f".{suffix}"

            if host.endswith(suffix):
                subdomain = host[: -len(suffix)]
                if subdomain and "." not in subdomain:
                    return subdomain
                return None

        if host.endswith(".localhost"):
            local_subdomain = host.split(".", 1)[0]
            return local_subdomain if local_subdomain else None

        parts = host.split(".")
        if len(parts) >= 3:
            return parts[0]

        return None

    @staticmethod
    def _error(detail: str, *, status: int) -> TenantResolutionResult:
        return TenantResolutionResult(
            organization=None,
            error_response=JsonResponse({"detail": detail}, status=status),
        )

    @staticmethod
    def _resolve_correlation_id(request) -> str:
        header_value = (request.headers.get("X-Correlation-ID", "") or "").strip()
        return header_value or str(uuid.uuid4())
