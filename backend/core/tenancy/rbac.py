"""Per-resource role matrices for tenant API views.

A matrix maps an HTTP method to the membership roles allowed to call it.
Methods missing from a matrix are denied. Defaults can be overridden for every
organization through `settings.TENANT_ROLE_MATRICES` and for one organization
through `Organization.rbac_overrides`, both shaped like:

    {"policy_commissions": {"POST": ["MEMBER", "MANAGER", "OWNER"]}}
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from django.conf import settings
from django.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

ROLE_MEMBER = "MEMBER"
ROLE_MANAGER = "MANAGER"
ROLE_OWNER = "OWNER"

VALID_ROLES = frozenset((ROLE_MEMBER, ROLE_MANAGER, ROLE_OWNER))
SAFE_METHODS = ("GET", "HEAD", "OPTIONS")
HTTP_METHODS = SAFE_METHODS + ("POST", "PUT", "PATCH", "DELETE")

READ_ROLES = VALID_ROLES
WRITE_ROLES = frozenset((ROLE_MANAGER, ROLE_OWNER))

RoleMatrix = dict[str, frozenset[str]]


def _read_and_post(post_roles: frozenset[str]) -> RoleMatrix:
    matrix = {method: READ_ROLES for method in SAFE_METHODS}
    matrix["POST"] = post_roles
    return matrix


# Quotes persist nothing, so any member may request one.
RESOURCE_ROLE_MATRICES: dict[str, RoleMatrix] = {
    "commission_calculations": _read_and_post(READ_ROLES),
    "policy_commissions": _read_and_post(WRITE_ROLES),
}


def parse_role_overrides(raw: Any) -> dict[str, RoleMatrix]:
    """Validate an overrides mapping and return it with normalized role sets.

    Raises `ValidationError` keyed by resource when anything is malformed.
    """

    if raw in (None, {}):
        return {}
    if not isinstance(raw, Mapping):
        raise ValidationError("rbac_overrides must be a JSON object.")

    parsed: dict[str, RoleMatrix] = {}
    errors: dict[str, list[str]] = {}
    for resource, methods in raw.items():
        problems = []
        if resource not in RESOURCE_ROLE_MATRICES:
            problems.append(f"Unknown resource. Allowed: {sorted(RESOURCE_ROLE_MATRICES)}")
        if not isinstance(methods, Mapping):
            errors[str(resource)] = problems + ["Expected an object of HTTP methods to role lists."]
            continue

        matrix: RoleMatrix = {}
        for method, roles in methods.items():
            method_name = str(method).upper()
            if method_name not in HTTP_METHODS:
                problems.append(f"Unknown method '{method_name}'.")
                continue
            if not isinstance(roles, list) or not roles:
                problems.append(f"{method_name} needs a non-empty list of roles.")
                continue
            role_set = frozenset(str(role).upper() for role in roles)
            if not role_set <= VALID_ROLES:
                problems.append(f"{method_name} has invalid roles. Allowed: {sorted(VALID_ROLES)}")
                continue
            matrix[method_name] = role_set

        if problems:
            errors[str(resource)] = problems
        else:
            parsed[str(resource)] = matrix

    if errors:
        raise ValidationError(errors)
    return parsed


def validate_rbac_overrides(value: Any) -> None:
    parse_role_overrides(value)


def _overrides_or_empty(raw: Any, *, source: str) -> dict[str, RoleMatrix]:
    try:
        return parse_role_overrides(raw)
    except ValidationError as exc:
        logger.warning("rbac.overrides.ignored source=%s errors=%s", source, exc.messages)
        return {}


def role_matrix_for(resource_key: str, organization=None) -> RoleMatrix:
    """Default matrix of a resource with global then organization overrides applied."""

    matrix = dict(RESOURCE_ROLE_MATRICES.get(resource_key, {}))
    layers = [
        _overrides_or_empty(getattr(settings, "TENANT_ROLE_MATRICES", {}), source="settings"),
    ]
    if organization is not None:
        layers.append(
            _overrides_or_empty(
                getattr(organization, "rbac_overrides", {}),
                source=f"organization:{organization.pk}",
            )
        )
    for overrides in layers:
        matrix.update(overrides.get(resource_key, {}))
    return matrix


def role_can(matrix: RoleMatrix, role: str, method: str) -> bool:
    return role in matrix.get(method.upper(), frozenset())
