from contextvars import ContextVar, Token
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from organizations.models import Organization


_current_organization: ContextVar[Optional["Organization"]] = ContextVar(
    "current_organization", default=None
)


def get_current_organization() -> Optional["Organization"]:
    return _current_organization.get()


def set_current_organization(organization: Optional["Organization"]) -> Token:
    return _current_organization.set(organization)


def reset_current_organization(token: Token) -> None:
    _current_organization.reset(token)
