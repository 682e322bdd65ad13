"""
Authorization gate.

Pure functions of (principal, required roles, path). ``home_path`` is the
only role -> destination mapping; top-level redirects go through
``entry_redirect`` so the two never drift apart.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel

from ..models.principal import Principal, Role

PUBLIC_ENTRY = "/"

HOME_PATHS = {
    Role.ADMIN: "/admin",
    Role.EMPLOYEE: "/employee",
    Role.RESIDENT: "/resident",
}


class Outcome(str, Enum):
    PENDING = "pending"
    ADMIT = "admit"
    DENY = "deny"


class AccessDecision(BaseModel):
    outcome: Outcome
    redirect_to: Optional[str] = None  # set only on deny
    return_to: Optional[str] = None  # path to resume after signing in

    class Config:
        frozen = True

    @property
    def admitted(self) -> bool:
        return self.outcome == Outcome.ADMIT


def home_path(role: Role) -> str:
    return HOME_PATHS[Role(role)]


def entry_redirect(principal: Optional[Principal]) -> Optional[str]:
    """Where the public entry point sends a visitor; None means stay (show login)."""
    if principal is None:
        return None
    return home_path(principal.role)


def evaluate(
    principal: Optional[Principal],
    required_roles: Iterable[Role],
    current_path: str,
    loading: bool = False,
) -> AccessDecision:
    if loading:
        return AccessDecision(outcome=Outcome.PENDING)
    if principal is None:
        return AccessDecision(outcome=Outcome.DENY, redirect_to=PUBLIC_ENTRY, return_to=current_path)
    if principal.role not in {Role(r) for r in required_roles}:
        return AccessDecision(outcome=Outcome.DENY, redirect_to=home_path(principal.role))
    return AccessDecision(outcome=Outcome.ADMIT)
