"""
FastAPI dependencies for sessions and authorization.

HTTP clients keep their session in two signed cookies that mirror the
session manager's slots (``user`` and ``userRole``).
"""

from typing import Dict, Optional

from fastapi import Depends, HTTPException, Request, Response, status

from request_desk.app import RequestDeskApp
from request_desk.auth.session_manager import SessionManager
from request_desk.auth.session_storage import SessionStorage
from request_desk.core.authorization import Outcome, evaluate
from request_desk.models.principal import Principal, Role


class CookieSessionStorage(SessionStorage):
    """Reads slots from the incoming request, writes them onto the outgoing response."""

    def __init__(self, request: Request, response: Response, secure: bool = False):
        self.response = response
        self.secure = secure
        self._values: Dict[str, Optional[str]] = dict(request.cookies)

    def get(self, name: str) -> Optional[str]:
        return self._values.get(name)

    def set(self, name: str, value: str, max_age_seconds: int) -> None:
        self._values[name] = value
        self.response.set_cookie(
            key=name,
            value=value,
            max_age=max_age_seconds,
            httponly=True,
            secure=self.secure,
            samesite="strict",
        )

    def remove(self, name: str) -> None:
        self._values.pop(name, None)
        self.response.delete_cookie(name, httponly=True, secure=self.secure, samesite="strict")


def get_desk(request: Request) -> RequestDeskApp:
    return request.app.state.desk


def get_session(request: Request, response: Response) -> SessionManager:
    """Dependency: a session manager restored from the request cookies"""
    desk = get_desk(request)
    storage = CookieSessionStorage(request, response, secure=desk.settings.is_production)
    session = desk.new_session(storage)
    session.restore_session()
    return session


def require_roles(*roles: Role):
    """Dependency factory for role-based access control"""
    async def role_checker(request: Request, session: SessionManager = Depends(get_session)) -> Principal:
        decision = evaluate(session.principal, roles, request.url.path, loading=session.loading)
        if decision.outcome == Outcome.ADMIT:
            return session.principal
        if decision.outcome == Outcome.PENDING:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Session restoration in progress",
            )
        if session.principal is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated",
                headers={"Location": decision.redirect_to},
            )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Requires one of: {', '.join(r.value for r in roles)}",
            headers={"Location": decision.redirect_to},
        )

    return role_checker


# Pre-configured dependencies
require_auth = require_roles(Role.RESIDENT, Role.EMPLOYEE, Role.ADMIN)
require_staff = require_roles(Role.EMPLOYEE, Role.ADMIN)
require_resident = require_roles(Role.RESIDENT)
require_admin = require_roles(Role.ADMIN)
