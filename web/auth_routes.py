"""
FastAPI routes for authentication.

Prefix: /auth
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Form, HTTPException, status

from request_desk.auth.session_manager import SessionManager
from request_desk.core.authorization import entry_redirect, home_path
from request_desk.models.principal import Principal, RegisterData
from request_desk.utils.exceptions import InvalidCredentials, UsernameTaken

from .auth_deps import get_session, require_auth

router = APIRouter(prefix="/auth", tags=["auth"])


def _session_payload(principal: Principal) -> Dict[str, Any]:
    return {"user": principal.model_dump(mode="json"), "redirect_to": home_path(principal.role)}


@router.post("/login")
async def login(
    username: str = Form(...),
    password: str = Form(...),
    session: SessionManager = Depends(get_session),
) -> Dict[str, Any]:
    """
    Log in with username and password (form-encoded).

    Response:
        {"user": {...principal...}, "redirect_to": "/resident"}
    """
    try:
        principal = await session.login(username, password)
    except InvalidCredentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=session.error)
    return _session_payload(principal)


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    username: str = Form(..., min_length=1),
    password: str = Form(..., min_length=1),
    full_name: str = Form(..., min_length=1),
    district: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    session: SessionManager = Depends(get_session),
) -> Dict[str, Any]:
    """Register a resident account and sign it in."""
    data = RegisterData(
        username=username,
        secret=password,
        full_name=full_name,
        district=district,
        email=email,
        phone=phone,
    )
    try:
        principal = await session.register(data)
    except UsernameTaken:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=session.error)
    return _session_payload(principal)


@router.post("/logout")
async def logout(session: SessionManager = Depends(get_session)) -> Dict[str, str]:
    session.logout()
    return {"status": "success"}


@router.get("/me")
async def me(principal: Principal = Depends(require_auth)) -> Principal:
    return principal


@router.get("/entry")
async def entry(session: SessionManager = Depends(get_session)) -> Dict[str, Optional[str]]:
    """Where the public entry point should send this client (null: show login)."""
    return {"redirect_to": entry_redirect(session.principal)}
