"""
FastAPI routes for categories and service requests.

Every request-scoped route resolves the id inside the caller's visible
set, so requests outside it answer 404 rather than 403.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from request_desk.app import RequestDeskApp
from request_desk.models.principal import Principal
from request_desk.models.request import Category, Message, Request
from request_desk.services.request_store import is_visible
from request_desk.utils.exceptions import CategoryNotFound

from .auth_deps import get_desk, require_auth, require_resident, require_staff

router = APIRouter(tags=["requests"])


class CreateRequestBody(BaseModel):
    category_id: str
    subject: str = Field(min_length=1)
    message: str = Field(min_length=1)


class MessageBody(BaseModel):
    content: str = Field(min_length=1)


def _visible_or_404(desk: RequestDeskApp, principal: Principal, request_id: str) -> Request:
    found = desk.requests.get_request(request_id)
    if found is None or not is_visible(found, principal):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")
    return found


@router.get("/categories")
async def list_categories(
    principal: Principal = Depends(require_auth),
    desk: RequestDeskApp = Depends(get_desk),
) -> List[Category]:
    return desk.requests.categories()


@router.get("/requests")
async def list_requests(
    principal: Principal = Depends(require_auth),
    desk: RequestDeskApp = Depends(get_desk),
) -> List[Request]:
    return desk.requests.visible_requests(principal)


@router.post("/requests", status_code=status.HTTP_201_CREATED)
async def create_request(
    body: CreateRequestBody,
    principal: Principal = Depends(require_resident),
    desk: RequestDeskApp = Depends(get_desk),
) -> Request:
    try:
        return await desk.requests.create_request(principal, body.category_id, body.subject, body.message)
    except CategoryNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/requests/{request_id}")
async def get_request(
    request_id: str,
    principal: Principal = Depends(require_auth),
    desk: RequestDeskApp = Depends(get_desk),
) -> Request:
    return _visible_or_404(desk, principal, request_id)


@router.post("/requests/{request_id}/messages", status_code=status.HTTP_201_CREATED)
async def send_message(
    request_id: str,
    body: MessageBody,
    principal: Principal = Depends(require_auth),
    desk: RequestDeskApp = Depends(get_desk),
) -> Message:
    _visible_or_404(desk, principal, request_id)
    message = desk.requests.send_message(principal, request_id, body.content)
    if message is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Request is closed")
    return message


@router.post("/requests/{request_id}/close")
async def close_request(
    request_id: str,
    principal: Principal = Depends(require_staff),
    desk: RequestDeskApp = Depends(get_desk),
) -> Request:
    _visible_or_404(desk, principal, request_id)
    closed = await desk.requests.close_request(request_id)
    if closed is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")
    return closed


@router.post("/requests/{request_id}/read")
async def mark_read(
    request_id: str,
    principal: Principal = Depends(require_auth),
    desk: RequestDeskApp = Depends(get_desk),
) -> Request:
    _visible_or_404(desk, principal, request_id)
    return desk.requests.mark_read(principal, request_id)
