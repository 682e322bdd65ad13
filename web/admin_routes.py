"""
Admin routes: staff account management.

Prefix: /admin
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from request_desk.app import RequestDeskApp
from request_desk.models.principal import Principal, Role
from request_desk.utils.exceptions import CategoryNotFound, UsernameTaken
from request_desk.utils.logger import get_logger

from .auth_deps import get_desk, require_admin

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class CreateAccountBody(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    full_name: str = Field(min_length=1)
    role: Role = Role.EMPLOYEE
    assigned_categories: List[str] = Field(default_factory=list)
    district: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


@router.get("/accounts")
async def list_accounts(
    principal: Principal = Depends(require_admin),
    desk: RequestDeskApp = Depends(get_desk),
) -> List[Principal]:
    return [a.to_principal() for a in desk.credentials.load_accounts()]


@router.post("/accounts", status_code=status.HTTP_201_CREATED)
async def create_account(
    body: CreateAccountBody,
    principal: Principal = Depends(require_admin),
    desk: RequestDeskApp = Depends(get_desk),
) -> Principal:
    """
    Create an employee or admin account. Residents use /auth/register.

    Errors: 400 for role=resident, 404 for an unknown category, 409 for a
    taken username.
    """
    if body.role == Role.RESIDENT:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Residents register themselves")
    try:
        created = desk.create_staff_account(
            body.username,
            body.password,
            body.full_name,
            role=body.role,
            assigned_categories=body.assigned_categories,
            district=body.district,
            email=body.email,
            phone=body.phone,
        )
    except CategoryNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except UsernameTaken as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    logger.info("Staff account created", account_id=created.id, role=created.role.value, created_by=principal.id)
    return created
