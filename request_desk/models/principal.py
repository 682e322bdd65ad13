"""Principal and account data models"""

from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, Optional

from pydantic import BaseModel, Field


class Role(str, Enum):
    RESIDENT = "resident"
    EMPLOYEE = "employee"
    ADMIN = "admin"


class Principal(BaseModel):
    """An authenticated actor. Never carries the secret."""
    id: str
    username: str
    full_name: str
    role: Role
    district: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    assigned_categories: FrozenSet[str] = Field(default_factory=frozenset)  # employees only

    class Config:
        frozen = True


class Account(BaseModel):
    """Credential store record"""
    id: str
    username: str
    secret_hash: str  # bcrypt
    role: Role = Role.RESIDENT
    full_name: str
    district: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    assigned_categories: FrozenSet[str] = Field(default_factory=frozenset)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        frozen = True

    def to_principal(self, extra_categories: FrozenSet[str] = frozenset()) -> Principal:
        """Strip the secret; only employees keep category assignments."""
        categories: FrozenSet[str] = frozenset()
        if self.role == Role.EMPLOYEE:
            categories = self.assigned_categories | extra_categories
        return Principal(
            id=self.id,
            username=self.username,
            full_name=self.full_name,
            role=self.role,
            district=self.district,
            email=self.email,
            phone=self.phone,
            assigned_categories=categories,
        )


class RegisterData(BaseModel):
    """Self-registration payload. Always yields a resident."""
    username: str = Field(min_length=1)
    secret: str = Field(min_length=1)
    full_name: str
    district: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
