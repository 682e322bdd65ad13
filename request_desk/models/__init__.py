from .principal import Account, Principal, RegisterData, Role
from .request import Category, Message, Request, RequestStatus

__all__ = [
    "Account",
    "Category",
    "Message",
    "Principal",
    "RegisterData",
    "Request",
    "RequestStatus",
    "Role",
]
