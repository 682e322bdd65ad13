"""Custom exceptions for the request desk core"""

from typing import Optional


class RequestDeskError(Exception):
    """Base exception for the request desk"""
    pass


class InvalidCredentials(RequestDeskError):
    """No account matches the supplied username and secret"""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class UsernameTaken(RequestDeskError):
    """Registration attempted with a username that already exists"""

    def __init__(self, username: str):
        self.username = username
        super().__init__("Username already exists")


class CategoryNotFound(RequestDeskError):
    """Request creation against a category missing from the catalog"""

    def __init__(self, category_id: str):
        self.category_id = category_id
        super().__init__("Category not found")


class SessionTampered(RequestDeskError):
    """Persisted principal and role marker disagree"""

    def __init__(self, message: str, stored_role: Optional[str] = None, marker_role: Optional[str] = None):
        self.stored_role = stored_role
        self.marker_role = marker_role
        super().__init__(message)


class RequestNotFound(RequestDeskError):
    """Request id does not resolve"""

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Request {request_id} not found")


class ConfigError(RequestDeskError):
    """Configuration error"""
    pass
