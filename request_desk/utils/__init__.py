from .exceptions import (
    CategoryNotFound,
    ConfigError,
    InvalidCredentials,
    RequestDeskError,
    RequestNotFound,
    SessionTampered,
    UsernameTaken,
)
from .logger import get_logger, setup_logger

__all__ = [
    "CategoryNotFound",
    "ConfigError",
    "InvalidCredentials",
    "RequestDeskError",
    "RequestNotFound",
    "SessionTampered",
    "UsernameTaken",
    "get_logger",
    "setup_logger",
]
