from .credential_store import CredentialStore, hash_secret, verify_secret
from .session_manager import SessionManager
from .session_storage import FileSessionStorage, MemorySessionStorage, SessionStorage

__all__ = [
    "CredentialStore",
    "FileSessionStorage",
    "MemorySessionStorage",
    "SessionManager",
    "SessionStorage",
    "hash_secret",
    "verify_secret",
]
