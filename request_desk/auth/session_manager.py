"""
Session manager: authentication, role derivation and session persistence.

The principal is persisted twice: a sealed principal blob (slot ``user``)
and a sealed role marker (slot ``userRole``). Restoration only trusts the
principal when both slots agree on the role; any disagreement clears both.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from ..models.principal import Account, Principal, RegisterData, Role
from ..services.category_catalog import CategoryCatalog
from ..utils.exceptions import InvalidCredentials, RequestDeskError, SessionTampered, UsernameTaken
from ..utils.ids import new_id
from ..utils.latency import simulate_latency
from ..utils.logger import get_logger
from .credential_store import CredentialStore, hash_secret
from .sealing import SessionSealer
from .session_storage import SessionStorage

logger = get_logger(__name__)

PRINCIPAL_SLOT = "user"
ROLE_SLOT = "userRole"

SESSION_EXPIRY_DAYS = 7


class SessionManager:
    """
    Owns one client's session.

    ``loading`` starts True and stays True until restoration has run;
    ``error`` holds the message of the last failed command. Both are reset
    at the start of every command.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        storage: SessionStorage,
        secret_key: str,
        catalog: Optional[CategoryCatalog] = None,
        expiry_days: int = SESSION_EXPIRY_DAYS,
        latency_seconds: float = 1.0,
    ):
        self.credentials = credentials
        self.storage = storage
        self.catalog = catalog
        self.expiry_seconds = expiry_days * 24 * 60 * 60
        self.sealer = SessionSealer(secret_key, self.expiry_seconds)
        self.latency_seconds = latency_seconds

        self.principal: Optional[Principal] = None
        self.loading = True
        self.error: Optional[str] = None

    def init(self) -> Optional[Principal]:
        return self.restore_session()

    def teardown(self) -> None:
        """Forget the in-memory principal; persisted slots are left as they are."""
        self.principal = None
        self.loading = True
        self.error = None

    def restore_session(self) -> Optional[Principal]:
        self.loading = True
        self.error = None
        try:
            self.principal = self._read_persisted()
            return self.principal
        finally:
            self.loading = False

    async def login(self, username: str, secret: str, timeout: Optional[float] = None) -> Principal:
        with self._command("Login", username):
            await simulate_latency(self.latency_seconds, timeout)
            account = self.credentials.authenticate(username, secret)
            if account is None:
                raise InvalidCredentials()
            principal = self._establish(account)
            logger.info("Login succeeded", user_id=principal.id, role=principal.role.value)
            return principal

    async def register(self, data: RegisterData, timeout: Optional[float] = None) -> Principal:
        with self._command("Registration", data.username):
            await simulate_latency(self.latency_seconds, timeout)
            if self.credentials.find_by_username(data.username) is not None:
                raise UsernameTaken(data.username)
            account = Account(
                id=new_id("user"),
                username=data.username,
                secret_hash=hash_secret(data.secret, self.credentials.bcrypt_rounds),
                role=Role.RESIDENT,
                full_name=data.full_name,
                district=data.district,
                email=data.email or "",
                phone=data.phone,
            )
            self.credentials.create_account(account)
            principal = self._establish(account)
            logger.info("Registration succeeded", user_id=principal.id)
            return principal

    def logout(self) -> None:
        self.error = None
        self._clear_persisted()
        if self.principal is not None:
            logger.info("Logged out", user_id=self.principal.id)
        self.principal = None

    @contextmanager
    def _command(self, action: str, username: str) -> Iterator[None]:
        """Reset observable state, record the failure message, always clear loading."""
        self.loading = True
        self.error = None
        try:
            yield
        except RequestDeskError as e:
            self.error = str(e)
            logger.warning(f"{action} failed", username=username, error=self.error)
            raise
        except Exception as e:
            self.error = str(e) or e.__class__.__name__
            logger.error(f"{action} aborted", username=username, error=self.error)
            raise
        finally:
            self.loading = False

    def _principal_for(self, account: Account) -> Principal:
        extra = frozenset()
        if self.catalog is not None and account.role == Role.EMPLOYEE:
            extra = self.catalog.assignments_for(account.id, account.username)
        return account.to_principal(extra)

    def _establish(self, account: Account) -> Principal:
        """Persist principal + role marker, replacing whatever session existed."""
        principal = self._principal_for(account)
        blob = principal.model_dump(mode="json")
        self.storage.set(PRINCIPAL_SLOT, self.sealer.seal(PRINCIPAL_SLOT, blob), self.expiry_seconds)
        self.storage.set(ROLE_SLOT, self.sealer.seal(ROLE_SLOT, principal.role.value), self.expiry_seconds)
        self.principal = principal
        return principal

    def _clear_persisted(self) -> None:
        self.storage.remove(PRINCIPAL_SLOT)
        self.storage.remove(ROLE_SLOT)

    def _read_persisted(self) -> Optional[Principal]:
        sealed_blob = self.storage.get(PRINCIPAL_SLOT)
        sealed_role = self.storage.get(ROLE_SLOT)
        if not sealed_blob or not sealed_role:
            return None

        try:
            blob = self.sealer.unseal(PRINCIPAL_SLOT, sealed_blob)
            role = self.sealer.unseal(ROLE_SLOT, sealed_role)
            if blob is None or role is None:
                logger.info("Session expired")
                self._clear_persisted()
                return None
            principal = Principal(**blob)
            if principal.role.value != role:
                raise SessionTampered(
                    "Role marker does not match stored principal",
                    stored_role=principal.role.value,
                    marker_role=str(role),
                )
        except SessionTampered as e:
            logger.warning(
                "Session tampered; clearing",
                error=str(e),
                stored_role=e.stored_role,
                marker_role=e.marker_role,
            )
            self._clear_persisted()
            return None
        except (TypeError, ValueError) as e:
            logger.warning("Unreadable session; clearing", error=str(e))
            self._clear_persisted()
            return None

        return principal
