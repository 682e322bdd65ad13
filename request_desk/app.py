"""Application wiring: builds the core collaborators from settings"""

from pathlib import Path
from typing import Any, Iterable, Optional

from .auth.credential_store import CredentialStore
from .auth.session_manager import SessionManager
from .auth.session_storage import FileSessionStorage, SessionStorage
from .models.principal import Principal, Role
from .services.category_catalog import CategoryCatalog
from .services.request_store import RequestStore
from .utils.config import Settings, check_secrets, load_settings
from .utils.exceptions import CategoryNotFound
from .utils.logger import get_logger, setup_logger

logger = get_logger(__name__)


class RequestDeskApp:
    """
    Owns the process-wide state: credential store, category catalog and
    the canonical request store. Sessions are per client and created with
    ``new_session``.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings
        self.credentials: Optional[CredentialStore] = None
        self.catalog: Optional[CategoryCatalog] = None
        self.requests: Optional[RequestStore] = None

    def initialize(self) -> "RequestDeskApp":
        if self.settings is None:
            self.settings = load_settings()
        cfg = self.settings

        setup_logger(
            log_level=cfg.logging.level,
            log_format=cfg.logging.format,
            file_path=cfg.logging.file_path,
            max_bytes=cfg.logging.max_bytes,
            backup_count=cfg.logging.backup_count,
        )
        check_secrets(cfg)

        if cfg.requests.categories_file:
            self.catalog = CategoryCatalog.from_yaml(Path(cfg.requests.categories_file))
        else:
            self.catalog = CategoryCatalog()

        self.credentials = CredentialStore(
            cfg.data_path,
            bcrypt_rounds=cfg.session.bcrypt_rounds,
            admin_username=cfg.session.admin_username,
            admin_password=cfg.session.admin_password,
        )

        self.requests = RequestStore(
            self.catalog,
            sla_days=cfg.requests.sla_days,
            latency_seconds=cfg.requests.latency_seconds,
        )
        self.requests.init(cfg.snapshot_path)

        logger.info(
            "Request desk initialized",
            app_name=cfg.app.name,
            version=cfg.app.version,
            environment=cfg.app.environment,
            category_count=len(self.catalog.categories()),
        )
        return self

    def create_staff_account(
        self,
        username: str,
        secret: str,
        full_name: str,
        role: Role = Role.EMPLOYEE,
        assigned_categories: Iterable[str] = (),
        **profile: Any,
    ) -> Principal:
        """
        Create an employee or admin account; residents register themselves.

        Every assigned category must exist in the catalog. Assignments on a
        non-employee account are dropped.
        """
        if role == Role.RESIDENT:
            raise ValueError("Staff accounts must be employee or admin")
        categories = frozenset(assigned_categories) if role == Role.EMPLOYEE else frozenset()
        for category_id in sorted(categories):
            if self.catalog.get(category_id) is None:
                raise CategoryNotFound(category_id)

        account = self.credentials.add_account(
            username, secret, full_name, role, assigned_categories=categories, **profile
        )
        extra = self.catalog.assignments_for(account.id, account.username) if role == Role.EMPLOYEE else frozenset()
        return account.to_principal(extra)

    def new_session(self, storage: Optional[SessionStorage] = None) -> SessionManager:
        """Session for one client; file-backed slots under data_dir by default."""
        if self.credentials is None:
            raise RuntimeError("RequestDeskApp.initialize() must run first")
        cfg = self.settings
        return SessionManager(
            self.credentials,
            storage or FileSessionStorage(cfg.data_path),
            secret_key=cfg.session.secret_key,
            catalog=self.catalog,
            expiry_days=cfg.session.expiry_days,
            latency_seconds=cfg.requests.latency_seconds,
        )

    def shutdown(self) -> None:
        if self.requests is not None:
            self.requests.teardown()
        logger.info("Request desk stopped")
