"""
Credential storage with JSON-based persistence.
Holds account records and creates the default admin account on first run.
"""

import json
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import bcrypt

from ..models.principal import Account, Role
from ..utils.exceptions import ConfigError, UsernameTaken
from ..utils.ids import new_id
from ..utils.logger import get_logger

logger = get_logger(__name__)

ACCOUNTS_FILENAME = "accounts.json"


def hash_secret(secret: str, rounds: int = 12) -> str:
    """Hash a secret using bcrypt"""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(secret.encode("utf-8"), salt).decode("utf-8")


def verify_secret(secret: str, secret_hash: str) -> bool:
    """Verify a secret against its hash"""
    try:
        return bcrypt.checkpw(secret.encode("utf-8"), secret_hash.encode("utf-8"))
    except ValueError:
        return False


class CredentialStore:
    """Account records keyed by username"""

    def __init__(
        self,
        data_dir: Path,
        bcrypt_rounds: int = 12,
        admin_username: str = "admin",
        admin_password: str = "admin123",
    ):
        self.accounts_path = Path(data_dir) / ACCOUNTS_FILENAME
        self.bcrypt_rounds = bcrypt_rounds
        self._lock = threading.RLock()

        self.accounts_path.parent.mkdir(exist_ok=True, parents=True)
        if not self.accounts_path.exists():
            self._create_default_admin(admin_username, admin_password)

    def _create_default_admin(self, username: str, password: str) -> None:
        """Create default admin account on first run"""
        admin = Account(
            id=new_id("user"),
            username=username,
            secret_hash=hash_secret(password, self.bcrypt_rounds),
            role=Role.ADMIN,
            full_name="Administrator",
        )
        self.save_accounts([admin])
        logger.info("Seeded default admin account", username=username)

    def load_accounts(self) -> List[Account]:
        """Load all accounts from storage"""
        if not self.accounts_path.exists():
            return []

        try:
            with open(self.accounts_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return [Account(**item) for item in data.get("accounts", [])]
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            raise ConfigError(f"Failed to load accounts from {self.accounts_path}: {str(e)}")

    def save_accounts(self, accounts: List[Account]) -> None:
        """Atomically save accounts to JSON"""
        payload = {"accounts": [a.model_dump(mode="json") for a in accounts]}
        self._atomic_write(self.accounts_path, payload)

    def find_by_username(self, username: str) -> Optional[Account]:
        """Exact, case-sensitive username lookup"""
        return next((a for a in self.load_accounts() if a.username == username), None)

    def find_by_id(self, account_id: str) -> Optional[Account]:
        return next((a for a in self.load_accounts() if a.id == account_id), None)

    def authenticate(self, username: str, secret: str) -> Optional[Account]:
        """Return the account if username and secret match, else None"""
        account = self.find_by_username(username)
        if account is None:
            return None
        if not verify_secret(secret, account.secret_hash):
            return None
        return account

    def create_account(self, account: Account) -> Account:
        """Add an account; usernames are unique"""
        with self._lock:
            accounts = self.load_accounts()
            if any(a.username == account.username for a in accounts):
                raise UsernameTaken(account.username)
            accounts.append(account)
            self.save_accounts(accounts)
        logger.info("Account created", account_id=account.id, role=account.role.value)
        return account

    def add_account(
        self,
        username: str,
        secret: str,
        full_name: str,
        role: Role = Role.RESIDENT,
        **profile: Any,
    ) -> Account:
        """Hash the secret and create the account (used for seeding staff)"""
        account = Account(
            id=new_id("user"),
            username=username,
            secret_hash=hash_secret(secret, self.bcrypt_rounds),
            role=role,
            full_name=full_name,
            **profile,
        )
        return self.create_account(account)

    def _atomic_write(self, path: Path, payload: Dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w", dir=str(path.parent), delete=False, encoding="utf-8"
        ) as tf:
            json.dump(payload, tf, indent=2, ensure_ascii=False)
            temp_path = Path(tf.name)

        try:
            shutil.move(str(temp_path), str(path))
        except Exception as e:
            if temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save accounts to {path}: {str(e)}")
