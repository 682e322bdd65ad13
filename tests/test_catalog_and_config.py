"""Tests for the category catalog, credential store and settings loading"""

import json

import pytest

from request_desk.auth.credential_store import CredentialStore
from request_desk.models.principal import Role
from request_desk.services.category_catalog import DEFAULT_CATEGORIES, CategoryCatalog
from request_desk.utils.config import (
    AppSettings,
    RequestSettings,
    SessionSettings,
    Settings,
    check_secrets,
    load_settings,
)
from request_desk.utils.exceptions import ConfigError, UsernameTaken


def test_default_catalog():
    catalog = CategoryCatalog()
    assert [c.id for c in catalog.categories()] == [c.id for c in DEFAULT_CATEGORIES]
    assert catalog.get("roads").name == "Roads"
    assert catalog.get("missing") is None
    assert catalog.assignments_for("anyone") == frozenset()


def test_catalog_from_yaml(tmp_path):
    path = tmp_path / "categories.yaml"
    path.write_text(
        "categories:\n"
        "  - {id: roads, name: Roads}\n"
        "  - {id: lights, name: Street Lights}\n"
        "assignments:\n"
        "  eve: [roads, lights]\n",
        encoding="utf-8",
    )
    catalog = CategoryCatalog.from_yaml(path)
    assert [c.id for c in catalog.categories()] == ["roads", "lights"]
    assert catalog.assignments_for("user-1", "eve") == frozenset({"roads", "lights"})


def test_catalog_bad_yaml(tmp_path):
    path = tmp_path / "categories.yaml"
    path.write_text("categories: [\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        CategoryCatalog.from_yaml(path)


def test_credential_store_seeds_admin(tmp_path):
    store = CredentialStore(tmp_path, bcrypt_rounds=4, admin_username="root", admin_password="s3cret")
    admin = store.find_by_username("root")
    assert admin.role == Role.ADMIN
    assert admin.secret_hash != "s3cret"
    assert store.authenticate("root", "s3cret") == admin
    assert store.authenticate("root", "wrong") is None
    assert store.authenticate("nobody", "s3cret") is None

    raw = json.loads((tmp_path / "accounts.json").read_text(encoding="utf-8"))
    assert "s3cret" not in json.dumps(raw)


def test_credential_store_rejects_duplicate_usernames(tmp_path):
    store = CredentialStore(tmp_path, bcrypt_rounds=4)
    store.add_account("alice", "pw", "Alice")
    with pytest.raises(UsernameTaken):
        store.add_account("alice", "other", "Alice Two")
    assert len(store.load_accounts()) == 2


def test_credential_store_is_persistent(tmp_path):
    CredentialStore(tmp_path, bcrypt_rounds=4).add_account("alice", "pw", "Alice")
    reopened = CredentialStore(tmp_path, bcrypt_rounds=4)
    assert reopened.find_by_username("alice") is not None
    assert len(reopened.load_accounts()) == 2


def test_load_settings_defaults(tmp_path, monkeypatch):
    for name in ("REQUEST_DESK_DATA_DIR", "REQUEST_DESK_LATENCY_SECONDS", "ENVIRONMENT", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings(tmp_path / "missing.yaml")
    assert settings.session.expiry_days == 7
    assert settings.requests.sla_days == 30
    assert settings.requests.latency_seconds == 1.0
    assert settings.is_production is False


def test_load_settings_yaml_and_env(tmp_path, monkeypatch):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "app:\n  environment: production\n"
        "requests:\n  sla_days: 14\n"
        "logging:\n  level: DEBUG\n",
        encoding="utf-8",
    )
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.setenv("REQUEST_DESK_LATENCY_SECONDS", "0.25")
    monkeypatch.setenv("REQUEST_DESK_DATA_DIR", str(tmp_path / "data"))
    settings = load_settings(path)
    assert settings.is_production is True
    assert settings.requests.sla_days == 14
    assert settings.requests.latency_seconds == 0.25
    assert settings.data_path == tmp_path / "data"
    assert settings.logging.level == "DEBUG"


def test_load_settings_invalid(tmp_path, monkeypatch):
    monkeypatch.setenv("REQUEST_DESK_LATENCY_SECONDS", "-1")
    with pytest.raises(ConfigError):
        load_settings(tmp_path / "missing.yaml")


def test_secret_key_has_no_default(tmp_path, monkeypatch):
    monkeypatch.delenv("REQUEST_DESK_SECRET_KEY", raising=False)
    settings = load_settings(tmp_path / "missing.yaml")
    assert settings.session.secret_key == ""
    with pytest.raises(ConfigError):
        check_secrets(settings)


def test_check_secrets_development_accepts_repo_admin_password():
    settings = Settings(session=SessionSettings(secret_key="local-dev-key"))
    check_secrets(settings)


@pytest.mark.parametrize(
    "session",
    [
        SessionSettings(secret_key="change-me", admin_password="a-real-password"),
        SessionSettings(secret_key="a-real-key", admin_password="admin123"),
        SessionSettings(secret_key="a-real-key", admin_password=""),
    ],
)
def test_check_secrets_rejects_published_values_in_production(session):
    settings = Settings(app=AppSettings(environment="production"), session=session)
    with pytest.raises(ConfigError):
        check_secrets(settings)


def test_check_secrets_production_with_own_values():
    settings = Settings(
        app=AppSettings(environment="production"),
        session=SessionSettings(secret_key="a-real-key", admin_password="a-real-password"),
    )
    check_secrets(settings)


def test_snapshot_path_follows_data_dir(tmp_path):
    relative = Settings(data_dir=str(tmp_path / "elsewhere"), requests=RequestSettings(snapshot_file="requests.json"))
    assert relative.snapshot_path == tmp_path / "elsewhere" / "requests.json"

    absolute = Settings(data_dir=str(tmp_path), requests=RequestSettings(snapshot_file=str(tmp_path / "x.json")))
    assert absolute.snapshot_path == tmp_path / "x.json"

    assert Settings().snapshot_path is None
