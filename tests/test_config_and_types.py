"""
Tests for configuration, the storage factory, record types and errors.
"""

import pytest
from datetime import datetime, timedelta, timezone

from grantstore import create_storage
from grantstore.core.config import DEFAULT_MAX_LINEAGE_DEPTH, StoreConfig
from grantstore.core.types import AccessGrant, AuthorizationGrant, Client, as_utc
from grantstore.errors import (
    ConfigurationError,
    ErrorCode,
    ErrorSource,
    NotFoundError,
    ReferenceInconsistentError,
    not_found,
    reference_inconsistent,
)
from grantstore.store import MemoryGrantStorage, SqlGrantStorage, StorageFactory


@pytest.fixture
def client():
    return Client("c1", "secret", "https://app.example.com/cb")


class TestStoreConfig:
    """Test configuration loading and validation"""

    def test_defaults(self):
        config = StoreConfig()

        assert config.backend == "sql"
        assert config.max_lineage_depth == DEFAULT_MAX_LINEAGE_DEPTH
        assert config.echo_sql is False

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("GRANTSTORE_BACKEND", "memory")
        monkeypatch.setenv("GRANTSTORE_DATABASE_URL", "postgresql+asyncpg://db/grants")
        monkeypatch.setenv("GRANTSTORE_ECHO_SQL", "true")
        monkeypatch.setenv("GRANTSTORE_MAX_LINEAGE_DEPTH", "12")

        config = StoreConfig.from_env()

        assert config.backend == "memory"
        assert config.database_url == "postgresql+asyncpg://db/grants"
        assert config.echo_sql is True
        assert config.max_lineage_depth == 12

    def test_from_env_rejects_non_numeric_depth(self, monkeypatch):
        monkeypatch.setenv("GRANTSTORE_MAX_LINEAGE_DEPTH", "lots")

        with pytest.raises(ConfigurationError) as excinfo:
            StoreConfig.from_env()
        assert excinfo.value.context.metadata["field"] == "max_lineage_depth"
        assert isinstance(excinfo.value.cause, ValueError)

    def test_sql_requires_database_url(self):
        with pytest.raises(ConfigurationError) as excinfo:
            StoreConfig(backend="sql").validate()
        assert excinfo.value.context.metadata["field"] == "database_url"

    def test_lineage_depth_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            StoreConfig(backend="memory", max_lineage_depth=0).validate()

    def test_valid_memory_config(self):
        assert StoreConfig(backend="memory").validate()


class TestStorageFactory:
    """Test creating backends from configuration"""

    def test_memory_backend(self):
        storage = create_storage(StoreConfig(backend="memory", max_lineage_depth=5))

        assert isinstance(storage, MemoryGrantStorage)
        assert storage.max_lineage_depth == 5

    @pytest.mark.asyncio
    async def test_sql_backend(self, tmp_path):
        storage = create_storage(
            StoreConfig(backend="sql", database_url=f"sqlite+aiosqlite:///{tmp_path / 'grants.db'}")
        )
        try:
            assert isinstance(storage, SqlGrantStorage)
        finally:
            await storage.close()

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError):
            create_storage(StoreConfig(backend="tape"))

    def test_register_implementation(self):
        StorageFactory.register_implementation("scratch", lambda config: MemoryGrantStorage())
        try:
            assert "scratch" in StorageFactory.get_available_types()
            assert isinstance(create_storage(StoreConfig(backend="scratch")), MemoryGrantStorage)
        finally:
            StorageFactory.unregister_implementation("scratch")


class TestRecordTypes:
    """Test the record dataclasses"""

    def test_authorization_expiry_is_advisory(self, client):
        created = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        grant = AuthorizationGrant(code="c", client=client, expires_in=600, created_at=created)

        assert grant.expire_at() == created + timedelta(minutes=10)
        assert not grant.is_expired(now=created + timedelta(minutes=5))
        assert grant.is_expired(now=created + timedelta(minutes=11))

    def test_access_grant_keys(self, client):
        authorization = AuthorizationGrant(code="code-1", client=client, expires_in=60)
        first = AccessGrant(access_token="a1", client=client, authorization=authorization)
        second = AccessGrant(access_token="a2", client=client, authorization=authorization, previous=first)

        assert second.authorization_code == "code-1"
        assert second.previous_access_token == "a1"
        assert first.previous_access_token == ""
        assert [g.access_token for g in second.lineage()] == ["a2", "a1"]

    def test_access_grant_without_authorization(self, client):
        grant = AccessGrant(access_token="a1", client=client)

        assert grant.authorization_code == ""
        assert grant.to_dict()["authorization_code"] == ""

    def test_to_dict_hides_secrets(self, client):
        grant = AccessGrant(access_token="a1", client=client, refresh_token="r1")

        assert "secret" not in client.to_dict()
        data = grant.to_dict()
        assert data["has_refresh_token"] is True
        assert "r1" not in data.values()

    def test_as_utc(self):
        naive = datetime(2025, 1, 1, 12, 0)
        offset = datetime(2025, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))

        assert as_utc(naive) == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert as_utc(offset).tzinfo == timezone.utc
        assert as_utc(offset) == as_utc(naive)


class TestErrors:
    """Test the structured error types"""

    def test_not_found(self):
        error = not_found("client", "c1", ErrorSource.CLIENT_REGISTRY, "get")

        assert error.code == ErrorCode.NOT_FOUND
        assert error.key == "c1"
        data = error.to_dict()
        assert data["error"] == "not_found"
        assert data["error_source"] == "client_registry"
        assert data["operation"] == "get"

    def test_reference_inconsistent_is_not_found(self):
        cause = not_found("authorization code", "code-1", ErrorSource.AUTHORIZE_STORE)
        error = reference_inconsistent(
            "authorization code", "code-1", ErrorSource.ACCESS_STORE, "gone", cause=cause
        )

        assert isinstance(error, NotFoundError)
        assert isinstance(error, ReferenceInconsistentError)
        assert error.code == ErrorCode.REFERENCE_INCONSISTENT
        assert error.to_dict()["caused_by"] == str(cause)
