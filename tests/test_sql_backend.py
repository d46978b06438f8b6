"""
Tests specific to the SQLAlchemy backend: units of work, schema
bootstrap and error translation.
"""

import pytest
import sqlalchemy as sa
from unittest.mock import AsyncMock, patch

from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncTransaction

from grantstore.core.types import AccessGrant, Client
from grantstore.errors import (
    ConfigurationError,
    DuplicateKeyError,
    ErrorSource,
    NotFoundError,
    StorageError,
    StorageUnavailableError,
    TransactionFailureError,
)
from grantstore.store import SqlGrantStorage, StorageStatus, UnitOfWork
from grantstore.store.sql import RefreshTokenStore, create_schemas
from grantstore.store.sql.errors import storage_errors, translate_error
from grantstore.store.sql.schema import clients


def insert_client(client_id):
    return sa.insert(clients).values(id=client_id, secret="s", redirect_uri="https://x.example/cb")


class TestUnitOfWork:
    """Test commit and rollback of units of work"""

    @pytest.mark.asyncio
    async def test_commit_on_success(self, sql_storage):
        async with UnitOfWork(sql_storage.engine) as unit:
            await unit.execute(insert_client("c1"))
            await unit.execute(insert_client("c2"))

        assert (await sql_storage.get_client("c1")).id == "c1"
        assert (await sql_storage.get_client("c2")).id == "c2"

    @pytest.mark.asyncio
    async def test_rollback_on_exception(self, sql_storage):
        with pytest.raises(RuntimeError):
            async with UnitOfWork(sql_storage.engine) as unit:
                await unit.execute(insert_client("c1"))
                raise RuntimeError("caller gave up")

        with pytest.raises(NotFoundError):
            await sql_storage.get_client("c1")

    @pytest.mark.asyncio
    async def test_rollback_on_statement_failure(self, sql_storage):
        await sql_storage.create_client("taken", "s", "https://x.example/cb")

        with pytest.raises(DuplicateKeyError):
            async with UnitOfWork(sql_storage.engine) as unit:
                await unit.execute(insert_client("c1"))
                await unit.execute(insert_client("taken"))

        with pytest.raises(NotFoundError):
            await sql_storage.get_client("c1")

    @pytest.mark.asyncio
    async def test_explicit_abort(self, sql_storage):
        async with UnitOfWork(sql_storage.engine) as unit:
            await unit.execute(insert_client("c1"))
            unit.abort()

            with pytest.raises(TransactionFailureError):
                await unit.execute(insert_client("c2"))

        assert unit.aborted
        with pytest.raises(NotFoundError):
            await sql_storage.get_client("c1")

    @pytest.mark.asyncio
    async def test_rollback_failure_keeps_original_error(self, sql_storage):
        rollback_error = OperationalError("ROLLBACK", {}, Exception("connection lost"))
        original = RuntimeError("caller gave up")

        with patch.object(AsyncTransaction, "rollback", AsyncMock(side_effect=rollback_error)):
            with pytest.raises(TransactionFailureError) as excinfo:
                async with UnitOfWork(sql_storage.engine) as unit:
                    await unit.execute(insert_client("c1"))
                    raise original

        assert excinfo.value.cause is original
        assert excinfo.value.rollback_error is rollback_error
        assert excinfo.value.__cause__ is original
        assert "rollback_error" in excinfo.value.to_dict()

    @pytest.mark.asyncio
    async def test_close_failure_does_not_mask_rollback_failure(self, sql_storage):
        rollback_error = OperationalError("ROLLBACK", {}, Exception("connection lost"))
        close_error = OperationalError("CLOSE", {}, Exception("connection lost again"))
        original = RuntimeError("caller gave up")
        real_close = AsyncConnection.close

        async def failing_close(connection):
            await real_close(connection)
            raise close_error

        with patch.object(AsyncTransaction, "rollback", AsyncMock(side_effect=rollback_error)), \
                patch.object(AsyncConnection, "close", failing_close):
            with pytest.raises(TransactionFailureError) as excinfo:
                async with UnitOfWork(sql_storage.engine) as unit:
                    await unit.execute(insert_client("c1"))
                    raise original

        assert excinfo.value.cause is original
        assert excinfo.value.rollback_error is rollback_error

    @pytest.mark.asyncio
    async def test_close_failure_after_commit_is_translated(self, sql_storage):
        close_error = OperationalError("CLOSE", {}, Exception("connection lost"))
        real_close = AsyncConnection.close

        async def failing_close(connection):
            await real_close(connection)
            raise close_error

        with patch.object(AsyncConnection, "close", failing_close):
            with pytest.raises(StorageUnavailableError) as excinfo:
                async with UnitOfWork(sql_storage.engine) as unit:
                    await unit.execute(insert_client("c1"))

        assert excinfo.value.cause is close_error
        assert excinfo.value.context.operation == "close"
        assert (await sql_storage.get_client("c1")).id == "c1"

    @pytest.mark.asyncio
    async def test_commit_failure(self, sql_storage):
        commit_error = OperationalError("COMMIT", {}, Exception("disk full"))

        with patch.object(AsyncTransaction, "commit", AsyncMock(side_effect=commit_error)):
            with pytest.raises(TransactionFailureError) as excinfo:
                async with UnitOfWork(sql_storage.engine) as unit:
                    await unit.execute(insert_client("c1"))

        assert excinfo.value.cause is commit_error
        with pytest.raises(NotFoundError):
            await sql_storage.get_client("c1")


class TestAtomicAccessSave:
    """Test that an access grant and its refresh token are written together"""

    @pytest.mark.asyncio
    async def test_refresh_write_failure_rolls_back_access_row(self, sql_storage):
        client = await sql_storage.create_client("c1", "s", "https://x.example/cb")
        grant = AccessGrant(access_token="access-1", client=client, refresh_token="refresh-1")
        failure = StorageUnavailableError("refresh table unreachable")

        with patch.object(RefreshTokenStore, "save", AsyncMock(side_effect=failure)):
            with pytest.raises(StorageUnavailableError):
                await sql_storage.save_access(grant)

        with pytest.raises(NotFoundError):
            await sql_storage.load_access("access-1")
        with pytest.raises(NotFoundError):
            await sql_storage.load_refresh("refresh-1")

    @pytest.mark.asyncio
    async def test_refresh_write_skipped_without_token(self, sql_storage):
        client = await sql_storage.create_client("c1", "s", "https://x.example/cb")

        with patch.object(RefreshTokenStore, "save", AsyncMock()) as save:
            await sql_storage.save_access(AccessGrant(access_token="access-1", client=client))

        save.assert_not_called()
        assert (await sql_storage.load_access("access-1")).refresh_token == ""


class TestLineageLimit:
    """Test the hop limit on rotation chains"""

    @pytest.mark.asyncio
    async def test_chain_longer_than_limit_is_rejected(self, tmp_path):
        storage = SqlGrantStorage.from_url(
            f"sqlite+aiosqlite:///{tmp_path / 'grants.db'}", max_lineage_depth=3
        )
        await storage.create_schemas()
        try:
            client = await storage.create_client("c1", "s", "https://x.example/cb")
            grant = None
            for i in range(4):
                grant = AccessGrant(access_token=f"access-{i}", client=client, previous=grant)
                await storage.save_access(grant)

            assert len(list((await storage.load_access("access-2")).lineage())) == 3
            with pytest.raises(NotFoundError) as excinfo:
                await storage.load_access("access-3")
            assert "longer than 3" in excinfo.value.message
        finally:
            await storage.close()


class TestSchema:
    """Test schema bootstrap"""

    @pytest.mark.asyncio
    async def test_bootstrap_is_idempotent(self, sql_storage):
        await create_schemas(sql_storage.engine)
        await sql_storage.create_schemas()

        async with sql_storage.engine.connect() as conn:
            names = await conn.run_sync(lambda sync_conn: sa.inspect(sync_conn).get_table_names())

        assert set(names) == {"clients", "authorization_grants", "access_grants", "refresh_grants"}

    @pytest.mark.asyncio
    async def test_bootstrap_keeps_existing_rows(self, sql_storage):
        await sql_storage.create_client("c1", "s", "https://x.example/cb")
        await sql_storage.create_schemas()

        assert await sql_storage.get_client("c1") == Client("c1", "s", "https://x.example/cb")

    @pytest.mark.asyncio
    async def test_bootstrap_failure_raises(self, tmp_path):
        storage = SqlGrantStorage.from_url(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'grants.db'}")
        try:
            with pytest.raises(StorageUnavailableError):
                await storage.create_schemas()
        finally:
            await storage.close()


class TestErrorTranslation:
    """Test mapping of engine errors"""

    def test_integrity_error_is_duplicate_key(self):
        exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

        error = translate_error(exc, "save", ErrorSource.ACCESS_STORE, "access grant", "t1")

        assert isinstance(error, DuplicateKeyError)
        assert error.key == "t1"
        assert error.cause is exc

    def test_operational_error_is_unavailable(self):
        exc = OperationalError("SELECT", {}, Exception("connection refused"))

        error = translate_error(exc, "load", ErrorSource.CLIENT_REGISTRY)

        assert isinstance(error, StorageUnavailableError)
        assert error.is_retryable()

    def test_other_errors_are_storage_errors(self):
        exc = ProgrammingError("SELECT", {}, Exception("syntax error"))

        error = translate_error(exc, "load", ErrorSource.CLIENT_REGISTRY)

        assert isinstance(error, StorageError)
        assert not isinstance(error, StorageUnavailableError)
        assert not error.is_retryable()

    @pytest.mark.asyncio
    async def test_unreachable_database(self, tmp_path):
        storage = SqlGrantStorage.from_url(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'grants.db'}")
        try:
            with pytest.raises(StorageUnavailableError):
                await storage.get_client("c1")
            assert await storage.health_check() == StorageStatus.UNHEALTHY
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_health_check(self, sql_storage):
        assert await sql_storage.health_check() == StorageStatus.HEALTHY

    def test_socket_errors_keep_record_context(self):
        with pytest.raises(StorageUnavailableError) as excinfo:
            with storage_errors("load", ErrorSource.ACCESS_STORE, "access grant", "t1"):
                raise ConnectionRefusedError("connection refused")

        assert excinfo.value.key == "t1"
        assert excinfo.value.context.record_type == "access grant"
        assert excinfo.value.context.operation == "load"

    def test_malformed_url_is_configuration_error(self):
        with pytest.raises(ConfigurationError) as excinfo:
            SqlGrantStorage.from_url("not a database url")

        assert excinfo.value.context.metadata["field"] == "database_url"
