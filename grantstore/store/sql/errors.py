"""
Translation of SQLAlchemy failures into grant storage errors.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)

from ...errors import (
    ErrorContext,
    ErrorSource,
    GrantStoreError,
    StorageError,
    StorageUnavailableError,
    duplicate_key,
)


def translate_error(exc: SQLAlchemyError, operation: str, source: ErrorSource,
                    record_type: str = "", key: str = "") -> GrantStoreError:
    """Map a SQLAlchemy exception onto the matching grant storage error."""
    if isinstance(exc, IntegrityError):
        return duplicate_key(record_type or "record", key, source, cause=exc)

    context = ErrorContext(operation=operation, record_type=record_type or None, key=key or None)
    unreachable = isinstance(exc, (OperationalError, InterfaceError)) or (
        isinstance(exc, DBAPIError) and exc.connection_invalidated
    )
    if unreachable:
        return StorageUnavailableError(
            f"storage unavailable during {operation}: {exc}", source=source, context=context, cause=exc
        )
    return StorageError(f"storage failure during {operation}: {exc}", source=source, context=context, cause=exc)


@contextmanager
def storage_errors(operation: str, source: ErrorSource, record_type: str = "", key: str = "") -> Iterator[None]:
    """Raise grant storage errors in place of engine and driver failures."""
    try:
        yield
    except SQLAlchemyError as e:
        raise translate_error(e, operation, source, record_type, key) from e
    except OSError as e:
        # drivers surface refused connections as plain socket errors
        raise StorageUnavailableError(
            f"storage unavailable during {operation}: {e}",
            source=source,
            context=ErrorContext(operation=operation, record_type=record_type or None, key=key or None),
            cause=e,
        ) from e
