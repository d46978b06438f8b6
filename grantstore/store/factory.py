"""
Factory for creating grant storage backends.
Provides a centralized way to create and configure storage from a StoreConfig.
"""

from typing import Callable, Dict, List

from ..core.config import StoreConfig
from ..errors import ConfigurationError
from .types import GrantStorage
from .memory import MemoryGrantStorage
from .sql import SqlGrantStorage


StorageBuilder = Callable[[StoreConfig], GrantStorage]


def _build_sql(config: StoreConfig) -> GrantStorage:
    return SqlGrantStorage.from_url(
        config.database_url, echo=config.echo_sql, max_lineage_depth=config.max_lineage_depth
    )


def _build_memory(config: StoreConfig) -> GrantStorage:
    return MemoryGrantStorage(max_lineage_depth=config.max_lineage_depth)


# Registry of available storage implementations
_STORAGE_IMPLEMENTATIONS: Dict[str, StorageBuilder] = {
    'sql': _build_sql,
    'memory': _build_memory,
}


class StorageFactory:
    """Factory for creating storage implementations."""

    @staticmethod
    def create_storage(config: StoreConfig) -> GrantStorage:
        """
        Create a grant storage backend.

        Args:
            config: Storage configuration

        Returns:
            GrantStorage instance

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        config.validate()
        builder = _STORAGE_IMPLEMENTATIONS.get(config.backend.lower())
        if not builder:
            raise ConfigurationError(f"Unsupported storage type: {config.backend}", field="backend")
        return builder(config)

    @staticmethod
    def register_implementation(name: str, builder: StorageBuilder) -> None:
        """
        Register a new storage implementation.

        Args:
            name: Name to register the implementation under
            builder: Callable creating the backend from a StoreConfig
        """
        _STORAGE_IMPLEMENTATIONS[name.lower()] = builder

    @staticmethod
    def unregister_implementation(name: str) -> None:
        """Remove a registered storage implementation."""
        _STORAGE_IMPLEMENTATIONS.pop(name.lower(), None)

    @staticmethod
    def get_available_types() -> List[str]:
        """Get list of available storage types."""
        return list(_STORAGE_IMPLEMENTATIONS.keys())


def create_storage(config: StoreConfig) -> GrantStorage:
    """Convenience function to create grant storage from configuration."""
    return StorageFactory.create_storage(config)
