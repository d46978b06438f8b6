"""
Configuration module for grant storage.

Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.
"""

from dataclasses import dataclass
import os

from ..errors import ConfigurationError


DEFAULT_MAX_LINEAGE_DEPTH = 256


@dataclass
class StoreConfig:
    """Configuration for a grant storage backend"""
    backend: str = "sql"
    database_url: str = ""
    echo_sql: bool = False
    max_lineage_depth: int = DEFAULT_MAX_LINEAGE_DEPTH

    @classmethod
    def from_env(cls) -> "StoreConfig":
        """Create configuration from environment variables"""
        raw_depth = os.getenv("GRANTSTORE_MAX_LINEAGE_DEPTH", str(DEFAULT_MAX_LINEAGE_DEPTH))
        try:
            max_lineage_depth = int(raw_depth)
        except ValueError as e:
            raise ConfigurationError(
                f"GRANTSTORE_MAX_LINEAGE_DEPTH must be an integer, got {raw_depth!r}",
                field="max_lineage_depth",
                cause=e,
            ) from e
        return cls(
            backend=os.getenv("GRANTSTORE_BACKEND", "sql"),
            database_url=os.getenv("GRANTSTORE_DATABASE_URL", ""),
            echo_sql=os.getenv("GRANTSTORE_ECHO_SQL", "false").lower() in ("1", "true", "yes"),
            max_lineage_depth=max_lineage_depth,
        )

    def validate(self) -> bool:
        """Validate the configuration"""
        if not self.backend:
            raise ConfigurationError("backend is required", field="backend")
        if self.backend == "sql" and not self.database_url:
            raise ConfigurationError("database_url is required for the sql backend", field="database_url")
        if self.max_lineage_depth < 1:
            raise ConfigurationError("max_lineage_depth must be positive", field="max_lineage_depth")
        return True
