# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package store provides the grant storage interface and its backends.

This package implements:
- The GrantStorage capability interface used by the protocol engine
- A relational backend on SQLAlchemy's async engine
- An in-memory backend for development and testing
- A factory creating either from configuration
"""

from .types import (
    GrantStorage,
    StorageStatus,
)

from .memory import (
    MemoryGrantStorage,
)

from .sql import (
    SqlGrantStorage,
    UnitOfWork,
    create_schemas,
)

from .factory import (
    StorageFactory,
    create_storage,
)

__all__ = [
    # Interface
    'GrantStorage',
    'StorageStatus',

    # Implementations
    'MemoryGrantStorage',
    'SqlGrantStorage',
    'UnitOfWork',
    'create_schemas',

    # Factory
    'StorageFactory',
    'create_storage',
]
