"""
Grant storage schema bootstrap.

Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

Creates the clients, authorization_grants, access_grants and
refresh_grants tables if they are absent. Run once when deploying,
before the service starts; re-running against an initialised database
changes nothing. Any failure exits non-zero.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from grantstore.core.config import StoreConfig
from grantstore.errors import GrantStoreError
from grantstore.store.sql import SqlGrantStorage


logger = logging.getLogger("grantstore.migrate")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="grantstore-migrate",
        description="Create the grant storage tables if they do not exist.",
    )
    parser.add_argument(
        "--database-url",
        help="SQLAlchemy async URL, defaults to GRANTSTORE_DATABASE_URL",
    )
    parser.add_argument("--echo", action="store_true", help="log every SQL statement")
    return parser.parse_args(argv)


async def migrate(config: StoreConfig) -> None:
    """Run the schema bootstrap against the configured database."""
    config.validate()
    storage = SqlGrantStorage.from_url(config.database_url, echo=config.echo_sql)
    try:
        await storage.create_schemas()
    finally:
        await storage.close()


async def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        config = StoreConfig.from_env()
        config.backend = "sql"
        if args.database_url:
            config.database_url = args.database_url
        if args.echo:
            config.echo_sql = True
        await migrate(config)
    except GrantStoreError as e:
        logger.error(f"Schema bootstrap failed: {e.message}")
        return 1

    logger.info("Schema bootstrap complete")
    return 0


def run() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.error("Schema bootstrap interrupted")
        sys.exit(1)


if __name__ == "__main__":
    run()
