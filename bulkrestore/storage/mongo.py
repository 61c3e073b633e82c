from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from pymongo import MongoClient
from pymongo.database import Database

from bulkrestore.config import RestoreConfig
from bulkrestore.lib.log import get_logger

logger = get_logger(__name__)


def open_client(config: RestoreConfig) -> MongoClient:
    return MongoClient(config.mongo_uri, tz_aware=True)


@contextmanager
def database_context(config: RestoreConfig, client: MongoClient | None = None) -> Iterator[Database]:
    """Yield the configured database.

    Ownership:
        - If client is provided: the caller owns it; it stays open afterwards.
        - If client is None: a new client is opened and closed on exit.
    """
    owned = client is None
    active = open_client(config) if client is None else client
    try:
        logger.debug("database_opened", database=config.database)
        yield active[config.database]
    finally:
        if owned:
            active.close()


__all__ = ["database_context", "open_client"]
