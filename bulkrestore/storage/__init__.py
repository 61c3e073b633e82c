"""MongoDB access."""

from bulkrestore.storage.mongo import database_context, open_client

__all__ = ["database_context", "open_client"]
