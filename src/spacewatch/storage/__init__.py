"""Storage layer: SQLite database access, schema, and the seen-record store."""

from spacewatch.storage.connection import get_connection
from spacewatch.storage.schema import init_db
from spacewatch.storage.seen_store import DedupStore, SeenRecord

__all__ = ["DedupStore", "SeenRecord", "get_connection", "init_db"]
