"""
PostgreSQL Document Store

Company-scoped document collections (orders, vehicles, drivers, maintenance,
routes, ...) stored as JSONB rows, accessed through native asyncpg.

Documents are plain dicts using the dashboard's camelCase keys. The store
owns `id`, `companyId`, `createdAt` and `updatedAt`; everything else lives in
the `data` column.

Usage:
    from core.document_store import PostgresDocumentStore

    store = PostgresDocumentStore.from_config(settings.infrastructure)
    async with store:
        orders = await store.list_documents("orders", company_id)
"""

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

import asyncpg

from core.config import InfraConfig

logger = logging.getLogger(__name__)


class DocumentStoreError(Exception):
    """Document store operation failed"""
    pass


class DocumentNotFoundError(DocumentStoreError):
    """Document does not exist"""
    pass


class DuplicateDocumentError(DocumentStoreError):
    """A unique constraint on the collection was violated"""
    pass


# ============================================================================
# Timestamp normalization
# ============================================================================

def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Convert a stored timestamp into an aware UTC datetime.

    Accepts datetimes (naive values are taken as UTC), ISO-8601 strings,
    epoch seconds and exported Firestore timestamps
    (`{"seconds": ..., "nanoseconds": ...}`). Anything else yields None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return parse_timestamp(datetime.fromisoformat(text))
        except ValueError:
            return None
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            return None
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        return datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)
    return None


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Format a datetime as ISO-8601 UTC"""
    parsed = parse_timestamp(value)
    return parsed.isoformat() if parsed else None


def normalize_timestamps(value: Any, keys: Iterable[str]) -> Any:
    """
    Recursively parse timestamp fields named in `keys`.

    Walks nested dicts and lists, so tracking events and locations are
    covered. Returns a new structure; the input is left untouched.
    """
    keys = frozenset(keys)
    if isinstance(value, dict):
        return {
            k: parse_timestamp(v) if k in keys else normalize_timestamps(v, keys)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [normalize_timestamps(item, keys) for item in value]
    return value


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _dumps(value: Any) -> str:
    return json.dumps(value, default=_json_default)


async def _init_connection(conn: asyncpg.Connection) -> None:
    await conn.set_type_codec(
        "jsonb", encoder=_dumps, decoder=json.loads, schema="pg_catalog"
    )


# ============================================================================
# Store
# ============================================================================

class PostgresDocumentStore:
    """
    Document store backed by a single JSONB table per schema.

    Implements DocumentStoreProtocol.
    """

    RESERVED_KEYS = ("id", "companyId", "createdAt", "updatedAt")

    def __init__(
        self,
        dsn: str,
        schema: str = "fleet",
        min_size: int = 1,
        max_size: int = 10,
        command_timeout: int = 30,
    ):
        """
        Initialize the document store.

        Args:
            dsn: PostgreSQL connection string
            schema: Schema holding the documents/sequences tables
            min_size: Minimum pool size
            max_size: Maximum pool size
            command_timeout: Per-statement timeout in seconds
        """
        self.dsn = dsn
        self.schema = schema
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self._pool: Optional[asyncpg.Pool] = None

    @classmethod
    def from_config(cls, config: Optional[InfraConfig] = None) -> "PostgresDocumentStore":
        config = config or InfraConfig.from_env()
        return cls(
            dsn=config.postgres_dsn,
            schema=config.postgres_schema,
            min_size=config.pool_min_size,
            max_size=config.pool_max_size,
            command_timeout=config.command_timeout,
        )

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def documents_table(self) -> str:
        return f'"{self.schema}".documents'

    @property
    def sequences_table(self) -> str:
        return f'"{self.schema}".sequences'

    async def connect(self) -> None:
        """Create the pool and ensure tables exist"""
        if self._pool is not None:
            return
        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout,
                init=_init_connection,
            )
            await self.initialize()
        except (OSError, asyncio.TimeoutError, asyncpg.PostgresError) as e:
            logger.error(f"Failed to connect document store: {e}")
            await self.close()
            raise DocumentStoreError(f"Failed to connect: {e}") from e

        logger.info(f"Document store connected (schema={self.schema})")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("Document store closed")

    async def initialize(self) -> None:
        """Create schema, tables and indexes if missing"""
        statements = [
            f'CREATE SCHEMA IF NOT EXISTS "{self.schema}"',
            f"""
            CREATE TABLE IF NOT EXISTS {self.documents_table} (
                collection TEXT NOT NULL,
                id TEXT NOT NULL,
                company_id TEXT NOT NULL,
                data JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                created_at TIMESTAMPTZ NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL,
                PRIMARY KEY (collection, id)
            )
            """,
            f"""
            CREATE INDEX IF NOT EXISTS documents_company_idx
            ON {self.documents_table} (collection, company_id, created_at DESC)
            """,
            f"""
            CREATE UNIQUE INDEX IF NOT EXISTS documents_order_number_uq
            ON {self.documents_table} (company_id, (data->>'orderNumber'))
            WHERE collection = 'orders' AND data ? 'orderNumber'
            """,
            f"""
            CREATE TABLE IF NOT EXISTS {self.sequences_table} (
                company_id TEXT NOT NULL,
                name TEXT NOT NULL,
                value BIGINT NOT NULL,
                PRIMARY KEY (company_id, name)
            )
            """,
        ]
        async with self._acquire() as conn:
            for statement in statements:
                await conn.execute(statement)

    def _acquire(self):
        if self._pool is None:
            raise DocumentStoreError("Document store is not connected")
        return self._pool.acquire()

    def _row_to_document(self, row: asyncpg.Record) -> Dict[str, Any]:
        document = dict(row["data"] or {})
        document["id"] = row["id"]
        document["companyId"] = row["company_id"]
        document["createdAt"] = format_timestamp(row["created_at"])
        document["updatedAt"] = format_timestamp(row["updated_at"])
        return document

    def _strip_reserved(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in data.items() if k not in self.RESERVED_KEYS}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_documents(
        self,
        collection: str,
        company_id: str,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """List documents of a company, newest first, with equality filters"""
        query = f"""
            SELECT id, company_id, data, created_at, updated_at
            FROM {self.documents_table}
            WHERE collection = $1 AND company_id = $2 AND data @> $3::jsonb
            ORDER BY created_at DESC
        """
        try:
            async with self._acquire() as conn:
                rows = await conn.fetch(query, collection, company_id, filters or {})
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to list {collection} for company {company_id}: {e}")
            raise DocumentStoreError(str(e)) from e
        return [self._row_to_document(row) for row in rows]

    async def get_document(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        query = f"""
            SELECT id, company_id, data, created_at, updated_at
            FROM {self.documents_table}
            WHERE collection = $1 AND id = $2
        """
        try:
            async with self._acquire() as conn:
                row = await conn.fetchrow(query, collection, document_id)
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to get {collection}/{document_id}: {e}")
            raise DocumentStoreError(str(e)) from e
        return self._row_to_document(row) if row else None

    async def count_documents(self, collection: str, company_id: str) -> int:
        query = f"""
            SELECT count(*) FROM {self.documents_table}
            WHERE collection = $1 AND company_id = $2
        """
        try:
            async with self._acquire() as conn:
                return await conn.fetchval(query, collection, company_id)
        except asyncpg.PostgresError as e:
            raise DocumentStoreError(str(e)) from e

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_document(
        self,
        collection: str,
        company_id: str,
        data: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Insert a document; the store assigns id and timestamps"""
        document_id = uuid.uuid4().hex[:20]
        now = datetime.now(timezone.utc)
        query = f"""
            INSERT INTO {self.documents_table}
                (collection, id, company_id, data, created_at, updated_at)
            VALUES ($1, $2, $3, $4::jsonb, $5, $5)
            RETURNING id, company_id, data, created_at, updated_at
        """
        try:
            async with self._acquire() as conn:
                row = await conn.fetchrow(
                    query, collection, document_id, company_id,
                    self._strip_reserved(data), now,
                )
        except asyncpg.UniqueViolationError as e:
            logger.error(f"Duplicate document in {collection} for company {company_id}: {e}")
            raise DuplicateDocumentError(str(e)) from e
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to create document in {collection}: {e}")
            raise DocumentStoreError(str(e)) from e
        return self._row_to_document(row)

    async def update_document(
        self,
        collection: str,
        document_id: str,
        fields: Dict[str, Any],
    ) -> None:
        """Merge top-level fields into a document and refresh updatedAt"""
        query = f"""
            UPDATE {self.documents_table}
            SET data = data || $3::jsonb, updated_at = $4
            WHERE collection = $1 AND id = $2
        """
        try:
            async with self._acquire() as conn:
                status = await conn.execute(
                    query, collection, document_id,
                    self._strip_reserved(fields), datetime.now(timezone.utc),
                )
        except asyncpg.UniqueViolationError as e:
            raise DuplicateDocumentError(str(e)) from e
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to update {collection}/{document_id}: {e}")
            raise DocumentStoreError(str(e)) from e

        if status.endswith(" 0"):
            raise DocumentNotFoundError(f"{collection}/{document_id} not found")

    async def append_to_list(
        self,
        collection: str,
        document_id: str,
        field: str,
        items: List[Any],
        fields: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Extend a list field in place and merge `fields`, in one statement.

        Concurrent appends to the same document all survive; the list is
        never rewritten from a client-side copy.
        """
        query = f"""
            UPDATE {self.documents_table}
            SET data = (data || $4::jsonb)
                       || jsonb_build_object(
                              $3::text,
                              COALESCE(data -> $3::text, '[]'::jsonb) || $5::jsonb
                          ),
                updated_at = $6
            WHERE collection = $1 AND id = $2
        """
        try:
            async with self._acquire() as conn:
                status = await conn.execute(
                    query, collection, document_id, field,
                    self._strip_reserved(fields or {}), list(items),
                    datetime.now(timezone.utc),
                )
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to append to {collection}/{document_id}.{field}: {e}")
            raise DocumentStoreError(str(e)) from e

        if status.endswith(" 0"):
            raise DocumentNotFoundError(f"{collection}/{document_id} not found")

    async def delete_document(self, collection: str, document_id: str) -> bool:
        """Hard delete; returns False when nothing was removed"""
        query = f"DELETE FROM {self.documents_table} WHERE collection = $1 AND id = $2"
        try:
            async with self._acquire() as conn:
                status = await conn.execute(query, collection, document_id)
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to delete {collection}/{document_id}: {e}")
            raise DocumentStoreError(str(e)) from e
        return not status.endswith(" 0")

    async def next_sequence(
        self,
        company_id: str,
        name: str,
        seed_collection: Optional[str] = None,
    ) -> int:
        """
        Atomically reserve the next value of a per-company counter.

        The first reservation starts after the number of documents already
        in `seed_collection`, so companies with existing data continue their
        numbering. Concurrent callers always receive distinct values.
        """
        seed = "0"
        params: List[Any] = [company_id, name]
        if seed_collection:
            seed = (
                f"(SELECT count(*) FROM {self.documents_table} "
                f"WHERE collection = $3 AND company_id = $1)"
            )
            params.append(seed_collection)

        query = f"""
            INSERT INTO {self.sequences_table} AS s (company_id, name, value)
            VALUES ($1, $2, {seed} + 1)
            ON CONFLICT (company_id, name) DO UPDATE SET value = s.value + 1
            RETURNING value
        """
        try:
            async with self._acquire() as conn:
                return await conn.fetchval(query, *params)
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to reserve sequence {name} for company {company_id}: {e}")
            raise DocumentStoreError(str(e)) from e

    async def health_check(self) -> Dict[str, Any]:
        try:
            async with self._acquire() as conn:
                await conn.fetchval("SELECT 1")
            return {"healthy": True, "schema": self.schema}
        except (DocumentStoreError, asyncpg.PostgresError, OSError) as e:
            return {"healthy": False, "error": str(e)}
