"""
Bulk insert batches into PostgreSQL or SQL Server tables
"""

from typing import Any, Dict, List, Optional, Union
from sqlalchemy import column, insert, table
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool
from sqlalchemy.sql.expression import TableClause
import logging

from core.config import settings
from core.exceptions import ConfigurationError, RelationalDeliveryError

logger = logging.getLogger(__name__)

DEFAULT_DRIVERS = {
    "postgres": "postgresql+asyncpg",
    "mssql": "mssql+aioodbc",
}

Connection = Union[str, Dict[str, Any], None]


def build_url(connection: Connection, dialect: str) -> URL:
    """
    Turn a destination's connection info into a SQLAlchemy URL.

    Args:
        connection: URL string, mapping of connection fields, or None for
            ``settings.DATABASE_URL``
        dialect: ``postgres`` or ``mssql``; picks the default async driver
    """
    if connection is None:
        connection = settings.DATABASE_URL
    if not connection:
        raise ConfigurationError(
            "No connection configured for relational destination",
            context={"dialect": dialect}
        )

    if isinstance(connection, str):
        return make_url(connection)

    params = dict(connection)
    return URL.create(
        params.get("driver") or DEFAULT_DRIVERS[dialect],
        username=params.get("user") or params.get("username"),
        password=params.get("password"),
        host=params.get("host") or params.get("server"),
        port=params.get("port"),
        database=params.get("database"),
        query=params.get("query") or {},
    )


def build_table(table_name: str, rows: List[Dict[str, Any]]) -> TableClause:
    """
    Lightweight table construct covering every key seen in ``rows``.

    ``schema.table`` names are split on the last dot.
    """
    schema, _, name = table_name.rpartition(".")

    columns: List[str] = []
    seen = set()
    for row in rows:
        for key in row:
            if key not in seen:
                seen.add(key)
                columns.append(key)

    return table(name, *[column(c) for c in columns], schema=schema or None)


async def _bulk_insert(
    batch: List[Dict[str, Any]],
    connection: Connection,
    table_name: str,
    dialect: str
) -> int:
    url = build_url(connection, dialect)
    target = build_table(table_name, batch)

    # executemany needs the same keys on every row
    keys = [c.name for c in target.columns]
    rows = [{key: record.get(key) for key in keys} for record in batch]

    engine = create_async_engine(url, poolclass=NullPool)
    try:
        async with engine.begin() as conn:
            await conn.execute(insert(target), rows)
    except SQLAlchemyError as e:
        raise RelationalDeliveryError(
            f"Bulk insert into {table_name} failed",
            context={
                "dialect": dialect,
                "table_name": table_name,
                "batch_size": len(rows)
            },
            original_exception=e
        )
    finally:
        await engine.dispose()

    logger.info(f"Inserted {len(rows)} rows into {table_name} ({dialect})")
    return len(rows)


async def insert_to_postgres(
    batch: List[Dict[str, Any]],
    connection: Connection,
    table_name: str
) -> int:
    """Insert ``batch`` into a PostgreSQL table. Returns rows inserted."""
    return await _bulk_insert(batch, connection, table_name, "postgres")


async def insert_to_mssql(
    batch: List[Dict[str, Any]],
    connection: Connection,
    table_name: str
) -> int:
    """Insert ``batch`` into a SQL Server table. Returns rows inserted."""
    return await _bulk_insert(batch, connection, table_name, "mssql")
