"""
Sink adapters used by the destination dispatcher.

Modules:
    relational: Bulk insert into PostgreSQL (asyncpg) or SQL Server (aioodbc)
    http_sink: JSON delivery over HTTP with httpx
    console: Printed summary for the fallback destination
"""

from sinks.relational import insert_to_postgres, insert_to_mssql
from sinks.http_sink import send_request
from sinks.console import print_summary

__all__ = [
    "insert_to_postgres",
    "insert_to_mssql",
    "send_request",
    "print_summary",
]
