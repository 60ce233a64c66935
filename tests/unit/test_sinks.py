"""
Unit tests for sink adapters
"""

import json
import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from sqlalchemy.exc import OperationalError

from core.exceptions import ConfigurationError, HttpDeliveryError, RelationalDeliveryError
from schemas.destination import HttpSetup
from sinks.console import print_summary
from sinks.http_sink import send_request
from sinks.relational import build_table, build_url, insert_to_mssql, insert_to_postgres


def mock_engine(execute=None):
    """Async engine whose begin() yields a connection with an AsyncMock execute"""
    conn = MagicMock()
    conn.execute = execute or AsyncMock()
    engine = MagicMock()
    engine.begin.return_value.__aenter__.return_value = conn
    engine.dispose = AsyncMock()
    return engine, conn


class TestRelationalHelpers:
    """Test URL and table construction"""

    def test_build_url_from_string(self):
        url = build_url("postgresql+asyncpg://etl:secret@db:5432/warehouse", "postgres")
        assert url.drivername == "postgresql+asyncpg"
        assert url.database == "warehouse"

    def test_build_url_from_mapping_uses_default_driver(self):
        url = build_url(
            {"server": "sql01", "port": 1433, "user": "sa", "password": "pw", "database": "etl"},
            "mssql"
        )
        assert url.drivername == "mssql+aioodbc"
        assert url.host == "sql01"
        assert url.port == 1433
        assert url.username == "sa"

    def test_build_url_falls_back_to_settings(self):
        with patch("sinks.relational.settings") as mock_settings:
            mock_settings.DATABASE_URL = "postgresql+asyncpg://u:p@fallback/db"
            url = build_url(None, "postgres")
        assert url.host == "fallback"

    def test_build_url_without_any_connection(self):
        with patch("sinks.relational.settings") as mock_settings:
            mock_settings.DATABASE_URL = None
            with pytest.raises(ConfigurationError):
                build_url(None, "postgres")

    def test_build_table_collects_columns_in_order(self):
        target = build_table("analytics.events", [{"id": 1, "name": "a"}, {"id": 2, "extra": True}])

        assert target.name == "events"
        assert target.schema == "analytics"
        assert [c.name for c in target.columns] == ["id", "name", "extra"]


class TestRelationalInsert:
    """Test bulk insert adapters"""

    @pytest.mark.asyncio
    async def test_insert_to_postgres(self, sample_records):
        engine, conn = mock_engine()

        with patch("sinks.relational.create_async_engine", return_value=engine) as create:
            inserted = await insert_to_postgres(
                sample_records, "postgresql+asyncpg://u:p@db/etl", "events"
            )

        assert inserted == 3
        create.assert_called_once()
        conn.execute.assert_awaited_once()
        rows = conn.execute.call_args.args[1]
        assert rows == sample_records
        engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rows_are_padded_to_same_keys(self):
        engine, conn = mock_engine()

        with patch("sinks.relational.create_async_engine", return_value=engine):
            await insert_to_mssql(
                [{"id": 1}, {"id": 2, "note": "x"}],
                {"host": "sql", "database": "etl"},
                "dbo.events"
            )

        rows = conn.execute.call_args.args[1]
        assert rows == [{"id": 1, "note": None}, {"id": 2, "note": "x"}]

    @pytest.mark.asyncio
    async def test_database_error_is_wrapped(self, sample_records):
        failing = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("no route")))
        engine, _ = mock_engine(execute=failing)

        with patch("sinks.relational.create_async_engine", return_value=engine):
            with pytest.raises(RelationalDeliveryError) as exc_info:
                await insert_to_postgres(sample_records, "postgresql+asyncpg://u:p@db/etl", "events")

        assert exc_info.value.context["table_name"] == "events"
        engine.dispose.assert_awaited_once()


class TestHttpSink:
    """Test HTTP delivery"""

    @pytest.mark.asyncio
    async def test_send_request_posts_json(self, sample_records):
        setup = HttpSetup(url="https://collector.example.com/batch", headers={"X-Key": "k"})
        mock_response = MagicMock()
        mock_response.raise_for_status = MagicMock()

        with patch("sinks.http_sink.httpx.AsyncClient") as mock_client:
            request = AsyncMock(return_value=mock_response)
            mock_client.return_value.__aenter__.return_value.request = request

            response = await send_request(sample_records, setup)

        assert response is mock_response
        args, kwargs = request.call_args
        assert args == ("POST", "https://collector.example.com/batch")
        assert json.loads(kwargs["content"]) == sample_records
        assert kwargs["headers"]["X-Key"] == "k"
        assert kwargs["headers"]["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_error_status_raises_delivery_error(self, sample_records):
        setup = HttpSetup(url="https://collector.example.com/batch", method="put")
        request = httpx.Request("PUT", setup.url)
        response = httpx.Response(503, request=request)

        with patch("sinks.http_sink.httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                return_value=response
            )

            with pytest.raises(HttpDeliveryError) as exc_info:
                await send_request(sample_records, setup)

        assert exc_info.value.context["status_code"] == 503

    @pytest.mark.asyncio
    async def test_connection_error_raises_delivery_error(self, sample_records):
        setup = HttpSetup(url="https://collector.example.com/batch")

        with patch("sinks.http_sink.httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                side_effect=httpx.ConnectError("Connection refused")
            )

            with pytest.raises(HttpDeliveryError) as exc_info:
                await send_request(sample_records, setup)

        assert "Connection refused" in str(exc_info.value)


class TestConsoleSink:
    """Test console summary"""

    def test_prints_count_and_first_rows(self, capsys):
        batch = [{"i": i} for i in range(25)]

        print_summary(batch, show=10)

        out = capsys.readouterr().out
        assert "Total size: 25 rows. First 10" in out
        lines = out.strip().splitlines()
        # count line + table header + 10 rows
        assert len(lines) == 12
