"""
Unit tests for the runner script
"""

import json
import pytest
from unittest.mock import patch

from scripts.run_pipeline import build_config, main, run


class TestRunPipelineScript:
    """Test config loading and the CLI entry point"""

    def test_build_config_from_json(self, tmp_path):
        config_file = tmp_path / "pipeline.json"
        config_file.write_text(json.dumps({
            "verbose": True,
            "destinations": [
                {"type": "http", "batchSize": 100, "setup": {"url": "https://a.example.com"}}
            ]
        }))

        config = build_config(str(config_file))

        assert config.verbose is True
        assert config.destinations[0].batch_size == 100

    def test_build_config_without_file(self):
        assert build_config(None).destinations == []

    @pytest.mark.asyncio
    async def test_run_prints_to_console(self, sample_csv, capsys):
        header = await run(None, str(sample_csv))

        assert header == ["id", "name", "amount"]
        assert "Total size: 3 rows" in capsys.readouterr().out

    def test_main_without_arguments(self, capsys):
        assert main([]) == 2
        assert "Usage" in capsys.readouterr().out

    def test_main_reports_source_error(self, tmp_path):
        with patch("scripts.run_pipeline.setup_logging"):
            assert main([str(tmp_path / "missing.csv")]) == 1
