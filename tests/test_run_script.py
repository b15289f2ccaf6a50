"""
Tests for the scheduled runner's startup checks.
"""

import importlib.util
from pathlib import Path

import pytest
from sqlalchemy import create_engine, inspect

from circle_engine.collector.orchestrator import RunStats
from circle_engine.utils.config import get_settings


SCRIPT = Path(__file__).parent.parent / "scripts" / "run_circles_update.py"


@pytest.fixture
def runner(monkeypatch):
    spec = importlib.util.spec_from_file_location("run_circles_update", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    monkeypatch.setattr(module, "load_dotenv", lambda *args, **kwargs: None)
    for var in ("DATABASE_URL", "POSTGRES_URL", "SQLITE_PATH"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("TWITTERAPIIO_API_KEY", "test-key")

    get_settings.cache_clear()
    yield module
    get_settings.cache_clear()


@pytest.fixture
def pipeline_calls(runner, monkeypatch):
    calls = []

    async def fake_run(settings, config, session_factory=None):
        calls.append((config, session_factory))
        return RunStats()

    monkeypatch.setattr(runner, "run_circles_update", fake_run)
    return calls


class TestStartupChecks:

    def test_missing_api_key_exits_1(self, runner, pipeline_calls, monkeypatch):
        monkeypatch.delenv("TWITTERAPIIO_API_KEY")
        monkeypatch.setenv("SQLITE_PATH", "unused.db")
        assert runner.main([]) == 1
        assert pipeline_calls == []

    def test_missing_database_config_exits_1(self, runner, pipeline_calls):
        assert runner.main([]) == 1
        assert pipeline_calls == []

    def test_unreachable_database_exits_1(self, runner, pipeline_calls, monkeypatch, tmp_path):
        monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'circles.db'}")
        monkeypatch.setattr(runner, "check_db_connection", lambda engine: False)

        assert runner.main(["--init-db"]) == 1
        assert pipeline_calls == []
        assert not (tmp_path / "circles.db").exists()

    def test_explicit_sqlite_path_runs(self, runner, pipeline_calls, monkeypatch, tmp_path):
        db_path = tmp_path / "circles.db"
        monkeypatch.setenv("SQLITE_PATH", str(db_path))

        assert runner.main(["--init-db", "--skip-scoring", "--batch-size", "5"]) == 0

        config, session_factory = pipeline_calls[0]
        assert config.skip_scoring is True
        assert config.batch_size == 5
        assert session_factory is not None
        assert "profiles" in inspect(create_engine(f"sqlite:///{db_path}")).get_table_names()
