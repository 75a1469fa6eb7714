from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import Iterator

import pytest
from sqlalchemy.engine import Engine

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from rpos.api import dependencies
from rpos.infrastructure.db import session as db_session
from rpos.infrastructure.db.schema import metadata
from rpos.tools.seed import seed

BACKEND_DIR = Path(__file__).resolve().parents[2]


def _reset_engine_caches() -> None:
    db_session._build_engine.cache_clear()
    db_session._build_session_factory.cache_clear()
    dependencies.business_settings.cache_clear()


@pytest.fixture()
def sqlite_engine(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Engine]:
    """A seeded SQLite file per test, wired in through DATABASE_URL."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'rpos.db'}")
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)
    _reset_engine_caches()

    engine = db_session.get_engine()
    metadata.create_all(engine)
    assert seed(engine)
    yield engine

    engine.dispose()
    _reset_engine_caches()


@pytest.fixture()
def postgres_engine(monkeypatch: pytest.MonkeyPatch) -> Iterator[Engine]:
    database_url = os.getenv("RPOS_TEST_POSTGRES_URL")
    if not database_url:
        pytest.skip("RPOS_TEST_POSTGRES_URL is not set")
    monkeypatch.setenv("DATABASE_URL", database_url)
    _reset_engine_caches()
    if not db_session.ping_database(timeout_seconds=2.0):
        pytest.skip("postgres is not reachable")

    env = os.environ.copy()
    env["PYTHONPATH"] = f"{BACKEND_DIR / 'src'}{os.pathsep}{env.get('PYTHONPATH', '')}".rstrip(
        os.pathsep
    )
    subprocess.run(
        [sys.executable, "-m", "alembic", "-c", "alembic.ini", "upgrade", "head"],
        cwd=BACKEND_DIR,
        env=env,
        check=True,
    )
    engine = db_session.get_engine()
    seed(engine)
    yield engine

    engine.dispose()
    _reset_engine_caches()
