# tests/conftest.py
from __future__ import annotations

import asyncio
import copy
import sys
from pathlib import Path

import pytest
from starlette.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from estimator_api.config import Settings  # noqa: E402
from estimator_api.main import create_app  # noqa: E402

SAMPLE_INPUT = {
    "region": {
        "name": "Africa",
        "avgAge": 19.7,
        "avgDailyIncomeInUSD": 5,
        "avgDailyIncomePopulation": 0.71,
    },
    "periodType": "days",
    "timeToElapse": 58,
    "reportedCases": 674,
    "population": 66622705,
    "totalHospitalBeds": 1380614,
}


@pytest.fixture(autouse=True)
def _keep_test_logging(monkeypatch):
    # create_app must not replace the root handlers caplog relies on.
    monkeypatch.setattr("estimator_api.telemetry.logging._configured", True)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        AUDIT_LOG_FILE=str(tmp_path / "audit-log.txt"),
        FAULT_LOG_FILE=str(tmp_path / "error-log.txt"),
        _env_file=None,
    )


@pytest.fixture()
def app(settings):
    return create_app(settings)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def sample_input() -> dict:
    return copy.deepcopy(SAMPLE_INPUT)


@pytest.fixture()
def drain(client):
    """Wait, on the client's event loop, for audit writes still in flight."""

    def _drain() -> None:
        client.portal.call(client.app.state.audit_recorder.drain)

    return _drain


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Minimal asyncio support without requiring pytest-asyncio."""

    test_func = pyfuncitem.obj
    if asyncio.iscoroutinefunction(test_func):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            call_kwargs = {
                name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames
            }
            loop.run_until_complete(test_func(**call_kwargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None
