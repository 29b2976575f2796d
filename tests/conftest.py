import asyncio
import pytest
from fastapi.testclient import TestClient

from runledger.core.config import get_settings
from runledger.ledger import create_ledger


@pytest.fixture
def workspace_root(tmp_path):
    """
    A fresh, empty workspace directory per test.
    """
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def ledger(workspace_root):
    ledger = create_ledger(workspace_root)
    yield ledger
    ledger.shutdown()


@pytest.fixture
def client(workspace_root, monkeypatch):
    """
    A TestClient running the full app (lifespan included) against a temp workspace.
    """
    monkeypatch.setenv("RUNLEDGER_WORKSPACE_ROOT", str(workspace_root))
    monkeypatch.setenv("RUNLEDGER_ENABLED_MODULES", '["hello-world"]')
    get_settings.cache_clear()

    from runledger.main import app
    with TestClient(app) as test_client:
        yield test_client
    get_settings.cache_clear()


async def wait_for_status(ledger, run_id, statuses=("success", "error", "cancelled"), timeout=2.0):
    """Polls a run until it reaches one of ``statuses`` and returns the row."""
    deadline = asyncio.get_running_loop().time() + timeout
    while True:
        run = ledger.runs.get_run(run_id)
        if run is not None and run.status in statuses:
            return run
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError(f"Run {run_id} still {run.status if run else 'missing'} after {timeout}s")
        await asyncio.sleep(0.01)
