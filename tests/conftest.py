import pytest

import stepwise.persistence as persistence


@pytest.fixture(autouse=True)
def isolated_storage(tmp_path, monkeypatch):
    """Keep the process-wide default adapter and config lookups per test."""
    monkeypatch.delenv("STEPWISE_STORAGE_URL", raising=False)
    monkeypatch.setenv("STEPWISE_CONFIG", str(tmp_path / "missing-stepwise.yaml"))
    persistence._adapter_instance = None
    yield
    persistence._adapter_instance = None
