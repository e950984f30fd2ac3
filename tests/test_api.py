import importlib

import pytest
from fastapi.testclient import TestClient

import surplus_miner.main
from surplus_miner.main import app


@pytest.fixture
def client(data_dir, strategy, monkeypatch):
    strategy_path = data_dir / "strategy.json"
    strategy_path.write_text(strategy.model_dump_json(), encoding="utf-8")
    monkeypatch.setenv("DATA_DIR", str(data_dir))
    monkeypatch.setenv("SURPLUS_START_MONTH", "2024-01")
    monkeypatch.setenv("STRATEGY_PATH", str(strategy_path))
    monkeypatch.delenv("OUTPUT_DIR", raising=False)
    return TestClient(app)


def test_health_check(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_outputs_missing_before_run(client):
    assert client.get("/api/pipeline/simulation").status_code == 404
    assert client.get("/api/pipeline/summary").status_code == 404


def test_run_then_read(client):
    response = client.post("/api/pipeline/run")
    assert response.status_code == 200
    summary = response.json()
    assert summary["months_simulated"] == 4
    assert summary["first_month"] == "2024-01"

    sim = client.get("/api/pipeline/simulation").json()
    assert sim["file"] == "mining-simulation.csv"
    assert sim["row_count"] == 4
    assert sim["rows"][0]["month"] == "2024-01"
    assert sim["rows"][0]["s19_pro_count"] == 10_000

    surplus = client.get("/api/pipeline/surplus").json()
    assert surplus["rows"][0]["surplus_pj"] == 12.53

    for path in ("/api/pipeline/mining-monthly", "/api/pipeline/energy-usage"):
        assert client.get(path).json()["row_count"] == 4

    assert client.get("/api/pipeline/summary").json() == summary


def test_run_failure_is_reported(client, data_dir):
    (data_dir / "nuclear-production.csv").unlink()

    response = client.post("/api/pipeline/run")

    assert response.status_code == 500
    assert "nuclear-production.csv" in response.json()["detail"]


@pytest.mark.parametrize("name, value", [("SURPLUS_START_MONTH", "2024-13"), ("ENERGY_DAYS_PER_MONTH", "thirty")])
def test_invalid_settings_are_reported(client, monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    response = client.get("/api/pipeline/simulation")

    assert response.status_code == 500
    assert response.json()["detail"].startswith("Invalid settings")
    assert client.get("/api/health").status_code == 200


def test_app_imports_with_invalid_settings(monkeypatch):
    monkeypatch.setenv("SURPLUS_START_MONTH", "2024-13")
    monkeypatch.setenv("CORS_ORIGINS", "http://dash.local, http://localhost:3000")

    reloaded = importlib.reload(surplus_miner.main)

    assert TestClient(reloaded.app).get("/api/health").json()["status"] == "ok"
