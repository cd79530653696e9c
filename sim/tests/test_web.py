"""Tests for the FastAPI frontend."""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).parent.parent))

from td_sim import web


@pytest.fixture
def client(runner):
    web.set_runner(runner)
    yield TestClient(web.app)
    web.set_runner(None)


def test_buildings_catalog(client):
    resp = client.get("/api/buildings")
    assert resp.status_code == 200
    buildings = resp.json()["buildings"]
    assert buildings["basic_tower"]["cost"] == 50
    assert buildings["sniper_tower"]["category"] == "precision"


def test_enemies_catalog(client):
    data = client.get("/api/enemies").json()
    assert data["enemies"]["boss_enemy"]["max_health"] == 2000
    assert data["spawning"]["base_count"] == 5


def test_scenarios_list_and_detail(client):
    names = [s["filename"] for s in client.get("/api/scenarios").json()["scenarios"]]
    assert "baseline.yaml" in names

    detail = client.get("/api/scenarios/rich_start.yaml").json()
    assert detail["starting_money"] == 1000
    assert client.get("/api/scenarios/nope.yaml").status_code == 404


def test_simulate_inline_scenario(client):
    resp = client.post("/api/simulate", json={
        "scenario": {"name": "inline", "starting_money": 1000, "max_waves": 2,
                     "enemy_health_multiplier": 0.5, "building_cost_multiplier": 0.5},
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["scenario_name"] == "inline"
    assert data["success"] is True
    assert data["metrics"]["totalWavesAttempted"] == 2


def test_simulate_from_file(client):
    data = client.post("/api/simulate", json={"filename": "brutal.yaml"}).json()
    assert data["success"] is False
    assert data["summary"].startswith("FAILURE")


def test_simulate_errors(client):
    assert client.post("/api/simulate", json={}).status_code == 400
    assert client.post("/api/simulate", json={"filename": "missing.yaml"}).status_code == 404
    bad = client.post("/api/simulate", json={"scenario": {"max_waves": 0}})
    assert bad.status_code == 400


def test_compare(client):
    resp = client.post("/api/compare", json={
        "scenarios": [{"name": "a", "max_waves": 1}],
        "filenames": ["rich_start.yaml"],
    })
    assert resp.status_code == 200
    assert [r["scenario_name"] for r in resp.json()["results"]] == ["a", "rich_start"]


def test_save_scenario(client, tmp_path, monkeypatch):
    monkeypatch.setattr(web, "SCENARIOS_DIR", tmp_path)
    resp = client.post("/api/save", json={"scenario": {"name": "saved", "max_waves": 3},
                                          "filename": "saved"})
    assert resp.json() == {"saved": "saved.yaml"}
    assert (tmp_path / "saved.yaml").exists()


def test_scenario_paths_stay_inside_scenarios_dir(client, tmp_path, monkeypatch):
    scenarios = tmp_path / "scenarios"
    scenarios.mkdir()
    (tmp_path / "secret.yaml").write_text("starting_money: 1\n")
    monkeypatch.setattr(web, "SCENARIOS_DIR", scenarios)

    assert client.post("/api/simulate", json={"filename": "../secret.yaml"}).status_code == 400
    resp = client.post("/api/save", json={"scenario": {"name": "x"}, "filename": "../escape"})
    assert resp.status_code == 400
    assert not (tmp_path / "escape.yaml").exists()
