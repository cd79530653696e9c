"""
TD Balance Simulator - Web Frontend
====================================
FastAPI server exposing the simulator as a JSON API.

Usage:
    python -m td_sim.web
    python cli.py web [--port 8080]
"""

from dataclasses import asdict
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import uvicorn

from td_sim.config import ConfigurationError
from td_sim.engine import SimulationRunner
from td_sim.io import load_scenario, result_to_dict, save_scenario
from td_sim.metrics import metrics_to_dict
from td_sim.models import SimulationConfig

# Paths
DATA_DIR = Path(__file__).parent.parent / "data"
SCENARIOS_DIR = DATA_DIR / "scenarios"

app = FastAPI(title="TD Balance Simulator")

_runner: Optional[SimulationRunner] = None


def get_runner() -> SimulationRunner:
    global _runner
    if _runner is None:
        _runner = SimulationRunner.from_locator()
    return _runner


def set_runner(runner: Optional[SimulationRunner]):
    global _runner
    _runner = runner


# ---------------------------------------------------------------------------
# Pydantic models for request/response
# ---------------------------------------------------------------------------

class ScenarioIn(BaseModel):
    name: str = "web"
    starting_money: int = 500
    starting_lives: int = 20
    max_waves: int = 10
    random_seed: int = 12345
    enemy_health_multiplier: float = 1.0
    enemy_speed_multiplier: float = 1.0
    enemy_count_multiplier: float = 1.0
    building_cost_multiplier: float = 1.0
    building_damage_multiplier: float = 1.0
    wave_set: str = "default"


class SimulateRequest(BaseModel):
    scenario: Optional[ScenarioIn] = None
    filename: Optional[str] = None


class CompareRequest(BaseModel):
    scenarios: list[ScenarioIn] = []
    filenames: list[str] = []


class SaveRequest(BaseModel):
    scenario: ScenarioIn
    filename: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _config_from_input(sc: ScenarioIn) -> SimulationConfig:
    try:
        return SimulationConfig(**sc.model_dump())
    except ValueError as e:
        raise HTTPException(400, f"Invalid scenario: {e}")


def _scenario_path(filename: str) -> Path:
    root = SCENARIOS_DIR.resolve()
    filepath = (root / filename).resolve()
    if root not in filepath.parents:
        raise HTTPException(400, f"Invalid scenario filename: {filename}")
    return filepath


def _load_scenario_file(filename: str) -> SimulationConfig:
    filepath = _scenario_path(filename)
    if not filepath.exists():
        raise HTTPException(404, f"Scenario not found: {filename}")
    try:
        return load_scenario(filepath)
    except ValueError as e:
        raise HTTPException(400, f"Invalid scenario {filename}: {e}")


def _simulate(config: SimulationConfig) -> dict:
    result = get_runner().run_simulation(config)
    out = result_to_dict(result)
    out["metrics"] = metrics_to_dict(result.metrics) if result.metrics else None
    return out


# ---------------------------------------------------------------------------
# API Endpoints
# ---------------------------------------------------------------------------

@app.get("/api/buildings")
def api_buildings():
    """Return the building catalog with base stats."""
    config = get_runner().buildings_config
    return {
        "version": config.version,
        "buildings": {
            key: {**asdict(stats), "category": config.metadata[key].category}
            for key, stats in config.buildings.items()
        },
    }


@app.get("/api/enemies")
def api_enemies():
    """Return the enemy catalog and wave scaling coefficients."""
    config = get_runner().enemies_config
    return {
        "version": config.version,
        "enemies": {
            key: {**asdict(stats), "category": config.metadata[key].category}
            for key, stats in config.enemies.items()
        },
        "wave_scaling": asdict(config.wave_scaling),
        "spawning": asdict(config.spawning),
    }


@app.get("/api/scenarios")
def api_scenarios():
    """List saved scenario files."""
    files = []
    if SCENARIOS_DIR.exists():
        for f in sorted(SCENARIOS_DIR.glob("*.yaml")):
            files.append({"filename": f.name, "stem": f.stem})
    return {"scenarios": files}


@app.get("/api/scenarios/{filename}")
def api_scenario_detail(filename: str):
    return asdict(_load_scenario_file(filename))


@app.post("/api/simulate")
def api_simulate(req: SimulateRequest):
    """Run one scenario and return result plus metrics."""
    if req.filename:
        config = _load_scenario_file(req.filename)
    elif req.scenario:
        config = _config_from_input(req.scenario)
    else:
        raise HTTPException(400, "Provide either scenario or filename")
    return _simulate(config)


@app.post("/api/compare")
def api_compare(req: CompareRequest):
    """Simulate several scenarios and return all results."""
    configs = [_config_from_input(sc) for sc in req.scenarios]
    configs += [_load_scenario_file(f) for f in req.filenames]
    return {"results": [_simulate(c) for c in configs]}


@app.post("/api/save")
def api_save(req: SaveRequest):
    """Save a scenario to YAML."""
    config = _config_from_input(req.scenario)
    filename = req.filename
    if not filename.endswith(".yaml"):
        filename += ".yaml"
    filepath = _scenario_path(filename)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    save_scenario(config, filepath)
    return {"saved": filename}


@app.exception_handler(ConfigurationError)
def _config_error_handler(request, exc: ConfigurationError):
    return JSONResponse(status_code=500, content={"detail": f"Configuration error: {exc}"})


def start_server(port: int = 8080):
    """Start the uvicorn server."""
    print(f"Starting TD Balance Simulator at http://localhost:{port}")
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")


if __name__ == "__main__":
    start_server()
