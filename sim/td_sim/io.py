"""
TD Balance Simulator - I/O
===========================
Load and save scenario configs from YAML files, export results as JSON.
"""

import json
import logging
from dataclasses import asdict, fields
from pathlib import Path
from typing import List

import yaml

from td_sim.models import SimulationConfig, SimulationResult

logger = logging.getLogger(__name__)

_CONFIG_FIELDS = {f.name for f in fields(SimulationConfig)}


def load_scenario(filepath) -> SimulationConfig:
    """Read a scenario YAML. Malformed content raises ValueError naming the file."""
    try:
        with open(filepath, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in scenario {filepath}: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Scenario file must contain a mapping: {filepath}")

    unknown = sorted(set(data) - _CONFIG_FIELDS - {"description"})
    if unknown:
        logger.warning("Ignoring unknown scenario keys in %s: %s", filepath, ", ".join(unknown))

    values = {k: v for k, v in data.items() if k in _CONFIG_FIELDS}
    values.setdefault("name", Path(filepath).stem)
    try:
        return SimulationConfig(**values)
    except TypeError as exc:
        raise ValueError(f"Invalid scenario values in {filepath}: {exc}") from exc


def save_scenario(config: SimulationConfig, filepath):
    data = asdict(config)
    with open(filepath, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def load_scenarios(directory) -> List[SimulationConfig]:
    return [load_scenario(p) for p in sorted(Path(directory).glob("*.yaml"))]


def result_to_dict(result: SimulationResult) -> dict:
    return {
        "scenario_name": result.scenario_name,
        "success": result.success,
        "is_victory": result.is_victory,
        "summary": result.summary(),
        "failure_reason": result.failure_reason,
        "final_money": result.final_money,
        "final_lives": result.final_lives,
        "final_score": result.final_score,
        "waves_completed": result.waves_completed,
        "total_enemies_killed": result.total_enemies_killed,
        "total_buildings_placed": result.total_buildings_placed,
        "duration_seconds": round(result.duration.total_seconds(), 4),
        "waves": [
            {
                "wave_number": w.wave_number,
                "completed": w.completed,
                "enemies_spawned": w.enemies_spawned,
                "enemies_killed": w.enemies_killed,
                "enemies_leaked": w.enemies_leaked,
                "lives_lost": w.lives_lost,
                "money_earned": w.money_earned,
                "score_earned": w.score_earned,
                "ticks": w.ticks,
            }
            for w in result.wave_results
        ],
    }


def export_result_json(result: SimulationResult, filepath: str):
    with open(filepath, "w") as f:
        json.dump(result_to_dict(result), f, indent=2)
