"""Tests for reports, comparison output, balance recommendations and validation."""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from td_sim.compare import (
    balance_recommendations, compare_and_print, default_balance_scenarios,
    print_balance_report, validate_config_file,
)
from td_sim.config import PACKAGE_DATA_DIR
from td_sim.format import print_full_report, progress_bar
from td_sim.metrics import MetricsCollector
from td_sim.models import SimulationConfig


def _metrics(name, killed, total=10, success=True, lives_lost=0):
    c = MetricsCollector()
    c.start_wave(1)
    c.end_wave(total=total, killed=killed, leaked=total - killed, money_earned=0,
               lives_lost=lives_lost, duration=10.0)
    return c.generate(name, 10.0, success)


def test_progress_bar():
    assert progress_bar(5, 10, 10) == "[#####.....]  50%"
    assert progress_bar(0, 0, 4).startswith("[    ]")


def test_recommendations_for_failures_and_low_completion():
    recs = balance_recommendations([_metrics("a", 3, success=False), _metrics("b", 10)])
    assert any("1 test(s) failed" in r for r in recs)
    assert any("low completion" in r for r in recs)


def test_recommendations_difficulty_bands():
    easy = balance_recommendations([_metrics("a", 10)])
    assert easy == ["Average difficulty rating is low - consider increasing challenge"]


def test_recommendations_all_good():
    # four clean waves and one maxed-out wave: 80% clean, average difficulty just over 1
    c = MetricsCollector()
    for n in range(1, 5):
        c.start_wave(n)
        c.end_wave(total=10, killed=10, leaked=0, money_earned=0, lives_lost=0, duration=10.0)
    c.start_wave(5)
    c.end_wave(total=10, killed=0, leaked=10, money_earned=0, lives_lost=400, duration=10.0)
    m = c.generate("hard-but-fine", 50.0, True)
    assert m.overall_completion_rate == pytest.approx(0.8)
    assert 1.0 <= m.average_difficulty_rating <= 3.0
    assert balance_recommendations([m]) == ["All tests passed with good balance metrics"]


def test_full_report_prints(runner, capsys):
    result = runner.run_simulation(SimulationConfig(max_waves=2, name="report"))
    print_full_report(result, runner.last_metrics("report"))
    out = capsys.readouterr().out
    assert "--- WAVES ---" in out
    assert "--- METRICS ---" in out
    assert result.summary() in out


def test_compare_and_balance_report(runner, capsys):
    configs = default_balance_scenarios()[:2]
    results = [runner.run_simulation(c) for c in configs]
    compare_and_print(results)
    print_balance_report([runner.last_metrics(c.name) for c in configs])
    out = capsys.readouterr().out
    assert "SCENARIO COMPARISON" in out
    assert "baseline" in out
    assert "RECOMMENDATIONS" in out


def test_validate_packaged_configs():
    for name in ("building-stats.json", "enemy-stats.json",
                 "placement-strategies.json", "wave-configs-hard.json"):
        issues = validate_config_file(PACKAGE_DATA_DIR / name)
        assert issues[0].startswith("OK: Valid JSON"), issues
        assert not any(i.startswith("ERROR") for i in issues), issues


def test_validate_reports_problems(tmp_path):
    assert validate_config_file(tmp_path / "missing.json")[0].startswith("ERROR: Configuration file not found")

    empty = tmp_path / "empty.json"
    empty.write_text("  ")
    assert validate_config_file(empty) == ["ERROR: Configuration file is empty"]

    broken = tmp_path / "broken.json"
    broken.write_text("{")
    assert validate_config_file(broken)[0].startswith("ERROR")

    bad_building = tmp_path / "b.json"
    bad_building.write_text(json.dumps({"buildings": {"t": {"cost": 1}}}))
    issues = validate_config_file(bad_building)
    assert issues[-1].startswith("ERROR: Invalid building stats config")

    other = tmp_path / "other.json"
    other.write_text(json.dumps({"foo": 1}))
    assert validate_config_file(other)[-1].startswith("WARNING")


def test_compare_names_fewest_lives_lost(runner, capsys):
    easy = SimulationConfig(starting_money=1000, enemy_health_multiplier=0.5,
                            building_cost_multiplier=0.5, max_waves=2, name="sheltered")
    bare = SimulationConfig(starting_money=0, max_waves=2, name="open-field")
    compare_and_print([runner.run_simulation(bare), runner.run_simulation(easy)])
    out = capsys.readouterr().out
    line = next(l for l in out.splitlines() if "Fewest lives lost" in l)
    assert "sheltered (0)" in line
