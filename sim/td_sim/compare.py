"""
TD Balance Simulator - Comparison
==================================
Side-by-side scenario comparison, balance recommendations and config checks.
"""

from dataclasses import replace
from pathlib import Path
from typing import List

from td_sim.config import (
    ConfigurationError, load_building_stats, load_enemy_stats,
    load_placement_strategy, load_wave_set, read_raw,
)
from td_sim.format import progress_bar
from td_sim.metrics import SimulationMetrics
from td_sim.models import SimulationConfig, SimulationResult

LOW_COMPLETION_RATE = 0.8
HIGH_DIFFICULTY = 3.0
LOW_DIFFICULTY = 1.0


def compare_and_print(results: List[SimulationResult]):
    if not results:
        return

    names = [r.scenario_name or f"run {i + 1}" for i, r in enumerate(results)]
    col_w = max(16, max(len(n) for n in names) + 2)

    print()
    print("=" * (18 + col_w * len(results)))
    print("  SCENARIO COMPARISON")
    print("=" * (18 + col_w * len(results)))

    print(f"{'':>18}", end="")
    for name in names:
        print(f"{name:>{col_w}}", end="")
    print()
    print(f"{'':>18}", end="")
    for _ in names:
        print(f"{'=' * (col_w - 2):>{col_w}}", end="")
    print()

    rows = [
        ("Result", lambda r: "WIN" if r.is_victory else "LOSS"),
        ("Waves completed", lambda r: str(r.waves_completed)),
        ("Final lives", lambda r: str(r.final_lives)),
        ("Final money", lambda r: str(r.final_money)),
        ("Final score", lambda r: str(r.final_score)),
        ("Enemies killed", lambda r: str(r.total_enemies_killed)),
        ("Towers placed", lambda r: str(r.total_buildings_placed)),
    ]
    print("\nOUTCOME")
    for label, fn in rows:
        print(f" {label:<17}", end="")
        for r in results:
            print(f"{fn(r):>{col_w}}", end="")
        print()

    max_waves = max(len(r.wave_results) for r in results)
    if max_waves:
        print("\nLIVES LOST PER WAVE")
        for i in range(max_waves):
            print(f" {'Wave ' + str(i + 1):<17}", end="")
            for r in results:
                val = str(r.wave_results[i].lives_lost) if i < len(r.wave_results) else "--"
                print(f"{val:>{col_w}}", end="")
            print()

    print("\nWINNER BY CATEGORY")
    _print_winner("Most waves", results, names, lambda r: r.waves_completed, str)
    _print_winner("Most lives left", results, names, lambda r: r.final_lives, str)
    _print_winner("Highest score", results, names, lambda r: r.final_score, str)
    _print_winner("Fewest lives lost", results, names,
                  lambda r: sum(w.lives_lost for w in r.wave_results), str,
                  lower_is_better=True)
    print()


def _print_winner(label, results, names, metric_fn, fmt_fn, lower_is_better=False):
    vals = [metric_fn(r) for r in results]
    if lower_is_better:
        best_idx = min(range(len(vals)), key=lambda i: vals[i])
    else:
        best_idx = max(range(len(vals)), key=lambda i: vals[i])
    print(f" {label:<20} {names[best_idx]} ({fmt_fn(vals[best_idx])})")


# ---------------------------------------------------------------------------
# Balance testing
# ---------------------------------------------------------------------------

def balance_recommendations(metrics_list: List[SimulationMetrics]) -> List[str]:
    recs: List[str] = []
    if not metrics_list:
        return recs

    failed = [m for m in metrics_list if not m.overall_success]
    if failed:
        recs.append(f"{len(failed)} test(s) failed - review difficulty scaling")

    low = [m for m in metrics_list if m.overall_completion_rate < LOW_COMPLETION_RATE]
    if low:
        recs.append(f"{len(low)} test(s) have low completion rates - "
                    "consider reducing enemy difficulty")

    avg_difficulty = sum(m.average_difficulty_rating for m in metrics_list) / len(metrics_list)
    if avg_difficulty > HIGH_DIFFICULTY:
        recs.append("Average difficulty rating is high - consider rebalancing enemy stats")
    elif avg_difficulty < LOW_DIFFICULTY:
        recs.append("Average difficulty rating is low - consider increasing challenge")

    if not recs:
        recs.append("All tests passed with good balance metrics")
    return recs


def print_balance_report(metrics_list: List[SimulationMetrics]):
    print()
    print("=" * 70)
    print("  WAVE BALANCE TESTING REPORT")
    print("=" * 70)

    for m in metrics_list:
        print()
        print(f" Scenario: {m.scenario_name}")
        print(f"   Result:          {'PASS' if m.overall_success else 'FAIL'}")
        print(f"   Sim time:        {m.total_duration:.1f}s")
        print(f"   Waves clean:     {m.total_waves_completed}/{m.total_waves_attempted} "
              f"{progress_bar(m.total_waves_completed, m.total_waves_attempted, 20)}")
        cm = m.custom_metrics
        if "KillEfficiency" in cm:
            print(f"   Kill efficiency: {cm['KillEfficiency']:.1%}")
        if "BalanceScore" in cm:
            print(f"   Balance score:   {cm['BalanceScore']:.2f}")

    print()
    print("--- RECOMMENDATIONS ---")
    for rec in balance_recommendations(metrics_list):
        print(f" * {rec}")
    print()


def default_balance_scenarios() -> List[SimulationConfig]:
    """Built-in sweep used by the ``balance`` command."""
    return [
        replace(SimulationConfig.for_balance_testing(), name="baseline"),
        replace(SimulationConfig.with_difficulty_modifier(0.75), random_seed=42, name="easy-x0.75"),
        replace(SimulationConfig.with_difficulty_modifier(1.5), random_seed=42, name="hard-x1.5"),
        replace(SimulationConfig.with_difficulty_modifier(2.0), random_seed=42, name="brutal-x2"),
        SimulationConfig(starting_money=1000, random_seed=42, name="rich-start"),
        SimulationConfig(starting_money=200, random_seed=42, name="poor-start"),
    ]


# ---------------------------------------------------------------------------
# Config validation
# ---------------------------------------------------------------------------

_LOADERS = (
    ("buildings", "building stats", load_building_stats),
    ("enemies", "enemy stats", load_enemy_stats),
    ("strategies", "placement strategy", load_placement_strategy),
    ("waves", "wave set", load_wave_set),
)


def validate_config_file(path) -> List[str]:
    """Check a config file parses and matches one of the known schemas."""
    path = Path(path)
    issues: List[str] = []
    if not path.exists():
        return [f"ERROR: Configuration file not found: {path}"]
    if not path.read_text(encoding="utf-8").strip():
        return ["ERROR: Configuration file is empty"]

    try:
        data = read_raw(path)
    except ConfigurationError as exc:
        return [f"ERROR: {exc}"]
    issues.append(f"OK: Valid {path.suffix.lstrip('.').upper()} format")

    for key, label, loader in _LOADERS:
        if key not in data:
            continue
        try:
            loader(path)
        except ConfigurationError as exc:
            issues.append(f"ERROR: Invalid {label} config: {exc}")
        else:
            issues.append(f"OK: {label.capitalize()} structure is valid")
        return issues

    issues.append("WARNING: Unrecognised config layout "
                  "(expected one of: buildings, enemies, strategies, waves)")
    return issues
