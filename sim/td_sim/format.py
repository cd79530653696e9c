"""
TD Balance Simulator - Output Formatting
=========================================
Pretty-printing for simulation results and wave metrics.
"""

from typing import Optional

from td_sim.metrics import SimulationMetrics, WaveMetrics
from td_sim.models import SimulationResult


def fmt_duration(seconds: float) -> str:
    m, s = divmod(seconds, 60)
    return f"{int(m)}:{s:04.1f}"


def progress_bar(current: int, total: int, width: int = 30) -> str:
    if total <= 0:
        return "[" + " " * width + "]   0%"
    frac = max(0.0, min(1.0, current / total))
    filled = int(round(frac * width))
    return f"[{'#' * filled}{'.' * (width - filled)}] {frac:>4.0%}"


def print_full_report(result: SimulationResult, metrics: Optional[SimulationMetrics] = None):
    print()
    print("=" * 70)
    print(f"  TD BALANCE SIMULATOR")
    print(f"  Scenario: {result.scenario_name or '-'}")
    print(f"  Runtime: {result.duration.total_seconds() * 1000:.1f} ms")
    print("=" * 70)

    print_wave_breakdown(result)
    if metrics is not None:
        print_metrics_summary(metrics)
        print_difficulty_chart(metrics)
    print_summary(result)


def print_wave_breakdown(result: SimulationResult):
    print()
    print("--- WAVES ---")
    print(f" {'Wave':>4} {'Done':>5} {'Spawn':>6} {'Kill':>5} {'Leak':>5} "
          f"{'Lives-':>6} {'Money+':>7} {'Score+':>7} {'Ticks':>6}")
    print(f" {'----':>4} {'----':>5} {'-----':>6} {'----':>5} {'----':>5} "
          f"{'------':>6} {'------':>7} {'------':>7} {'-----':>6}")
    for w in result.wave_results:
        done = "yes" if w.completed else "NO"
        print(f" {w.wave_number:>4} {done:>5} {w.enemies_spawned:>6} {w.enemies_killed:>5} "
              f"{w.enemies_leaked:>5} {w.lives_lost:>6} {w.money_earned:>7} "
              f"{w.score_earned:>7} {w.ticks:>6}")


def print_wave_validation(wave: WaveMetrics):
    """Verdict for a single wave, as used while tuning wave configs."""
    if wave.is_successful:
        verdict = "PASS"
    elif wave.is_partial_success:
        verdict = "PARTIAL"
    elif wave.is_failure:
        verdict = "FAIL"
    else:
        verdict = "WEAK"
    print(f" Wave {wave.wave_number:>2}: {verdict:<8} "
          f"{progress_bar(wave.enemies_killed, wave.total_enemies, 20)} "
          f"killed {wave.enemies_killed}/{wave.total_enemies}, "
          f"lives lost {wave.lives_lost}, difficulty {wave.difficulty_rating:.2f}")


def print_metrics_summary(metrics: SimulationMetrics):
    print()
    print("--- METRICS ---")
    print(f" Waves attempted:     {metrics.total_waves_attempted}")
    print(f" Simulated time:      {fmt_duration(metrics.total_duration)}")
    print(f" Waves clean:         {metrics.total_waves_completed}")
    print(f" Completion rate:     {metrics.overall_completion_rate:.1%}")
    print(f" Avg difficulty:      {metrics.average_difficulty_rating:.2f}")
    cm = metrics.custom_metrics
    if cm:
        print(f" Kill efficiency:     {cm['KillEfficiency']:.1%}")
        print(f" Difficulty spike:    {cm['DifficultySpike']:.2f}")
        print(f" Balance score:       {cm['BalanceScore']:.2f}")
    print()
    for w in metrics.wave_metrics:
        print_wave_validation(w)


def print_difficulty_chart(metrics: SimulationMetrics, width: int = 40):
    if not metrics.wave_metrics:
        return
    print()
    print("--- DIFFICULTY ---")
    for w in metrics.wave_metrics:
        bar_len = int(round(w.difficulty_rating / 5.0 * width))
        print(f" W{w.wave_number:<3} {'#' * bar_len:<{width}} {w.difficulty_rating:.2f}")


def print_summary(result: SimulationResult):
    print()
    print("--- SUMMARY ---")
    print(f" {result.summary()}")
    print(f" Enemies killed:      {result.total_enemies_killed}")
    print(f" Towers placed:       {result.total_buildings_placed}")
    print(f" Final score:         {result.final_score}")
    print()


def print_minimal(result: SimulationResult):
    print(result.summary())
