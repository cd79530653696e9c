"""
TD Balance Simulator - Metrics
===============================
Per-wave spawn/kill timing and the derived difficulty and balance analytics.

These numbers never feed back into the simulation; they only describe it.
"""

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_DIFFICULTY = 5.0


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EnemySpawnTiming:
    enemy_id: int
    enemy_type: str
    spawn_time: float
    death_time: Optional[float] = None

    @property
    def was_killed(self) -> bool:
        return self.death_time is not None

    @property
    def survival_duration(self) -> Optional[float]:
        if self.death_time is None:
            return None
        return self.death_time - self.spawn_time

    def with_death_time(self, death_time: float) -> "EnemySpawnTiming":
        return replace(self, death_time=death_time)


@dataclass(frozen=True)
class WaveMetrics:
    wave_number: int
    total_enemies: int
    enemies_killed: int
    enemies_leaked: int
    money_earned: int
    lives_lost: int
    duration: float
    max_lives: int = 20
    spawn_timings: tuple = ()

    @property
    def completion_rate(self) -> float:
        if self.total_enemies <= 0:
            return 0.0
        return self.enemies_killed / self.total_enemies

    @property
    def difficulty_rating(self) -> float:
        if self.total_enemies <= 0:
            return 0.0
        lives_term = 0.3 * (self.lives_lost / self.max_lives) if self.max_lives > 0 else 0.0
        rating = (1 - self.completion_rate) + lives_term + 0.1 * min(self.duration / 60.0, 1.0)
        return max(0.0, min(rating, MAX_DIFFICULTY))

    @property
    def is_successful(self) -> bool:
        return self.completion_rate >= 1.0 and self.lives_lost == 0

    @property
    def is_partial_success(self) -> bool:
        return self.completion_rate >= 0.8

    @property
    def is_failure(self) -> bool:
        return self.completion_rate < 0.5


@dataclass(frozen=True)
class SimulationMetrics:
    scenario_name: str
    timestamp: datetime
    total_duration: float
    overall_success: bool
    wave_metrics: tuple = ()
    custom_metrics: Dict[str, object] = field(default_factory=dict)

    @property
    def total_waves_attempted(self) -> int:
        return len(self.wave_metrics)

    @property
    def total_waves_completed(self) -> int:
        return sum(1 for w in self.wave_metrics if w.is_successful)

    @property
    def overall_completion_rate(self) -> float:
        """Share of attempted waves that were cleared without losing a life."""
        if not self.wave_metrics:
            return 0.0
        return self.total_waves_completed / self.total_waves_attempted

    @property
    def average_difficulty_rating(self) -> float:
        if not self.wave_metrics:
            return 0.0
        return sum(w.difficulty_rating for w in self.wave_metrics) / len(self.wave_metrics)


# ---------------------------------------------------------------------------
# Collector
# ---------------------------------------------------------------------------

class MetricsCollector:
    def __init__(self, max_lives: int = 20):
        self.max_lives = max_lives
        self._waves: List[WaveMetrics] = []
        self._timings: Dict[int, EnemySpawnTiming] = {}
        self._current_wave = 0

    def start_wave(self, wave_number: int):
        self._current_wave = wave_number
        self._timings = {}

    def record_spawn(self, enemy_id: int, enemy_type: str, time: float):
        self._timings[enemy_id] = EnemySpawnTiming(enemy_id, enemy_type, time)

    def record_kill(self, enemy_id: int, time: float):
        timing = self._timings.get(enemy_id)
        if timing is None:
            logger.debug("Kill recorded for unknown enemy %d", enemy_id)
            return
        self._timings[enemy_id] = timing.with_death_time(time)

    def end_wave(self, total: int, killed: int, leaked: int, money_earned: int,
                 lives_lost: int, duration: float) -> WaveMetrics:
        wave = WaveMetrics(
            wave_number=self._current_wave,
            total_enemies=total,
            enemies_killed=killed,
            enemies_leaked=leaked,
            money_earned=money_earned,
            lives_lost=lives_lost,
            duration=duration,
            max_lives=self.max_lives,
            spawn_timings=tuple(self._timings.values()),
        )
        self._waves.append(wave)
        self._timings = {}
        return wave

    def last_wave(self) -> Optional[WaveMetrics]:
        return self._waves[-1] if self._waves else None

    def all_waves(self) -> List[WaveMetrics]:
        return list(self._waves)

    def reset(self):
        self._waves = []
        self._timings = {}
        self._current_wave = 0

    def generate(self, scenario_name: str, total_duration: float,
                 overall_success: bool) -> SimulationMetrics:
        waves = tuple(self._waves)
        return SimulationMetrics(
            scenario_name=scenario_name,
            timestamp=datetime.now(),
            total_duration=total_duration,
            overall_success=overall_success,
            wave_metrics=waves,
            custom_metrics=self._custom_metrics(waves, total_duration),
        )

    # -------------------------------------------------------------------
    # Derived analytics
    # -------------------------------------------------------------------

    def _custom_metrics(self, waves, total_duration: float) -> Dict[str, object]:
        if not waves:
            return {}

        spawned = sum(w.total_enemies for w in waves)
        killed = sum(w.enemies_killed for w in waves)
        leaked = sum(w.enemies_leaked for w in waves)
        difficulties = [w.difficulty_rating for w in waves]
        rates = [w.completion_rate for w in waves]

        metrics: Dict[str, object] = {
            "TotalEnemiesSpawned": spawned,
            "TotalEnemiesKilled": killed,
            "TotalEnemiesLeaked": leaked,
            "KillEfficiency": killed / spawned if spawned else 0.0,
            "AverageWaveDuration": sum(w.duration for w in waves) / len(waves),
            "EnemiesPerSecond": spawned / total_duration if total_duration > 0 else 0.0,
            "MaxDifficultyRating": max(difficulties),
            "MinDifficultyRating": min(difficulties),
            "DifficultyRange": max(difficulties) - min(difficulties),
            "DifficultySpike": difficulty_spike(difficulties),
            "DifficultyProgression": difficulties,
            "CompletionRateProgression": rates,
            "MoneyEarnedProgression": [w.money_earned for w in waves],
            "LivesLostProgression": [w.lives_lost for w in waves],
            "TotalMoneyEarned": sum(w.money_earned for w in waves),
            "TotalLivesLost": sum(w.lives_lost for w in waves),
            "BalanceScore": balance_score(waves, self.max_lives),
        }
        return metrics


def difficulty_spike(difficulties: List[float]) -> float:
    """Largest rise in difficulty between consecutive waves."""
    spike = 0.0
    for prev, cur in zip(difficulties, difficulties[1:]):
        spike = max(spike, cur - prev)
    return spike


def balance_score(waves, max_lives: int) -> float:
    if not waves:
        return 0.0
    rates = [w.completion_rate for w in waves]
    avg = sum(rates) / len(rates)
    variance = sum((r - avg) ** 2 for r in rates) / len(rates)
    avg_lives_lost = sum(w.lives_lost for w in waves) / len(waves)
    lives_term = max(0.0, 1 - avg_lives_lost / max_lives) if max_lives > 0 else 0.0
    return max(0.0, avg - variance + lives_term)


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def _wave_to_dict(w: WaveMetrics) -> dict:
    return {
        "waveNumber": w.wave_number,
        "totalEnemies": w.total_enemies,
        "enemiesKilled": w.enemies_killed,
        "enemiesLeaked": w.enemies_leaked,
        "moneyEarned": w.money_earned,
        "livesLost": w.lives_lost,
        "duration": round(w.duration, 3),
        "completionRate": w.completion_rate,
        "difficultyRating": w.difficulty_rating,
        "isSuccessful": w.is_successful,
        "isPartialSuccess": w.is_partial_success,
        "isFailure": w.is_failure,
        "spawnTimings": [
            {
                "enemyId": t.enemy_id,
                "enemyType": t.enemy_type,
                "spawnTime": t.spawn_time,
                "deathTime": t.death_time,
                "wasKilled": t.was_killed,
            }
            for t in w.spawn_timings
        ],
    }


def metrics_to_dict(metrics: SimulationMetrics) -> dict:
    return {
        "scenarioName": metrics.scenario_name,
        "timestamp": metrics.timestamp.isoformat(),
        "totalDuration": round(metrics.total_duration, 3),
        "overallSuccess": metrics.overall_success,
        "totalWavesAttempted": metrics.total_waves_attempted,
        "totalWavesCompleted": metrics.total_waves_completed,
        "overallCompletionRate": metrics.overall_completion_rate,
        "averageDifficultyRating": metrics.average_difficulty_rating,
        "waveMetrics": [_wave_to_dict(w) for w in metrics.wave_metrics],
        "customMetrics": dict(metrics.custom_metrics),
    }


def export_metrics(path, metrics: SimulationMetrics):
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(metrics_to_dict(metrics), f, indent=2)
    except OSError as exc:
        raise RuntimeError(f"Failed to export metrics to {path}: {exc}") from exc
    logger.info("Exported metrics for '%s' to %s", metrics.scenario_name, path)
