"""
TD Balance Simulator - Data Models
===================================
All dataclasses for the simulation engine.
"""

import math
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import List, Optional

from td_sim.metrics import SimulationMetrics


class InsufficientFundsError(RuntimeError):
    """Raised when a spend would take the session below zero money."""


class InvalidPositionError(ValueError):
    """Raised when an entity is given a NaN or infinite coordinate."""


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Position:
    x: float
    y: float

    def __post_init__(self):
        if not (math.isfinite(self.x) and math.isfinite(self.y)):
            raise InvalidPositionError(f"Invalid position ({self.x}, {self.y})")

    def distance_to(self, other: "Position") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)


# ---------------------------------------------------------------------------
# Run configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SimulationConfig:
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
    fast_mode: bool = True
    name: str = "default"

    def __post_init__(self):
        if self.max_waves < 1:
            raise ValueError("max_waves must be >= 1")
        if self.starting_lives < 1:
            raise ValueError("starting_lives must be >= 1")
        if self.starting_money < 0:
            raise ValueError("starting_money must be >= 0")
        for attr in ("enemy_health_multiplier", "enemy_speed_multiplier",
                     "enemy_count_multiplier", "building_cost_multiplier",
                     "building_damage_multiplier"):
            if not getattr(self, attr) > 0:
                raise ValueError(f"{attr} must be > 0")

    @classmethod
    def default(cls) -> "SimulationConfig":
        return cls()

    @classmethod
    def for_balance_testing(cls) -> "SimulationConfig":
        # Fixed seed so balance runs are comparable
        return cls(random_seed=42, name="balance-testing")

    @classmethod
    def with_difficulty_modifier(cls, difficulty: float) -> "SimulationConfig":
        return cls(
            enemy_health_multiplier=difficulty,
            enemy_speed_multiplier=1.0 + (difficulty - 1.0) * 0.5,
            name=f"difficulty-x{difficulty:g}",
        )


# ---------------------------------------------------------------------------
# Stat records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BuildingStats:
    cost: int
    damage: float
    range: float
    fire_rate: float
    bullet_speed: float = 0.0
    shoot_sound: str = ""
    impact_sound: str = ""
    description: str = ""

    def __post_init__(self):
        if self.cost < 0:
            raise ValueError(f"Building cost must be >= 0, got {self.cost}")
        if self.damage < 0:
            raise ValueError(f"Building damage must be >= 0, got {self.damage}")
        if not self.range > 0:
            raise ValueError(f"Building range must be > 0, got {self.range}")
        if not self.fire_rate > 0:
            raise ValueError(f"Building fire rate must be > 0, got {self.fire_rate}")


@dataclass(frozen=True)
class EnemyStats:
    max_health: int
    speed: float
    damage: int = 1
    reward_gold: int = 0
    reward_xp: int = 0
    description: str = ""

    def __post_init__(self):
        if not self.max_health > 0:
            raise ValueError(f"Enemy max health must be > 0, got {self.max_health}")
        if not self.speed > 0:
            raise ValueError(f"Enemy speed must be > 0, got {self.speed}")
        if self.reward_gold < 0 or self.reward_xp < 0:
            raise ValueError("Enemy rewards must be >= 0")


# ---------------------------------------------------------------------------
# Runtime simulation entities
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PlacedTower:
    building_type: str
    position: Position
    damage: float
    range: float
    fire_rate: float
    cost: int


@dataclass
class LiveEnemy:
    enemy_id: int
    enemy_type: str
    health: float
    max_health: float
    speed: float
    reward: int
    position: Position

    @property
    def is_alive(self) -> bool:
        return self.health > 0

    def take_damage(self, amount: float):
        self.health = max(0.0, self.health - amount)

    def move_to(self, position: Position):
        self.position = position


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------

class RunPhase(Enum):
    NOT_STARTED = "not_started"
    WAVE_IN_PROGRESS = "wave_in_progress"
    WAVE_COMPLETE = "wave_complete"
    FINISHED = "finished"


@dataclass
class SessionState:
    money: int
    lives: int
    score: int = 0
    current_wave: int = 0
    is_game_over: bool = False
    is_victory: bool = False
    towers: List[PlacedTower] = field(default_factory=list)
    enemies: List[LiveEnemy] = field(default_factory=list)
    enemies_killed: int = 0

    def can_afford(self, amount: int) -> bool:
        return amount <= self.money

    def spend_money(self, amount: int):
        if amount > self.money:
            raise InsufficientFundsError(
                f"Cannot spend {amount} money, only have {self.money}")
        self.money -= amount

    def add_money(self, amount: int):
        self.money += amount

    def add_score(self, points: int):
        self.score += points

    def lose_life(self):
        if self.lives > 0:
            self.lives -= 1
        if self.lives == 0:
            self.is_game_over = True

    def start_wave(self, wave_number: int):
        self.current_wave = wave_number
        self.enemies.clear()

    def complete_wave(self, max_waves: int):
        if self.current_wave >= max_waves:
            self.is_game_over = True
            self.is_victory = True

    def add_tower(self, tower: PlacedTower):
        self.towers.append(tower)

    def add_enemy(self, enemy: LiveEnemy):
        self.enemies.append(enemy)

    def remove_dead_enemies(self):
        self.enemies = [e for e in self.enemies if e.is_alive]


# ---------------------------------------------------------------------------
# Simulation results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SimulationProgress:
    current_wave: int
    current_gold: int
    remaining_lives: int


@dataclass(frozen=True)
class WaveResult:
    wave_number: int
    completed: bool
    enemies_killed: int
    lives_lost: int
    money_earned: int
    score_earned: int
    duration: timedelta = timedelta(0)
    enemies_spawned: int = 0
    enemies_leaked: int = 0
    ticks: int = 0


@dataclass(frozen=True)
class SimulationResult:
    success: bool
    is_victory: bool
    final_money: int
    final_lives: int
    final_score: int
    waves_completed: int
    total_enemies_killed: int
    total_buildings_placed: int
    duration: timedelta = timedelta(0)
    failure_reason: Optional[str] = None
    wave_results: tuple = ()
    scenario_name: str = ""
    metrics: Optional[SimulationMetrics] = field(default=None, compare=False, repr=False)

    @classmethod
    def create_success(cls, state: SessionState, duration: timedelta,
                       wave_results: List[WaveResult],
                       scenario_name: str = "") -> "SimulationResult":
        return cls(
            success=True,
            is_victory=True,
            final_money=state.money,
            final_lives=state.lives,
            final_score=state.score,
            waves_completed=sum(1 for w in wave_results if w.completed),
            total_enemies_killed=sum(w.enemies_killed for w in wave_results),
            total_buildings_placed=len(state.towers),
            duration=duration,
            wave_results=tuple(wave_results),
            scenario_name=scenario_name,
        )

    @classmethod
    def failure(cls, reason: str, state: SessionState, duration: timedelta,
                wave_results: Optional[List[WaveResult]] = None,
                scenario_name: str = "") -> "SimulationResult":
        wave_results = list(wave_results or [])
        return cls(
            success=False,
            is_victory=False,
            final_money=state.money,
            final_lives=state.lives,
            final_score=state.score,
            waves_completed=sum(1 for w in wave_results if w.completed),
            total_enemies_killed=sum(w.enemies_killed for w in wave_results),
            total_buildings_placed=len(state.towers),
            duration=duration,
            failure_reason=reason,
            wave_results=tuple(wave_results),
            scenario_name=scenario_name,
        )

    def summary(self) -> str:
        if self.success:
            return (f"SUCCESS: Completed {self.waves_completed} waves, "
                    f"{self.final_lives} lives remaining, {self.final_money} money, "
                    f"Score: {self.final_score}")
        return (f"FAILURE: {self.failure_reason} (Wave {self.waves_completed}, "
                f"{self.final_lives} lives, {self.final_money} money)")

    def __str__(self) -> str:
        return self.summary()
