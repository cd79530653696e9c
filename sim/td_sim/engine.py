"""
TD Balance Simulator - Simulation Engine
=========================================
Headless replay of a whole tower-defense session from config data.

Each wave: place towers -> spawn enemies -> tick (combat, movement, leaks)
until the wave is cleared or lives run out -> apply completion rewards.
"""

import asyncio
import logging
import random
import threading
import time
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Callable, Dict, List, Optional

from td_sim.combat import TICK_DELTA, detect_leaks, resolve_combat, resolve_movement
from td_sim.config import (
    BUILDING_STATS_FILE, ENEMY_STATS_FILE, FALLBACK_PLACEMENT, PLACEMENT_STRATEGY_FILE,
    BuildingStatsConfig, ConfigLocator, ConfigurationError, EnemyStatsConfig,
    PlacementStrategyConfig, WaveSetConfig,
    load_building_stats, load_enemy_stats, load_placement_strategy, load_wave_set,
    wave_set_filename,
)
from td_sim.metrics import MetricsCollector, SimulationMetrics
from td_sim.models import (
    RunPhase, SessionState, SimulationConfig, SimulationProgress,
    SimulationResult, WaveResult,
)
from td_sim.placement import PlacementStrategy
from td_sim.stats import BuildingStatsProvider, EnemyStatsProvider
from td_sim.waves import enemy_count_for_wave, spawn_wave, wave_bonus_money, wave_name

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[SimulationProgress], None]
CancelCheck = Callable[[], bool]


@dataclass(frozen=True)
class RewardRules:
    """Wave-completion rewards: per kill plus per wave number."""
    money_per_kill: int = 10
    money_per_wave: int = 0
    score_per_kill: int = 100
    score_per_wave: int = 50


class SimulationCancelled(Exception):
    pass


@dataclass
class RunContext:
    """Mutable state owned by exactly one run; never shared between runs."""
    config: SimulationConfig
    state: SessionState
    rng: random.Random
    collector: Optional[MetricsCollector] = None
    phase: RunPhase = RunPhase.NOT_STARTED
    next_enemy_id: int = 0
    sim_time: float = 0.0

    def enter(self, phase: RunPhase):
        logger.debug("[%s] %s -> %s", self.config.name, self.phase.value, phase.value)
        self.phase = phase


class SimulationRunner:
    def __init__(self, buildings_config: BuildingStatsConfig,
                 enemies_config: EnemyStatsConfig,
                 placement_config: PlacementStrategyConfig = FALLBACK_PLACEMENT,
                 locator: Optional[ConfigLocator] = None,
                 metrics_enabled: bool = True,
                 rewards: RewardRules = RewardRules()):
        self.buildings_config = buildings_config
        self.enemies_config = enemies_config
        self.placement_config = placement_config
        self.locator = locator
        self.metrics_enabled = metrics_enabled
        self.rewards = rewards
        self._lock = threading.Lock()
        self._metrics: Dict[str, SimulationMetrics] = {}
        self._last_metrics: Optional[SimulationMetrics] = None
        self._wave_sets: Dict[str, Optional[WaveSetConfig]] = {}

    @classmethod
    def from_locator(cls, locator: Optional[ConfigLocator] = None,
                     metrics_enabled: bool = True) -> "SimulationRunner":
        locator = locator or ConfigLocator.default()
        buildings = load_building_stats(locator.locate(BUILDING_STATS_FILE))
        enemies = load_enemy_stats(locator.locate(ENEMY_STATS_FILE))
        try:
            placement = load_placement_strategy(locator.locate(PLACEMENT_STRATEGY_FILE))
        except ConfigurationError as exc:
            logger.warning("%s; using built-in placement strategy", exc)
            placement = FALLBACK_PLACEMENT
        return cls(buildings, enemies, placement, locator=locator,
                   metrics_enabled=metrics_enabled)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run_simulation(self, config: SimulationConfig,
                       progress: Optional[ProgressCallback] = None,
                       should_cancel: Optional[CancelCheck] = None) -> SimulationResult:
        """Run one session to victory or failure. Never raises.

        The returned result carries the run's metrics when collection is on.
        """
        started = time.perf_counter()
        ctx = RunContext(
            config=config,
            state=SessionState(money=config.starting_money, lives=config.starting_lives),
            rng=random.Random(config.random_seed),
            collector=MetricsCollector(config.starting_lives) if self.metrics_enabled else None,
        )
        state = ctx.state
        wave_results: List[WaveResult] = []

        def elapsed() -> timedelta:
            return timedelta(seconds=time.perf_counter() - started)

        def finish(result: SimulationResult) -> SimulationResult:
            ctx.enter(RunPhase.FINISHED)
            if ctx.collector is not None:
                metrics = ctx.collector.generate(config.name, ctx.sim_time, result.success)
                self._store_metrics(metrics)
                result = replace(result, metrics=metrics)
            logger.info("[%s] %s", config.name, result.summary())
            return result

        try:
            buildings = BuildingStatsProvider(
                self.buildings_config,
                cost_multiplier=config.building_cost_multiplier,
                damage_multiplier=config.building_damage_multiplier,
            )
            enemies = EnemyStatsProvider(
                self.enemies_config,
                health_multiplier=config.enemy_health_multiplier,
                speed_multiplier=config.enemy_speed_multiplier,
            )
            if not enemies.keys():
                raise ConfigurationError("No enemy types configured")
            if not buildings.keys():
                raise ConfigurationError("No building types configured")
            strategy = PlacementStrategy(self.placement_config, buildings)
            wave_set = self._wave_set(config.wave_set)

            for wave in range(1, config.max_waves + 1):
                result = self._run_wave(ctx, wave, strategy, enemies, wave_set, should_cancel)
                wave_results.append(result)
                if progress is not None:
                    progress(SimulationProgress(wave, state.money, state.lives))
                if not result.completed:
                    return finish(SimulationResult.failure(
                        f"Failed to complete wave {wave}", state, elapsed(),
                        wave_results, config.name))
                state.complete_wave(config.max_waves)
                if state.is_victory:
                    return finish(SimulationResult.create_success(
                        state, elapsed(), wave_results, config.name))

            return finish(SimulationResult.failure(
                "Game ended without victory", state, elapsed(), wave_results, config.name))

        except SimulationCancelled:
            return finish(SimulationResult.failure(
                "Simulation cancelled", state, elapsed(), wave_results, config.name))
        except Exception as exc:
            logger.exception("Simulation '%s' raised", config.name)
            return finish(SimulationResult.failure(
                f"Simulation error: {exc}", state, elapsed(), wave_results, config.name))

    async def run_simulation_async(self, config: SimulationConfig,
                                   progress: Optional[ProgressCallback] = None,
                                   should_cancel: Optional[CancelCheck] = None) -> SimulationResult:
        return await asyncio.to_thread(self.run_simulation, config, progress, should_cancel)

    def run_multiple_scenarios(self, configs: List[SimulationConfig],
                               progress: Optional[ProgressCallback] = None) -> List[SimulationResult]:
        results = []
        for config in configs:
            results.append(self.run_simulation(config, progress))
        return results

    def last_metrics(self, scenario_name: Optional[str] = None) -> Optional[SimulationMetrics]:
        """Most recently stored metrics, optionally for one scenario name.

        Concurrent runs sharing a name overwrite each other here; read
        ``SimulationResult.metrics`` when runs may overlap.
        """
        with self._lock:
            if scenario_name is None:
                return self._last_metrics
            return self._metrics.get(scenario_name)

    # ------------------------------------------------------------------
    # Wave loop
    # ------------------------------------------------------------------

    def _run_wave(self, ctx: RunContext, wave: int, strategy: PlacementStrategy,
                  enemies: EnemyStatsProvider, wave_set: Optional[WaveSetConfig],
                  should_cancel: Optional[CancelCheck]) -> WaveResult:
        wave_started = time.perf_counter()
        state, collector = ctx.state, ctx.collector
        ctx.enter(RunPhase.WAVE_IN_PROGRESS)
        state.start_wave(wave)

        # Phase 1: placement
        placed = strategy.apply(state, wave)
        if placed:
            logger.debug("Wave %d: placed %s", wave, [t.building_type for t in placed])

        money_before = state.money
        lives_before = state.lives
        killed_before = state.enemies_killed

        # Phase 2: spawning
        count = enemy_count_for_wave(wave, enemies.spawning, wave_set,
                                     ctx.config.enemy_count_multiplier)
        if collector is not None:
            collector.start_wave(wave)
        spawn_wave(state, wave, enemies, count, collector,
                   first_id=ctx.next_enemy_id, spawn_time=ctx.sim_time)
        ctx.next_enemy_id += count

        # Phase 3: ticks
        ticks = 0
        leaked = 0

        def on_kill(enemy):
            if collector is not None:
                collector.record_kill(enemy.enemy_id, ctx.sim_time + ticks * TICK_DELTA)

        while state.enemies and state.lives > 0:
            if should_cancel is not None and should_cancel():
                raise SimulationCancelled()
            ticks += 1
            resolve_combat(state, on_kill)
            resolve_movement(state, TICK_DELTA)
            leaked += len(detect_leaks(state))

        wave_seconds = ticks * TICK_DELTA
        ctx.sim_time += wave_seconds
        killed = state.enemies_killed - killed_before
        lives_lost = lives_before - state.lives
        completed = state.lives > 0
        money_earned = state.money - money_before
        score_earned = 0

        # Phase 4: completion rewards
        if completed:
            r = self.rewards
            bonus = (killed * r.money_per_kill + wave * r.money_per_wave
                     + wave_bonus_money(wave, wave_set))
            score_earned = killed * r.score_per_kill + wave * r.score_per_wave
            state.add_money(bonus)
            state.add_score(score_earned)
            money_earned += bonus
            ctx.enter(RunPhase.WAVE_COMPLETE)

        if collector is not None:
            collector.end_wave(total=count, killed=killed, leaked=leaked,
                               money_earned=money_earned, lives_lost=lives_lost,
                               duration=wave_seconds)

        logger.debug("%s: killed %d/%d, leaked %d, lives %d, money %d",
                     wave_name(wave, wave_set), killed, count, leaked,
                     state.lives, state.money)
        return WaveResult(
            wave_number=wave,
            completed=completed,
            enemies_killed=killed,
            lives_lost=lives_lost,
            money_earned=money_earned,
            score_earned=score_earned,
            duration=timedelta(seconds=time.perf_counter() - wave_started),
            enemies_spawned=count,
            enemies_leaked=leaked,
            ticks=ticks,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _wave_set(self, identifier: str) -> Optional[WaveSetConfig]:
        with self._lock:
            if identifier in self._wave_sets:
                return self._wave_sets[identifier]
        wave_set = None
        if self.locator is not None:
            try:
                wave_set = load_wave_set(self.locator.locate(wave_set_filename(identifier)))
                logger.info("Using wave set '%s' (%d waves)",
                            wave_set.set_name, len(wave_set.waves))
            except ConfigurationError as exc:
                if identifier != "default":
                    logger.warning("%s; using formula-based waves", exc)
        with self._lock:
            self._wave_sets[identifier] = wave_set
        return wave_set

    def _store_metrics(self, metrics: SimulationMetrics):
        with self._lock:
            self._metrics[metrics.scenario_name] = metrics
            self._last_metrics = metrics
