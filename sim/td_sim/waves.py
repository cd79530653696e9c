"""
TD Balance Simulator - Waves
=============================
Enemy counts, deterministic enemy typing and spawning for a wave.
"""

import logging
from typing import List, Optional, Tuple

from td_sim.config import SpawnRules, WaveSetConfig
from td_sim.models import LiveEnemy, Position, SessionState
from td_sim.stats import EnemyStatsProvider

logger = logging.getLogger(__name__)

SPAWN_POSITION = Position(0, 250)

# (category, min wave, predicate on index) in priority order; first match wins
CATEGORY_RULES: Tuple = (
    ("boss", 8, lambda index: index == 0),
    ("elite", 6, lambda index: index % 4 == 0),
    ("tank", 4, lambda index: index % 3 == 0),
    ("fast", 2, lambda index: index % 2 == 0),
)


def enemy_category_for(wave: int, index: int) -> str:
    for category, min_wave, matches in CATEGORY_RULES:
        if wave >= min_wave and matches(index):
            return category
    return "basic"


def enemy_count_for_wave(wave: int, spawning: SpawnRules,
                         wave_set: Optional[WaveSetConfig] = None,
                         count_multiplier: float = 1.0) -> int:
    definition = wave_set.get_wave(wave) if wave_set else None
    if definition is not None:
        base = definition.enemy_count
    else:
        base = spawning.base_count + (wave - 1) * spawning.per_wave_increment
    return max(0, int(base * count_multiplier))


def wave_name(wave: int, wave_set: Optional[WaveSetConfig] = None) -> str:
    definition = wave_set.get_wave(wave) if wave_set else None
    if definition is not None and definition.wave_name:
        return definition.wave_name
    return f"Wave {wave}"


def wave_bonus_money(wave: int, wave_set: Optional[WaveSetConfig] = None) -> int:
    definition = wave_set.get_wave(wave) if wave_set else None
    return definition.bonus_money if definition else 0


def spawn_wave(state: SessionState, wave: int, enemies: EnemyStatsProvider,
               count: int, collector=None, first_id: int = 0,
               spawn_time: float = 0.0) -> List[LiveEnemy]:
    """Create ``count`` wave-scaled enemies at the spawn point."""
    spawned: List[LiveEnemy] = []
    for index in range(count):
        enemy_type = enemies.key_for_category(enemy_category_for(wave, index))
        stats = enemies.get_scaled_stats_for_wave(enemy_type, wave)
        enemy = LiveEnemy(
            enemy_id=first_id + index,
            enemy_type=enemy_type,
            health=float(stats.max_health),
            max_health=float(stats.max_health),
            speed=stats.speed,
            reward=stats.reward_gold,
            position=SPAWN_POSITION,
        )
        state.add_enemy(enemy)
        spawned.append(enemy)
        if collector is not None:
            collector.record_spawn(enemy.enemy_id, enemy_type, spawn_time)

    logger.debug("Wave %d: spawned %d enemies", wave, len(spawned))
    return spawned
