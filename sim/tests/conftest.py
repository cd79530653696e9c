"""Shared test fixtures for the TD balance simulator test suite."""

import sys
from pathlib import Path
from types import MappingProxyType

import pytest

# Ensure sim/ is on the path so `td_sim` imports work
SIM_ROOT = Path(__file__).parent.parent
if str(SIM_ROOT) not in sys.path:
    sys.path.insert(0, str(SIM_ROOT))

from td_sim.config import (
    BuildingStatsConfig, EnemyStatsConfig, FallbackStrategy,
    PlacementStrategyConfig, TypeInfo, WaveScaling, WaveUpgrade, SpawnRules,
    ConfigLocator,
)
from td_sim.engine import SimulationRunner
from td_sim.models import BuildingStats, EnemyStats, Position


@pytest.fixture
def building_config():
    """Three towers: a cheap default, a precision and a heavy one."""
    return BuildingStatsConfig(
        version="test",
        description="test buildings",
        buildings=MappingProxyType({
            "basic_tower": BuildingStats(cost=50, damage=10, range=150, fire_rate=1.0),
            "sniper_tower": BuildingStats(cost=120, damage=35, range=300, fire_rate=0.4),
            "cannon_tower": BuildingStats(cost=200, damage=25, range=180, fire_rate=0.6),
        }),
        metadata=MappingProxyType({
            "basic_tower": TypeInfo(category="starter", is_default=True),
            "sniper_tower": TypeInfo(category="precision"),
            "cannon_tower": TypeInfo(category="heavy"),
        }),
    )


@pytest.fixture
def enemy_config():
    return EnemyStatsConfig(
        version="test",
        description="test enemies",
        enemies=MappingProxyType({
            "basic_enemy": EnemyStats(max_health=100, speed=50, damage=1, reward_gold=10, reward_xp=5),
            "fast_enemy": EnemyStats(max_health=60, speed=90, damage=1, reward_gold=8, reward_xp=4),
            "tank_enemy": EnemyStats(max_health=300, speed=30, damage=2, reward_gold=25, reward_xp=12),
            "elite_enemy": EnemyStats(max_health=500, speed=45, damage=3, reward_gold=40, reward_xp=20),
            "boss_enemy": EnemyStats(max_health=2000, speed=25, damage=5, reward_gold=150, reward_xp=100),
        }),
        metadata=MappingProxyType({
            "basic_enemy": TypeInfo(category="basic", is_default=True),
            "fast_enemy": TypeInfo(category="fast"),
            "tank_enemy": TypeInfo(category="tank"),
            "elite_enemy": TypeInfo(category="elite"),
            "boss_enemy": TypeInfo(category="boss"),
        }),
        wave_scaling=WaveScaling(),
        spawning=SpawnRules(base_count=5, per_wave_increment=2),
    )


@pytest.fixture
def placement_config():
    """Four starter towers along the path, sniper on wave 3, cannon on wave 5."""
    return PlacementStrategyConfig(
        initial_category="starter",
        initial_positions=(
            Position(150, 300), Position(350, 200),
            Position(550, 300), Position(700, 200),
        ),
        max_cost_per_building=100,
        wave_upgrades=MappingProxyType({
            3: WaveUpgrade(wave=3, category="precision", cost_threshold=150,
                           position=Position(450, 320)),
            5: WaveUpgrade(wave=5, category="heavy", cost_threshold=200,
                           position=Position(300, 180)),
        }),
        fallback=FallbackStrategy(emergency_fallback="basic_tower"),
    )


@pytest.fixture
def runner(building_config, enemy_config, placement_config):
    return SimulationRunner(building_config, enemy_config, placement_config)


@pytest.fixture
def packaged_runner():
    """Runner over the JSON configs shipped with the package."""
    return SimulationRunner.from_locator(ConfigLocator.default())
