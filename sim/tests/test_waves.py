"""Tests for wave sizing, enemy typing and spawning."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from td_sim.config import (
    EnemyGroup, SpawnRules, WaveDefinition, WaveSetConfig,
)
from td_sim.metrics import MetricsCollector
from td_sim.models import SessionState
from td_sim.stats import EnemyStatsProvider
from td_sim.waves import (
    SPAWN_POSITION, enemy_category_for, enemy_count_for_wave, spawn_wave,
    wave_bonus_money, wave_name,
)


def test_elite_beats_later_rules():
    assert enemy_category_for(6, 4) == "elite"


@pytest.mark.parametrize("wave,index,expected", [
    (1, 0, "basic"),
    (2, 0, "fast"),
    (2, 1, "basic"),
    (4, 3, "tank"),
    (4, 6, "tank"),
    (4, 2, "fast"),
    (6, 8, "elite"),
    (6, 6, "tank"),
    (7, 0, "elite"),
    (8, 0, "boss"),
    (8, 4, "elite"),
    (9, 5, "basic"),
])
def test_category_priority(wave, index, expected):
    assert enemy_category_for(wave, index) == expected


def test_enemy_count_formula():
    rules = SpawnRules(base_count=5, per_wave_increment=2)
    assert enemy_count_for_wave(1, rules) == 5
    assert enemy_count_for_wave(4, rules) == 11
    assert enemy_count_for_wave(4, rules, count_multiplier=1.5) == 16


def test_enemy_count_from_wave_set():
    wave_set = WaveSetConfig("s", "d", (
        WaveDefinition(1, "Opening", bonus_money=25, enemy_groups=(
            EnemyGroup("basic_enemy", 3), EnemyGroup("fast_enemy", 4),
        )),
    ))
    rules = SpawnRules()
    assert enemy_count_for_wave(1, rules, wave_set) == 7
    # undefined waves fall back to the formula
    assert enemy_count_for_wave(2, rules, wave_set) == 7
    assert wave_name(1, wave_set) == "Opening"
    assert wave_name(2, wave_set) == "Wave 2"
    assert wave_bonus_money(1, wave_set) == 25
    assert wave_bonus_money(2, wave_set) == 0


def test_spawn_wave_creates_scaled_enemies(enemy_config):
    provider = EnemyStatsProvider(enemy_config)
    state = SessionState(money=0, lives=20)
    collector = MetricsCollector()
    collector.start_wave(4)

    spawned = spawn_wave(state, 4, provider, 4, collector, first_id=100)

    assert [e.enemy_type for e in spawned] == [
        "tank_enemy", "basic_enemy", "fast_enemy", "tank_enemy",
    ]
    assert [e.enemy_id for e in spawned] == [100, 101, 102, 103]
    assert all(e.position == SPAWN_POSITION for e in spawned)
    assert spawned[1].max_health == 145
    assert spawned[1].health == spawned[1].max_health
    assert state.enemies == spawned

    wave = collector.end_wave(total=4, killed=0, leaked=0, money_earned=0,
                              lives_lost=0, duration=1.0)
    assert len(wave.spawn_timings) == 4
