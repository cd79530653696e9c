"""Tests for the placement strategy."""

import sys
from dataclasses import replace
from pathlib import Path
from types import MappingProxyType

sys.path.insert(0, str(Path(__file__).parent.parent))

from td_sim.config import (
    FALLBACK_PLACEMENT, BuildingStatsConfig, FallbackStrategy, TypeInfo,
)
from td_sim.models import BuildingStats, Position, SessionState
from td_sim.placement import PlacementStrategy
from td_sim.stats import BuildingStatsProvider, ResolutionKind


def test_first_wave_places_all_affordable_starters(building_config, placement_config):
    strategy = PlacementStrategy(placement_config, BuildingStatsProvider(building_config))
    state = SessionState(money=500, lives=20)
    placed = strategy.apply(state, 1)
    assert len(placed) == 4
    assert all(t.building_type == "basic_tower" for t in placed)
    assert state.money == 300
    assert [t.position for t in state.towers] == list(placement_config.initial_positions)


def test_first_wave_stops_when_money_runs_out(building_config, placement_config):
    strategy = PlacementStrategy(placement_config, BuildingStatsProvider(building_config))
    state = SessionState(money=120, lives=20)
    strategy.apply(state, 1)
    assert len(state.towers) == 2
    assert state.money == 20


def test_initial_tower_over_cost_cap_skipped(building_config, placement_config):
    capped = replace(placement_config, max_cost_per_building=40)
    strategy = PlacementStrategy(capped, BuildingStatsProvider(building_config))
    assert strategy.plan(1, 1000) == []


def test_cost_multiplier_counts_against_cap(building_config, placement_config):
    capped = replace(placement_config, max_cost_per_building=40)
    cheap = BuildingStatsProvider(building_config, cost_multiplier=0.5)
    assert len(PlacementStrategy(capped, cheap).plan(1, 1000)) == 4


def test_upgrade_requires_threshold(building_config, placement_config):
    strategy = PlacementStrategy(placement_config, BuildingStatsProvider(building_config))
    assert strategy.upgrade_category(3, 149) is None
    assert strategy.upgrade_category(3, 150) == "precision"
    assert strategy.upgrade_category(4, 10_000) is None

    plan = strategy.plan(3, 500)
    assert len(plan) == 1
    assert plan[0].building_key == "sniper_tower"
    assert plan[0].position == Position(450, 320)
    assert plan[0].resolution.kind is ResolutionKind.FOUND


def test_upgrade_placed_once_threshold_met(building_config, placement_config):
    strategy = PlacementStrategy(placement_config, BuildingStatsProvider(building_config))
    state = SessionState(money=199, lives=20)
    assert strategy.apply(state, 5) == []
    state = SessionState(money=200, lives=20)
    placed = strategy.apply(state, 5)
    assert [t.building_type for t in placed] == ["cannon_tower"]
    assert state.money == 0


def test_unknown_category_falls_back_to_default(building_config, placement_config):
    strategy = PlacementStrategy(replace(placement_config, initial_category="laser"),
                                 BuildingStatsProvider(building_config))
    plan = strategy.plan(1, 1000)
    assert plan[0].building_key == "basic_tower"
    assert plan[0].resolution.kind is ResolutionKind.FELL_BACK
    assert plan[0].resolution.requested == "laser"


def test_fallback_chain_without_default():
    config = BuildingStatsConfig("v", "d", MappingProxyType({
        "pricey": BuildingStats(cost=300, damage=1, range=10, fire_rate=1),
        "cheap": BuildingStats(cost=30, damage=1, range=10, fire_rate=1),
    }), MappingProxyType({"pricey": TypeInfo(), "cheap": TypeInfo()}))
    provider = BuildingStatsProvider(config)
    strategy = PlacementStrategy(FALLBACK_PLACEMENT, provider)
    assert strategy.fallback_building_type() == "cheap"

    emergency_only = replace(FALLBACK_PLACEMENT, fallback=FallbackStrategy(
        use_default_type=False, use_cheapest_type=False, emergency_fallback="pricey"))
    assert PlacementStrategy(emergency_only, provider).fallback_building_type() == "pricey"
