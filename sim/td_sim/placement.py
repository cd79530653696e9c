"""
TD Balance Simulator - Placement Strategy
==========================================
Config-driven decision of which towers to place, where and when.

Wave 1 places the initial category at every configured position (subject to
the per-building cost cap). Later waves may add a single upgrade tower once
money reaches that wave's threshold.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from td_sim.config import PlacementStrategyConfig
from td_sim.models import PlacedTower, Position, SessionState
from td_sim.stats import (
    BuildingStatsProvider, Resolution, ResolutionKind,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Placement:
    building_key: str
    position: Position
    resolution: Resolution


class PlacementStrategy:
    def __init__(self, config: PlacementStrategyConfig, buildings: BuildingStatsProvider):
        self.config = config
        self.buildings = buildings

    # -------------------------------------------------------------------
    # Config accessors
    # -------------------------------------------------------------------

    def initial_category(self) -> str:
        return self.config.initial_category

    def initial_positions(self) -> List[Position]:
        return list(self.config.initial_positions)

    def max_cost_per_building(self) -> int:
        return self.config.max_cost_per_building

    def upgrade_category(self, wave: int, money: int) -> Optional[str]:
        upgrade = self.config.wave_upgrades.get(wave)
        if upgrade is None or money < upgrade.cost_threshold:
            return None
        return upgrade.category

    def upgrade_position(self, wave: int) -> Optional[Position]:
        upgrade = self.config.wave_upgrades.get(wave)
        return upgrade.position if upgrade else None

    def fallback_building_type(self) -> Optional[str]:
        fb = self.config.fallback
        if fb.use_default_type:
            key = self.buildings.default_key()
            if key:
                return key
        if fb.use_cheapest_type:
            key = self.buildings.cheapest_key()
            if key:
                return key
        if fb.emergency_fallback and self.buildings.has_stats(fb.emergency_fallback):
            return fb.emergency_fallback
        return self.buildings.cheapest_key()

    # -------------------------------------------------------------------
    # Planning
    # -------------------------------------------------------------------

    def resolve_category(self, category: str) -> Optional[Resolution]:
        matches = self.buildings.by_category(category)
        if not matches and self.buildings.has_stats(category):
            matches = [category]
        if matches:
            return Resolution(ResolutionKind.FOUND, category, matches[0])
        key = self.fallback_building_type()
        if key is None:
            logger.warning("No building available for category '%s'", category)
            return None
        logger.debug("Category '%s' has no building, falling back to '%s'", category, key)
        return Resolution(ResolutionKind.FELL_BACK, category, key)

    def plan(self, wave: int, money: int) -> List[Placement]:
        placements: List[Placement] = []

        if wave == 1:
            choice = self.resolve_category(self.initial_category())
            if choice is None:
                return placements
            cost = self.buildings.get_stats(choice.key).cost
            if cost > self.max_cost_per_building():
                logger.debug("Initial building '%s' costs %d, over cap %d",
                             choice.key, cost, self.max_cost_per_building())
                return placements
            for pos in self.initial_positions():
                placements.append(Placement(choice.key, pos, choice))
            return placements

        category = self.upgrade_category(wave, money)
        if category is not None:
            choice = self.resolve_category(category)
            if choice is not None:
                placements.append(Placement(choice.key, self.upgrade_position(wave), choice))
        return placements

    def apply(self, state: SessionState, wave: int) -> List[PlacedTower]:
        """Place every planned tower the session can still afford."""
        placed: List[PlacedTower] = []
        for placement in self.plan(wave, state.money):
            stats = self.buildings.get_stats(placement.building_key)
            if not state.can_afford(stats.cost):
                logger.debug("Wave %d: cannot afford %s (%d > %d)",
                             wave, placement.building_key, stats.cost, state.money)
                continue
            state.spend_money(stats.cost)
            tower = PlacedTower(
                building_type=placement.building_key,
                position=placement.position,
                damage=stats.damage,
                range=stats.range,
                fire_rate=stats.fire_rate,
                cost=stats.cost,
            )
            state.add_tower(tower)
            placed.append(tower)
        return placed
