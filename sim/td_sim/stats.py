"""
TD Balance Simulator - Stat Providers
======================================
Read-only lookup of building and enemy stats with fallback resolution,
global multipliers and per-wave enemy scaling.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Mapping, Optional

from td_sim.config import (
    BuildingStatsConfig, ConfigurationError, EnemyStatsConfig, TypeInfo,
)
from td_sim.models import BuildingStats, EnemyStats

logger = logging.getLogger(__name__)

DEFAULT_BUILDING_KEYS = ("basic_tower", "default")
DEFAULT_ENEMY_KEYS = ("basic_enemy", "basic", "default")


# ---------------------------------------------------------------------------
# Key resolution
# ---------------------------------------------------------------------------

class ResolutionKind(Enum):
    FOUND = "found"
    FELL_BACK = "fell_back"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Resolution:
    kind: ResolutionKind
    requested: str
    key: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.kind is ResolutionKind.FOUND


def resolve_key(stats_map: Mapping, requested: str,
                default_keys: Iterable[str] = ()) -> Resolution:
    """Exact key, then the first present default key, then the first entry."""
    if requested in stats_map:
        return Resolution(ResolutionKind.FOUND, requested, requested)
    for key in default_keys:
        if key in stats_map:
            return Resolution(ResolutionKind.FELL_BACK, requested, key)
    for key in stats_map:
        return Resolution(ResolutionKind.FELL_BACK, requested, key)
    return Resolution(ResolutionKind.NOT_FOUND, requested)


def _default_keys(metadata: Mapping[str, TypeInfo], builtin: Iterable[str]) -> List[str]:
    flagged = [k for k, info in metadata.items() if info.is_default]
    return flagged + [k for k in builtin if k not in flagged]


class _StatsProvider:
    _builtin_defaults: tuple = ()
    _kind = "stats"

    def __init__(self, stats_map: Mapping, metadata: Mapping[str, TypeInfo]):
        self._stats = stats_map
        self._metadata = metadata
        self._default_keys = _default_keys(metadata, self._builtin_defaults)

    def keys(self) -> List[str]:
        return list(self._stats)

    def has_stats(self, key: str) -> bool:
        return key in self._stats

    def resolve(self, key: str) -> Resolution:
        resolution = resolve_key(self._stats, key, self._default_keys)
        if resolution.kind is ResolutionKind.FELL_BACK:
            logger.debug("Unknown %s type '%s', falling back to '%s'",
                         self._kind, key, resolution.key)
        return resolution

    def _resolve_or_raise(self, key: str) -> str:
        resolution = self.resolve(key)
        if resolution.kind is ResolutionKind.NOT_FOUND:
            raise ConfigurationError(f"No {self._kind} defined, cannot resolve '{key}'")
        return resolution.key

    def default_key(self) -> Optional[str]:
        for key in self._default_keys:
            if key in self._stats:
                return key
        return None

    def category_of(self, key: str) -> str:
        info = self._metadata.get(key)
        return info.category if info else ""

    def by_category(self, category: str) -> List[str]:
        return [k for k in self._stats if self.category_of(k) == category]


# ---------------------------------------------------------------------------
# Buildings
# ---------------------------------------------------------------------------

class BuildingStatsProvider(_StatsProvider):
    _builtin_defaults = DEFAULT_BUILDING_KEYS
    _kind = "building"

    def __init__(self, config: BuildingStatsConfig,
                 cost_multiplier: float = 1.0, damage_multiplier: float = 1.0):
        super().__init__(config.buildings, config.metadata)
        self.cost_multiplier = cost_multiplier
        self.damage_multiplier = damage_multiplier

    def get_stats(self, key: str) -> BuildingStats:
        base = self._stats[self._resolve_or_raise(key)]
        return replace(
            base,
            cost=int(base.cost * self.cost_multiplier),
            damage=base.damage * self.damage_multiplier,
        )

    def cheapest_key(self) -> Optional[str]:
        best_key, best_cost = None, None
        for key in self._stats:
            cost = self.get_stats(key).cost
            if cost <= 0:
                continue
            if best_cost is None or cost < best_cost:
                best_key, best_cost = key, cost
        return best_key


# ---------------------------------------------------------------------------
# Enemies
# ---------------------------------------------------------------------------

class EnemyStatsProvider(_StatsProvider):
    _builtin_defaults = DEFAULT_ENEMY_KEYS
    _kind = "enemy"

    def __init__(self, config: EnemyStatsConfig,
                 health_multiplier: float = 1.0, speed_multiplier: float = 1.0):
        super().__init__(config.enemies, config.metadata)
        self.wave_scaling = config.wave_scaling
        self.spawning = config.spawning
        self.health_multiplier = health_multiplier
        self.speed_multiplier = speed_multiplier

    def get_stats(self, key: str) -> EnemyStats:
        base = self._stats[self._resolve_or_raise(key)]
        return replace(
            base,
            max_health=max(1, int(base.max_health * self.health_multiplier)),
            speed=base.speed * self.speed_multiplier,
        )

    def get_scaled_stats_for_wave(self, key: str, wave_number: int) -> EnemyStats:
        base = self._stats[self._resolve_or_raise(key)]
        ws = self.wave_scaling
        steps = max(0, wave_number - 1)
        reward_scale = 1 + steps * ws.reward_per_wave
        return EnemyStats(
            max_health=max(1, int(base.max_health * self.health_multiplier
                                  * (1 + steps * ws.health_per_wave))),
            speed=base.speed * self.speed_multiplier * (1 + steps * ws.speed_per_wave),
            damage=base.damage + steps // ws.damage_every_n_waves,
            reward_gold=int(base.reward_gold * reward_scale),
            reward_xp=int(base.reward_xp * reward_scale),
            description=base.description,
        )

    def key_for_category(self, category: str) -> str:
        matches = self.by_category(category)
        if matches:
            return matches[0]
        if category in self._stats:
            return category
        return self._resolve_or_raise(category)
