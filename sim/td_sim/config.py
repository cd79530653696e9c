"""
TD Balance Simulator - Configuration
=====================================
Loaders for building/enemy stats, placement strategies and wave sets.

Config files are located through an explicit ``ConfigLocator`` built from
caller-supplied search roots; nothing here walks the filesystem on its own.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from td_sim.models import BuildingStats, EnemyStats, Position

logger = logging.getLogger(__name__)

PACKAGE_DATA_DIR = Path(__file__).parent / "data" / "simulation"

BUILDING_STATS_FILE = "building-stats.json"
ENEMY_STATS_FILE = "enemy-stats.json"
PLACEMENT_STRATEGY_FILE = "placement-strategies.json"


class ConfigurationError(RuntimeError):
    """Raised when a config file is missing, malformed or unusable."""


# ---------------------------------------------------------------------------
# Raw reading / locating
# ---------------------------------------------------------------------------

def read_raw(path) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    suffix = path.suffix.lower()
    try:
        text = path.read_text(encoding="utf-8")
        if suffix == ".json":
            data = json.loads(text)
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            raise ConfigurationError(
                f"Unsupported config format '{suffix}' for {path}. Use .json or .yaml/.yml.")
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to parse config {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config root must be a mapping: {path}")
    return data


class ConfigLocator:
    """Resolves config file names against an ordered list of base directories."""

    def __init__(self, search_roots: Sequence):
        self.search_roots: Tuple[Path, ...] = tuple(Path(r) for r in search_roots)

    @classmethod
    def default(cls) -> "ConfigLocator":
        return cls([PACKAGE_DATA_DIR])

    @classmethod
    def from_working_dir(cls, cwd=None, parents: int = 3,
                         subdir: str = "data/simulation") -> "ConfigLocator":
        """Search ``cwd/subdir`` and the same subdir up to ``parents`` levels up."""
        current = Path(cwd) if cwd is not None else Path.cwd()
        roots = [current / subdir]
        for _ in range(parents):
            current = current / ".."
            roots.append(current / subdir)
        roots.append(PACKAGE_DATA_DIR)
        return cls(roots)

    def locate(self, relative: str) -> Path:
        for root in self.search_roots:
            candidate = root / relative
            if candidate.exists():
                return candidate
        searched = ", ".join(str(r) for r in self.search_roots)
        raise ConfigurationError(f"Config file not found: {relative} (searched: {searched})")

    def __repr__(self):
        return f"ConfigLocator({[str(r) for r in self.search_roots]})"


# ---------------------------------------------------------------------------
# Config records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TypeInfo:
    category: str = ""
    is_default: bool = False


@dataclass(frozen=True)
class BuildingStatsConfig:
    version: str
    description: str
    buildings: Mapping[str, BuildingStats]
    metadata: Mapping[str, TypeInfo] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class WaveScaling:
    health_per_wave: float = 0.15
    speed_per_wave: float = 0.05
    damage_every_n_waves: int = 3
    reward_per_wave: float = 0.1


@dataclass(frozen=True)
class SpawnRules:
    base_count: int = 5
    per_wave_increment: int = 2


@dataclass(frozen=True)
class EnemyStatsConfig:
    version: str
    description: str
    enemies: Mapping[str, EnemyStats]
    metadata: Mapping[str, TypeInfo] = field(default_factory=lambda: MappingProxyType({}))
    wave_scaling: WaveScaling = field(default_factory=WaveScaling)
    spawning: SpawnRules = field(default_factory=SpawnRules)


@dataclass(frozen=True)
class WaveUpgrade:
    wave: int
    category: str
    cost_threshold: int
    position: Position


@dataclass(frozen=True)
class FallbackStrategy:
    use_default_type: bool = True
    use_cheapest_type: bool = True
    emergency_fallback: str = ""


@dataclass(frozen=True)
class PlacementStrategyConfig:
    initial_category: str
    initial_positions: Tuple[Position, ...]
    max_cost_per_building: int
    wave_upgrades: Mapping[int, WaveUpgrade]
    fallback: FallbackStrategy = field(default_factory=FallbackStrategy)


@dataclass(frozen=True)
class EnemyGroup:
    enemy_type: str
    count: int
    spawn_interval: float = 1.0
    start_delay: float = 0.0
    health_multiplier: float = 1.0
    speed_multiplier: float = 1.0
    money_reward: int = 0


@dataclass(frozen=True)
class WaveDefinition:
    wave_number: int
    wave_name: str
    pre_wave_delay: float = 0.0
    post_wave_delay: float = 0.0
    bonus_money: int = 0
    enemy_groups: Tuple[EnemyGroup, ...] = ()

    @property
    def enemy_count(self) -> int:
        return sum(g.count for g in self.enemy_groups)


@dataclass(frozen=True)
class WaveSetConfig:
    set_name: str
    description: str
    waves: Tuple[WaveDefinition, ...] = ()

    def get_wave(self, wave_number: int) -> Optional[WaveDefinition]:
        for wave in self.waves:
            if wave.wave_number == wave_number:
                return wave
        return None


# Used when no placement-strategies file can be found
FALLBACK_PLACEMENT = PlacementStrategyConfig(
    initial_category="starter",
    initial_positions=(Position(5, 5), Position(15, 5), Position(5, 15), Position(15, 15)),
    max_cost_per_building=100,
    wave_upgrades=MappingProxyType({
        3: WaveUpgrade(wave=3, category="precision", cost_threshold=150, position=Position(10, 10)),
        5: WaveUpgrade(wave=5, category="heavy", cost_threshold=200, position=Position(8, 12)),
    }),
    fallback=FallbackStrategy(use_default_type=True, use_cheapest_type=True, emergency_fallback=""),
)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def _position(raw, where: str) -> Position:
    try:
        x, y = raw
        return Position(float(x), float(y))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid position {raw!r} in {where}") from exc


def _type_info(raw: dict) -> TypeInfo:
    return TypeInfo(
        category=str(raw.get("category", "")),
        is_default=bool(raw.get("isDefault", False)),
    )


def _require_mapping(data: dict, key: str, path) -> dict:
    section = data.get(key)
    if not isinstance(section, dict):
        raise ConfigurationError(f"Missing '{key}' section in {path}")
    return section


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------

def load_building_stats(path) -> BuildingStatsConfig:
    data = read_raw(path)
    raw_buildings = _require_mapping(data, "buildings", path)

    buildings: Dict[str, BuildingStats] = {}
    metadata: Dict[str, TypeInfo] = {}
    for key, raw in raw_buildings.items():
        try:
            buildings[key] = BuildingStats(
                cost=int(raw["cost"]),
                damage=float(raw["damage"]),
                range=float(raw["range"]),
                fire_rate=float(raw["fireRate"]),
                bullet_speed=float(raw.get("bulletSpeed", 0.0)),
                shoot_sound=str(raw.get("shootSound", "")),
                impact_sound=str(raw.get("impactSound", "")),
                description=str(raw.get("description", "")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid building '{key}' in {path}: {exc}") from exc
        metadata[key] = _type_info(raw)

    logger.debug("Loaded %d building types from %s", len(buildings), path)
    return BuildingStatsConfig(
        version=str(data.get("version", "")),
        description=str(data.get("description", "")),
        buildings=MappingProxyType(buildings),
        metadata=MappingProxyType(metadata),
    )


def load_enemy_stats(path) -> EnemyStatsConfig:
    data = read_raw(path)
    raw_enemies = _require_mapping(data, "enemies", path)

    enemies: Dict[str, EnemyStats] = {}
    metadata: Dict[str, TypeInfo] = {}
    for key, raw in raw_enemies.items():
        try:
            max_health = int(raw["maxHealth"])
            speed = float(raw["speed"])
            if max_health <= 0 or speed <= 0:
                logger.debug("Skipping template enemy entry '%s'", key)
                continue
            enemies[key] = EnemyStats(
                max_health=max_health,
                speed=speed,
                damage=int(raw.get("damage", 1)),
                reward_gold=int(raw.get("rewardGold", 0)),
                reward_xp=int(raw.get("rewardXp", 0)),
                description=str(raw.get("description", "")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid enemy '{key}' in {path}: {exc}") from exc
        metadata[key] = _type_info(raw)

    scaling_raw = data.get("waveScaling") or {}
    spawning_raw = data.get("spawning") or {}
    try:
        scaling = WaveScaling(
            health_per_wave=float(scaling_raw.get("healthPerWave", 0.15)),
            speed_per_wave=float(scaling_raw.get("speedPerWave", 0.05)),
            damage_every_n_waves=int(scaling_raw.get("damageEveryNWaves", 3)),
            reward_per_wave=float(scaling_raw.get("rewardPerWave", 0.1)),
        )
        spawning = SpawnRules(
            base_count=int(spawning_raw.get("baseCount", 5)),
            per_wave_increment=int(spawning_raw.get("perWaveIncrement", 2)),
        )
    except (AttributeError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid waveScaling/spawning in {path}: {exc}") from exc
    if scaling.damage_every_n_waves < 1:
        raise ConfigurationError(f"waveScaling.damageEveryNWaves must be >= 1 in {path}")

    logger.debug("Loaded %d enemy types from %s", len(enemies), path)
    return EnemyStatsConfig(
        version=str(data.get("version", "")),
        description=str(data.get("description", "")),
        enemies=MappingProxyType(enemies),
        metadata=MappingProxyType(metadata),
        wave_scaling=scaling,
        spawning=spawning,
    )


def load_placement_strategy(path) -> PlacementStrategyConfig:
    path = Path(path)
    if not path.exists():
        logger.warning("Placement strategy config %s not found, using built-in fallback", path)
        return FALLBACK_PLACEMENT

    data = read_raw(path)
    strategies = _require_mapping(data, "strategies", path)
    initial = strategies.get("initialWave") or {}
    try:
        positions = tuple(
            _position(p, f"{path} initialWave") for p in initial.get("positions", [])
        )
        upgrades: Dict[int, WaveUpgrade] = {}
        for name, raw in (strategies.get("waveUpgrades") or {}).items():
            if not name.startswith("wave_"):
                raise ConfigurationError(f"Wave upgrade key '{name}' must look like wave_<N> in {path}")
            wave = int(name[len("wave_"):])
            upgrades[wave] = WaveUpgrade(
                wave=wave,
                category=str(raw["category"]),
                cost_threshold=int(raw["costThreshold"]),
                position=_position(raw["position"], f"{path} {name}"),
            )
        fb = data.get("fallbackStrategy") or {}
        fallback = FallbackStrategy(
            use_default_type=bool(fb.get("useDefaultType", True)),
            use_cheapest_type=bool(fb.get("useCheapestType", True)),
            emergency_fallback=str(fb.get("emergencyFallback", "") or ""),
        )
        config = PlacementStrategyConfig(
            initial_category=str(initial.get("buildingCategory", "starter")),
            initial_positions=positions,
            max_cost_per_building=int(initial.get("maxCostPerBuilding", 100)),
            wave_upgrades=MappingProxyType(dict(sorted(upgrades.items()))),
            fallback=fallback,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid placement strategy in {path}: {exc}") from exc
    return config


def load_wave_set(path) -> WaveSetConfig:
    data = read_raw(path)
    raw_waves = data.get("waves")
    if not isinstance(raw_waves, list):
        raise ConfigurationError(f"Missing 'waves' list in {path}")

    waves: List[WaveDefinition] = []
    for index, raw in enumerate(raw_waves, start=1):
        try:
            number = int(raw.get("waveNumber", index))
            groups = tuple(
                EnemyGroup(
                    enemy_type=str(g["enemyType"]),
                    count=max(0, int(g.get("count", 0))),
                    spawn_interval=float(g.get("spawnInterval", 1.0)),
                    start_delay=float(g.get("startDelay", 0.0)),
                    health_multiplier=float(g.get("healthMultiplier", 1.0)),
                    speed_multiplier=float(g.get("speedMultiplier", 1.0)),
                    money_reward=int(g.get("moneyReward", 0)),
                )
                for g in raw.get("enemyGroups", [])
            )
            waves.append(WaveDefinition(
                wave_number=number,
                wave_name=str(raw.get("waveName") or f"Wave {number}"),
                pre_wave_delay=float(raw.get("preWaveDelay", 0.0)),
                post_wave_delay=float(raw.get("postWaveDelay", 0.0)),
                bonus_money=int(raw.get("bonusMoney", 0)),
                enemy_groups=groups,
            ))
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid wave #{index} in {path}: {exc}") from exc

    return WaveSetConfig(
        set_name=str(data.get("setName", Path(path).stem)),
        description=str(data.get("description", "")),
        waves=tuple(waves),
    )


def wave_set_filename(identifier: str) -> str:
    if not identifier or identifier == "default":
        return "wave-configs.json"
    return f"wave-configs-{identifier}.json"
