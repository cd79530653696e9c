"""
TD Balance Simulator - Tick Resolution
=======================================
Per-tick combat, straight-line movement and leak detection.

Order inside a tick is fixed: combat, then movement, then leaks.
"""

from typing import Callable, List, Optional

from td_sim.models import LiveEnemy, PlacedTower, Position, SessionState

TICK_DELTA = 0.1
GOAL_POSITION = Position(800, 250)
LEAK_EPSILON = 10.0


def find_target(tower: PlacedTower, enemies: List[LiveEnemy]) -> Optional[LiveEnemy]:
    """Nearest living enemy in range; ties go to the earliest inserted."""
    best = None
    best_dist = None
    for enemy in enemies:
        if not enemy.is_alive:
            continue
        dist = tower.position.distance_to(enemy.position)
        if dist > tower.range:
            continue
        if best_dist is None or dist < best_dist:
            best, best_dist = enemy, dist
    return best


def resolve_combat(state: SessionState,
                   on_kill: Optional[Callable[[LiveEnemy], None]] = None) -> List[LiveEnemy]:
    """Every tower fires once at its target. Returns enemies killed this tick."""
    killed: List[LiveEnemy] = []
    for tower in state.towers:
        target = find_target(tower, state.enemies)
        if target is None:
            continue
        target.take_damage(tower.damage)
        if not target.is_alive:
            state.add_money(target.reward)
            state.enemies_killed += 1
            killed.append(target)
            if on_kill is not None:
                on_kill(target)
    if killed:
        state.remove_dead_enemies()
    return killed


def resolve_movement(state: SessionState, tick_delta: float = TICK_DELTA,
                     goal: Position = GOAL_POSITION):
    for enemy in state.enemies:
        if not enemy.is_alive:
            continue
        remaining = enemy.position.distance_to(goal)
        if remaining <= 0:
            continue
        step = min(enemy.speed * tick_delta, remaining)
        fraction = step / remaining
        enemy.move_to(Position(
            enemy.position.x + (goal.x - enemy.position.x) * fraction,
            enemy.position.y + (goal.y - enemy.position.y) * fraction,
        ))


def detect_leaks(state: SessionState, goal: Position = GOAL_POSITION,
                 epsilon: float = LEAK_EPSILON) -> List[LiveEnemy]:
    """Remove enemies that reached the goal; each costs one life."""
    leaked = [e for e in state.enemies if e.position.distance_to(goal) < epsilon]
    if leaked:
        leaked_ids = {e.enemy_id for e in leaked}
        state.enemies = [e for e in state.enemies if e.enemy_id not in leaked_ids]
        for _ in leaked:
            state.lose_life()
    return leaked
