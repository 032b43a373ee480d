"""
Snake Escape - Movement & Turn Resolver

Один тик = один шаг одной змейки:
1. лобовая встреча -> уступающая змейка поворачивает (cw, ccw, 180°)
2. can_advance -> advance
3. столкновение после шага -> змейка удаляется (collided)
4. полностью за полем -> змейка удаляется (exited)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Collection, List, Optional

from .geometry import Board, Heading, reverse, rotate_ccw, rotate_cw
from .snake import Snake, build_occupancy


class Outcome(str, Enum):
    MOVED = "moved"
    BLOCKED = "blocked"
    COLLIDED = "collided"
    EXITED = "exited"


REMOVING_OUTCOMES = {Outcome.COLLIDED, Outcome.EXITED}


@dataclass
class TickResult:
    snakes: List[Snake]
    outcome: Outcome
    snake_id: int
    turned: bool = False


# ============================================
# TURN RESOLUTION
# ============================================

def yields_to(snake: Snake, rival: Snake, active_ids: Optional[Collection[int]] = None) -> bool:
    """
    Кто поворачивает при лобовой встрече.

    Старшая змейка (меньший id) имеет приоритет, но только если соперник
    сам движется; стоящему сопернику уступает всегда тот, кто ходит.
    """
    if active_ids is None or rival.id not in active_ids:
        return True
    return snake.id > rival.id


def is_turn_legal(board: Board, snake: Snake, heading: Heading, snakes: List[Snake]) -> bool:
    """Следующая клетка за полем, свободна или чей-то хвост."""
    nxt = snake.next_head(heading)
    if not board.contains(nxt):
        return True

    for other in snakes:
        if nxt not in other.body:
            continue
        if nxt == other.tail():
            continue
        return False

    return True


def turn_candidates(heading: Heading) -> List[Heading]:
    return [rotate_cw(heading), rotate_ccw(heading), reverse(heading)]


def try_turn(board: Board, snake: Snake, snakes: List[Snake]) -> bool:
    """Пробует повернуть: по часовой, против часовой, разворот."""
    for candidate in turn_candidates(snake.heading):
        if is_turn_legal(board, snake, candidate, snakes):
            snake.heading = candidate
            return True
    return False


# ============================================
# TICK
# ============================================

def resolve_tick(
    board: Board,
    snake: Snake,
    snakes: List[Snake],
    active_ids: Optional[Collection[int]] = None,
) -> tuple[Outcome, bool]:
    """
    Разрешает тик для snake (рабочая копия внутри snakes, мутируется).

    Returns:
        (outcome, turned)
    """
    original_heading = snake.heading
    turned = False

    rival = snake.head_to_head_target(board, snakes)
    if rival is not None and yields_to(snake, rival, active_ids):
        if not try_turn(board, snake, snakes):
            return Outcome.BLOCKED, False
        turned = True

    occupied = build_occupancy(board, snakes, mover=snake)
    if not snake.can_advance(board, occupied):
        snake.heading = original_heading
        return Outcome.BLOCKED, False

    snake.advance()

    if snake.has_collided_with(board, snakes):
        return Outcome.COLLIDED, turned

    if snake.is_fully_off_board(board):
        return Outcome.EXITED, turned

    return Outcome.MOVED, turned


def tick(
    snake_index: int,
    board: Board,
    snakes: List[Snake],
    active_ids: Optional[Collection[int]] = None,
) -> TickResult:
    """
    Двигает ровно одну змейку. Исходный список не мутируется: копируется
    только ходящая змейка, остальные объекты переиспользуются.
    """
    if not 0 <= snake_index < len(snakes):
        raise IndexError(f"Snake index {snake_index} out of range (0..{len(snakes) - 1})")

    world = list(snakes)
    mover = snakes[snake_index].copy()
    world[snake_index] = mover

    outcome, turned = resolve_tick(board, mover, world, active_ids)

    if outcome == Outcome.BLOCKED:
        # Без мутаций: возвращаем исходный объект
        world[snake_index] = snakes[snake_index]
    elif outcome in REMOVING_OUTCOMES:
        world.pop(snake_index)

    return TickResult(snakes=world, outcome=outcome, snake_id=mover.id, turned=turned)
