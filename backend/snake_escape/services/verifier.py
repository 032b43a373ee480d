"""
Snake Escape - Solvability Verifier

Состояние = позиции всех змеек; переход = один шаг одной змейки
(can_advance/advance, переход со столкновением отбрасывается).

Две стадии:
1. Порядок выхода: змейку со свободным лучом выводим целиком,
   записывая каждый шаг. Быстро находит решение для сгенерированных досок.
2. BFS по совместному пространству состояний с лимитами глубины и
   числа состояний. Исчерпание лимита = "не решаемо" (консервативно).
"""

import logging
import time
from collections import deque
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

from ..config import settings
from ..schemas import Progress, VerifyResult
from .deadlock import exit_ray
from .geometry import Board, Cell
from .snake import Snake, build_occupancy

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Progress], None]

REPORT_INTERVAL = 50


class PuzzleState(NamedTuple):
    snakes: Tuple[Snake, ...]
    moves: Tuple[int, ...]
    depth: int


# ============================================
# STATE HELPERS
# ============================================

def hash_state(snakes: Sequence[Snake]) -> str:
    """Каноничный ключ состояния: отсортированные списки клеток змеек."""
    return "::".join(sorted(
        "|".join(f"{row},{col}" for row, col in snake.body) for snake in snakes
    ))


def is_solved(board: Board, snakes: Sequence[Snake]) -> bool:
    return all(snake.is_fully_off_board(board) for snake in snakes)


def try_step(board: Board, snakes: Sequence[Snake], index: int) -> Optional[List[Snake]]:
    """Один шаг змейки index; None если шаг невозможен или ведёт к столкновению."""
    if snakes[index].is_fully_off_board(board):
        return None

    world = list(snakes)
    mover = snakes[index].copy()
    world[index] = mover

    occupied = build_occupancy(board, world, mover=mover)
    if not mover.can_advance(board, occupied):
        return None

    mover.advance()
    if mover.has_collided_with(board, world):
        return None
    return world


# ============================================
# HINTS / EXIT ORDER
# ============================================

def find_free_snakes(board: Board, snakes: Sequence[Snake]) -> List[int]:
    """Индексы змеек, чей луч выхода не пересекает другие змейки."""
    cell_owner: Dict[Cell, int] = {}
    for idx, snake in enumerate(snakes):
        for cell in snake.body:
            if board.contains(cell):
                cell_owner[cell] = idx

    free = []
    for idx, snake in enumerate(snakes):
        if snake.is_fully_off_board(board):
            continue
        blocked = any(
            cell_owner.get(cell, idx) != idx
            for cell in exit_ray(board, snake)
        )
        if not blocked:
            free.append(idx)
    return free


def get_hint(board: Board, snakes: Sequence[Snake]) -> Optional[int]:
    """Индекс одной змейки, которую можно отправить прямо сейчас."""
    free = find_free_snakes(board, snakes)
    if free:
        return free[0]
    return None


def _drive_limit(board: Board, snake: Snake) -> int:
    return len(snake) + board.rows + board.cols + 4


def exit_budget(board: Board, snakes: Sequence[Snake]) -> int:
    """Потолок шагов, чтобы вывести всех змеек по одной."""
    return sum(_drive_limit(board, snake) for snake in snakes)


def _drive_out(board: Board, snakes: List[Snake], index: int) -> Optional[Tuple[List[Snake], int]]:
    """Ведёт змейку до полного выхода; (новый мир, число шагов) или None."""
    limit = _drive_limit(board, snakes[index])
    world = snakes
    steps = 0
    while not world[index].is_fully_off_board(board):
        if steps >= limit:
            return None
        moved = try_step(board, world, index)
        if moved is None:
            return None
        world = moved
        steps += 1
    return world, steps


def find_exit_order(board: Board, snakes: Sequence[Snake]) -> Optional[List[int]]:
    """Последовательность шагов, выводящая змеек по одной, или None."""
    world = [snake.copy() for snake in snakes]
    solution: List[int] = []

    while not is_solved(board, world):
        progressed = False
        for index in find_free_snakes(board, world):
            driven = _drive_out(board, world, index)
            if driven is None:
                continue
            world, steps = driven
            solution.extend([index] * steps)
            progressed = True

        if not progressed:
            return None

    return solution


# ============================================
# BFS
# ============================================

def _report(on_progress: Optional[ProgressCallback], progress: int, message: str) -> None:
    if on_progress:
        on_progress(Progress(phase="validating", progress=progress, message=message))


def search_solution(
    board: Board,
    snakes: Sequence[Snake],
    max_depth: int,
    max_states: int,
    on_progress: Optional[ProgressCallback] = None,
) -> Optional[List[int]]:
    """BFS; None если решение не найдено в пределах лимитов."""
    start = PuzzleState(tuple(snake.copy() for snake in snakes), (), 0)
    visited = {hash_state(start.snakes)}
    queue = deque([start])
    explored = 0
    last_report = 0.0

    while queue:
        if explored >= max_states or len(visited) > max_states:
            logger.info(f"BFS stopped at state limit: explored={explored}, visited={len(visited)}")
            _report(on_progress, 100, "Validation timeout - cannot verify")
            return None

        current = queue.popleft()
        explored += 1

        now = time.monotonic()
        if now - last_report > 0.1 or explored % REPORT_INTERVAL == 0:
            _report(
                on_progress,
                min(95, explored * 90 // max_states),
                f"Exploring solutions... ({explored}/{max_states})",
            )
            last_report = now

        if is_solved(board, current.snakes):
            return list(current.moves)

        if current.depth >= max_depth:
            continue

        for index in range(len(current.snakes)):
            moved = try_step(board, current.snakes, index)
            if moved is None:
                continue
            key = hash_state(moved)
            if key in visited:
                continue
            visited.add(key)
            queue.append(PuzzleState(tuple(moved), current.moves + (index,), current.depth + 1))

    return None


def verify_solvable(
    snakes: Sequence[Snake],
    rows: int,
    cols: int,
    max_depth: Optional[int] = None,
    max_states: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> VerifyResult:
    """
    Проверяет, можно ли вывести всех змеек.

    Returns:
        VerifyResult(solvable, solution) — solution: индексы змеек по шагам.
    """
    board = Board(rows, cols)
    max_depth = settings.VERIFY_MAX_DEPTH if max_depth is None else max_depth
    max_states = settings.VERIFY_MAX_STATES if max_states is None else max_states

    if not snakes or is_solved(board, snakes):
        _report(on_progress, 100, "Checking solution...")
        return VerifyResult(solvable=True, solution=[])

    solution = find_exit_order(board, snakes)
    if solution is not None:
        # Змейки в поиске ходят только прямо: порядок выхода кратчайший,
        # BFS в тех же лимитах его не найдёт
        if len(solution) > max_depth or len(solution) + 1 > max_states:
            logger.info(
                f"Solution needs {len(solution)} moves, over limits "
                f"(depth={max_depth}, states={max_states})"
            )
            _report(on_progress, 100, "Validation timeout - cannot verify")
            return VerifyResult(solvable=False, solution=None)
        _report(on_progress, 100, "Solution found!")
        return VerifyResult(solvable=True, solution=solution)

    logger.debug(f"Exit order stalled for {len(snakes)} snakes, falling back to BFS")
    solution = search_solution(board, snakes, max_depth, max_states, on_progress)
    if solution is None:
        _report(on_progress, 100, "No solution found")
        return VerifyResult(solvable=False, solution=None)

    _report(on_progress, 100, "Solution found!")
    return VerifyResult(solvable=True, solution=solution)
