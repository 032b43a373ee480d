"""
Snake Escape - Puzzle Generator
Версия: 2.0 (REVERSE CONSTRUCTION + EXIT DAG)

Подход:
✅ Змейка строится ОТ ГОЛОВЫ НАЗАД (решение известно заранее)
✅ Шея строго за головой, хвост поворачивает на ±90°
✅ Своё тело никогда не блокирует свой путь вперёд
✅ Граф зависимостей выхода без циклов (по построению)
"""

import logging
import random
from typing import Callable, Dict, List, Optional, Set, Tuple

from ..config import settings
from ..schemas import Progress, VerifyResult
from .deadlock import ExitGraph, exit_ray, find_deadlock, ray_blockers
from .geometry import (
    HEADINGS,
    Board,
    Cell,
    Heading,
    heading_between,
    is_adjacent,
    neighbors,
    reverse,
    rotate_ccw,
    rotate_cw,
    step,
)
from .level_loader import dump_level, normalize_heading
from .snake import Snake
from .verifier import exit_budget, verify_solvable

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Progress], None]

# id кандидата до принятия; реальные id начинаются с 1
_CANDIDATE_ID = 0

STRAIGHT_CHANCE = 0.6


class GenerationCancelled(Exception):
    """Генерация прервана вызывающей стороной (запрошена новая головоломка)."""


# ============================================
# SEEDED RANDOM
# ============================================

class SeededRandom:
    """Детерминированный PRNG для воспроизводимости уровней."""

    def __init__(self, seed: int):
        self.seed = seed
        self._state = seed & 0x7FFFFFFF

    def next(self) -> float:
        """Возвращает число в [0, 1)."""
        self._state = (self._state * 1103515245 + 12345) & 0x7FFFFFFF
        return self._state / 0x80000000

    def next_int(self, min_val: int, max_val: int) -> int:
        """Возвращает целое число в диапазоне [min, max]."""
        if min_val > max_val:
            return min_val
        return min_val + int(self.next() * (max_val - min_val + 1))

    def choice(self, arr: list):
        """Случайный элемент массива."""
        if not arr:
            return None
        return arr[self.next_int(0, len(arr) - 1)]


# ============================================
# DIFFICULTY PROGRESSION
# ============================================

def get_snake_length_range(level: int) -> Tuple[int, int]:
    """(min, max) длина змеек по уровню."""
    min_len, max_len = settings.snake_length_range
    if level <= 5:
        cap = 6
    elif level <= 15:
        cap = 10
    elif level <= 30:
        cap = 16
    elif level <= 60:
        cap = 25
    elif level <= 100:
        cap = 35
    else:
        cap = max_len
    return min_len, max(min_len, min(cap, max_len))


def get_target_coverage(level: int) -> float:
    """Целевое покрытие поля по уровню."""
    if level <= 5:
        coverage = 0.4
    elif level <= 15:
        coverage = 0.5
    elif level <= 30:
        coverage = 0.6
    elif level <= 60:
        coverage = 0.7
    else:
        coverage = 0.8
    return min(coverage, settings.TARGET_COVERAGE)


# ============================================
# CONSTANTS
# ============================================

SNAKE_COLORS = [
    "#e74c3c",  # red
    "#4ECDC4",  # teal
    "#45B7D1",  # blue
    "#96CEB4",  # green
    "#FFEAA7",  # yellow
    "#DDA0DD",  # plum
    "#F39C12",  # orange
    "#9B59B6",  # purple
    "#1ABC9C",  # turquoise
    "#2C3E50",  # navy
]


# ============================================
# GRID CLASS
# ============================================

class Grid:
    """Состояние размещения: занятые клетки, владельцы клеток, граф выхода."""

    def __init__(self, board: Board, snakes: Optional[List[Snake]] = None):
        self.board = board
        self.occupied: Set[Cell] = set()
        self.cell_to_snake: Dict[Cell, int] = {}
        self.rays: Dict[int, Set[Cell]] = {}
        self.exit_graph = ExitGraph()
        self.snakes: List[Snake] = []

        for snake in snakes or []:
            self.place(snake)

    def is_occupied(self, cell: Cell) -> bool:
        return cell in self.occupied

    def is_valid_and_free(self, cell: Cell) -> bool:
        return self.board.contains(cell) and not self.is_occupied(cell)

    @property
    def coverage(self) -> float:
        return len(self.occupied) / self.board.area

    def blockers_of(self, snake: Snake) -> Set[int]:
        return ray_blockers(self.board, snake, self.cell_to_snake)

    def dependents_of(self, snake: Snake) -> Set[int]:
        """Уже размещённые змейки, чей луч выхода проходит через snake."""
        cells = snake.cells()
        return {sid for sid, ray in self.rays.items() if ray & cells}

    def would_create_cycle(self, snake: Snake) -> bool:
        return self.exit_graph.would_create_cycle(
            snake.id, self.blockers_of(snake), self.dependents_of(snake)
        )

    def place(self, snake: Snake) -> None:
        blockers = self.blockers_of(snake)
        dependents = self.dependents_of(snake)

        self.exit_graph.add(snake.id, blockers)
        for dependent in dependents:
            self.exit_graph.link(dependent, snake.id)

        self.rays[snake.id] = set(exit_ray(self.board, snake))
        for cell in snake.body:
            self.occupied.add(cell)
            self.cell_to_snake[cell] = snake.id
        self.snakes.append(snake)


# ============================================
# REVERSE CONSTRUCTION
# ============================================

def grow_body_backward(
    head: Cell,
    heading: Heading,
    target_length: int,
    grid: Grid,
    rng: SeededRandom,
) -> List[Cell]:
    """
    Растит тело ОТ ГОЛОВЫ к хвосту.

    Правила:
    1. ГОЛОВА в head (body[0])
    2. ШЕЯ строго позади головы (body[1] = head - heading)
    3. ХВОСТ может поворачивать ±90°
    4. Сегмент с индексом k на луче вперёд на расстоянии d
       запрещён при k + d < target_length: голова придёт туда раньше,
       чем сегмент станет хвостом.

    Возвращает тело (голова первой); в тупике тело короче target_length.
    """
    board = grid.board
    ray_distance = {cell: d for d, cell in enumerate(_straight_ray(board, head, heading), start=1)}

    body = [head]
    used = {head}
    backward = reverse(heading)

    while len(body) < target_length:
        index = len(body)
        current = body[-1]

        if index == 1:
            allowed = [backward]
        else:
            allowed = [backward, rotate_cw(backward), rotate_ccw(backward)]

        candidates = []
        for direction in allowed:
            cell = step(current, direction)
            if not grid.is_valid_and_free(cell) or cell in used:
                continue
            # Соседство с несмежным сегментом даёт ложную "связь"
            if any(n in used and n != current for n in neighbors(cell)):
                continue
            distance = ray_distance.get(cell)
            if distance is not None and index + distance < target_length:
                continue
            candidates.append((cell, direction))

        if not candidates:
            break

        straight = next((c for c in candidates if c[1] == backward), None)
        if straight and rng.next() < STRAIGHT_CHANCE:
            cell, direction = straight
        else:
            cell, direction = rng.choice(candidates)

        body.append(cell)
        used.add(cell)
        backward = direction

    return body


def _straight_ray(board: Board, head: Cell, heading: Heading) -> List[Cell]:
    ray = []
    cell = step(head, heading)
    while board.contains(cell):
        ray.append(cell)
        cell = step(cell, heading)
    return ray


def clears_own_path(board: Board, snake: Snake, placed_cells: Set[Cell]) -> bool:
    """
    Страховка: прогоняет змейку вперёд настоящими can_advance/advance.
    Своё тело проверяется на всю длину, чужие клетки — на первом шаге.
    """
    probe = snake.copy()
    for i in range(len(snake)):
        if not board.contains(probe.next_head()):
            return True
        occupied = set(probe.body[:-1])
        if i == 0:
            occupied |= placed_cells
        if not probe.can_advance(board, occupied):
            return False
        probe.advance()
        if probe.head() in probe.body[1:]:
            return False
    return True


def traps_existing(board: Board, candidate: Snake, existing: List[Snake]) -> bool:
    """Кандидат перекрывает следующий ход уже размещённой змейки."""
    blocking = set(candidate.body[:-1])
    for snake in existing:
        if not board.contains(snake.head()):
            continue
        nxt = snake.next_head()
        if nxt == snake.tail():
            continue
        if board.contains(nxt) and nxt in blocking:
            return True
    return False


def generate_snake(
    board: Board,
    min_len: int,
    max_len: int,
    occupied: Optional[Set[Cell]] = None,
    existing: Optional[List[Snake]] = None,
    rng: Optional[SeededRandom] = None,
    grid: Optional[Grid] = None,
    attempts: Optional[int] = None,
    lookahead: Optional[int] = None,
    color: Optional[str] = None,
) -> Optional[Snake]:
    """
    Пытается построить одну гарантированно выводимую змейку.

    Returns:
        Snake или None, если бюджет попыток исчерпан.
    """
    existing = existing or []
    if grid is None:
        grid = Grid(board, existing)
    occupied = grid.occupied if occupied is None else occupied | grid.occupied
    rng = rng or SeededRandom(random.randrange(1, 0x7FFFFFFF))
    attempts = settings.SNAKE_ATTEMPTS if attempts is None else attempts
    lookahead = settings.DEADLOCK_LOOKAHEAD if lookahead is None else lookahead
    min_len = max(1, min_len)
    max_len = max(min_len, max_len)

    for attempt in range(attempts):
        head = (rng.next_int(0, board.rows - 1), rng.next_int(0, board.cols - 1))
        if head in occupied:
            continue

        heading = rng.choice(HEADINGS)
        length = rng.next_int(min_len, max_len)

        body = grow_body_backward(head, heading, length, grid, rng)
        if len(body) < min_len or any(cell in occupied for cell in body):
            continue
        if not all(board.contains(cell) for cell in body):
            continue

        candidate = Snake(body, heading=heading, snake_id=_CANDIDATE_ID)

        if not clears_own_path(board, candidate, occupied):
            continue

        reason = find_deadlock(board, candidate, existing, lookahead)
        if reason is not None:
            logger.debug(f"Attempt {attempt}: candidate at {head} rejected ({reason})")
            continue

        if traps_existing(board, candidate, existing):
            continue

        if grid.would_create_cycle(candidate):
            logger.debug(f"Attempt {attempt}: candidate at {head} would close an exit cycle")
            continue

        return Snake(body, heading=heading, color=color or SNAKE_COLORS[0])

    return None


# ============================================
# BOARD ASSEMBLY
# ============================================

def _report(on_progress: Optional[ProgressCallback], phase: str, progress: int, message: str) -> None:
    if on_progress:
        on_progress(Progress(phase=phase, progress=progress, message=message))


def assemble_board(
    board: Board,
    min_len: int,
    max_len: int,
    target_coverage: float,
    rng: SeededRandom,
    on_progress: Optional[ProgressCallback] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
    snake_attempts: Optional[int] = None,
    failure_limit: Optional[int] = None,
    lookahead: Optional[int] = None,
) -> Grid:
    """Размещает змеек до целевого покрытия или исчерпания бюджета неудач."""
    failure_limit = settings.PLACEMENT_FAILURE_LIMIT if failure_limit is None else failure_limit
    grid = Grid(board)
    failures = 0

    _report(on_progress, "generating", 0, "Generating puzzle...")

    while failures < failure_limit and grid.coverage < target_coverage:
        if should_cancel and should_cancel():
            raise GenerationCancelled(f"Generation cancelled after {len(grid.snakes)} snakes")

        snake = generate_snake(
            board,
            min_len,
            max_len,
            existing=grid.snakes,
            rng=rng,
            grid=grid,
            attempts=snake_attempts,
            lookahead=lookahead,
            color=SNAKE_COLORS[len(grid.snakes) % len(SNAKE_COLORS)],
        )
        if snake is None:
            failures += 1
            continue

        grid.place(snake)
        _report(
            on_progress,
            "generating",
            min(99, int(grid.coverage / target_coverage * 100)),
            f"Placing snakes... ({len(grid.snakes)} placed)",
        )

    logger.info(
        f"Assembled {len(grid.snakes)} snakes on {board.rows}x{board.cols}: "
        f"coverage={grid.coverage:.2f} (target {target_coverage:.2f}), failures={failures}"
    )
    _report(on_progress, "complete", 100, "Puzzle ready!")
    return grid


def generate_puzzle(
    rows: int,
    cols: int,
    min_len: Optional[int] = None,
    max_len: Optional[int] = None,
    target_coverage: Optional[float] = None,
    rng: Optional[SeededRandom] = None,
    on_progress: Optional[ProgressCallback] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
    snake_attempts: Optional[int] = None,
    failure_limit: Optional[int] = None,
) -> List[Snake]:
    """
    Генерирует начальный набор змеек.

    Недобор покрытия не ошибка: возвращается то, что удалось разместить
    (в худшем случае пустой список).
    """
    default_min, default_max = settings.snake_length_range
    grid = assemble_board(
        Board(rows, cols),
        default_min if min_len is None else min_len,
        default_max if max_len is None else max_len,
        settings.TARGET_COVERAGE if target_coverage is None else target_coverage,
        rng or SeededRandom(random.randrange(1, 0x7FFFFFFF)),
        on_progress=on_progress,
        should_cancel=should_cancel,
        snake_attempts=snake_attempts,
        failure_limit=failure_limit,
    )
    return grid.snakes


def verify_board(board: Board, snakes: List[Snake]) -> VerifyResult:
    """
    Проверка решаемости с лимитами не меньше, чем нужно для вывода
    всех змеек по одной (плотная доска 36x18 требует тысячи ходов).
    """
    budget = exit_budget(board, snakes)
    return verify_solvable(
        snakes,
        board.rows,
        board.cols,
        max_depth=max(settings.VERIFY_MAX_DEPTH, budget),
        max_states=max(settings.VERIFY_MAX_STATES, budget),
    )


# ============================================
# MAIN GENERATOR FUNCTION
# ============================================

def generate_level(
    level: int,
    seed: Optional[int] = None,
    verify: Optional[bool] = None,
    on_progress: Optional[ProgressCallback] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> Dict:
    """
    Генерирует уровень.

    При verify=True доска перепроверяется BFS-верификатором и
    перегенерируется до PUZZLE_ATTEMPTS раз.
    """
    if seed is None:
        seed = level
    if verify is None:
        verify = settings.VERIFY_GENERATED

    rng = SeededRandom(seed)
    board = Board(settings.BOARD_ROWS, settings.BOARD_COLS)
    min_len, max_len = get_snake_length_range(level)
    target_coverage = get_target_coverage(level)

    grid = None
    verified = None
    for attempt in range(max(1, settings.PUZZLE_ATTEMPTS)):
        grid = assemble_board(
            board, min_len, max_len, target_coverage, rng,
            on_progress=on_progress, should_cancel=should_cancel,
        )
        if not verify:
            break

        result = verify_board(board, grid.snakes)
        verified = result.solvable
        if verified:
            break
        logger.warning(f"Level {level}: attempt {attempt + 1} could not be verified, regenerating")

    exit_depth = grid.exit_graph.get_depth()
    difficulty = (
        len(grid.snakes) * 0.3 +
        exit_depth * 0.4 +
        grid.coverage * 10 * 0.3
    )

    level_data = dump_level(board, grid.snakes)
    level_data.update({
        "level": level,
        "seed": seed,
        "meta": {
            "difficulty": round(difficulty, 2),
            "snake_count": len(grid.snakes),
            "coverage": round(grid.coverage, 3),
            "exit_depth": exit_depth,
            "length_range": f"{min_len}-{max_len}",
            "verified": verified,
        },
    })
    return level_data


# ============================================
# VALIDATION
# ============================================

def validate_level(level_data: Dict) -> Dict:
    """Валидирует корректность уровня."""
    errors = []

    rows = level_data["grid"]["rows"]
    cols = level_data["grid"]["cols"]
    board = Board(rows, cols)

    seen: Dict[Cell, int] = {}
    snakes: List[Snake] = []

    for raw in level_data["snakes"]:
        snake_id = raw.get("id")
        cells = [(c[0], c[1]) for c in raw["cells"]]

        if not cells:
            errors.append(f"Snake {snake_id} has no cells")
            continue

        # Проверка: ортогональность
        broken = next(
            (i for i in range(len(cells) - 1) if not is_adjacent(cells[i], cells[i + 1])),
            None,
        )
        if broken is not None:
            errors.append(f"Snake {snake_id} not orthogonal at cell {broken}")
            continue

        # Проверка: направление
        heading_value = normalize_heading(raw.get("heading"))
        if heading_value is None:
            errors.append(f"Snake {snake_id} has no valid heading: {raw.get('heading')!r}")
            continue

        # Проверка: тело на поле и без пересечений
        for cell in cells:
            if not board.contains(cell):
                errors.append(f"Snake {snake_id} has off-board cell {cell}")
            elif cell in seen:
                errors.append(f"Snake {snake_id} overlaps snake {seen[cell]} at {cell}")
            else:
                seen[cell] = snake_id

        # Проверка: голова и шея в одном направлении
        heading = Heading(heading_value)
        if len(cells) >= 2:
            anatomic = heading_between(cells[1], cells[0])
            if anatomic != heading:
                errors.append(
                    f"Snake {snake_id}: head-neck direction ({anatomic.value if anatomic else None}) "
                    f"!= heading ({heading.value})"
                )

        snakes.append(Snake(cells, heading=heading))

    coverage = len(seen) / board.area * 100

    # Проверка: решение существует
    if not errors:
        result = verify_board(board, snakes)
        if not result.solvable:
            errors.append(f"Level not solvable: {len(snakes)} snakes, no exit sequence found")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "coverage": coverage,
    }
