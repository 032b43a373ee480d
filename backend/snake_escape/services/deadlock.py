"""
Snake Escape - Deadlock Detector

Статический анализ кандидата при генерации (в игре не используется).
Любая положительная проверка отклоняет кандидата:
1. лобовая встреча голов
2. следующая клетка внутри чужого тела
3. пересечение путей вперёд (lookahead)
4. цикл в графе "кто смотрит в чью голову"

Плюс граф зависимостей выхода (ExitGraph): гарантирует, что змейки
можно вывести по одной в топологическом порядке.
"""

from collections import deque
from typing import Dict, List, Mapping, Optional, Set

from .geometry import Board, Cell, step
from .snake import Snake

FACE_OFF = "face_off"
BODY_BLOCK = "body_block"
PATH_INTERSECTION = "path_intersection"
POINTING_CYCLE = "pointing_cycle"


# ============================================
# LOCAL CHECKS
# ============================================

def has_direct_face_off(board: Board, candidate: Snake, existing: List[Snake]) -> bool:
    return candidate.head_to_head_target(board, existing) is not None


def is_body_blocked(board: Board, candidate: Snake, existing: List[Snake]) -> bool:
    """Следующая клетка кандидата в чужом теле (не хвосте)."""
    nxt = candidate.next_head()
    if not board.contains(nxt):
        return False

    for snake in existing:
        if nxt == snake.tail():
            continue
        if nxt in snake.body[:-1]:
            return True
    return False


def forward_path(board: Board, snake: Snake, steps: int) -> List[Cell]:
    """Клетки пути вперёд на steps шагов (до края поля, без своего хвоста на 1-м шаге)."""
    path = []
    cell = snake.head()
    tail = snake.tail()
    for i in range(1, steps + 1):
        cell = step(cell, snake.heading)
        if not board.contains(cell):
            break
        if i == 1 and cell == tail:
            continue
        path.append(cell)
    return path


def _path_hits_body(board: Board, path: List[Cell], snake: Snake) -> bool:
    tail = snake.tail()
    body = {cell for cell in snake.body[:-1] if board.contains(cell)}
    return any(cell != tail and cell in body for cell in path)


def has_path_intersection(board: Board, candidate: Snake, existing: List[Snake], lookahead: int) -> bool:
    """
    Путь одной змейки упирается в тело другой в пределах lookahead.

    Пары уже размещённых змеек проверены при их размещении, поэтому
    смотрим только пары с кандидатом (в обе стороны).
    """
    if not board.contains(candidate.head()):
        return False

    candidate_path = forward_path(board, candidate, lookahead)
    for snake in existing:
        if not board.contains(snake.head()):
            continue
        if _path_hits_body(board, candidate_path, snake):
            return True
        if _path_hits_body(board, forward_path(board, snake, lookahead), candidate):
            return True
    return False


def build_pointing_graph(board: Board, snakes: List[Snake]) -> Dict[int, List[int]]:
    """Ребро i -> j: следующая клетка змейки i — голова змейки j."""
    heads: Dict[Cell, int] = {}
    for idx, snake in enumerate(snakes):
        if board.contains(snake.head()):
            heads[snake.head()] = idx

    graph: Dict[int, List[int]] = {}
    for idx, snake in enumerate(snakes):
        if not board.contains(snake.head()):
            continue
        target = heads.get(snake.next_head())
        if target is not None and target != idx:
            graph.setdefault(idx, []).append(target)
    return graph


def has_pointing_cycle(graph: Mapping[int, List[int]]) -> bool:
    """DFS со стеком рекурсии."""
    visited: Set[int] = set()
    on_stack: Set[int] = set()

    def visit(node: int) -> bool:
        if node in on_stack:
            return True
        if node in visited:
            return False
        visited.add(node)
        on_stack.add(node)
        for target in graph.get(node, []):
            if visit(target):
                return True
        on_stack.discard(node)
        return False

    return any(visit(node) for node in list(graph) if node not in visited)


def find_deadlock(
    board: Board,
    candidate: Snake,
    existing: List[Snake],
    lookahead: int = 5,
) -> Optional[str]:
    """Причина отказа или None, если кандидат безопасен."""
    if not board.contains(candidate.head()):
        return None

    if has_direct_face_off(board, candidate, existing):
        return FACE_OFF

    if is_body_blocked(board, candidate, existing):
        return BODY_BLOCK

    if has_path_intersection(board, candidate, existing, lookahead):
        return PATH_INTERSECTION

    if has_pointing_cycle(build_pointing_graph(board, [*existing, candidate])):
        return POINTING_CYCLE

    return None


def has_deadlock(board: Board, candidate: Snake, existing: List[Snake], lookahead: int = 5) -> bool:
    return find_deadlock(board, candidate, existing, lookahead) is not None


# ============================================
# EXIT DEPENDENCY GRAPH
# ============================================

def exit_ray(board: Board, snake: Snake) -> List[Cell]:
    """Прямая от головы до края поля (без самой головы)."""
    ray = []
    cell = step(snake.head(), snake.heading)
    while board.contains(cell):
        ray.append(cell)
        cell = step(cell, snake.heading)
    return ray


def ray_blockers(board: Board, snake: Snake, cell_owner: Mapping[Cell, int]) -> Set[int]:
    """id змеек, тела которых лежат на луче выхода snake."""
    blockers = set()
    for cell in exit_ray(board, snake):
        owner = cell_owner.get(cell)
        if owner is not None and owner != snake.id:
            blockers.add(owner)
    return blockers


class ExitGraph:
    """
    Ориентированный граф зависимостей выхода: snake_id -> {blocker_ids}.
    Ацикличность означает, что змейки выводятся по одной.
    """

    def __init__(self):
        self.edges: Dict[int, Set[int]] = {}

    def add(self, snake_id: int, blockers: Set[int]) -> None:
        self.edges[snake_id] = set(blockers)

    def link(self, dependent: int, blocker: int) -> None:
        self.edges.setdefault(dependent, set()).add(blocker)

    def would_create_cycle(self, new_id: int, blockers: Set[int], dependents: Set[int]) -> bool:
        """
        Новые рёбра: new -> blockers и dependents -> new.
        Граф был ацикличен, значит новый цикл проходит через new:
        new -> b -> ... -> d -> new.
        """
        if blockers & dependents:
            return True
        return any(self._has_path(blocker, dependents) for blocker in blockers)

    def _has_path(self, from_id: int, targets: Set[int]) -> bool:
        """DFS: достижим ли кто-то из targets из from_id."""
        visited = set()
        stack = [from_id]

        while stack:
            node = stack.pop()
            if node in targets:
                return True
            if node in visited:
                continue
            visited.add(node)
            stack.extend(self.edges.get(node, ()))

        return False

    def get_depth(self) -> int:
        """Максимальная глубина цепочки блокировок (без рекурсии)."""
        order = self.exit_order()
        if order is None:
            raise ValueError("Exit graph contains a cycle")

        depth: Dict[int, int] = {}
        for node in order:
            blockers = self.edges.get(node, set())
            depth[node] = max((depth[b] + 1 for b in blockers if b in depth), default=0)
        return max(depth.values(), default=0)

    def exit_order(self) -> Optional[List[int]]:
        """Топологический порядок выхода (сначала свободные) или None при цикле."""
        nodes = set(self.edges)
        for blockers in self.edges.values():
            nodes |= blockers

        remaining = {node: len(self.edges.get(node, ())) for node in nodes}
        dependents: Dict[int, List[int]] = {node: [] for node in nodes}
        for node, blockers in self.edges.items():
            for blocker in blockers:
                dependents[blocker].append(node)

        queue = deque(sorted(node for node, count in remaining.items() if count == 0))
        order = []
        while queue:
            current = queue.popleft()
            order.append(current)
            for node in dependents[current]:
                remaining[node] -= 1
                if remaining[node] == 0:
                    queue.append(node)

        if len(order) != len(nodes):
            return None
        return order
