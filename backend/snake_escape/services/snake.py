"""
Snake Escape - Snake

Змейка: тело (голова первой), направление, цвет и стабильный id.
Направление хранится явно: после создания его меняет только резолвер
поворотов, из геометрии тела оно больше не вычисляется.
"""

import itertools
from typing import Iterable, List, Optional, Sequence, Set

from .geometry import Board, Cell, Heading, heading_between, is_adjacent, step

DEFAULT_COLOR = "#e74c3c"

_snake_ids = itertools.count(1)


class InvalidSnakeError(ValueError):
    """Тело змейки пустое или разорвано."""


class Snake:
    def __init__(
        self,
        body: Sequence[Cell],
        heading: Optional[Heading] = None,
        color: str = DEFAULT_COLOR,
        snake_id: Optional[int] = None,
    ):
        cells = [(int(c[0]), int(c[1])) for c in body]
        if not cells:
            raise InvalidSnakeError("Snake body must contain at least one cell")
        for i in range(len(cells) - 1):
            if not is_adjacent(cells[i], cells[i + 1]):
                raise InvalidSnakeError(
                    f"Snake body is not contiguous at segment {i}: {cells[i]} -> {cells[i + 1]}"
                )

        self.body: List[Cell] = cells
        self.heading: Heading = Heading(heading) if heading is not None else self._derive_heading()
        self.color = color
        self.id: int = next(_snake_ids) if snake_id is None else snake_id

    def _derive_heading(self) -> Heading:
        """Направление шея -> голова; одиночная клетка смотрит вправо."""
        if len(self.body) < 2:
            return Heading.RIGHT
        return heading_between(self.body[1], self.body[0]) or Heading.RIGHT

    def __repr__(self) -> str:
        return f"Snake(id={self.id}, heading={self.heading.value}, body={self.body})"

    def __len__(self) -> int:
        return len(self.body)

    def copy(self) -> "Snake":
        return Snake(list(self.body), heading=self.heading, color=self.color, snake_id=self.id)

    # ----------------------------------------
    # accessors
    # ----------------------------------------

    def head(self) -> Cell:
        if not self.body:
            raise InvalidSnakeError(f"Snake {self.id} has an empty body")
        return self.body[0]

    def tail(self) -> Cell:
        if not self.body:
            raise InvalidSnakeError(f"Snake {self.id} has an empty body")
        return self.body[-1]

    def next_head(self, heading: Optional[Heading] = None) -> Cell:
        return step(self.head(), heading or self.heading)

    def cells(self) -> Set[Cell]:
        return set(self.body)

    # ----------------------------------------
    # movement
    # ----------------------------------------

    def can_advance(self, board: Board, occupied: Set[Cell]) -> bool:
        """Можно ли шагнуть вперёд: за поле можно всегда, в свой хвост тоже."""
        nxt = self.next_head()
        if not board.contains(nxt):
            return True
        if nxt == self.tail():
            return True
        return nxt not in occupied

    def advance(self) -> None:
        """Сдвиг на одну клетку без проверок; направление не пересчитывается."""
        self.body.insert(0, self.next_head())
        self.body.pop()

    # ----------------------------------------
    # collision predicates
    # ----------------------------------------

    def has_collided_with(self, board: Board, others: Iterable["Snake"]) -> bool:
        head = self.head()
        if not board.contains(head):
            return False

        for other in others:
            if other.id == self.id:
                continue
            if head in other.body:
                return True

        return head in self.body[1:]

    def is_fully_off_board(self, board: Board) -> bool:
        return all(board.is_beyond(cell) for cell in self.body)

    def head_to_head_target(self, board: Board, others: Iterable["Snake"]) -> Optional["Snake"]:
        """Соперник, с которым змейки смотрят голова в голову."""
        head = self.head()
        if not board.contains(head):
            return None

        nxt = self.next_head()
        for other in others:
            if other.id == self.id:
                continue
            other_head = other.head()
            if not board.contains(other_head):
                continue
            if nxt == other_head and other.next_head() == head:
                return other

        return None


def build_occupancy(board: Board, snakes: Iterable[Snake], mover: Optional[Snake] = None) -> Set[Cell]:
    """
    Занятые клетки поля: тела всех змеек, кроме хвоста mover
    (хвост освобождается в этот же тик).
    """
    occupied: Set[Cell] = set()
    for snake in snakes:
        cells = snake.body
        if mover is not None and snake.id == mover.id:
            cells = cells[:-1]
        for cell in cells:
            if board.contains(cell):
                occupied.add(cell)
    return occupied
