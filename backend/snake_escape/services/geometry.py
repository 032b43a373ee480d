"""
Snake Escape - Geometry

Клетки, направления и границы поля.
Клетка — это просто пара (row, col); за пределами поля тоже допустима.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

Cell = Tuple[int, int]


# ============================================
# HEADINGS
# ============================================

class Heading(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @property
    def delta(self) -> Cell:
        return HEADING_VECTORS[self]

    @property
    def angle(self) -> float:
        return HEADING_ANGLES[self]


HEADING_VECTORS = {
    Heading.UP: (-1, 0),
    Heading.DOWN: (1, 0),
    Heading.LEFT: (0, -1),
    Heading.RIGHT: (0, 1),
}

HEADING_ANGLES = {
    Heading.UP: -math.pi / 2,
    Heading.DOWN: math.pi / 2,
    Heading.LEFT: math.pi,
    Heading.RIGHT: 0.0,
}

HEADINGS = [Heading.UP, Heading.DOWN, Heading.LEFT, Heading.RIGHT]


def step(cell: Cell, heading: Heading, distance: int = 1) -> Cell:
    """Клетка после движения на distance шагов в направлении heading."""
    drow, dcol = HEADING_VECTORS[heading]
    return (cell[0] + drow * distance, cell[1] + dcol * distance)


def rotate_cw(heading: Heading) -> Heading:
    """Поворот на 90° по часовой."""
    rotations = {
        Heading.UP: Heading.RIGHT,
        Heading.RIGHT: Heading.DOWN,
        Heading.DOWN: Heading.LEFT,
        Heading.LEFT: Heading.UP,
    }
    return rotations[heading]


def rotate_ccw(heading: Heading) -> Heading:
    """Поворот на 90° против часовой."""
    rotations = {
        Heading.UP: Heading.LEFT,
        Heading.LEFT: Heading.DOWN,
        Heading.DOWN: Heading.RIGHT,
        Heading.RIGHT: Heading.UP,
    }
    return rotations[heading]


def reverse(heading: Heading) -> Heading:
    return rotate_cw(rotate_cw(heading))


def heading_between(from_cell: Cell, to_cell: Cell) -> Optional[Heading]:
    """Направление единичного шага from -> to (None если клетки не соседние)."""
    delta = (to_cell[0] - from_cell[0], to_cell[1] - from_cell[1])
    for heading, vector in HEADING_VECTORS.items():
        if vector == delta:
            return heading
    return None


def is_adjacent(a: Cell, b: Cell) -> bool:
    return abs(a[0] - b[0]) + abs(a[1] - b[1]) == 1


def neighbors(cell: Cell) -> list[Cell]:
    return [step(cell, heading) for heading in HEADINGS]


# ============================================
# BOARD
# ============================================

@dataclass(frozen=True)
class Board:
    """Поле rows × cols. Неизменяемо в рамках одной головоломки."""

    rows: int
    cols: int

    @property
    def area(self) -> int:
        return self.rows * self.cols

    def contains(self, cell: Cell) -> bool:
        """Клетка в границах поля."""
        return 0 <= cell[0] < self.rows and 0 <= cell[1] < self.cols

    def is_beyond(self, cell: Cell) -> bool:
        """Клетка дальше границы как минимум на одну клетку запаса."""
        row, col = cell
        return row < -1 or row >= self.rows + 1 or col < -1 or col >= self.cols + 1

    def cells(self) -> list[Cell]:
        return [(row, col) for row in range(self.rows) for col in range(self.cols)]
