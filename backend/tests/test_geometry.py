"""Tests for headings, rotations and board bounds."""

import math

from snake_escape.services.geometry import (
    Board,
    Heading,
    heading_between,
    is_adjacent,
    reverse,
    rotate_ccw,
    rotate_cw,
    step,
)


class TestHeading:
    def test_deltas(self):
        assert Heading.UP.delta == (-1, 0)
        assert Heading.DOWN.delta == (1, 0)
        assert Heading.LEFT.delta == (0, -1)
        assert Heading.RIGHT.delta == (0, 1)

    def test_angles(self):
        assert Heading.RIGHT.angle == 0.0
        assert Heading.LEFT.angle == math.pi
        assert Heading.UP.angle == -math.pi / 2

    def test_clockwise_cycle(self):
        assert rotate_cw(Heading.RIGHT) == Heading.DOWN
        assert rotate_cw(Heading.DOWN) == Heading.LEFT
        assert rotate_cw(Heading.LEFT) == Heading.UP
        assert rotate_cw(Heading.UP) == Heading.RIGHT

    def test_ccw_undoes_cw(self):
        for heading in Heading:
            assert rotate_ccw(rotate_cw(heading)) == heading

    def test_reverse(self):
        assert reverse(Heading.UP) == Heading.DOWN
        assert reverse(Heading.LEFT) == Heading.RIGHT

    def test_heading_is_plain_string(self):
        assert Heading("left") is Heading.LEFT
        assert Heading.LEFT == "left"


class TestCells:
    def test_step(self):
        assert step((2, 2), Heading.UP) == (1, 2)
        assert step((2, 2), Heading.RIGHT, 3) == (2, 5)

    def test_heading_between(self):
        assert heading_between((1, 1), (1, 2)) == Heading.RIGHT
        assert heading_between((1, 1), (0, 1)) == Heading.UP
        assert heading_between((1, 1), (2, 2)) is None

    def test_is_adjacent(self):
        assert is_adjacent((0, 0), (0, 1))
        assert not is_adjacent((0, 0), (1, 1))
        assert not is_adjacent((0, 0), (0, 0))


class TestBoard:
    def test_contains(self):
        board = Board(3, 4)
        assert board.contains((0, 0))
        assert board.contains((2, 3))
        assert not board.contains((3, 0))
        assert not board.contains((0, -1))

    def test_is_beyond_needs_one_cell_margin(self):
        board = Board(3, 3)
        assert not board.is_beyond((1, 3))
        assert board.is_beyond((1, 4))
        assert not board.is_beyond((-1, 1))
        assert board.is_beyond((-2, 1))
        assert not board.is_beyond((1, 1))

    def test_area_and_cells(self):
        board = Board(2, 3)
        assert board.area == 6
        assert len(board.cells()) == 6
