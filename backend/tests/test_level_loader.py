"""Tests for level payload normalization."""

import pytest
from pydantic import ValidationError

from snake_escape.services.geometry import Board, Heading
from snake_escape.services.level_loader import calculate_heading, dump_level, load_level
from snake_escape.services.snake import DEFAULT_COLOR, Snake


class TestLoadLevel:
    def test_normalizes_entries(self):
        board, snakes = load_level({
            "grid": {"width": 4, "height": 5},
            "snakes": [
                {"cells": [{"row": 1, "col": 1}, {"row": 1, "col": 0}], "direction": " RIGHT "},
                {"cells": [[3, 3], [4, 3]], "color": "  "},
            ],
        })

        assert board == Board(5, 4)
        assert snakes[0].body == [(1, 1), (1, 0)]
        assert snakes[0].heading == Heading.RIGHT
        assert snakes[1].heading == Heading.UP
        assert snakes[1].color == DEFAULT_COLOR

    def test_invalid_snakes_skipped(self):
        _, snakes = load_level({
            "grid": {"rows": 3, "cols": 3},
            "snakes": [
                {"cells": [[0, 0], [2, 2]], "heading": "up"},
                {"cells": []},
                "garbage",
                {"cells": [[1, 1]], "heading": "left"},
            ],
        })
        assert len(snakes) == 1
        assert snakes[0].heading == Heading.LEFT

    def test_missing_grid_rejected(self):
        with pytest.raises(ValidationError):
            load_level({"snakes": []})

    def test_fresh_ids(self):
        data = {"grid": {"rows": 3, "cols": 3}, "snakes": [{"cells": [[0, 0]]}, {"cells": [[2, 2]]}]}
        _, first = load_level(data)
        _, second = load_level(data)
        assert len({s.id for s in first + second}) == 4


class TestDumpLevel:
    def test_dump_then_load(self):
        board = Board(4, 4)
        snakes = [
            Snake([(0, 0), (1, 0)], color="#4ECDC4"),
            Snake([(3, 3)], heading=Heading.DOWN),
        ]
        data = dump_level(board, snakes)

        assert data["grid"] == {"rows": 4, "cols": 4}
        assert data["snakes"][0] == {"id": 0, "cells": [[0, 0], [1, 0]], "heading": "up", "color": "#4ECDC4"}

        loaded_board, loaded = load_level(data)
        assert loaded_board == board
        assert [s.body for s in loaded] == [s.body for s in snakes]
        assert [s.heading for s in loaded] == [s.heading for s in snakes]


class TestCalculateHeading:
    def test_from_neck(self):
        assert calculate_heading([(2, 2), (3, 2)]) == Heading.UP
        assert calculate_heading([(0, 0)]) == Heading.RIGHT
