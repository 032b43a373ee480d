"""Tests for the solvability verifier."""

from snake_escape.schemas import Progress
from snake_escape.services.geometry import Board, Heading
from snake_escape.services.snake import Snake
from snake_escape.services.verifier import (
    exit_budget,
    find_exit_order,
    find_free_snakes,
    get_hint,
    hash_state,
    is_solved,
    search_solution,
    try_step,
    verify_solvable,
)


def replay(board, snakes, solution):
    world = [snake.copy() for snake in snakes]
    for index in solution:
        moved = try_step(board, world, index)
        assert moved is not None
        world = moved
    return world


class TestVerifySolvable:
    def test_empty_board(self):
        result = verify_solvable([], 3, 3)
        assert result.solvable
        assert result.solution == []

    def test_single_snake(self):
        result = verify_solvable([Snake([(1, 1)], heading=Heading.RIGHT)], 3, 3)
        assert result.solvable
        assert result.solution == [0, 0, 0]

    def test_face_off_is_unsolvable(self):
        snakes = [
            Snake([(0, 0)], heading=Heading.RIGHT),
            Snake([(0, 1)], heading=Heading.LEFT),
        ]
        result = verify_solvable(snakes, 1, 2)
        assert not result.solvable
        assert result.solution is None

    def test_solution_replays_to_empty_board(self):
        board = Board(4, 4)
        snakes = [
            Snake([(0, 0)], heading=Heading.RIGHT),
            Snake([(0, 2), (1, 2)]),
            Snake([(3, 1), (3, 0)]),
        ]
        result = verify_solvable(snakes, 4, 4)
        assert result.solvable
        assert is_solved(board, replay(board, snakes, result.solution))

    def test_depth_limit_reports_unsolvable(self):
        snakes = [Snake([(1, 1)], heading=Heading.RIGHT)]
        result = verify_solvable(snakes, 3, 3, max_depth=2, max_states=100)
        assert not result.solvable
        assert result.solution is None
        assert verify_solvable(snakes, 3, 3, max_depth=3, max_states=100).solvable

    def test_state_limit_reports_unsolvable(self):
        snakes = [Snake([(1, 1)], heading=Heading.RIGHT)]
        result = verify_solvable(snakes, 3, 3, max_depth=10, max_states=1)
        assert not result.solvable
        assert result.solution is None

    def test_exit_budget_covers_solution(self):
        board = Board(4, 4)
        snakes = [Snake([(0, 0)], heading=Heading.RIGHT), Snake([(3, 1), (3, 0)])]
        result = verify_solvable(snakes, 4, 4)
        assert len(result.solution) <= exit_budget(board, snakes)

    def test_progress_reported(self):
        seen = []
        verify_solvable([Snake([(1, 1)])], 3, 3, on_progress=seen.append)
        assert seen
        assert all(isinstance(p, Progress) for p in seen)
        assert seen[-1].progress == 100

    def test_input_untouched(self):
        snake = Snake([(1, 1)])
        verify_solvable([snake], 3, 3)
        assert snake.body == [(1, 1)]


class TestSearchSolution:
    def test_shortest_solution(self):
        board = Board(3, 3)
        snakes = [Snake([(1, 1)], heading=Heading.RIGHT)]
        assert search_solution(board, snakes, max_depth=10, max_states=100) == [0, 0, 0]

    def test_depth_limit(self):
        board = Board(3, 3)
        snakes = [Snake([(1, 1)], heading=Heading.RIGHT)]
        assert search_solution(board, snakes, max_depth=2, max_states=100) is None

    def test_state_limit(self):
        board = Board(3, 3)
        snakes = [Snake([(1, 1)], heading=Heading.RIGHT)]
        assert search_solution(board, snakes, max_depth=10, max_states=1) is None

    def test_two_snakes(self):
        board = Board(3, 3)
        snakes = [
            Snake([(0, 0)], heading=Heading.UP),
            Snake([(2, 2)], heading=Heading.DOWN),
        ]
        solution = search_solution(board, snakes, max_depth=10, max_states=1000)
        assert sorted(solution) == [0, 0, 1, 1]
        assert is_solved(board, replay(board, snakes, solution))


class TestHelpers:
    def test_hash_ignores_order(self):
        a = Snake([(0, 0), (0, 1)])
        b = Snake([(2, 2)])
        assert hash_state([a, b]) == hash_state([b, a])
        assert hash_state([a]) != hash_state([b])

    def test_try_step_blocked(self):
        board = Board(3, 3)
        snakes = [Snake([(0, 0)], heading=Heading.RIGHT), Snake([(0, 1), (1, 1)])]
        assert try_step(board, snakes, 0) is None

    def test_free_snakes_and_hint(self):
        board = Board(3, 3)
        blocked = Snake([(0, 0)], heading=Heading.RIGHT)
        blocker = Snake([(1, 2), (0, 2)], heading=Heading.DOWN)
        assert find_free_snakes(board, [blocked, blocker]) == [1]
        assert get_hint(board, [blocked, blocker]) == 1

    def test_no_hint_when_stuck(self):
        board = Board(1, 2)
        snakes = [
            Snake([(0, 0)], heading=Heading.RIGHT),
            Snake([(0, 1)], heading=Heading.LEFT),
        ]
        assert get_hint(board, snakes) is None
        assert find_exit_order(board, snakes) is None

    def test_exit_order_clears_blocker_first(self):
        board = Board(3, 3)
        blocked = Snake([(0, 0)], heading=Heading.RIGHT)
        blocker = Snake([(1, 2), (0, 2)], heading=Heading.DOWN)
        solution = find_exit_order(board, [blocked, blocker])
        assert solution[0] == 1
        assert is_solved(board, replay(board, [blocked, blocker], solution))
