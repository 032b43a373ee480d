"""Snake Escape - puzzle engine."""

from .services.generator import GenerationCancelled, generate_level, generate_puzzle
from .services.geometry import Board, Heading
from .services.movement import Outcome, TickResult, tick
from .services.session import PuzzleSession
from .services.snake import InvalidSnakeError, Snake
from .services.verifier import verify_solvable

__all__ = [
    "Board",
    "GenerationCancelled",
    "Heading",
    "InvalidSnakeError",
    "Outcome",
    "PuzzleSession",
    "Snake",
    "TickResult",
    "generate_level",
    "generate_puzzle",
    "tick",
    "verify_solvable",
]
