"""
Snake Escape - Play Session

Единая точка сериализации ходов: один проход планировщика двигает все
активные змейки по очереди, каждая видит уже зафиксированный результат
предыдущей. Всё состояние по змейке хранится по её id, не по индексу.
"""

import asyncio
import logging
import threading
from typing import Dict, List, Optional, Set

from ..config import settings
from ..schemas import SessionStats, TickEvent
from .geometry import Board
from .movement import Outcome, tick
from .snake import Snake
from .verifier import get_hint

logger = logging.getLogger(__name__)


class PuzzleSession:
    def __init__(self, board: Board, snakes: List[Snake], blocked_patience: Optional[int] = None):
        self.board = board
        self._snakes: List[Snake] = list(snakes)
        self._active: Set[int] = set()
        self._blocked: Dict[int, int] = {}
        self._lock = threading.RLock()
        self.blocked_patience = settings.BLOCKED_PATIENCE if blocked_patience is None else blocked_patience

        self.exited = 0
        self.collisions = 0
        self.penalties = 0
        self.tick_number = 0

    # ----------------------------------------
    # state
    # ----------------------------------------

    @property
    def snakes(self) -> List[Snake]:
        with self._lock:
            return list(self._snakes)

    @property
    def active_ids(self) -> Set[int]:
        with self._lock:
            return set(self._active)

    @property
    def is_solved(self) -> bool:
        with self._lock:
            return not self._snakes

    @property
    def is_idle(self) -> bool:
        with self._lock:
            return not self._active

    def stats(self) -> SessionStats:
        with self._lock:
            return SessionStats(
                exited=self.exited,
                collisions=self.collisions,
                penalties=self.penalties,
                remaining=len(self._snakes),
                active=len(self._active),
            )

    def index_of(self, snake_id: int) -> Optional[int]:
        for idx, snake in enumerate(self._snakes):
            if snake.id == snake_id:
                return idx
        return None

    # ----------------------------------------
    # UI actions
    # ----------------------------------------

    def tap(self, index: int) -> int:
        """Запускает змейку по индексу (hit-test на стороне UI). Возвращает её id."""
        with self._lock:
            if not 0 <= index < len(self._snakes):
                raise IndexError(f"Snake index {index} out of range (0..{len(self._snakes) - 1})")
            snake_id = self._snakes[index].id
            if snake_id not in self._active:
                self._active.add(snake_id)
                self._blocked[snake_id] = 0
                logger.debug(f"Snake {snake_id} started moving")
            return snake_id

    def remove(self, index: int) -> Snake:
        """Штраф от UI: убрать змейку в обход логики столкновений."""
        with self._lock:
            if not 0 <= index < len(self._snakes):
                raise IndexError(f"Snake index {index} out of range (0..{len(self._snakes) - 1})")
            snake = self._snakes.pop(index)
            self._forget(snake.id)
            self.penalties += 1
            logger.info(f"Snake {snake.id} removed as penalty")
            return snake

    def hint(self) -> Optional[int]:
        with self._lock:
            return get_hint(self.board, self._snakes)

    # ----------------------------------------
    # scheduler
    # ----------------------------------------

    def _forget(self, snake_id: int) -> None:
        self._active.discard(snake_id)
        self._blocked.pop(snake_id, None)

    def step(self) -> List[TickEvent]:
        """Один проход: каждая активная змейка делает тик, результат фиксируется сразу."""
        events: List[TickEvent] = []
        with self._lock:
            self.tick_number += 1
            for snake_id in sorted(self._active):
                index = self.index_of(snake_id)
                if index is None:
                    self._forget(snake_id)
                    continue

                result = tick(index, self.board, self._snakes, self._active)
                self._snakes = result.snakes
                events.append(TickEvent(
                    snake_id=snake_id,
                    outcome=result.outcome.value,
                    turned=result.turned,
                ))

                if result.outcome == Outcome.EXITED:
                    self.exited += 1
                    self._forget(snake_id)
                elif result.outcome == Outcome.COLLIDED:
                    self.collisions += 1
                    self._forget(snake_id)
                    logger.info(f"Snake {snake_id} collided on tick {self.tick_number}")
                elif result.outcome == Outcome.BLOCKED:
                    self._blocked[snake_id] += 1
                    if self._blocked[snake_id] >= self.blocked_patience:
                        self._forget(snake_id)
                        logger.debug(f"Snake {snake_id} stopped: blocked {self.blocked_patience} ticks")
                else:
                    self._blocked[snake_id] = 0

        return events

    async def run(self, interval: Optional[float] = None, max_ticks: Optional[int] = None) -> List[TickEvent]:
        """Крутит планировщик, пока есть движущиеся змейки."""
        interval = settings.tick_interval_seconds if interval is None else interval
        history: List[TickEvent] = []
        ticks = 0
        while not self.is_idle:
            if max_ticks is not None and ticks >= max_ticks:
                break
            history.extend(self.step())
            ticks += 1
            await asyncio.sleep(interval)
        return history
