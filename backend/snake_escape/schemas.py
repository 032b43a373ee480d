"""
Snake Escape - Pydantic Schemas

Все схемы обмена с UI в одном файле.
"""

from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field

from .services.geometry import Heading


# ============================================
# LEVEL
# ============================================

class SnakeSchema(BaseModel):
    """Змейка: клетки [row, col], голова первой."""
    id: int
    cells: List[Tuple[int, int]] = Field(min_length=1)
    heading: Heading
    color: str = "#e74c3c"


class GridSchema(BaseModel):
    """Размер поля."""
    rows: int = Field(gt=0)
    cols: int = Field(gt=0)


class LevelMeta(BaseModel):
    """Метаданные уровня."""
    difficulty: Union[float, int, str]
    snake_count: int
    coverage: float = 0.0
    exit_depth: int = 0
    length_range: Optional[str] = None
    verified: Optional[bool] = None


class LevelResponse(BaseModel):
    """Уровень целиком."""
    level: Optional[int] = None
    seed: Optional[int] = None
    grid: GridSchema
    snakes: List[SnakeSchema]
    meta: Optional[LevelMeta] = None


# ============================================
# ENGINE RESULTS
# ============================================

class Progress(BaseModel):
    """Прогресс генерации / проверки для UI."""
    phase: Literal["generating", "validating", "complete"]
    progress: int = Field(ge=0, le=100)
    message: str


class VerifyResult(BaseModel):
    """Результат проверки решаемости."""
    solvable: bool
    # Индексы змеек по одному шагу
    solution: Optional[List[int]] = None


class TickEvent(BaseModel):
    """Итог одного тика одной змейки."""
    snake_id: int
    outcome: Literal["moved", "blocked", "collided", "exited"]
    turned: bool = False


class SessionStats(BaseModel):
    exited: int = 0
    collisions: int = 0
    penalties: int = 0
    remaining: int = 0
    active: int = 0
