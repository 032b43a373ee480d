import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..schemas import GridSchema, LevelResponse, SnakeSchema
from .geometry import Board, Cell, Heading, heading_between
from .snake import DEFAULT_COLOR, InvalidSnakeError, Snake

logger = logging.getLogger(__name__)

VALID_HEADINGS = {h.value for h in Heading}


def calculate_heading(cells: List[Cell]) -> Heading:
    """Heading from neck(1) to head(0); single cells face right."""
    if len(cells) < 2:
        return Heading.RIGHT
    return heading_between(cells[1], cells[0]) or Heading.RIGHT


def normalize_heading(value: Any) -> Optional[str]:
    if isinstance(value, Heading):
        return value.value
    if not isinstance(value, str):
        return None
    heading = value.strip().lower()
    if heading in VALID_HEADINGS:
        return heading
    return None


def _normalize_color(value: Any) -> str:
    if isinstance(value, str):
        color = value.strip()
        if color:
            return color
    return DEFAULT_COLOR


def _to_cell(coord: Any) -> Optional[Cell]:
    # [row, col] pairs or {"row": .., "col": ..} dicts
    if isinstance(coord, dict):
        coord = [coord.get("row"), coord.get("col")]
    if not isinstance(coord, (list, tuple)) or len(coord) != 2:
        return None
    try:
        return int(coord[0]), int(coord[1])
    except (TypeError, ValueError):
        return None


def _normalize_grid(raw_grid: Dict[str, Any]) -> GridSchema:
    # width/height accepted for boards exported column-major
    rows = raw_grid.get("rows", raw_grid.get("height"))
    cols = raw_grid.get("cols", raw_grid.get("width"))
    return GridSchema(rows=rows, cols=cols)


def _normalize_snake(idx: int, raw_snake: Dict[str, Any]) -> Dict[str, Any]:
    cells = []
    for raw_cell in raw_snake.get("cells", []):
        cell = _to_cell(raw_cell)
        if cell is not None:
            cells.append(cell)

    heading = normalize_heading(raw_snake.get("heading") or raw_snake.get("direction"))
    if heading is None and cells:
        heading = calculate_heading(cells).value

    return {
        "id": raw_snake.get("id", idx),
        "cells": cells,
        "heading": heading,
        "color": _normalize_color(raw_snake.get("color")),
    }


def load_level(data: Dict[str, Any]) -> Tuple[Board, List[Snake]]:
    """Normalize a level payload into a board and fresh snakes (new stable ids)."""
    grid = _normalize_grid(data.get("grid", {}))
    board = Board(grid.rows, grid.cols)

    raw_snakes = data.get("snakes", [])
    if not isinstance(raw_snakes, list):
        raw_snakes = []

    snakes: List[Snake] = []
    skipped = 0
    for idx, raw_snake in enumerate(raw_snakes):
        if not isinstance(raw_snake, dict):
            skipped += 1
            continue
        try:
            schema = SnakeSchema.model_validate(_normalize_snake(idx, raw_snake))
            snakes.append(Snake(schema.cells, heading=schema.heading, color=schema.color))
        except (ValidationError, InvalidSnakeError) as exc:
            skipped += 1
            logger.warning(f"Skipping snake #{idx}: {exc}")

    logger.debug(
        f"Loaded level {data.get('level')}: board={board.rows}x{board.cols}, "
        f"snakes={len(snakes)}, skipped={skipped}"
    )
    return board, snakes


def dump_level(board: Board, snakes: List[Snake]) -> Dict[str, Any]:
    """Inverse of load_level; snake ids are positional in the payload."""
    level = LevelResponse(
        grid=GridSchema(rows=board.rows, cols=board.cols),
        snakes=[
            SnakeSchema(id=idx, cells=list(snake.body), heading=snake.heading, color=snake.color)
            for idx, snake in enumerate(snakes)
        ],
    )
    return level.model_dump(mode="json", exclude_none=True)
