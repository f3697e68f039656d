"""
Placement — give unplaced elements a heuristic canvas position

Containers 由上往下排在 x=50，子元素依 flex 方向或 3 欄 grid 排在容器內，
其餘尚未定位的元素接在 y 游標下方。設計師手動拖過的位置預設不動。
"""

import random
from typing import List, Optional

from .models import CanvasElement, LayoutAnalysis, Position

MARGIN = 50
CONTAINER_SPACING = 100
ELEMENT_SPACING = 50
CHILD_INSET = 20
CHILD_GUTTER = 20
GRID_COLUMNS = 3
OFFSET_RANGE = 200


class IndexOffsetStrategy:
    """Pure x offset in [0, 200) from the element index."""

    def __init__(self, step: int = 40):
        self.step = step

    def offset(self, index: int) -> float:
        return (index * self.step) % OFFSET_RANGE


class SeededJitterStrategy:
    """Random x offset in [0, 200), reproducible for a given seed."""

    def __init__(self, seed: int = 0):
        self._random = random.Random(seed)

    def offset(self, index: int) -> float:
        return self._random.randrange(OFFSET_RANGE)


class Placer:

    def __init__(self, strategy=None, preserve_positions: bool = True):
        self.strategy = strategy or IndexOffsetStrategy()
        self.preserve_positions = preserve_positions

    def _keeps(self, element: CanvasElement) -> bool:
        return self.preserve_positions and element.is_placed()

    def place(self, elements: List[CanvasElement], analysis: LayoutAnalysis) -> List[CanvasElement]:
        """Mutates `elements` in place and returns the same list."""
        y_cursor = MARGIN

        for container in analysis.containers:
            element = container.element
            if not self._keeps(element):
                element.position = Position(x=MARGIN, y=y_cursor)
            y_cursor += element.size.height + CONTAINER_SPACING
            self.place_children(element, container.children)

        for index, element in enumerate(elements):
            if element.is_placed():
                continue
            element.position = Position(x=MARGIN + self.strategy.offset(index), y=y_cursor)
            y_cursor += element.size.height + ELEMENT_SPACING

        return elements

    def place_children(self, container: CanvasElement, children: List[CanvasElement]) -> None:
        layout = container.layout or {}
        origin = container.position or Position()
        x = origin.x + CHILD_INSET
        y = origin.y + CHILD_INSET

        for index, child in enumerate(children):
            position: Optional[Position] = None
            if layout.get("type") == "flexbox":
                position = Position(x=x, y=y)
                if layout.get("direction") == "row":
                    x += child.size.width + CHILD_GUTTER
                else:
                    y += child.size.height + CHILD_GUTTER
            elif layout.get("type") == "grid":
                col, row = index % GRID_COLUMNS, index // GRID_COLUMNS
                position = Position(
                    x=x + col * (child.size.width + CHILD_GUTTER),
                    y=y + row * (child.size.height + CHILD_GUTTER),
                )
            if position is not None and not self._keeps(child):
                child.position = position
