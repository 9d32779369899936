from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

import numpy as np

from ..errors import InvariantViolation
from ..params import Connectivity
from .colors import Color, pack, unpack
from .topology import NEIGHBOR_OFFSETS, Position

_EMPTY = -1
_BLOCKED = -2


@dataclass(frozen=True)
class CanvasSnapshot:
    rgba: np.ndarray  # (H, W, 4) uint8, read-only; unfilled pixels are transparent
    filled: int


class Canvas:
    """
    Fixed W x H pixel grid.

    Each pixel is filled at most once. Fill orders among filled pixels are
    always exactly 1..filled_count.
    """

    def __init__(
        self,
        width: int,
        height: int,
        connectivity: Connectivity = Connectivity.EIGHT,
        blocked: Iterable[Position] = (),
        portals: Iterable[Tuple[Position, Position]] = (),
    ):
        self.width = int(width)
        self.height = int(height)
        self.connectivity = Connectivity(connectivity)
        self._offsets = NEIGHBOR_OFFSETS[self.connectivity]

        # packed color per pixel, row-major; hot path reads this list
        self._cells: List[int] = [_EMPTY] * (self.width * self.height)
        self._rgb = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        self._order = np.zeros((self.height, self.width), dtype=np.int64)

        n_blocked = 0
        for x, y in blocked:
            # walls may run off the canvas
            if self.in_bounds((x, y)) and self._cells[y * self.width + x] != _BLOCKED:
                self._cells[y * self.width + x] = _BLOCKED
                n_blocked += 1

        self.fillable_count = self.width * self.height - n_blocked
        self.filled_count = 0

        self._links: Dict[Position, List[Position]] = {}
        for a, b in portals:
            self._link(tuple(a), tuple(b))
            self._link(tuple(b), tuple(a))

    def _link(self, a: Position, b: Position) -> None:
        if not (self.in_bounds(a) and self.in_bounds(b)) or a == b:
            raise InvariantViolation(f"Portal {a} -> {b} must join two distinct canvas pixels")
        targets = self._links.setdefault(a, [])
        x, y = a
        grid = {(x + dx, y + dy) for dx, dy in self._offsets}
        if b not in targets and b not in grid:
            targets.append(b)

    @property
    def max_degree(self) -> int:
        """Largest possible neighbor count of a pixel, portals included."""
        extra = max((len(t) for t in self._links.values()), default=0)
        return len(self._offsets) + extra

    def in_bounds(self, pos: Position) -> bool:
        x, y = pos
        return 0 <= x < self.width and 0 <= y < self.height

    def is_filled(self, pos: Position) -> bool:
        x, y = pos
        return self._cells[y * self.width + x] >= 0

    def is_blocked(self, pos: Position) -> bool:
        x, y = pos
        return self._cells[y * self.width + x] == _BLOCKED

    def is_open(self, pos: Position) -> bool:
        x, y = pos
        return self._cells[y * self.width + x] == _EMPTY

    @property
    def unfilled_count(self) -> int:
        return self.fillable_count - self.filled_count

    def is_full(self) -> bool:
        return self.filled_count == self.fillable_count

    def color_at(self, pos: Position):
        x, y = pos
        v = self._cells[y * self.width + x]
        return unpack(v) if v >= 0 else None

    def order_at(self, pos: Position) -> int:
        x, y = pos
        return int(self._order[y, x])

    def fill(self, pos: Position, color: Color, order: int) -> None:
        if not self.in_bounds(pos):
            raise InvariantViolation(f"Fill outside canvas at {pos}")
        x, y = pos
        i = y * self.width + x
        if self._cells[i] == _BLOCKED:
            raise InvariantViolation(f"Fill of blocked pixel {pos}")
        if self._cells[i] >= 0:
            raise InvariantViolation(f"Pixel {pos} filled twice")
        if order != self.filled_count + 1:
            raise InvariantViolation(
                f"Fill order {order} at {pos}, expected {self.filled_count + 1}"
            )
        self._cells[i] = pack(color)
        self._rgb[y, x] = color
        self._order[y, x] = order
        self.filled_count = order

    def neighbors(self, pos: Position) -> List[Position]:
        x, y = pos
        w, h = self.width, self.height
        out = [
            (x + dx, y + dy)
            for dx, dy in self._offsets
            if 0 <= x + dx < w and 0 <= y + dy < h
        ]
        linked = self._links.get(pos)
        return out + linked if linked else out

    def open_neighbors(self, pos: Position) -> List[Position]:
        cells, w = self._cells, self.width
        return [n for n in self.neighbors(pos) if cells[n[1] * w + n[0]] == _EMPTY]

    def filled_neighbor_colors(self, pos: Position) -> List[Color]:
        cells, w = self._cells, self.width
        out = []
        for nx, ny in self.neighbors(pos):
            v = cells[ny * w + nx]
            if v >= 0:
                out.append(unpack(v))
        return out

    def filled_neighbor_count(self, pos: Position) -> int:
        cells, w = self._cells, self.width
        return sum(1 for nx, ny in self.neighbors(pos) if cells[ny * w + nx] >= 0)

    def open_positions(self) -> List[Position]:
        w = self.width
        return [(i % w, i // w) for i, v in enumerate(self._cells) if v == _EMPTY]

    def snapshot(self) -> CanvasSnapshot:
        rgba = np.zeros((self.height, self.width, 4), dtype=np.uint8)
        rgba[..., :3] = self._rgb
        rgba[..., 3] = np.where(self._order > 0, 255, 0).astype(np.uint8)
        rgba.setflags(write=False)
        return CanvasSnapshot(rgba=rgba, filled=self.filled_count)

    def fill_order(self) -> np.ndarray:
        return self._order.copy()
