from typing import Iterable, List, Tuple

from ..params import Connectivity

Position = Tuple[int, int]

NEIGHBOR_OFFSETS = {
    Connectivity.FOUR: ((0, -1), (-1, 0), (1, 0), (0, 1)),
    Connectivity.EIGHT: (
        (-1, -1), (0, -1), (1, -1),
        (-1, 0), (1, 0),
        (-1, 1), (0, 1), (1, 1),
    ),
}


def line_to(start: Position, end: Position) -> List[Position]:
    """
    Rasterizes the segment start -> end.

    Consecutive pixels always share an edge, so a wall drawn with this
    cannot be crossed diagonally under 8-connectivity.
    """
    (x0, y0), (x1, y1) = start, end
    if x0 == x1:
        return [(x0, y) for y in range(min(y0, y1), max(y0, y1) + 1)]

    dy, dx = y1 - y0, x1 - x0

    out: List[Position] = []
    prev_y = None
    for x in range(min(x0, x1), max(x0, x1) + 1):
        # exact floor of the line through both endpoints
        y = y0 + (dy * (x - x0)) // dx
        y_prev = y if prev_y is None else prev_y
        for yy in range(min(y, y_prev), max(y, y_prev) + 1):
            out.append((x, yy))
        prev_y = y
    return out


def rasterize_walls(walls: Iterable[Tuple[int, int, int, int]]) -> List[Position]:
    out: List[Position] = []
    for x1, y1, x2, y2 in walls:
        out.extend(line_to((int(x1), int(y1)), (int(x2), int(y2))))
    return out
