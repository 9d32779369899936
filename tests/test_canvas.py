import numpy as np
import pytest

from omnicolor.errors import InvariantViolation
from omnicolor.growth.canvas import Canvas
from omnicolor.growth.topology import line_to, rasterize_walls
from omnicolor.params import Connectivity


# =============================================================================
# Neighborhoods
# =============================================================================


def test_corner_neighbors():
    four = Canvas(3, 3, Connectivity.FOUR)
    eight = Canvas(3, 3, Connectivity.EIGHT)
    assert set(four.neighbors((0, 0))) == {(1, 0), (0, 1)}
    assert set(eight.neighbors((0, 0))) == {(1, 0), (0, 1), (1, 1)}


def test_center_neighbors():
    assert len(Canvas(3, 3, "four").neighbors((1, 1))) == 4
    assert len(Canvas(3, 3, "eight").neighbors((1, 1))) == 8


def test_filled_neighbor_colors_and_open_neighbors():
    c = Canvas(3, 3, Connectivity.FOUR)
    c.fill((1, 0), (10, 20, 30), 1)
    c.fill((0, 1), (40, 50, 60), 2)
    assert sorted(c.filled_neighbor_colors((1, 1))) == [(10, 20, 30), (40, 50, 60)]
    assert c.filled_neighbor_count((1, 1)) == 2
    assert set(c.open_neighbors((1, 1))) == {(2, 1), (1, 2)}
    assert c.filled_neighbor_colors((2, 2)) == []


def test_portal_links_both_ends():
    c = Canvas(5, 5, "four", portals=[((0, 0), (4, 4)), ((0, 0), (1, 0))])
    assert set(c.neighbors((0, 0))) == {(1, 0), (0, 1), (4, 4)}
    assert set(c.neighbors((4, 4))) == {(3, 4), (4, 3), (0, 0)}
    # a portal onto an existing grid neighbor adds nothing
    assert len(c.neighbors((1, 0))) == 3
    assert c.max_degree == 5

    c.fill((4, 4), (9, 9, 9), 1)
    assert c.filled_neighbor_colors((0, 0)) == [(9, 9, 9)]


@pytest.mark.parametrize("portal", [((0, 0), (0, 0)), ((0, 0), (5, 0))])
def test_bad_portal_is_invariant_violation(portal):
    with pytest.raises(InvariantViolation):
        Canvas(5, 5, portals=[portal])


# =============================================================================
# Filling
# =============================================================================


def test_fill_tracks_counts():
    c = Canvas(2, 2, Connectivity.FOUR)
    assert c.unfilled_count == 4
    c.fill((0, 0), (1, 2, 3), 1)
    assert c.is_filled((0, 0))
    assert c.color_at((0, 0)) == (1, 2, 3)
    assert c.order_at((0, 0)) == 1
    assert c.color_at((1, 1)) is None
    assert c.filled_count == 1
    assert c.unfilled_count == 3
    assert not c.is_full()


def test_double_fill_is_invariant_violation():
    c = Canvas(2, 2)
    c.fill((0, 0), (0, 0, 0), 1)
    with pytest.raises(InvariantViolation):
        c.fill((0, 0), (1, 1, 1), 2)


@pytest.mark.parametrize("order", [0, 2, -1])
def test_out_of_sequence_order_is_invariant_violation(order):
    c = Canvas(2, 2)
    with pytest.raises(InvariantViolation):
        c.fill((0, 0), (0, 0, 0), order)


def test_fill_blocked_or_outside():
    c = Canvas(2, 2, blocked=[(1, 1)])
    with pytest.raises(InvariantViolation):
        c.fill((1, 1), (0, 0, 0), 1)
    with pytest.raises(InvariantViolation):
        c.fill((2, 0), (0, 0, 0), 1)


def test_blocked_pixels():
    c = Canvas(3, 3, blocked=[(1, 1), (1, 1), (5, 5)])
    assert c.fillable_count == 8
    assert c.is_blocked((1, 1))
    assert not c.is_open((1, 1))
    assert (1, 1) not in c.open_neighbors((0, 0))
    assert (1, 1) not in c.open_positions()
    assert len(c.open_positions()) == 8


# =============================================================================
# Snapshots
# =============================================================================


def test_snapshot_does_not_alias_canvas():
    c = Canvas(2, 1)
    c.fill((0, 0), (255, 0, 0), 1)
    snap = c.snapshot()
    c.fill((1, 0), (0, 255, 0), 2)

    assert snap.filled == 1
    assert snap.rgba[0, 0].tolist() == [255, 0, 0, 255]
    assert snap.rgba[0, 1].tolist() == [0, 0, 0, 0]
    assert not snap.rgba.flags.writeable
    assert c.snapshot().rgba[0, 1].tolist() == [0, 255, 0, 255]


def test_fill_order_copy():
    c = Canvas(2, 1)
    c.fill((1, 0), (1, 1, 1), 1)
    order = c.fill_order()
    order[0, 0] = 99
    assert c.fill_order().tolist() == [[0, 1]]
    assert order.dtype == np.int64


# =============================================================================
# Walls
# =============================================================================


def test_line_to_vertical_and_horizontal():
    assert line_to((0, 0), (0, 0)) == [(0, 0)]
    assert line_to((0, 0), (0, 3)) == [(0, 0), (0, 1), (0, 2), (0, 3)]
    assert line_to((0, 0), (3, 0)) == [(0, 0), (1, 0), (2, 0), (3, 0)]


def test_line_to_has_no_diagonal_gaps():
    assert line_to((0, 0), (3, 3)) == [
        (0, 0), (1, 0), (1, 1), (2, 1), (2, 2), (3, 2), (3, 3),
    ]
    assert line_to((0, 0), (3, 2)) == [
        (0, 0), (1, 0), (2, 0), (2, 1), (3, 1), (3, 2),
    ]
    assert line_to((0, 0), (2, 3)) == [
        (0, 0), (1, 0), (1, 1), (2, 1), (2, 2), (2, 3),
    ]
    assert line_to((1, -1), (3, 2)) == [
        (1, -1), (2, -1), (2, 0), (3, 0), (3, 1), (3, 2),
    ]


def edge_connected(pixels):
    todo, seen = [pixels[0]], {pixels[0]}
    rest = set(pixels)
    while todo:
        x, y = todo.pop()
        for n in ((x + 1, y), (x - 1, y), (x, y + 1), (x, y - 1)):
            if n in rest and n not in seen:
                seen.add(n)
                todo.append(n)
    return seen == rest


def test_line_to_keeps_both_endpoints_and_edge_contact():
    points = [(x, y) for x in range(7) for y in range(7)]
    for start in points:
        for end in points:
            line = line_to(start, end)
            assert start in line and end in line, (start, end)
            assert edge_connected(line), (start, end)


def test_line_to_steep_slope_reaches_last_row():
    # slope 6/5, the last column climbs from row 4 to row 6
    line = line_to((1, 0), (6, 6))
    assert line[0] == (1, 0)
    assert line[-3:] == [(6, 4), (6, 5), (6, 6)]


def test_rasterize_walls():
    assert rasterize_walls([(0, 0, 0, 1), (2, 0, 3, 0)]) == [(0, 0), (0, 1), (2, 0), (3, 0)]
