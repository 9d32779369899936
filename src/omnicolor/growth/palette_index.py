import logging
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from ..errors import ConfigError, EmptyPaletteError, InvariantViolation
from .colors import Color, pack, unpack

logger = logging.getLogger(__name__)

# search key = weighted distance << 24 | packed color, so the smallest key is
# the nearest color with ties going to the lowest (r, g, b)
_KEY_SHIFT = 24
_NO_KEY = np.iinfo(np.int64).max
_MAX_CHANNEL_WEIGHT = 64


@dataclass
class IndexStats:
    nodes_checked: int = 0
    leaves_checked: int = 0
    points_checked: int = 0
    rebuilds: int = 0


def _as_color_array(colors) -> np.ndarray:
    arr = np.asarray(colors)
    if arr.size == 0:
        return np.zeros((0, 3), dtype=np.int64)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ConfigError(f"Palette must have shape (N, 3), got {arr.shape}")
    if not np.issubdtype(arr.dtype, np.integer):
        raise ConfigError(f"Palette colors must be integers, got {arr.dtype}")
    if arr.min() < 0 or arr.max() > 255:
        raise ConfigError("Palette channel values must lie in 0..255")
    return arr.astype(np.int64)


class PaletteIndex:
    """
    Nearest-color index over the colors not yet consumed.

    A k-d tree stored as parallel per-node lists (an arena). Removal only
    tombstones the point and decrements the live counts on the path to the
    root; once tombstones exceed ``rebuild_ratio`` of the stored points the
    tree is rebuilt from the survivors.

    Distance is the squared euclidean RGB distance with integer per-channel
    weights. Equidistant candidates resolve to the smallest packed color.
    With ``epsilon > 0`` the search may skip a far branch whose bound is
    within a factor ``(1 + epsilon)`` of the best match (approximate, still
    deterministic).
    """

    def __init__(
        self,
        colors,
        channel_weights: Sequence[int] = (1, 1, 1),
        epsilon: float = 0.0,
        rebuild_ratio: float = 0.5,
        leaf_size: int = 32,
    ):
        weights = tuple(int(w) for w in channel_weights)
        if len(weights) != 3 or any(w < 1 or w > _MAX_CHANNEL_WEIGHT for w in weights):
            raise ConfigError(
                f"channel_weights must be 3 integers in 1..{_MAX_CHANNEL_WEIGHT}, got {channel_weights}"
            )
        if epsilon < 0:
            raise ConfigError(f"epsilon must be >= 0, got {epsilon}")
        if not 0.0 < rebuild_ratio <= 1.0:
            raise ConfigError(f"rebuild_ratio must lie in (0, 1], got {rebuild_ratio}")
        if leaf_size < 1:
            raise ConfigError(f"leaf_size must be positive, got {leaf_size}")

        self._weights = weights
        self._weight_arr = np.array(weights, dtype=np.int64)
        self._eps_scale = (1.0 + float(epsilon)) ** 2
        self._rebuild_ratio = float(rebuild_ratio)
        self._leaf_size = int(leaf_size)
        self.stats = IndexStats()

        points = _as_color_array(colors)
        packed = (points[:, 0] << 16) | (points[:, 1] << 8) | points[:, 2]
        if len(np.unique(packed)) != len(packed):
            raise ConfigError("Palette contains duplicate colors")
        self._build(points)

    @classmethod
    def initialize(cls, colors, pixel_count: int, **kwargs) -> "PaletteIndex":
        n = len(colors)
        if n < pixel_count:
            raise ConfigError(
                f"Palette has {n} colors but the canvas needs {pixel_count}"
            )
        return cls(colors, **kwargs)

    # -- construction ---------------------------------------------------

    def _build(self, points: np.ndarray) -> None:
        n = len(points)
        self._points = points.copy()
        self._alive = np.ones(n, dtype=bool)
        self._leaf_of = np.zeros(n, dtype=np.int64)
        self._stored = n
        self._live = n

        self._left: List[int] = []
        self._right: List[int] = []
        self._dim: List[int] = []
        self._split: List[int] = []
        self._lo: List[int] = []
        self._hi: List[int] = []
        self._parent: List[int] = []
        self._count: List[int] = []
        if n:
            self._grow(0, n, -1)

        p = self._points
        self._packed = (p[:, 0] << 16) | (p[:, 1] << 8) | p[:, 2]
        self._slot = {v: i for i, v in enumerate(self._packed.tolist())}

    def _grow(self, lo: int, hi: int, parent: int) -> int:
        node = len(self._count)
        self._left.append(-1)
        self._right.append(-1)
        self._dim.append(0)
        self._split.append(0)
        self._lo.append(lo)
        self._hi.append(hi)
        self._parent.append(parent)
        self._count.append(hi - lo)

        if hi - lo <= self._leaf_size:
            self._leaf_of[lo:hi] = node
            return node

        seg = self._points[lo:hi]
        dim = int(np.argmax(seg.max(axis=0) - seg.min(axis=0)))
        k = (hi - lo) // 2
        self._points[lo:hi] = seg[np.argpartition(seg[:, dim], k)]
        mid = lo + k

        self._dim[node] = dim
        self._split[node] = int(self._points[mid, dim])
        self._left[node] = self._grow(lo, mid, node)
        self._right[node] = self._grow(mid, hi, node)
        return node

    def _rebuild(self) -> None:
        survivors = self._points[self._alive]
        logger.debug(
            "Rebuilding palette index: %d live of %d stored", len(survivors), self._stored
        )
        self._build(survivors)
        self.stats.rebuilds += 1

    # -- queries --------------------------------------------------------

    def __len__(self) -> int:
        return self._live

    def __contains__(self, color) -> bool:
        return pack(color) in self._slot

    def is_empty(self) -> bool:
        return self._live == 0

    def remaining(self) -> np.ndarray:
        """Unconsumed colors as a (N, 3) uint8 array in packed order."""
        live = np.sort(self._packed[self._alive])
        out = np.stack([(live >> 16) & 0xFF, (live >> 8) & 0xFF, live & 0xFF], axis=1)
        return out.astype(np.uint8).reshape(-1, 3)

    def query_nearest(self, target: Sequence[int]) -> Color:
        if self._live == 0:
            raise EmptyPaletteError("Nearest-color query on an empty palette")
        t = tuple(int(c) for c in target)
        best = [_NO_KEY, -1]
        self._search(0, t, np.array(t, dtype=np.int64), best)
        return unpack(int(self._packed[best[1]]))

    def _search(self, node: int, t, t_arr: np.ndarray, best: list) -> None:
        if self._count[node] == 0:
            return
        stats = self.stats
        stats.nodes_checked += 1

        left = self._left[node]
        if left < 0:
            lo, hi = self._lo[node], self._hi[node]
            diff = self._points[lo:hi] - t_arr
            keys = (((diff * diff) @ self._weight_arr) << _KEY_SHIFT) | self._packed[lo:hi]
            keys[~self._alive[lo:hi]] = _NO_KEY
            i = int(np.argmin(keys))
            if keys[i] < best[0]:
                best[0] = int(keys[i])
                best[1] = lo + i
            stats.leaves_checked += 1
            stats.points_checked += hi - lo
            return

        dim = self._dim[node]
        diff = t[dim] - self._split[node]
        if diff < 0:
            near, far = left, self._right[node]
        else:
            near, far = self._right[node], left
        self._search(near, t, t_arr, best)

        # every point behind the split plane is at least this far away
        bound = diff * diff * self._weights[dim]
        if self._eps_scale == 1.0:
            bound_key = bound << _KEY_SHIFT
        else:
            bound_key = int(bound * self._eps_scale * (1 << _KEY_SHIFT))
        if best[0] >= bound_key:
            self._search(far, t, t_arr, best)

    # -- mutation -------------------------------------------------------

    def remove(self, color: Sequence[int]) -> None:
        if self._live == 0:
            raise EmptyPaletteError("Removal from an empty palette")
        key = pack(color)
        i = self._slot.pop(key, None)
        if i is None:
            raise InvariantViolation(f"Color {tuple(color)} is not in the palette")
        self._alive[i] = False
        self._live -= 1

        node = int(self._leaf_of[i])
        while node >= 0:
            self._count[node] -= 1
            node = self._parent[node]

        if self._live and self._stored - self._live > self._rebuild_ratio * self._stored:
            self._rebuild()

    def pop_nearest(self, target: Sequence[int]) -> Color:
        color = self.query_nearest(target)
        self.remove(color)
        return color
