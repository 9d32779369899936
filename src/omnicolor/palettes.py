import math
from pathlib import Path
from typing import Sequence

import numpy as np

from .errors import ConfigError
from .growth.colors import parse_hex_color
from .io_utils import imread_rgb
from .params import PaletteParams

MAX_COLORS = 256 ** 3


def uniform_palette(n_colors: int) -> np.ndarray:
    """
    Returns ``n_colors`` distinct colors spread over the RGB cube.

    Each channel takes k evenly spaced levels (k = ceil(cbrt(n))); colors are
    enumerated with red varying fastest and the first ``n_colors`` kept.
    """
    if n_colors < 0 or n_colors > MAX_COLORS:
        raise ConfigError(f"Cannot build a uniform palette of {n_colors} colors")
    if n_colors == 0:
        return np.zeros((0, 3), dtype=np.uint8)

    k = max(1, int(round(n_colors ** (1.0 / 3.0))))
    while k ** 3 < n_colors:
        k += 1
    levels = np.round(np.linspace(0, 255, k)).astype(np.uint8) if k > 1 else np.zeros(1, np.uint8)

    i = np.arange(n_colors)
    return np.stack(
        [levels[i % k], levels[(i // k) % k], levels[i // (k * k)]], axis=1
    ).astype(np.uint8)


def spherical_palette(
    n_colors: int,
    central_color: Sequence[int],
    color_radius: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """Draws ``n_colors`` distinct colors within ``color_radius`` of ``central_color``."""
    if color_radius <= 0:
        raise ConfigError(f"color_radius must be positive, got {color_radius}")
    c = np.array(central_color, dtype=np.int64)
    r = int(math.ceil(color_radius))
    lo = np.maximum(c - r, 0)
    hi = np.minimum(c + r, 255)
    axes = [np.arange(lo[k], hi[k] + 1, dtype=np.int64) for k in range(3)]
    grid = np.stack(np.meshgrid(*axes, indexing="ij"), axis=-1).reshape(-1, 3)
    inside = grid[((grid - c) ** 2).sum(axis=1) <= color_radius ** 2]

    if len(inside) < n_colors:
        raise ConfigError(
            f"Only {len(inside)} colors lie within radius {color_radius}, {n_colors} requested"
        )
    pick = np.sort(rng.choice(len(inside), size=n_colors, replace=False))
    return inside[pick].astype(np.uint8)


def palette_from_file(path: str) -> np.ndarray:
    """Reads one hex color per line (leading '#' optional, blank lines skipped)."""
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Palette file not found: {path}")
    colors = [
        parse_hex_color(line)
        for line in p.read_text().splitlines()
        if line.strip()
    ]
    return np.array(colors, dtype=np.uint8).reshape(-1, 3)


def palette_from_image(path: str) -> np.ndarray:
    """Unique colors of an image, in packed (r, g, b) order."""
    try:
        rgb = imread_rgb(path)
    except FileNotFoundError:
        raise ConfigError(f"Palette image not found: {path}") from None
    return np.unique(rgb.reshape(-1, 3), axis=0).astype(np.uint8)


def build_palette(
    params: PaletteParams, pixel_count: int, rng: np.random.Generator
) -> np.ndarray:
    n = params.size if params.size is not None else pixel_count
    if params.kind == "uniform":
        return uniform_palette(n)
    if params.kind == "spherical":
        return spherical_palette(
            n, parse_hex_color(params.central_color), params.color_radius, rng
        )
    if params.kind in ("file", "image"):
        if not params.path:
            raise ConfigError(f"Palette kind '{params.kind}' needs a path")
        if params.kind == "file":
            return palette_from_file(params.path)
        return palette_from_image(params.path)
    raise ConfigError(f"Unknown palette kind '{params.kind}'")
