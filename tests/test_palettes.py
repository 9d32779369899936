import numpy as np
import pytest
from PIL import Image

from omnicolor.errors import ConfigError
from omnicolor.growth.colors import distance2, mean_color, median_color, parse_hex_color, to_hex
from omnicolor.palettes import (
    build_palette,
    palette_from_file,
    palette_from_image,
    spherical_palette,
    uniform_palette,
)
from omnicolor.params import PaletteParams


# =============================================================================
# Colors
# =============================================================================


def test_parse_hex_color():
    assert parse_hex_color("#ff6680") == (255, 102, 128)
    assert parse_hex_color("80ff66") == (128, 255, 102)
    assert to_hex((255, 102, 128)) == "ff6680"


@pytest.mark.parametrize("text", ["", "fff", "gg0000", "#1234567"])
def test_parse_hex_color_rejects(text):
    with pytest.raises(ConfigError):
        parse_hex_color(text)


def test_weighted_distance():
    assert distance2((0, 0, 0), (3, 4, 0)) == 25
    assert distance2((10, 10, 10), (9, 12, 7), (2, 1, 3)) == 2 + 4 + 27


def test_aggregation():
    colors = [(0, 10, 255), (3, 20, 0), (4, 40, 100)]
    assert mean_color(colors) == (2, 23, 118)
    assert median_color(colors) == (3, 20, 100)
    assert median_color([(0, 0, 0), (9, 9, 9)]) == (0, 0, 0)


# =============================================================================
# Generators
# =============================================================================


@pytest.mark.parametrize("n", [1, 4, 8, 27, 1000, 1001])
def test_uniform_palette_is_distinct(n):
    palette = uniform_palette(n)
    assert palette.shape == (n, 3)
    assert palette.dtype == np.uint8
    assert len(np.unique(palette, axis=0)) == n


def test_uniform_palette_levels():
    assert uniform_palette(4).tolist() == [
        [0, 0, 0],
        [255, 0, 0],
        [0, 255, 0],
        [255, 255, 0],
    ]


def test_uniform_palette_too_large():
    with pytest.raises(ConfigError):
        uniform_palette(256 ** 3 + 1)


def test_spherical_palette():
    center = (128, 64, 200)
    palette = spherical_palette(500, center, 10.0, np.random.default_rng(0))
    assert len(np.unique(palette, axis=0)) == 500
    dist = np.linalg.norm(palette.astype(float) - np.array(center), axis=1)
    assert (dist <= 10.0).all()

    again = spherical_palette(500, center, 10.0, np.random.default_rng(0))
    assert np.array_equal(palette, again)


def test_spherical_palette_clipped_at_cube_edge():
    palette = spherical_palette(50, (0, 0, 0), 5.0, np.random.default_rng(1))
    assert palette.min() >= 0
    assert len(np.unique(palette, axis=0)) == 50


def test_spherical_palette_too_small():
    with pytest.raises(ConfigError):
        spherical_palette(100, (128, 128, 128), 2.0, np.random.default_rng(0))


# =============================================================================
# Files
# =============================================================================


def test_palette_from_file(tmp_path):
    path = tmp_path / "colors.txt"
    path.write_text("#ff0000\n00ff00\n\n  0000ff  \n")
    assert palette_from_file(str(path)).tolist() == [[255, 0, 0], [0, 255, 0], [0, 0, 255]]


def test_palette_from_file_errors(tmp_path):
    with pytest.raises(ConfigError):
        palette_from_file(str(tmp_path / "missing.txt"))
    bad = tmp_path / "bad.txt"
    bad.write_text("ff0000\nnot-a-color\n")
    with pytest.raises(ConfigError):
        palette_from_file(str(bad))


def test_palette_from_image(tmp_path):
    rgb = np.array(
        [[[255, 0, 0], [0, 255, 0]], [[255, 0, 0], [0, 0, 255]]], dtype=np.uint8
    )
    path = tmp_path / "palette.png"
    Image.fromarray(rgb).save(path)
    assert palette_from_image(str(path)).tolist() == [[0, 0, 255], [0, 255, 0], [255, 0, 0]]


def test_build_palette_dispatch(tmp_path):
    rng = np.random.default_rng(0)
    assert build_palette(PaletteParams(kind="uniform"), 10, rng).shape == (10, 3)
    assert build_palette(PaletteParams(kind="uniform", size=12), 10, rng).shape == (12, 3)
    assert build_palette(PaletteParams(kind="spherical"), 10, rng).shape == (10, 3)
    with pytest.raises(ConfigError):
        build_palette(PaletteParams(kind="file"), 10, rng)
    with pytest.raises(ConfigError):
        build_palette(PaletteParams(kind="rainbow"), 10, rng)
