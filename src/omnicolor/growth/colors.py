from typing import Callable, Dict, Sequence, Tuple

from ..errors import ConfigError
from ..params import AggregationPolicy

Color = Tuple[int, int, int]


def pack(color: Sequence[int]) -> int:
    """Packs (r, g, b) into one int. Ordering of packed values is lexicographic over channels."""
    r, g, b = color
    return (int(r) << 16) | (int(g) << 8) | int(b)


def unpack(value: int) -> Color:
    return ((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)


def parse_hex_color(text: str) -> Color:
    s = text.strip().lstrip("#")
    if len(s) != 6:
        raise ConfigError(f"Expected a 6 digit hex color, got '{text}'")
    try:
        return (int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16))
    except ValueError:
        raise ConfigError(f"Invalid hex color '{text}'") from None


def to_hex(color: Sequence[int]) -> str:
    return "{:02x}{:02x}{:02x}".format(*(int(c) for c in color))


def distance2(a: Sequence[int], b: Sequence[int], weights: Sequence[int] = (1, 1, 1)) -> int:
    return sum(w * (int(x) - int(y)) ** 2 for x, y, w in zip(a, b, weights))


def mean_color(colors: Sequence[Color]) -> Color:
    n = len(colors)
    r = sum(c[0] for c in colors)
    g = sum(c[1] for c in colors)
    b = sum(c[2] for c in colors)
    return (r // n, g // n, b // n)


def median_color(colors: Sequence[Color]) -> Color:
    mid = (len(colors) - 1) // 2
    return tuple(sorted(c[k] for c in colors)[mid] for k in range(3))


AGGREGATORS: Dict[AggregationPolicy, Callable[[Sequence[Color]], Color]] = {
    AggregationPolicy.MEAN: mean_color,
    AggregationPolicy.MEDIAN: median_color,
}
