from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class Connectivity(str, Enum):
    FOUR = "four"
    EIGHT = "eight"


class SelectionPolicy(str, Enum):
    UNIFORM_RANDOM = "uniform_random"
    NEIGHBOR_WEIGHTED = "neighbor_weighted"


class AggregationPolicy(str, Enum):
    MEAN = "mean"
    MEDIAN = "median"


@dataclass
class CanvasParams:
    width: int = 256
    height: int = 256
    connectivity: str = "eight"  # four|eight
    # (x1, y1, x2, y2) line segments rasterized as blocked pixels
    walls: List[Tuple[int, int, int, int]] = field(default_factory=list)
    blocked: List[Tuple[int, int]] = field(default_factory=list)
    # (x1, y1, x2, y2) pixel pairs treated as adjacent to each other
    portals: List[Tuple[int, int, int, int]] = field(default_factory=list)


@dataclass
class PaletteParams:
    kind: str = "uniform"  # uniform|spherical|file|image
    size: Optional[int] = None  # None = number of fillable pixels
    central_color: str = "ff6680"
    color_radius: float = 50.0
    path: Optional[str] = None


@dataclass
class SeedParams:
    x: int = 0
    y: int = 0
    color: Optional[str] = None  # hex; None = random target color


@dataclass
class GrowthParams:
    seed: int = 0
    selection: str = "uniform_random"  # uniform_random|neighbor_weighted
    aggregation: str = "mean"  # mean|median
    seeds: List[SeedParams] = field(default_factory=list)
    random_seeds: int = 1  # used only when seeds is empty
    epsilon: float = 0.0  # 0 = exact nearest color
    channel_weights: Tuple[int, int, int] = (1, 1, 1)
    rebuild_ratio: float = 0.5


@dataclass
class FrameParams:
    interval: int = 0  # 0 = off
    directory: str = "frames"
    prefix: str = "frame"
    background: bool = False
    max_pending: int = 4


@dataclass
class RunParams:
    canvas: CanvasParams = field(default_factory=CanvasParams)
    palette: PaletteParams = field(default_factory=PaletteParams)
    growth: GrowthParams = field(default_factory=GrowthParams)
    frames: FrameParams = field(default_factory=FrameParams)
