import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np

from .errors import ConfigError, FrameWriteError, InvariantViolation
from .frames import FrameEmitter
from .growth.canvas import Canvas
from .growth.colors import AGGREGATORS, Color, parse_hex_color
from .growth.frontier import FrontierQueue
from .growth.palette_index import PaletteIndex
from .growth.topology import Position, rasterize_walls
from .params import AggregationPolicy, Connectivity, RunParams, SelectionPolicy

logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    IDLE = "idle"
    GROWING = "growing"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    FAILED = "failed"


TERMINAL = (RunStatus.COMPLETED, RunStatus.INCOMPLETE, RunStatus.FAILED)


@dataclass(frozen=True)
class Placement:
    position: Position
    color: Color
    order: int


@dataclass(frozen=True)
class RunResult:
    status: RunStatus
    filled: int
    unfilled: int
    remaining_colors: int
    frames_emitted: int
    reason: Optional[str] = None

    @property
    def total_steps(self) -> int:
        return self.filled


def _resolve(enum_cls, value, what: str):
    try:
        return enum_cls(value)
    except ValueError:
        options = "|".join(m.value for m in enum_cls)
        raise ConfigError(f"Unknown {what} '{value}' (expected {options})") from None


class GrowthEngine:
    """
    Places every palette color on the canvas by growing out from seed pixels.

    Each step pops a frontier site, aggregates the colors of its filled
    neighbors into a target, takes the nearest unused palette color and
    grows the frontier around the new pixel. The engine exclusively owns its
    Canvas, PaletteIndex, FrontierQueue and random generator; all mutation
    happens in ``start`` and ``step``, so a run is fully determined by its
    seed and configuration.
    """

    def __init__(
        self,
        params: RunParams,
        palette,
        emitter: Optional[FrameEmitter] = None,
    ):
        c, g = params.canvas, params.growth
        if int(c.width) <= 0 or int(c.height) <= 0:
            raise ConfigError(f"Canvas size must be positive, got {c.width}x{c.height}")
        if int(g.seed) < 0:
            raise ConfigError(f"Seed must be non-negative, got {g.seed}")
        if int(params.frames.interval) < 0:
            raise ConfigError(f"Frame interval must be >= 0, got {params.frames.interval}")
        connectivity = _resolve(Connectivity, c.connectivity, "connectivity")
        self.selection = _resolve(SelectionPolicy, g.selection, "selection policy")
        self.aggregation = _resolve(AggregationPolicy, g.aggregation, "aggregation policy")
        if not g.seeds and g.random_seeds < 1:
            raise ConfigError("No seed pixels configured")

        self.params = params
        portals = self._resolve_portals(c)
        self.canvas = Canvas(
            c.width,
            c.height,
            connectivity,
            blocked=[tuple(p) for p in c.blocked] + rasterize_walls(c.walls),
            portals=portals,
        )
        for a, b in portals:
            if self.canvas.is_blocked(a) or self.canvas.is_blocked(b):
                raise ConfigError(f"Portal {a} -> {b} touches a blocked pixel")
        if self.canvas.fillable_count == 0:
            raise ConfigError("Every pixel of the canvas is blocked")
        self._seeds = self._resolve_seeds()

        self.palette = PaletteIndex.initialize(
            palette,
            self.canvas.fillable_count,
            channel_weights=g.channel_weights,
            epsilon=g.epsilon,
            rebuild_ratio=g.rebuild_ratio,
        )
        self._rng = np.random.default_rng(int(g.seed))
        self.frontier = FrontierQueue(
            self.selection, self._rng, max_weight=self.canvas.max_degree
        )
        # resolved once; the step loop never looks at policy tags again
        self._aggregate = AGGREGATORS[self.aggregation]
        self._weighted = self.selection is SelectionPolicy.NEIGHBOR_WEIGHTED

        self.emitter = emitter
        self.status = RunStatus.IDLE
        self.reason: Optional[str] = None
        self.progress = 0

    @staticmethod
    def _resolve_portals(c) -> List[Tuple[Position, Position]]:
        out = []
        for x1, y1, x2, y2 in c.portals:
            a, b = (int(x1), int(y1)), (int(x2), int(y2))
            for x, y in (a, b):
                if not (0 <= x < c.width and 0 <= y < c.height):
                    raise ConfigError(f"Portal end {(x, y)} lies outside the canvas")
            if a == b:
                raise ConfigError(f"Portal {a} joins a pixel to itself")
            out.append((a, b))
        return out

    def _resolve_seeds(self) -> List[Tuple[Position, Optional[Color]]]:
        out = []
        seen = set()
        for s in self.params.growth.seeds:
            pos = (int(s.x), int(s.y))
            if not self.canvas.in_bounds(pos):
                raise ConfigError(f"Seed {pos} lies outside the canvas")
            if self.canvas.is_blocked(pos):
                raise ConfigError(f"Seed {pos} lies on a blocked pixel")
            if pos in seen:
                raise ConfigError(f"Seed {pos} given twice")
            seen.add(pos)
            out.append((pos, parse_hex_color(s.color) if s.color else None))
        return out

    # -- lifecycle ------------------------------------------------------

    def start(self) -> None:
        """Places the seed pixels and builds the initial frontier."""
        if self.status is not RunStatus.IDLE:
            raise InvariantViolation(f"start() called in state {self.status.value}")

        seeds = self._seeds or self._random_seeds(self.params.growth.random_seeds)
        for pos, target in seeds:
            if target is None:
                target = tuple(int(v) for v in self._rng.integers(0, 256, size=3))
            self._commit(pos, self.palette.pop_nearest(target))
        for pos, _ in seeds:
            self._grow_frontier(pos)

        self.status = RunStatus.GROWING
        logger.info(
            "Growth started: %dx%d canvas, %d seed(s), %d colors",
            self.canvas.width,
            self.canvas.height,
            len(seeds),
            len(self.palette) + len(seeds),
        )
        self._after_fill()

    def _random_seeds(self, count: int) -> List[Tuple[Position, None]]:
        candidates = self.canvas.open_positions()
        count = min(count, len(candidates))
        picks = self._rng.choice(len(candidates), size=count, replace=False)
        return [(candidates[int(i)], None) for i in picks]

    def step(self) -> Optional[Placement]:
        """
        Fills one pixel. Returns None once the run is no longer growing.

        Raises FrameWriteError (after moving to FAILED) when a frame cannot
        be written.
        """
        if self.status is not RunStatus.GROWING:
            return None

        if self.frontier.is_empty():
            self._terminate(RunStatus.INCOMPLETE)
            return None

        site = self.frontier.pop()
        neighbor_colors = self.canvas.filled_neighbor_colors(site)
        if not neighbor_colors:
            raise InvariantViolation(f"Frontier site {site} has no filled neighbor")
        color = self.palette.pop_nearest(self._aggregate(neighbor_colors))

        placement = self._commit(site, color)
        self._grow_frontier(site)
        self._after_fill()
        return placement

    def run(
        self,
        cancel: Optional[threading.Event] = None,
        max_steps: Optional[int] = None,
    ) -> RunResult:
        """
        Steps until a terminal state, ``cancel`` is set or ``max_steps`` steps ran.

        Cancellation is checked between steps only. A run stopped early keeps
        status GROWING and can be resumed with another ``run`` call.
        """
        try:
            if self.status is RunStatus.IDLE:
                self.start()
            steps = 0
            while self.status is RunStatus.GROWING:
                if cancel is not None and cancel.is_set():
                    logger.info("Growth cancelled after %d fills", self.progress)
                    break
                if max_steps is not None and steps >= max_steps:
                    break
                self.step()
                steps += 1
        except FrameWriteError as e:
            logger.error("Run failed: %s", e)
        finally:
            if self.status in TERMINAL and self.emitter is not None:
                self.emitter.close()
        return self.result()

    def result(self) -> RunResult:
        return RunResult(
            status=self.status,
            filled=self.canvas.filled_count,
            unfilled=self.canvas.unfilled_count,
            remaining_colors=len(self.palette),
            frames_emitted=self.emitter.frames_emitted if self.emitter else 0,
            reason=self.reason,
        )

    # -- internals ------------------------------------------------------

    def _commit(self, pos: Position, color: Color) -> Placement:
        order = self.canvas.filled_count + 1
        self.canvas.fill(pos, color, order)
        self.progress = order
        return Placement(pos, color, order)

    def _grow_frontier(self, pos: Position) -> None:
        canvas, frontier = self.canvas, self.frontier
        for n in canvas.open_neighbors(pos):
            if self._weighted:
                frontier.push(n, canvas.filled_neighbor_count(n))
            elif n not in frontier:
                frontier.push(n)

    def _after_fill(self) -> None:
        try:
            if self.emitter is not None:
                self.emitter.maybe_emit(self.progress, self.canvas)
        except FrameWriteError as e:
            self._fail(e)
            raise
        if self.canvas.is_full():
            self._terminate(RunStatus.COMPLETED)

    def _terminate(self, status: RunStatus) -> None:
        self.status = status
        if status is RunStatus.INCOMPLETE:
            self.reason = (
                f"Frontier exhausted with {self.canvas.unfilled_count} unreachable pixel(s)"
            )
            logger.warning(self.reason)
        else:
            logger.info("Growth completed after %d fills", self.progress)
        if self.emitter is not None:
            try:
                self.emitter.finish(self.canvas)
            except FrameWriteError as e:
                self._fail(e)
                raise

    def _fail(self, err: FrameWriteError) -> None:
        self.status = RunStatus.FAILED
        self.reason = str(err)
