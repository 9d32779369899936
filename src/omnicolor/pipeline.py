import logging
import threading
from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

from .engine import GrowthEngine, RunResult, RunStatus
from .errors import FrameWriteError
from .frames import FrameEmitter, PngDirectorySink
from .growth.palette_index import IndexStats
from .growth.topology import rasterize_walls
from .palettes import build_palette
from .params import RunParams

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    result: RunResult
    rgba: np.ndarray
    fill_order: np.ndarray
    index_stats: IndexStats


def fillable_pixels(p: RunParams) -> int:
    w, h = p.canvas.width, p.canvas.height
    blocked = {
        (x, y)
        for x, y in [tuple(b) for b in p.canvas.blocked] + rasterize_walls(p.canvas.walls)
        if 0 <= x < w and 0 <= y < h
    }
    return w * h - len(blocked)


def run_pipeline(
    p: RunParams,
    palette: Optional[np.ndarray] = None,
    sink=None,
    cancel: Optional[threading.Event] = None,
) -> PipelineResult:
    if palette is None:
        palette = build_palette(
            p.palette, fillable_pixels(p), np.random.default_rng(p.growth.seed)
        )

    emitter = None
    if p.frames.interval > 0:
        if sink is None:
            sink = PngDirectorySink(p.frames.directory, p.frames.prefix)
        emitter = FrameEmitter(
            sink,
            p.frames.interval,
            background=p.frames.background,
            max_pending=p.frames.max_pending,
        )

    engine = GrowthEngine(p, palette, emitter)
    try:
        result = engine.run(cancel=cancel)
        if emitter is not None and result.status is RunStatus.GROWING:
            # cancelled: frames still queued must reach the sink before close
            try:
                emitter.drain()
            except FrameWriteError as e:
                logger.error("Frame output failed after cancel: %s", e)
                result = replace(result, status=RunStatus.FAILED, reason=str(e))
    finally:
        if emitter is not None:
            emitter.close()

    return PipelineResult(
        result=result,
        rgba=engine.canvas.snapshot().rgba,
        fill_order=engine.canvas.fill_order(),
        index_stats=engine.palette.stats,
    )
