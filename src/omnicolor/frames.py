import logging
import queue
import threading
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple

from .errors import ConfigError, FrameWriteError
from .growth.canvas import Canvas, CanvasSnapshot
from .io_utils import encode_png_rgba, save_png_rgba

logger = logging.getLogger(__name__)


class MemorySink:
    """Keeps every frame in memory; handy for previews and tests."""

    def __init__(self):
        self.frames: List[Tuple[int, CanvasSnapshot]] = []

    def write(self, index: int, snapshot: CanvasSnapshot) -> None:
        self.frames.append((index, snapshot))


class PngDirectorySink:
    """Writes frame_000000.png, frame_000001.png, ... into a directory."""

    def __init__(self, directory: str, prefix: str = "frame", digits: int = 6):
        self.directory = Path(directory)
        self.prefix = prefix
        self.digits = digits

    def path_for(self, index: int) -> Path:
        return self.directory / f"{self.prefix}_{index:0{self.digits}d}.png"

    def write(self, index: int, snapshot: CanvasSnapshot) -> None:
        save_png_rgba(str(self.path_for(index)), snapshot.rgba)


class PngStreamSink:
    """
    Writes concatenated PNG images to a binary stream, e.g. the stdin of
    ``ffmpeg -f image2pipe -i - out.mp4``.
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream

    def write(self, index: int, snapshot: CanvasSnapshot) -> None:
        data = encode_png_rgba(snapshot.rgba)
        try:
            self.stream.write(data)
            self.stream.flush()
        except (OSError, ValueError) as e:
            raise FrameWriteError(f"Cannot write frame {index} to stream: {e}") from e


class _FrameWriter(threading.Thread):
    """Single background thread writing queued snapshots in order."""

    def __init__(self, sink, max_pending: int):
        super().__init__(daemon=True, name="omnicolor-frame-writer")
        self.sink = sink
        self.pending: "queue.Queue[Optional[Tuple[int, CanvasSnapshot]]]" = queue.Queue(
            maxsize=max_pending
        )
        self.error: Optional[Exception] = None

    def run(self):
        while True:
            item = self.pending.get()
            try:
                if item is None:
                    return
                # after a failure later frames are dropped, earlier ones stay on disk
                if self.error is None:
                    index, snapshot = item
                    try:
                        self.sink.write(index, snapshot)
                    except Exception as e:
                        self.error = e
            finally:
                self.pending.task_done()


class FrameEmitter:
    """
    Exports canvas snapshots every ``interval`` steps.

    Frame indices start at 0 and have no gaps. With ``background=True`` the
    snapshots are written by one worker thread through a bounded queue;
    ``maybe_emit`` blocks when ``max_pending`` frames are waiting.
    """

    def __init__(self, sink, interval: int, background: bool = False, max_pending: int = 4):
        if interval < 0:
            raise ConfigError(f"Frame interval must be >= 0, got {interval}")
        if max_pending < 1:
            raise ConfigError(f"max_pending must be positive, got {max_pending}")
        self.sink = sink
        self.interval = int(interval)
        self.frames_emitted = 0
        self.last_step: Optional[int] = None
        self._writer: Optional[_FrameWriter] = None
        if background and self.interval > 0:
            self._writer = _FrameWriter(sink, max_pending)
            self._writer.start()

    @property
    def enabled(self) -> bool:
        return self.interval > 0

    def maybe_emit(self, step_index: int, canvas: Canvas) -> bool:
        self._raise_pending()
        if not self.enabled or step_index % self.interval != 0:
            return False
        if step_index == self.last_step:
            return False
        self._emit(step_index, canvas.snapshot())
        return True

    def finish(self, canvas: Canvas) -> None:
        """Emits the final canvas unless it already was the last frame, then drains."""
        if self.enabled and self.last_step != canvas.filled_count:
            self._raise_pending()
            self._emit(canvas.filled_count, canvas.snapshot())
        self.drain()

    def drain(self) -> None:
        if self._writer is not None:
            self._writer.pending.join()
        self._raise_pending()

    def close(self) -> None:
        writer, self._writer = self._writer, None
        if writer is not None:
            writer.pending.put(None)
            writer.join()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _emit(self, step_index: int, snapshot: CanvasSnapshot) -> None:
        index = self.frames_emitted
        if self._writer is not None:
            self._writer.pending.put((index, snapshot))
        else:
            try:
                self.sink.write(index, snapshot)
            except FrameWriteError:
                raise
            except Exception as e:
                raise FrameWriteError(f"Cannot write frame {index}: {e}") from e
        self.frames_emitted += 1
        self.last_step = step_index
        logger.debug("Frame %d at step %d", index, step_index)

    def _raise_pending(self) -> None:
        if self._writer is None or self._writer.error is None:
            return
        err = self._writer.error
        if isinstance(err, FrameWriteError):
            raise err
        raise FrameWriteError(f"Frame writer failed: {err}") from err
