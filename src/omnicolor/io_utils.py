from pathlib import Path
import cv2
import numpy as np
from PIL import Image

from .errors import FrameWriteError


def imread_rgb(path: str) -> np.ndarray:
    path = str(path)
    if not Path(path).exists():
        raise FileNotFoundError(path)
    with Image.open(path) as img:
        return np.asarray(img.convert("RGB"), dtype=np.uint8)


def _to_bgra(rgba: np.ndarray) -> np.ndarray:
    try:
        return cv2.cvtColor(np.ascontiguousarray(rgba), cv2.COLOR_RGBA2BGRA)
    except cv2.error as e:
        raise FrameWriteError(f"Cannot convert frame of shape {rgba.shape}: {e}") from e


def encode_png_rgba(rgba: np.ndarray) -> bytes:
    bgra = _to_bgra(rgba)
    try:
        ok, buf = cv2.imencode(".png", bgra)
    except cv2.error as e:
        raise FrameWriteError(f"PNG encoding failed: {e}") from e
    if not ok:
        raise FrameWriteError("PNG encoding failed")
    return buf.tobytes()


def save_png_rgba(path: str, rgba: np.ndarray) -> None:
    try:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FrameWriteError(f"Cannot create directory for {path}: {e}") from e
    bgra = _to_bgra(rgba)
    try:
        ok = cv2.imwrite(str(path), bgra)
    except cv2.error as e:
        raise FrameWriteError(f"Cannot write {path}: {e}") from e
    if not ok:
        raise FrameWriteError(f"Cannot write {path}")


def save_fill_order(path: str, order: np.ndarray) -> None:
    """Writes the per-pixel fill order (0 = never filled) as a .npy array."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    np.save(str(path), order)
