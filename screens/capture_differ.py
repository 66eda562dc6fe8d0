"""
Pixel-level change detection between two screenshots of the same route.

The comparison uses the YIQ perceptual colour distance (the metric used by
pixelmatch): a pixel only counts as changed when its weighted luma/chroma
delta exceeds ``35215 * threshold ** 2``, which absorbs anti-aliasing and
compression noise. A screen is flagged as changed when more than
``CHANGE_PERCENT_THRESHOLD`` percent of its pixels differ.
"""

from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

DEFAULT_PIXEL_THRESHOLD = 0.1   # per-pixel colour tolerance
CHANGE_PERCENT_THRESHOLD = 0.5  # % of pixels that must differ
MAX_YIQ_DELTA = 35215.0
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

DIMENSIONS_CHANGED = "Image dimensions changed"


class ImageDecodeError(ValueError):
    pass


@dataclass(frozen=True)
class DiffResult:
    has_changes: bool = False
    diff_percentage: float = 0.0
    change_summary: Optional[str] = None

    def as_dict(self):
        return {
            "has_changes": self.has_changes,
            "diff_percentage": self.diff_percentage,
            "change_summary": self.change_summary,
        }


FIRST_CAPTURE = DiffResult()


def decode_image(data: bytes) -> np.ndarray:
    """Decode encoded image bytes (PNG, JPEG, ...) into an RGBA uint8 array."""
    if not data:
        raise ImageDecodeError("empty image payload")
    buf = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ImageDecodeError("unable to decode image payload")

    if img.dtype == np.uint16:
        img = (img >> 8).astype(np.uint8)

    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    channels = img.shape[2]
    if channels == 1:
        return cv2.cvtColor(img[:, :, 0], cv2.COLOR_GRAY2RGBA)
    if channels == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
    if channels == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    raise ImageDecodeError(f"unsupported channel count: {channels}")


def to_png(data: bytes) -> bytes:
    """Return ``data`` as PNG bytes, re-encoding JPEG, WebP and other formats."""
    if data.startswith(PNG_SIGNATURE):
        return data
    if not data:
        raise ImageDecodeError("empty image payload")
    img = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ImageDecodeError("unable to decode image payload")
    ok, buf = cv2.imencode(".png", img)
    if not ok:
        raise ImageDecodeError("unable to encode image as png")
    return buf.tobytes()


def _blend_on_white(img: np.ndarray) -> np.ndarray:
    rgb = img[:, :, :3].astype(np.float64)
    alpha = img[:, :, 3:4].astype(np.float64) / 255.0
    return 255.0 + (rgb - 255.0) * alpha


def _yiq(rgb: np.ndarray):
    r, g, b = rgb[:, :, 0], rgb[:, :, 1], rgb[:, :, 2]
    y = r * 0.29889531 + g * 0.58662247 + b * 0.11448223
    i = r * 0.59597799 - g * 0.27417610 - b * 0.32180189
    q = r * 0.21147017 - g * 0.52261711 + b * 0.31114694
    return y, i, q


def count_diff_pixels(
    first: np.ndarray,
    second: np.ndarray,
    threshold: float = DEFAULT_PIXEL_THRESHOLD,
) -> int:
    """Number of pixels whose perceptual colour delta exceeds the threshold.

    Both arrays must be RGBA with identical shapes.
    """
    if first.shape != second.shape:
        raise ValueError(f"shape mismatch: {first.shape} != {second.shape}")

    identical = np.all(first == second, axis=2)
    if identical.all():
        return 0

    y1, i1, q1 = _yiq(_blend_on_white(first))
    y2, i2, q2 = _yiq(_blend_on_white(second))
    dy, di, dq = y1 - y2, i1 - i2, q1 - q2
    delta = 0.5053 * dy * dy + 0.299 * di * di + 0.1957 * dq * dq

    max_delta = MAX_YIQ_DELTA * threshold * threshold
    changed = (delta > max_delta) & ~identical
    return int(np.count_nonzero(changed))


def diff_images(
    new: np.ndarray,
    previous: Optional[np.ndarray],
    threshold: float = DEFAULT_PIXEL_THRESHOLD,
) -> DiffResult:
    if previous is None:
        return FIRST_CAPTURE

    if new.shape[:2] != previous.shape[:2]:
        return DiffResult(has_changes=True, change_summary=DIMENSIONS_CHANGED)

    total = new.shape[0] * new.shape[1]
    if total == 0:
        return FIRST_CAPTURE

    diff_count = count_diff_pixels(previous, new, threshold)
    diff_percentage = diff_count * 100.0 / total
    has_changes = diff_percentage > CHANGE_PERCENT_THRESHOLD

    summary = None
    if has_changes:
        summary = f"{diff_percentage:.2f}% of pixels changed"

    return DiffResult(
        has_changes=has_changes,
        diff_percentage=diff_percentage,
        change_summary=summary,
    )


def diff_screenshot(
    new_bytes: bytes,
    previous_bytes: Optional[bytes] = None,
    threshold: float = DEFAULT_PIXEL_THRESHOLD,
) -> DiffResult:
    """Diff encoded screenshots.

    An undecodable new screenshot raises ``ImageDecodeError``; an
    undecodable previous one is treated as if there were no previous capture.
    """
    new = decode_image(new_bytes)
    if previous_bytes is None:
        return FIRST_CAPTURE
    try:
        previous = decode_image(previous_bytes)
    except ImageDecodeError:
        return FIRST_CAPTURE
    return diff_images(new, previous, threshold)
