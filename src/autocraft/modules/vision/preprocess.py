"""
Tooltip image preprocessing for OCR.

Two fixed variants per capture:

- A: upscaled grayscale with a mild contrast stretch (keeps thin glyphs)
- B: stronger contrast, inverted, sharpened and binarized (removes the
  tooltip background texture)
"""
from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, List, Optional, Union

import cv2  # type: ignore
import numpy as np

from ...core.config import settings
from ...core.logger import logger
from ..capability.types import CaptureError, Region

ImageLike = Union[bytes, np.ndarray]

_SHARPEN_KERNEL = np.array(
    [
        [0, -1, 0],
        [-1, 5, -1],
        [0, -1, 0],
    ],
    dtype=np.float32,
)

_log = logger.bind(module="preprocess")


def load_image(img: ImageLike) -> np.ndarray:
    """Decode PNG/JPEG bytes or pass an ndarray through."""
    if isinstance(img, np.ndarray):
        return img
    if isinstance(img, (bytes, bytearray)):
        arr = np.frombuffer(img, dtype=np.uint8)
        mat = cv2.imdecode(arr, cv2.IMREAD_COLOR)
        if mat is None:
            raise ValueError("Failed to decode image bytes")
        return mat
    raise TypeError(f"Unsupported image type: {type(img)}")


def to_gray(img: np.ndarray) -> np.ndarray:
    """BGR to grayscale (no-op if already single-channel)."""
    if img.ndim == 2:
        return img
    return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)


def trim_left_icons(img: np.ndarray, ratio: Optional[float] = None) -> np.ndarray:
    """Drop the icon column on the left of the tooltip.

    Only trims when more than 30 px of width would remain.
    """
    if ratio is None:
        ratio = settings.capture_left_trim_ratio
    width = img.shape[1]
    trim = int(width * ratio)
    if width - trim > 30:
        return img[:, trim:]
    return img


def adjust_contrast(gray: np.ndarray, amount: float) -> np.ndarray:
    """Contrast around mid-gray, ``amount`` in (-1, 1)."""
    factor = (amount + 1.0) / (1.0 - amount)
    out = factor * (gray.astype(np.float32) - 127.0) + 127.0
    return np.clip(out, 0, 255).astype(np.uint8)


def adjust_brightness(gray: np.ndarray, amount: float) -> np.ndarray:
    """Lift (``amount`` > 0) or darken (``amount`` < 0) toward white/black."""
    data = gray.astype(np.float32)
    if amount < 0:
        out = data * (1.0 + amount)
    else:
        out = data + (255.0 - data) * amount
    return np.clip(out, 0, 255).astype(np.uint8)


def stretch(gray: np.ndarray) -> np.ndarray:
    """Histogram stretch to the full 0-255 range."""
    return cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX)


def _upscaled_gray(img: np.ndarray, scale: int) -> np.ndarray:
    height, width = img.shape[:2]
    resized = cv2.resize(
        img,
        (max(1, width * scale), max(1, height * scale)),
        interpolation=cv2.INTER_CUBIC,
    )
    return to_gray(resized)


def contrast_variant(img: np.ndarray, scale: Optional[int] = None) -> np.ndarray:
    """Variant A."""
    gray = _upscaled_gray(img, scale or settings.capture_scale)
    gray = adjust_contrast(gray, 0.35)
    gray = stretch(gray)
    return adjust_brightness(gray, 0.05)


def threshold_variant(
    img: np.ndarray,
    scale: Optional[int] = None,
    threshold: Optional[int] = None,
) -> np.ndarray:
    """Variant B: inverted and binarized."""
    if threshold is None:
        threshold = settings.capture_threshold
    gray = _upscaled_gray(img, scale or settings.capture_scale)
    gray = adjust_contrast(gray, 0.55)
    gray = stretch(gray)
    gray = adjust_brightness(gray, 0.03)
    gray = cv2.bitwise_not(gray)
    gray = cv2.filter2D(gray, -1, _SHARPEN_KERNEL)
    _, binary = cv2.threshold(gray, threshold, 255, cv2.THRESH_BINARY)
    return binary


def ocr_variants(img: ImageLike) -> List[np.ndarray]:
    """Both variants of a captured tooltip image, A first."""
    mat = trim_left_icons(load_image(img))
    return [contrast_variant(mat), threshold_variant(mat)]


class PreprocessingCapture:
    """Sync CaptureCapability built on a raw region grabber.

    ``grabber`` returns the BGR pixels (or encoded bytes) of a screen
    region; wrap the instance in ``AsyncCaptureAdapter`` for the executor.
    """

    def __init__(
        self,
        grabber: Callable[[Region], ImageLike],
        debug_dir: Optional[str] = None,
    ) -> None:
        self._grabber = grabber
        debug_dir = debug_dir or settings.debug_capture_dir
        self._debug_dir = Path(debug_dir) if debug_dir else None

    def grab_region(self, region: Region) -> np.ndarray:
        if not region.is_valid():
            raise CaptureError(f"invalid region: {region.as_tuple()}")
        image = load_image(self._grabber(region))
        if image.size == 0:
            raise CaptureError(f"empty capture for region {region.as_tuple()}")
        return image

    def variants(self, image: ImageLike) -> List[np.ndarray]:
        images = ocr_variants(image)
        if self._debug_dir is not None:
            self._save_debug(images)
        return images

    def _save_debug(self, images: List[np.ndarray]) -> None:
        self._debug_dir.mkdir(parents=True, exist_ok=True)
        stamp = time.strftime("%Y%m%d-%H%M%S")
        for suffix, image in zip("ab", images):
            path = self._debug_dir / f"check-{stamp}-{suffix}.png"
            if not cv2.imwrite(str(path), image):
                _log.warning(f"could not write debug capture {path}")


__all__ = [
    "PreprocessingCapture",
    "adjust_brightness",
    "adjust_contrast",
    "contrast_variant",
    "load_image",
    "ocr_variants",
    "stretch",
    "threshold_variant",
    "to_gray",
    "trim_left_icons",
]
