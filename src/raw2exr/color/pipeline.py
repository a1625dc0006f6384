from __future__ import annotations

import enum

import numpy as np

from .transfer import compress, linearize, needs_compression


class TransferMode(str, enum.Enum):
    SRGB_TO_LINEAR = "srgb_to_linear"
    NONE = "none"


_MAX_CODE_VALUE = {
    8: 255.0,
    16: 65535.0,
}


def max_code_value(bits: int) -> float:
    try:
        return _MAX_CODE_VALUE[int(bits)]
    except KeyError:
        raise ValueError(f"unsupported sample bit depth: {bits}") from None


def normalize_samples(samples: np.ndarray, bits: int) -> np.ndarray:
    """Integer samples to float32 in [0, 1] using the bit depth's full-scale value."""

    scale = max_code_value(bits)
    x = np.asarray(samples, dtype=np.float32) / np.float32(scale)
    return np.clip(x, 0.0, 1.0)


def to_rgba(
    samples: np.ndarray,
    bits: int,
    transfer: TransferMode = TransferMode.SRGB_TO_LINEAR,
    exposure: float = 1.0,
) -> np.ndarray:
    """Build an HxWx4 float32 RGBA image from a decoded HxWxC integer buffer.

    Buffers with fewer than three channels are treated as grayscale and the
    first channel is replicated into R, G and B. Alpha is always 1.0.
    """

    arr = np.asarray(samples)
    if arr.ndim == 2:
        arr = arr[..., np.newaxis]
    if arr.ndim != 3 or arr.shape[2] < 1:
        raise ValueError(f"expected HxWxC sample buffer, got {arr.shape}")

    if arr.shape[2] >= 3:
        rgb = normalize_samples(arr[..., :3], bits)
    else:
        gray = normalize_samples(arr[..., :1], bits)
        rgb = np.repeat(gray, 3, axis=2)

    if TransferMode(transfer) is TransferMode.SRGB_TO_LINEAR:
        rgb = linearize(rgb)

    if needs_compression(exposure):
        rgb = compress(rgb, exposure)

    height, width, _ = rgb.shape
    rgba = np.empty((height, width, 4), dtype=np.float32)
    rgba[..., :3] = rgb
    rgba[..., 3] = 1.0
    return rgba
