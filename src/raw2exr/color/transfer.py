from __future__ import annotations

import numpy as np


# IEC 61966-2-1 sRGB constants.
_SRGB_LINEAR_CUT = 0.0031308
_SRGB_ENCODED_CUT = 0.04045
_SRGB_SLOPE = 12.92
_SRGB_SCALE = 1.055
_SRGB_OFFSET = 0.055
_SRGB_GAMMA = 2.4

NEUTRAL_EXPOSURE = 1.0

# Largest float32 below 1.0; keeps the compressed range open at the top.
_BELOW_ONE = np.nextafter(np.float32(1.0), np.float32(0.0))


def encode_srgb(linear: np.ndarray | float) -> np.ndarray:
    """Encode linear light to the sRGB transfer curve.

    Input is clamped to [0, 1] before encoding.
    """

    x = np.clip(np.asarray(linear, dtype=np.float32), 0.0, 1.0)
    high = _SRGB_SCALE * np.power(x, 1.0 / _SRGB_GAMMA) - _SRGB_OFFSET
    low = _SRGB_SLOPE * x
    y = np.where(x <= _SRGB_LINEAR_CUT, low, high)
    return y.astype(np.float32)


def linearize(sample: np.ndarray | float) -> np.ndarray:
    """Inverse of encode_srgb: sRGB-encoded samples to linear light.

    Samples outside [0, 1] saturate at the boundaries; the function never raises.
    """

    y = np.clip(np.asarray(sample, dtype=np.float32), 0.0, 1.0)
    high = np.power((y + _SRGB_OFFSET) / _SRGB_SCALE, _SRGB_GAMMA)
    low = y / _SRGB_SLOPE
    x = np.where(y <= _SRGB_ENCODED_CUT, low, high)
    return x.astype(np.float32)


def needs_compression(exposure: float) -> bool:
    return float(exposure) != NEUTRAL_EXPOSURE


def compress(linear: np.ndarray | float, exposure: float) -> np.ndarray:
    """Exposure-scaled Reinhard curve ``y / (1 + y)`` with ``y = linear * exposure``.

    Non-negative inputs map monotonically into [0, 1).
    """

    y = np.asarray(linear, dtype=np.float64) * float(exposure)
    return np.minimum(y / (1.0 + y), _BELOW_ONE).astype(np.float32)
