from __future__ import annotations

import logging
from typing import Any, Callable

import numpy as np

from raw2exr.color.pipeline import max_code_value
from raw2exr.color.transfer import encode_srgb

from .base import MissingDependencyError, UnsupportedFormatError
from .types import DecodeSettings, SensorGeometry


logger = logging.getLogger(__name__)

_BAYER_PATTERNS = {"RGGB", "BGGR", "GRBG", "GBRG"}


def _demosaic_function(name: str) -> Callable[..., np.ndarray]:
    try:
        import colour_demosaicing  # type: ignore
    except Exception as exc:
        raise MissingDependencyError(
            "colour-demosaicing is required for full-sensor decode: pip install colour-demosaicing"
        ) from exc

    functions = {
        "bilinear": colour_demosaicing.demosaicing_CFA_Bayer_bilinear,
        "malvar2004": colour_demosaicing.demosaicing_CFA_Bayer_Malvar2004,
        "menon2007": colour_demosaicing.demosaicing_CFA_Bayer_Menon2007,
    }
    return functions[name]


def cfa_pattern(colors: np.ndarray, color_desc: str) -> str:
    """Bayer pattern string (e.g. ``RGGB``) for the 2x2 tile at the origin of ``colors``."""

    tile = np.asarray(colors)[:2, :2]
    if tile.shape != (2, 2):
        raise UnsupportedFormatError(f"sensor area too small for a 2x2 CFA tile: {np.asarray(colors).shape}")
    pattern = "".join(color_desc[int(c)] for c in tile.flatten())
    if pattern not in _BAYER_PATTERNS:
        raise UnsupportedFormatError(f"full-sensor decode supports Bayer sensors only, got CFA {pattern}")
    return pattern


def _four_channel(values: Any, fallback: float = 1.0, zero_means_missing: bool = True) -> np.ndarray:
    v = [float(x) for x in list(values or [])]
    while len(v) < 3:
        v.append(fallback)
    if len(v) == 3 or (zero_means_missing and v[3] <= 0.0):
        v = v[:3] + [v[1]]
    return np.asarray(v[:4], dtype=np.float32)


def white_balance_multipliers(raw: Any, use_camera_wb: bool) -> np.ndarray:
    source = raw.camera_whitebalance if use_camera_wb else raw.daylight_whitebalance
    wb = _four_channel(source)
    if not np.all(wb > 0.0):
        logger.warning("white balance multipliers unavailable (%s); using unity", list(wb))
        return np.ones(4, dtype=np.float32)
    return wb / wb.min()


def camera_to_output_matrix(raw: Any, output_color: str) -> np.ndarray:
    if output_color == "raw":
        return np.eye(3, dtype=np.float32)
    if output_color != "sRGB":
        raise UnsupportedFormatError(f"full-sensor decode supports sRGB or raw output, got {output_color}")

    matrix = np.asarray(raw.color_matrix, dtype=np.float32)[:3, :3]
    if not np.any(matrix):
        logger.warning("camera color matrix unavailable; leaving camera RGB untransformed")
        return np.eye(3, dtype=np.float32)
    return matrix


def develop_full_sensor(raw: Any, geometry: SensorGeometry, settings: DecodeSettings) -> np.ndarray:
    """Develop the requested sensor area into an HxWx3 integer image.

    Covers the part of LibRaw's processing that cannot be pointed at the
    margins through rawpy: black/white scaling, white balance with highlight
    clipping, Bayer demosaic, camera-to-sRGB matrix, output curve and
    quantization to ``settings.output_bps``.
    """

    rows = slice(geometry.top_margin, geometry.top_margin + geometry.height)
    cols = slice(geometry.left_margin, geometry.left_margin + geometry.width)

    mosaic = np.asarray(raw.raw_image, dtype=np.float32)[rows, cols]
    colors = np.asarray(raw.raw_colors)[rows, cols]
    if mosaic.shape != (geometry.height, geometry.width):
        raise UnsupportedFormatError(
            f"raw mosaic is {mosaic.shape[1]}x{mosaic.shape[0]}, "
            f"smaller than requested {geometry.width}x{geometry.height}"
        )

    color_desc = raw.color_desc
    if isinstance(color_desc, bytes):
        color_desc = color_desc.decode("ascii")
    pattern = cfa_pattern(colors, color_desc)

    black = _four_channel(raw.black_level_per_channel, fallback=0.0, zero_means_missing=False)[colors]
    white = float(raw.white_level)
    span = np.maximum(white - black, 1.0)
    linear = np.clip((mosaic - black) / span, 0.0, None)

    wb = white_balance_multipliers(raw, settings.use_camera_wb)
    linear = np.clip(linear * wb[colors], 0.0, 1.0)

    demosaic = _demosaic_function(settings.full_sensor_demosaic)
    camera_rgb = np.asarray(demosaic(linear, pattern), dtype=np.float32)

    matrix = camera_to_output_matrix(raw, settings.output_color)
    rgb = np.einsum("ij,...j->...i", matrix, camera_rgb, optimize=True)
    rgb = np.clip(rgb * np.float32(settings.bright), 0.0, 1.0)

    if settings.output_gamma == "srgb":
        rgb = encode_srgb(rgb)

    scale = max_code_value(settings.output_bps)
    dtype = np.uint16 if settings.output_bps == 16 else np.uint8
    return np.rint(rgb * scale).astype(dtype)
