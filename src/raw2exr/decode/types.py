from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np


@dataclass(frozen=True)
class SensorGeometry:
    raw_width: int
    raw_height: int
    width: int
    height: int
    top_margin: int = 0
    left_margin: int = 0

    @classmethod
    def from_sizes(cls, sizes: Any) -> "SensorGeometry":
        return cls(
            raw_width=int(sizes.raw_width),
            raw_height=int(sizes.raw_height),
            width=int(sizes.width),
            height=int(sizes.height),
            top_margin=int(sizes.top_margin),
            left_margin=int(sizes.left_margin),
        )

    @property
    def is_full_sensor(self) -> bool:
        return (
            self.width == self.raw_width
            and self.height == self.raw_height
            and self.top_margin == 0
            and self.left_margin == 0
        )


OUTPUT_GAMMA_CURVES: dict[str, tuple[float, float]] = {
    "srgb": (2.4, 12.92),
    "linear": (1.0, 1.0),
}

FULL_SENSOR_DEMOSAIC_METHODS = ("bilinear", "malvar2004", "menon2007")


@dataclass(frozen=True)
class DecodeSettings:
    """Decode parameters applied to every session of a run.

    Built once and never mutated, so nothing set for one file can leak into the next.
    """

    use_camera_wb: bool = True
    no_auto_bright: bool = True
    bright: float = 1.0
    output_color: str = "sRGB"
    output_bps: int = 16
    output_gamma: str = "srgb"
    demosaic: str = "AHD"
    full_sensor_demosaic: str = "menon2007"
    user_flip: int = 0
    highlight_mode: str = "clip"
    four_color_rgb: bool = False
    full_sensor: bool = True

    def __post_init__(self) -> None:
        if self.output_gamma not in OUTPUT_GAMMA_CURVES:
            raise ValueError(f"unsupported output gamma: {self.output_gamma}")
        if self.output_bps not in (8, 16):
            raise ValueError(f"output_bps must be 8 or 16, got {self.output_bps}")
        if self.full_sensor_demosaic not in FULL_SENSOR_DEMOSAIC_METHODS:
            raise ValueError(f"unsupported full-sensor demosaic: {self.full_sensor_demosaic}")

    @property
    def gamma(self) -> tuple[float, float]:
        return OUTPUT_GAMMA_CURVES[self.output_gamma]


@dataclass
class DecodedBuffer:
    """Processed decoder output, HxWxC integer samples."""

    samples: np.ndarray

    def __post_init__(self) -> None:
        arr = np.asarray(self.samples)
        if arr.ndim == 2:
            arr = arr[..., np.newaxis]
        if arr.ndim != 3:
            raise ValueError(f"expected HxWxC decoded buffer, got {arr.shape}")
        self.samples = arr

    @property
    def height(self) -> int:
        return int(self.samples.shape[0])

    @property
    def width(self) -> int:
        return int(self.samples.shape[1])

    @property
    def channels(self) -> int:
        return int(self.samples.shape[2])

    @property
    def bits(self) -> int:
        return int(self.samples.dtype.itemsize * 8)

    def flat_index(self, row: int, col: int, channel: int = 0) -> int:
        return (row * self.width + col) * self.channels + channel
