from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import numpy as np

from .base import DecodeError, MissingDependencyError, OpenError
from .full_sensor import develop_full_sensor
from .types import DecodeSettings, SensorGeometry


logger = logging.getLogger(__name__)


try:
    import rawpy  # type: ignore
except Exception:  # pragma: no cover - dependency is optional at import time
    rawpy = None


def _libraw_errors() -> tuple[type[BaseException], ...]:
    if rawpy is None:
        return (OSError,)
    return (rawpy.LibRawError, OSError)


def rawpy_params(settings: DecodeSettings) -> Any:
    """Fresh rawpy.Params for one session; never shared between files."""

    return rawpy.Params(
        demosaic_algorithm=rawpy.DemosaicAlgorithm[settings.demosaic.upper()],
        use_camera_wb=settings.use_camera_wb,
        use_auto_wb=False,
        no_auto_bright=settings.no_auto_bright,
        bright=float(settings.bright),
        output_color=getattr(rawpy.ColorSpace, settings.output_color),
        output_bps=int(settings.output_bps),
        gamma=settings.gamma,
        user_flip=int(settings.user_flip),
        highlight_mode=getattr(rawpy.HighlightMode, settings.highlight_mode.capitalize()),
        four_color_rgb=settings.four_color_rgb,
    )


class LibRawSession:
    """RawSession backed by rawpy (LibRaw)."""

    def __init__(self, raw: Any, path: Path) -> None:
        self._raw = raw
        self.path = path
        self.native_geometry = SensorGeometry.from_sizes(raw.sizes)
        self.geometry = self.native_geometry
        self._unpacked = False
        self._processed = False
        self._developed: np.ndarray | None = None

    def __enter__(self) -> "LibRawSession":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def set_geometry(self, geometry: SensorGeometry) -> None:
        if self._unpacked:
            raise RuntimeError(f"sensor geometry must be set before unpack: {self.path}")
        self.geometry = geometry

    def unpack(self) -> None:
        try:
            self._raw.unpack()
        except _libraw_errors() as exc:
            raise DecodeError(f"failed to unpack {self.path}: {exc}") from exc
        self._unpacked = True

    def process(self, settings: DecodeSettings) -> None:
        if not self._unpacked:
            raise RuntimeError(f"process called before unpack: {self.path}")

        try:
            if self.geometry == self.native_geometry:
                self._raw.dcraw_process(rawpy_params(settings))
            else:
                logger.debug(
                    "developing %sx%s sensor area outside LibRaw crop for %s",
                    self.geometry.width,
                    self.geometry.height,
                    self.path.name,
                )
                self._developed = develop_full_sensor(self._raw, self.geometry, settings)
        except DecodeError:
            raise
        except _libraw_errors() as exc:
            raise DecodeError(f"failed to process {self.path}: {exc}") from exc
        self._processed = True

    def make_mem_image(self) -> np.ndarray:
        if not self._processed:
            raise RuntimeError(f"make_mem_image called before process: {self.path}")
        if self._developed is not None:
            return self._developed
        try:
            image = self._raw.dcraw_make_mem_image()
        except _libraw_errors() as exc:
            raise DecodeError(f"failed to make memory image for {self.path}: {exc}") from exc
        if image is None:
            raise DecodeError(f"failed to make memory image for {self.path}: no image returned")
        return np.asarray(image)

    def close(self) -> None:
        self._developed = None
        self._raw.close()


def open_session(path: Path) -> LibRawSession:
    if rawpy is None:
        raise MissingDependencyError("rawpy is required for RAW decode: pip install rawpy")

    raw = rawpy.RawPy()
    try:
        raw.open_file(str(path))
    except _libraw_errors() as exc:
        raw.close()
        raise OpenError(f"failed to open {path}: {exc}") from exc
    return LibRawSession(raw, path)
