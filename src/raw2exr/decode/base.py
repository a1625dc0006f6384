from __future__ import annotations

from pathlib import Path
from typing import Protocol

import numpy as np

from .types import DecodeSettings, SensorGeometry


class DecodeError(RuntimeError):
    pass


class OpenError(DecodeError):
    pass


class UnsupportedFormatError(DecodeError):
    pass


class MissingDependencyError(DecodeError):
    pass


class GeometryMismatchError(DecodeError):
    pass


class RawSession(Protocol):
    """One opened RAW input. Sessions are never shared between files."""

    path: Path
    native_geometry: SensorGeometry
    geometry: SensorGeometry

    def set_geometry(self, geometry: SensorGeometry) -> None:
        ...

    def unpack(self) -> None:
        ...

    def process(self, settings: DecodeSettings) -> None:
        ...

    def make_mem_image(self) -> np.ndarray:
        ...

    def close(self) -> None:
        ...

    def __enter__(self) -> "RawSession":
        ...

    def __exit__(self, *exc: object) -> None:
        ...
