from __future__ import annotations

from pathlib import Path
from typing import Callable

import numpy as np
import pytest

from raw2exr.decode import DecodeError, DecodeSettings, OpenError, SensorGeometry


VISIBLE_GEOMETRY = SensorGeometry(
    raw_width=12,
    raw_height=10,
    width=8,
    height=6,
    top_margin=2,
    left_margin=3,
)


class FakeSession:
    """In-memory stand-in for a LibRaw session.

    The memory image takes the size of whatever geometry is installed when
    ``process`` runs, unless ``ignore_geometry`` is set.
    """

    def __init__(
        self,
        path: Path,
        native_geometry: SensorGeometry = VISIBLE_GEOMETRY,
        channels: int = 3,
        dtype: type = np.uint16,
        fill: int = 32768,
        fail_stage: str | None = None,
        ignore_geometry: bool = False,
    ) -> None:
        self.path = path
        self.native_geometry = native_geometry
        self.geometry = native_geometry
        self.channels = channels
        self.dtype = dtype
        self.fill = fill
        self.fail_stage = fail_stage
        self.ignore_geometry = ignore_geometry
        self.calls: list[str] = []
        self.closed = False
        self.processed_with: DecodeSettings | None = None
        self._image: np.ndarray | None = None

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def set_geometry(self, geometry: SensorGeometry) -> None:
        self.calls.append("set_geometry")
        self.geometry = geometry

    def unpack(self) -> None:
        self.calls.append("unpack")
        if self.fail_stage == "unpack":
            raise DecodeError(f"failed to unpack {self.path}: corrupt data")

    def process(self, settings: DecodeSettings) -> None:
        self.calls.append("process")
        if self.fail_stage == "process":
            raise DecodeError(f"failed to process {self.path}: out of memory")
        self.processed_with = settings
        geom = self.native_geometry if self.ignore_geometry else self.geometry
        self._image = np.full((geom.height, geom.width, self.channels), self.fill, dtype=self.dtype)

    def make_mem_image(self) -> np.ndarray:
        self.calls.append("make_mem_image")
        if self.fail_stage == "mem" or self._image is None:
            raise DecodeError(f"failed to make memory image for {self.path}")
        return self._image

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def session_factory() -> Callable[..., Callable[[Path], FakeSession]]:
    """Build an opener returning FakeSessions; opened sessions are recorded on ``opener.sessions``."""

    def _factory(corrupt: set[str] | None = None, **session_kwargs):
        corrupt = corrupt or set()
        sessions: list[FakeSession] = []

        def _opener(path: Path) -> FakeSession:
            if path.name in corrupt:
                raise OpenError(f"failed to open {path}: unsupported file format or not RAW file")
            session = FakeSession(path, **session_kwargs)
            sessions.append(session)
            return session

        _opener.sessions = sessions  # type: ignore[attr-defined]
        return _opener

    return _factory


@pytest.fixture
def recording_writer():
    """Writer that records calls and writes a small marker file at the target path."""

    calls: list[tuple[Path, np.ndarray]] = []

    def _writer(path: Path, rgba: np.ndarray, settings=None) -> None:
        calls.append((path, rgba))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"EXR")

    _writer.calls = calls  # type: ignore[attr-defined]
    return _writer
