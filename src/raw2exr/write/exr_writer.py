from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import tempfile

import numpy as np


RGBA_CHANNELS = ("R", "G", "B", "A")

_PIXEL_TYPES = {
    "half": ("HALF", np.float16),
    "float": ("FLOAT", np.float32),
}

_COMPRESSIONS = {
    "none": "NO_COMPRESSION",
    "rle": "RLE_COMPRESSION",
    "zips": "ZIPS_COMPRESSION",
    "zip": "ZIP_COMPRESSION",
    "piz": "PIZ_COMPRESSION",
}


class EncodeError(RuntimeError):
    pass


@dataclass(frozen=True)
class ExrSettings:
    pixel_type: str = "half"
    compression: str = "zip"

    def __post_init__(self) -> None:
        if self.pixel_type not in _PIXEL_TYPES:
            raise ValueError(f"unsupported EXR pixel type: {self.pixel_type}")
        if self.compression not in _COMPRESSIONS:
            raise ValueError(f"unsupported EXR compression: {self.compression}")


def _build_header(width: int, height: int, settings: ExrSettings) -> object:
    import Imath  # type: ignore
    import OpenEXR  # type: ignore

    header = OpenEXR.Header(width, height)
    header["compression"] = Imath.Compression(getattr(Imath.Compression, _COMPRESSIONS[settings.compression]))
    pixel_type = Imath.PixelType(getattr(Imath.PixelType, _PIXEL_TYPES[settings.pixel_type][0]))
    header["channels"] = {name: Imath.Channel(pixel_type) for name in RGBA_CHANNELS}
    return header


def _temporary_sibling(path: Path) -> Path:
    fd, name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".exr.part", dir=str(path.parent))
    os.close(fd)
    return Path(name)


def _apply_default_mode(path: Path) -> None:
    # mkstemp creates 0600; give the file the mode a plain open() would under the current umask.
    umask = os.umask(0)
    os.umask(umask)
    os.chmod(path, 0o666 & ~umask)


def write_exr_rgba(path: Path, rgba: np.ndarray, settings: ExrSettings | None = None) -> None:
    """Write an HxWx4 float image as an RGBA OpenEXR file.

    Pixels go to a temporary file next to ``path`` which is renamed into place
    only after a complete write, so a failed write never leaves a truncated EXR
    under the final name.
    """

    settings = settings or ExrSettings()
    arr = np.asarray(rgba)
    if arr.ndim != 3 or arr.shape[2] != 4:
        raise EncodeError(f"expected HxWx4 RGBA image for {path}, got {arr.shape}")

    try:
        import OpenEXR  # type: ignore
    except Exception as exc:  # pragma: no cover - optional dependency
        raise EncodeError("OpenEXR is required for EXR output: pip install OpenEXR") from exc

    height, width, _ = arr.shape
    dtype = _PIXEL_TYPES[settings.pixel_type][1]
    planes = {
        name: np.ascontiguousarray(arr[..., i], dtype=np.float32).astype(dtype).tobytes()
        for i, name in enumerate(RGBA_CHANNELS)
    }

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = _temporary_sibling(path)
    try:
        _apply_default_mode(tmp)
        exr = OpenEXR.OutputFile(str(tmp), _build_header(width, height, settings))
        try:
            exr.writePixels(planes)
        finally:
            exr.close()
        os.replace(tmp, path)
    except Exception as exc:
        tmp.unlink(missing_ok=True)
        raise EncodeError(f"EXR write error for {path}: {exc}") from exc
