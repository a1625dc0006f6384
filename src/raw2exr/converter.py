from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from pathlib import Path
from typing import Callable

import numpy as np

from raw2exr.color import TransferMode, to_rgba
from raw2exr.color.transfer import needs_compression
from raw2exr.decode import (
    DecodedBuffer,
    DecodeError,
    DecodeSettings,
    RawSession,
    UnsupportedFormatError,
    apply_full_sensor_override,
    check_decoded_geometry,
    open_session,
)
from raw2exr.write import EncodeError, ExrSettings, write_exr_rgba


logger = logging.getLogger(__name__)

SessionOpener = Callable[[Path], RawSession]
RgbaWriter = Callable[[Path, np.ndarray, ExrSettings], None]


@dataclass(frozen=True)
class ConversionOptions:
    transfer: TransferMode = TransferMode.SRGB_TO_LINEAR
    exposure: float = 1.0
    decode: DecodeSettings = field(default_factory=DecodeSettings)
    exr: ExrSettings = field(default_factory=ExrSettings)
    require_rgb: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "transfer", TransferMode(self.transfer))
        exposure = float(self.exposure)
        if not (math.isfinite(exposure) and exposure >= 0.0):
            raise ValueError(f"exposure multiplier must be a finite non-negative number, got {self.exposure}")

    def describe_transfer(self) -> str:
        if self.transfer is TransferMode.SRGB_TO_LINEAR:
            return "sRGB->Linear conversion"
        return "Linear (no conversion)"


@dataclass(frozen=True)
class ConversionResult:
    input_path: Path
    output_path: Path
    ok: bool
    message: str

    @classmethod
    def success(cls, input_path: Path, output_path: Path) -> "ConversionResult":
        return cls(input_path, output_path, True, f"EXR saved to {output_path}")

    @classmethod
    def failure(cls, input_path: Path, output_path: Path, message: str) -> "ConversionResult":
        return cls(input_path, output_path, False, message)


def _decode(path: Path, options: ConversionOptions, opener: SessionOpener) -> DecodedBuffer:
    settings = options.decode
    with opener(path) as session:
        logger.info("processing %s", path)
        if settings.full_sensor:
            apply_full_sensor_override(session)
        expected = session.geometry

        session.unpack()
        session.process(settings)
        buffer = DecodedBuffer(session.make_mem_image())

    logger.info(
        "memory image %sx%s with %s colors, %s-bit",
        buffer.width,
        buffer.height,
        buffer.channels,
        buffer.bits,
    )
    if settings.full_sensor:
        check_decoded_geometry(expected, buffer)
    if buffer.bits not in (8, 16):
        raise UnsupportedFormatError(f"unsupported sample depth {buffer.bits}-bit in {path}")
    if options.require_rgb and buffer.channels != 3:
        raise UnsupportedFormatError(
            f"unsupported image format in {path}: {buffer.channels} colors, {buffer.bits} bits"
        )
    return buffer


def convert(
    input_path: Path,
    output_path: Path,
    options: ConversionOptions | None = None,
    opener: SessionOpener = open_session,
    writer: RgbaWriter = write_exr_rgba,
) -> ConversionResult:
    """Convert one RAW file to an RGBA EXR.

    Never raises for per-file problems: open, decode, processing and write
    failures all come back as a failed ConversionResult, and no file is left at
    ``output_path`` in that case.
    """

    options = options or ConversionOptions()
    input_path = Path(input_path)
    output_path = Path(output_path)

    try:
        buffer = _decode(input_path, options, opener)
    except DecodeError as exc:
        logger.error("decode failed for %s: %s", input_path, exc)
        return ConversionResult.failure(input_path, output_path, str(exc))
    except Exception as exc:
        logger.exception("unexpected decode failure for %s", input_path)
        return ConversionResult.failure(input_path, output_path, f"decode failed for {input_path}: {exc}")

    logger.info(
        "applying %s with exposure %s%s",
        "inverse sRGB curve (sRGB->Linear)" if options.transfer is TransferMode.SRGB_TO_LINEAR else "linear",
        options.exposure,
        " (tone compression)" if needs_compression(options.exposure) else "",
    )

    try:
        rgba = to_rgba(buffer.samples, buffer.bits, transfer=options.transfer, exposure=options.exposure)
        del buffer
        writer(output_path, rgba, options.exr)
    except EncodeError as exc:
        logger.error("%s", exc)
        return ConversionResult.failure(input_path, output_path, str(exc))
    except Exception as exc:
        logger.exception("conversion failed for %s", input_path)
        return ConversionResult.failure(input_path, output_path, f"conversion failed for {input_path}: {exc}")

    logger.info("EXR file saved to %s", output_path)
    return ConversionResult.success(input_path, output_path)
