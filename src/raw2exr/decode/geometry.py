from __future__ import annotations

from dataclasses import replace
import logging

from .base import GeometryMismatchError, RawSession
from .types import DecodedBuffer, SensorGeometry


logger = logging.getLogger(__name__)


def full_sensor_geometry(geometry: SensorGeometry) -> SensorGeometry:
    """Geometry covering the whole photosite array, margins included."""

    return replace(
        geometry,
        width=geometry.raw_width,
        height=geometry.raw_height,
        top_margin=0,
        left_margin=0,
    )


def apply_full_sensor_override(session: RawSession) -> SensorGeometry:
    """Widen a freshly opened session to the full sensor.

    Must run after open and before unpack; sizes are unknown before open and
    the decoder snapshots them at unpack time.
    """

    native = session.native_geometry
    logger.info(
        "raw sensor size %sx%s, visible area %sx%s, margins top=%s left=%s",
        native.raw_width,
        native.raw_height,
        native.width,
        native.height,
        native.top_margin,
        native.left_margin,
    )

    full = full_sensor_geometry(native)
    session.set_geometry(full)
    return full


def check_decoded_geometry(expected: SensorGeometry, buffer: DecodedBuffer) -> None:
    if (buffer.width, buffer.height) != (expected.width, expected.height):
        raise GeometryMismatchError(
            f"decoded image is {buffer.width}x{buffer.height}, "
            f"expected {expected.width}x{expected.height} (sensor geometry override not honored)"
        )
