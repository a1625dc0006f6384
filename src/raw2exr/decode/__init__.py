from .base import (
    DecodeError,
    GeometryMismatchError,
    MissingDependencyError,
    OpenError,
    RawSession,
    UnsupportedFormatError,
)
from .geometry import apply_full_sensor_override, check_decoded_geometry, full_sensor_geometry
from .session import LibRawSession, open_session
from .types import DecodedBuffer, DecodeSettings, SensorGeometry

__all__ = [
    "DecodeError",
    "GeometryMismatchError",
    "MissingDependencyError",
    "OpenError",
    "RawSession",
    "UnsupportedFormatError",
    "apply_full_sensor_override",
    "check_decoded_geometry",
    "full_sensor_geometry",
    "LibRawSession",
    "open_session",
    "DecodedBuffer",
    "DecodeSettings",
    "SensorGeometry",
]
