from .exr_writer import EncodeError, ExrSettings, write_exr_rgba

__all__ = [
    "EncodeError",
    "ExrSettings",
    "write_exr_rgba",
]
