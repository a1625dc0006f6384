from .pipeline import TransferMode, normalize_samples, to_rgba
from .transfer import compress, encode_srgb, linearize, needs_compression

__all__ = [
    "TransferMode",
    "compress",
    "encode_srgb",
    "linearize",
    "needs_compression",
    "normalize_samples",
    "to_rgba",
]
