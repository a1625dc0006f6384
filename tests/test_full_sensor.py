from __future__ import annotations

from types import SimpleNamespace

import numpy as np
import pytest

from raw2exr.decode import DecodeSettings, SensorGeometry, UnsupportedFormatError
from raw2exr.decode.full_sensor import cfa_pattern, develop_full_sensor, white_balance_multipliers


def _bayer_colors(height: int, width: int) -> np.ndarray:
    tile = np.array([[0, 1], [3, 2]], dtype=np.uint8)  # R G / G2 B
    return np.tile(tile, (height // 2, width // 2))


def _fake_raw(height: int = 8, width: int = 10, value: float = 1064.0) -> SimpleNamespace:
    return SimpleNamespace(
        raw_image=np.full((height, width), value, dtype=np.uint16),
        raw_colors=_bayer_colors(height, width),
        color_desc=b"RGBG",
        black_level_per_channel=[64, 64, 64, 64],
        white_level=2064,
        camera_whitebalance=[1.0, 1.0, 1.0, 0.0],
        daylight_whitebalance=[2.0, 1.0, 1.5, 0.0],
        color_matrix=np.hstack([np.eye(3, dtype=np.float32), np.zeros((3, 1), dtype=np.float32)]),
    )


def test_cfa_pattern_from_color_indices() -> None:
    assert cfa_pattern(_bayer_colors(4, 4), "RGBG") == "RGGB"
    assert cfa_pattern(np.array([[1, 0], [2, 3]]), "RGBG") == "GRBG"


def test_cfa_pattern_rejects_non_bayer() -> None:
    with pytest.raises(UnsupportedFormatError):
        cfa_pattern(np.array([[0, 0], [1, 2]]), "RGBG")


def test_white_balance_fills_missing_second_green_and_normalizes() -> None:
    raw = _fake_raw()
    wb = white_balance_multipliers(raw, use_camera_wb=False)
    assert wb.tolist() == [2.0, 1.0, 1.5, 1.0]
    assert white_balance_multipliers(raw, use_camera_wb=True).tolist() == [1.0, 1.0, 1.0, 1.0]


def test_develop_full_sensor_covers_margins_linear() -> None:
    raw = _fake_raw()
    geometry = SensorGeometry(raw_width=10, raw_height=8, width=10, height=8)
    settings = DecodeSettings(output_gamma="linear", full_sensor_demosaic="bilinear")

    image = develop_full_sensor(raw, geometry, settings)

    assert image.shape == (8, 10, 3)
    assert image.dtype == np.uint16
    # (1064 - 64) / (2064 - 64) == 0.5 on every photosite.
    assert np.allclose(image[3:5, 4:6].astype(np.float32) / 65535.0, 0.5, atol=0.01)


def test_develop_crops_to_requested_area_and_8bit() -> None:
    raw = _fake_raw(height=12, width=12)
    geometry = SensorGeometry(raw_width=12, raw_height=12, width=8, height=6, top_margin=2, left_margin=2)
    settings = DecodeSettings(output_bps=8, full_sensor_demosaic="bilinear")

    image = develop_full_sensor(raw, geometry, settings)

    assert image.shape == (6, 8, 3)
    assert image.dtype == np.uint8


def test_develop_rejects_geometry_larger_than_mosaic() -> None:
    raw = _fake_raw(height=4, width=4)
    geometry = SensorGeometry(raw_width=6, raw_height=6, width=6, height=6)
    with pytest.raises(UnsupportedFormatError):
        develop_full_sensor(raw, geometry, DecodeSettings(full_sensor_demosaic="bilinear"))


def test_develop_with_default_settings_uses_menon() -> None:
    settings = DecodeSettings()
    assert settings.full_sensor_demosaic == "menon2007"
    raw = _fake_raw(height=16, width=16)
    geometry = SensorGeometry(raw_width=16, raw_height=16, width=16, height=16)

    image = develop_full_sensor(raw, geometry, settings)

    assert image.shape == (16, 16, 3)
    assert image.dtype == np.uint16
    center = image[6:10, 6:10].astype(np.float32)
    assert np.all(center > 0)
    assert np.ptp(center) <= 0.01 * 65535.0
