from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from raw2exr.batch import DEFAULT_EXTENSIONS
from raw2exr.color import TransferMode
from raw2exr.converter import ConversionOptions
from raw2exr.decode import DecodeSettings
from raw2exr.write import ExrSettings


@dataclass
class BatchConfig:
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    output_dir: Path | None = None
    sort_inputs: bool = True


@dataclass
class ConversionConfig:
    linearize: bool = True
    exposure: float = 1.0
    full_sensor: bool = True
    output_gamma: str = "srgb"
    use_camera_wb: bool = True
    bright: float = 1.0
    demosaic: str = "AHD"
    full_sensor_demosaic: str = "menon2007"


@dataclass
class ExrConfig:
    pixel_type: str = "half"
    compression: str = "zip"


@dataclass
class AppConfig:
    batch: BatchConfig = field(default_factory=BatchConfig)
    conversion: ConversionConfig = field(default_factory=ConversionConfig)
    exr: ExrConfig = field(default_factory=ExrConfig)
    log_level: str = "INFO"
    log_file: Path | None = None

    def conversion_options(self, require_rgb: bool = False) -> ConversionOptions:
        conv = self.conversion
        return ConversionOptions(
            transfer=TransferMode.SRGB_TO_LINEAR if conv.linearize else TransferMode.NONE,
            exposure=float(conv.exposure),
            decode=DecodeSettings(
                use_camera_wb=conv.use_camera_wb,
                bright=float(conv.bright),
                output_gamma=conv.output_gamma,
                demosaic=conv.demosaic,
                full_sensor_demosaic=conv.full_sensor_demosaic,
                full_sensor=conv.full_sensor,
            ),
            exr=ExrSettings(pixel_type=self.exr.pixel_type, compression=self.exr.compression),
            require_rgb=require_rgb,
        )


def _expand_path(value: str | None, base: Path) -> Path | None:
    if value in (None, ""):
        return None
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (base / path).resolve()
    return path


def _as_extensions(raw: Any) -> tuple[str, ...]:
    if isinstance(raw, str):
        raw = [raw]
    exts = []
    for ext in raw:
        ext = str(ext).strip().lower()
        if not ext:
            continue
        exts.append(ext if ext.startswith(".") else f".{ext}")
    if not exts:
        raise ValueError("batch.extensions must list at least one extension")
    return tuple(exts)


def load_config(path: str | Path) -> AppConfig:
    try:
        import yaml  # type: ignore
    except Exception as exc:
        raise RuntimeError("PyYAML is required for config loading. Install with: pip install PyYAML") from exc

    cfg_path = Path(path).expanduser().resolve()
    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    base = cfg_path.parent
    batch_raw = raw.get("batch", {}) or {}
    conv_raw = raw.get("conversion", {}) or {}
    exr_raw = raw.get("exr", {}) or {}

    batch = BatchConfig(
        extensions=_as_extensions(batch_raw.get("extensions", list(DEFAULT_EXTENSIONS))),
        output_dir=_expand_path(batch_raw.get("output_dir"), base),
        sort_inputs=bool(batch_raw.get("sort_inputs", True)),
    )

    conversion = ConversionConfig(
        linearize=bool(conv_raw.get("linearize", True)),
        exposure=float(conv_raw.get("exposure", 1.0)),
        full_sensor=bool(conv_raw.get("full_sensor", True)),
        output_gamma=str(conv_raw.get("output_gamma", "srgb")).lower(),
        use_camera_wb=bool(conv_raw.get("use_camera_wb", True)),
        bright=float(conv_raw.get("bright", 1.0)),
        demosaic=str(conv_raw.get("demosaic", "AHD")).upper(),
        full_sensor_demosaic=str(conv_raw.get("full_sensor_demosaic", "menon2007")).lower(),
    )

    exr = ExrConfig(
        pixel_type=str(exr_raw.get("pixel_type", "half")).lower(),
        compression=str(exr_raw.get("compression", "zip")).lower(),
    )

    return AppConfig(
        batch=batch,
        conversion=conversion,
        exr=exr,
        log_level=str(raw.get("log_level", "INFO")),
        log_file=_expand_path(raw.get("log_file"), base),
    )
