from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
from typing import Callable, Iterable

from raw2exr.converter import ConversionOptions, ConversionResult, convert


logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS: tuple[str, ...] = (".3fr",)
OUTPUT_SUBDIR = "EXR"
OUTPUT_SUFFIX = ".exr"

Converter = Callable[[Path, Path, ConversionOptions], ConversionResult]


class BatchEnvironmentError(RuntimeError):
    pass


class InputDirectoryError(BatchEnvironmentError):
    pass


class OutputDirectoryError(BatchEnvironmentError):
    pass


@dataclass(frozen=True)
class BatchJob:
    input_dir: Path
    output_dir: Path
    inputs: tuple[Path, ...]
    options: ConversionOptions


@dataclass
class BatchSummary:
    output_dir: Path
    results: list[ConversionResult] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def fail_count(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @property
    def exit_code(self) -> int:
        return 1 if self.fail_count > 0 else 0


def normalize_dir_argument(text: str) -> str:
    if text.endswith(("/", "\\", os.sep)):
        return text
    return text + os.sep


def resolve_input_dir(text: str | Path) -> Path:
    shown = normalize_dir_argument(str(text))
    path = Path(text).expanduser()
    if not path.is_dir():
        raise InputDirectoryError(f"input directory '{shown}' does not exist or is not a directory")
    return path.resolve()


def ensure_output_dir(path: Path) -> Path:
    if path.is_dir():
        return path
    try:
        path.mkdir(parents=True)
    except FileExistsError:
        if not path.is_dir():
            raise OutputDirectoryError(f"could not create output directory '{path}': a file is in the way")
    except OSError as exc:
        raise OutputDirectoryError(f"could not create output directory '{path}': {exc}") from exc
    else:
        logger.info("created output directory %s", path)
    return path


def has_raw_extension(name: str, extensions: Iterable[str]) -> bool:
    lowered = name.lower()
    return any(lowered.endswith(ext.lower()) for ext in extensions)


def _is_candidate_entry(entry: os.DirEntry[str]) -> bool:
    try:
        return entry.is_file()
    except OSError:
        # Type could not be determined; keep it and let decode decide.
        return True


def discover_raw_files(
    input_dir: Path,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    sort: bool = True,
) -> list[Path]:
    """RAW files directly inside ``input_dir``; subdirectories are not searched."""

    exts = tuple(extensions)
    found: list[Path] = []
    try:
        with os.scandir(input_dir) as entries:
            for entry in entries:
                if has_raw_extension(entry.name, exts) and _is_candidate_entry(entry):
                    found.append(input_dir / entry.name)
    except OSError as exc:
        raise InputDirectoryError(f"could not open directory '{input_dir}': {exc}") from exc

    if sort:
        found.sort(key=lambda p: p.name)
    return found


def output_path_for(input_path: Path, output_dir: Path) -> Path:
    # Everything after the last dot is the extension, dotfiles included.
    name = input_path.name
    base = name[: name.rfind(".")] if "." in name else name
    return output_dir / f"{base}{OUTPUT_SUFFIX}"


def prepare_batch(
    input_dir: str | Path,
    options: ConversionOptions,
    output_dir: Path | None = None,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    sort: bool = True,
) -> BatchJob:
    source = resolve_input_dir(input_dir)
    target = ensure_output_dir(output_dir if output_dir is not None else source / OUTPUT_SUBDIR)
    inputs = discover_raw_files(source, extensions=extensions, sort=sort)
    return BatchJob(input_dir=source, output_dir=target, inputs=tuple(inputs), options=options)


def run_batch(job: BatchJob, converter: Converter = convert) -> BatchSummary:
    summary = BatchSummary(output_dir=job.output_dir)
    if not job.inputs:
        logger.info("no RAW files found in directory: %s", normalize_dir_argument(str(job.input_dir)))
        return summary

    logger.info("found %s RAW file(s) to process", len(job.inputs))
    for path in job.inputs:
        logger.info("  %s", path.name)
    logger.info("processing mode: %s", job.options.describe_transfer())
    logger.info("exposure multiplier: %s", job.options.exposure)

    for input_path in job.inputs:
        output_path = output_path_for(input_path, job.output_dir)
        logger.info("converting: %s -> %s", input_path.name, output_path.name)

        result = converter(input_path, output_path, job.options)
        summary.results.append(result)
        if result.ok:
            logger.info("✓ successfully converted %s", input_path.name)
        else:
            logger.error("✗ failed to convert %s: %s", input_path.name, result.message)

    logger.info(
        "batch conversion completed: %s succeeded, %s failed, output directory %s",
        summary.success_count,
        summary.fail_count,
        job.output_dir,
    )
    return summary


def run(
    input_dir: str | Path,
    options: ConversionOptions | None = None,
    output_dir: Path | None = None,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    sort: bool = True,
    converter: Converter = convert,
) -> BatchSummary:
    job = prepare_batch(
        input_dir,
        options or ConversionOptions(),
        output_dir=output_dir,
        extensions=extensions,
        sort=sort,
    )
    return run_batch(job, converter=converter)
