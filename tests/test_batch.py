from __future__ import annotations

from functools import partial
from pathlib import Path

import pytest

from raw2exr import batch
from raw2exr.converter import ConversionOptions, convert


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"raw")
    return path


def test_discover_matches_extension_case_insensitively(tmp_path: Path) -> None:
    _touch(tmp_path / "B_0002.3FR")
    _touch(tmp_path / "A_0001.3fr")
    _touch(tmp_path / "notes.txt")
    _touch(tmp_path / ".3fr")
    _touch(tmp_path / "nested" / "C_0003.3fr")
    (tmp_path / "folder.3fr").mkdir()

    found = batch.discover_raw_files(tmp_path)

    assert [p.name for p in found] == [".3fr", "A_0001.3fr", "B_0002.3FR"]


def test_discover_honors_custom_extensions(tmp_path: Path) -> None:
    _touch(tmp_path / "a.cr2")
    _touch(tmp_path / "b.3fr")
    found = batch.discover_raw_files(tmp_path, extensions=(".cr2",))
    assert [p.name for p in found] == ["a.cr2"]


def test_output_path_strips_raw_extension(tmp_path: Path) -> None:
    out = batch.output_path_for(tmp_path / "SHOT.A_0001.3FR", tmp_path / "EXR")
    assert out == tmp_path / "EXR" / "SHOT.A_0001.exr"
    assert batch.output_path_for(tmp_path / ".3fr", tmp_path / "EXR") == tmp_path / "EXR" / ".exr"


def test_normalize_dir_argument_adds_trailing_separator() -> None:
    assert batch.normalize_dir_argument("/data/raw").endswith(("/", "\\"))
    assert batch.normalize_dir_argument("/data/raw/") == "/data/raw/"


def test_batch_converts_raw_files_and_ignores_others(tmp_path: Path, session_factory, recording_writer) -> None:
    for name in ("a.3fr", "b.3fr", "c.3FR"):
        _touch(tmp_path / name)
    _touch(tmp_path / "readme.jpg")

    converter = partial(convert, opener=session_factory(), writer=recording_writer)
    summary = batch.run(tmp_path, ConversionOptions(), converter=converter)

    assert (summary.success_count, summary.fail_count) == (3, 0)
    assert summary.exit_code == 0
    assert sorted(p.name for p in (tmp_path / "EXR").iterdir()) == ["a.exr", "b.exr", "c.exr"]


def test_batch_isolates_corrupt_file(tmp_path: Path, session_factory, recording_writer) -> None:
    _touch(tmp_path / "bad.3fr")
    _touch(tmp_path / "good.3fr")

    opener = session_factory(corrupt={"bad.3fr"})
    converter = partial(convert, opener=opener, writer=recording_writer)
    summary = batch.run(tmp_path, ConversionOptions(), converter=converter)

    assert (summary.success_count, summary.fail_count) == (1, 1)
    assert summary.exit_code == 1
    assert not (tmp_path / "EXR" / "bad.exr").exists()
    assert (tmp_path / "EXR" / "good.exr").exists()
    # Sorted order: the failing file comes first and does not stop the second.
    assert [r.input_path.name for r in summary.results] == ["bad.3fr", "good.3fr"]


def test_batch_on_empty_directory(tmp_path: Path) -> None:
    calls: list[Path] = []

    def _converter(input_path, output_path, options):
        calls.append(input_path)
        raise AssertionError("no conversion expected")

    summary = batch.run(tmp_path, converter=_converter)

    assert summary.results == []
    assert summary.exit_code == 0
    assert calls == []
    assert (tmp_path / "EXR").is_dir()


def test_missing_input_dir_fails_without_creating_output(tmp_path: Path) -> None:
    missing = tmp_path / "nope"
    with pytest.raises(batch.InputDirectoryError, match="does not exist"):
        batch.run(missing)
    assert not (missing / "EXR").exists()


def test_input_path_that_is_a_file_is_rejected(tmp_path: Path) -> None:
    f = _touch(tmp_path / "a.3fr")
    with pytest.raises(batch.InputDirectoryError):
        batch.resolve_input_dir(f)


def test_existing_output_dir_is_reused(tmp_path: Path) -> None:
    out = tmp_path / "EXR"
    out.mkdir()
    assert batch.ensure_output_dir(out) == out


def test_output_dir_blocked_by_file_is_fatal(tmp_path: Path) -> None:
    _touch(tmp_path / "EXR")
    with pytest.raises(batch.OutputDirectoryError):
        batch.prepare_batch(tmp_path, ConversionOptions())


def test_prepare_batch_is_immutable_snapshot(tmp_path: Path) -> None:
    _touch(tmp_path / "a.3fr")
    job = batch.prepare_batch(tmp_path, ConversionOptions(exposure=2.0))

    assert job.inputs == (tmp_path.resolve() / "a.3fr",)
    assert job.output_dir == tmp_path.resolve() / "EXR"
    with pytest.raises(AttributeError):
        job.inputs = ()  # type: ignore[misc]
