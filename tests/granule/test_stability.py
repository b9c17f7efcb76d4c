"""Tests for write-stability detection."""

import pytest

from granule_watch.granule.stability import StabilityDetector

pytestmark = pytest.mark.unit


def test_unchanged_file_is_stable(temp_dir, no_sleep):
    path = temp_dir / "done.h5"
    path.write_bytes(b"x" * 100)

    assert StabilityDetector(3.0, sleeper=no_sleep).is_stable(path)


def test_growing_file_is_not_stable(temp_dir):
    path = temp_dir / "growing.h5"
    path.write_bytes(b"x" * 100)

    def append_while_waiting(seconds):
        with open(path, "ab") as f:
            f.write(b"y" * 10)

    assert not StabilityDetector(3.0, sleeper=append_while_waiting).is_stable(path)


def test_missing_file_is_not_stable(temp_dir, no_sleep):
    assert not StabilityDetector(3.0, sleeper=no_sleep).is_stable(temp_dir / "missing.h5")


def test_file_removed_during_wait_is_not_stable(temp_dir):
    path = temp_dir / "renamed.h5"
    path.write_bytes(b"x")

    def remove(seconds):
        path.unlink()

    assert not StabilityDetector(3.0, sleeper=remove).is_stable(path)


def test_waits_the_configured_interval(temp_dir):
    path = temp_dir / "f.h5"
    path.write_bytes(b"x")
    waits = []

    StabilityDetector(2.5, sleeper=waits.append).is_stable(path)

    assert waits == [2.5]


def test_missing_file_skips_wait(temp_dir):
    waits = []

    StabilityDetector(2.5, sleeper=waits.append).is_stable(temp_dir / "missing")

    assert waits == []


def test_empty_file_can_be_stable(temp_dir, no_sleep):
    path = temp_dir / "empty.h5"
    path.touch()

    assert StabilityDetector(1.0, sleeper=no_sleep).is_stable(str(path))
