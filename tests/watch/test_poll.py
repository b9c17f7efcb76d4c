"""Tests for poll-based directory watching."""

import os
import time

import pytest

from granule_watch.watch.poll import DirectoryPoller, PollWatchSource

pytestmark = [pytest.mark.unit, pytest.mark.watch]


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeDetector:
    """Stable unless the path is listed in ``unstable`` (consumed once per check)."""

    def __init__(self, unstable=None):
        self.unstable = dict(unstable or {})
        self.checked = []

    def is_stable(self, path):
        self.checked.append(os.path.basename(path))
        remaining = self.unstable.get(os.path.basename(path), 0)
        if remaining:
            self.unstable[os.path.basename(path)] = remaining - 1
            return False
        return True


def touch(directory, name, mtime):
    path = directory / name
    path.write_bytes(b"data")
    os.utime(path, (mtime, mtime))
    return str(path)


def wait_for(predicate, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


class TestDirectoryPoller:

    def test_files_older_than_start_are_ignored(self, temp_dir):
        clock = FakeClock(2000.0)
        touch(temp_dir, "old.h5", 1500.0)
        seen = []
        poller = DirectoryPoller(str(temp_dir), seen.append, FakeDetector(), 15, clock=clock)

        assert poller.poll_once() == []
        assert seen == []

    def test_include_existing_reports_present_files(self, temp_dir):
        clock = FakeClock(2000.0)
        path = touch(temp_dir, "old.h5", 1500.0)
        seen = []
        poller = DirectoryPoller(str(temp_dir), seen.append, FakeDetector(), 15,
                                 include_existing=True, clock=clock)

        assert poller.poll_once() == [path]
        assert seen == [path]

    def test_new_file_reported_once(self, temp_dir):
        clock = FakeClock(2000.0)
        seen = []
        poller = DirectoryPoller(str(temp_dir), seen.append, FakeDetector(), 15, clock=clock)
        path = touch(temp_dir, "new.h5", 2005.0)

        clock.now = 2010.0
        assert poller.poll_once() == [path]
        clock.now = 2025.0
        assert poller.poll_once() == []
        assert seen == [path]

    def test_mark_advances_to_pass_start(self, temp_dir):
        clock = FakeClock(2000.0)
        poller = DirectoryPoller(str(temp_dir), lambda p: None, FakeDetector(), 15, clock=clock)

        clock.now = 2015.0
        poller.poll_once()

        assert poller.mark == 2015.0

    def test_file_landing_during_pass_is_picked_up_next_pass(self, temp_dir):
        clock = FakeClock(2000.0)
        seen = []
        poller = DirectoryPoller(str(temp_dir), seen.append, FakeDetector(), 15, clock=clock)

        clock.now = 2015.0
        poller.poll_once()
        # mtime after pass_start of the previous pass
        path = touch(temp_dir, "late.h5", 2016.0)
        clock.now = 2030.0

        assert poller.poll_once() == [path]

    def test_unstable_file_retried_next_pass(self, temp_dir):
        clock = FakeClock(2000.0)
        seen = []
        detector = FakeDetector(unstable={"big.h5": 1})
        poller = DirectoryPoller(str(temp_dir), seen.append, detector, 15, clock=clock)
        path = touch(temp_dir, "big.h5", 2005.0)

        clock.now = 2010.0
        assert poller.poll_once() == []
        assert poller.unsettled == frozenset({path})

        # mtime is now behind the mark; the retry comes from the unsettled set
        clock.now = 2025.0
        assert poller.poll_once() == [path]
        assert poller.unsettled == frozenset()
        assert seen == [path]

    def test_unsettled_file_that_vanished_is_dropped(self, temp_dir):
        clock = FakeClock(2000.0)
        poller = DirectoryPoller(str(temp_dir), lambda p: None,
                                 FakeDetector(unstable={"gone.h5": 1}), 15, clock=clock)
        path = touch(temp_dir, "gone.h5", 2005.0)

        clock.now = 2010.0
        poller.poll_once()
        os.remove(path)
        clock.now = 2025.0

        assert poller.poll_once() == []
        assert poller.unsettled == frozenset()

    def test_subdirectories_are_not_reported(self, temp_dir):
        clock = FakeClock(0.0)
        (temp_dir / "sub").mkdir()
        poller = DirectoryPoller(str(temp_dir), lambda p: None, FakeDetector(), 15,
                                 include_existing=True, clock=clock)

        assert poller.poll_once() == []

    def test_missing_directory_is_retried(self, temp_dir):
        clock = FakeClock(2000.0)
        missing = temp_dir / "not-yet"
        seen = []
        poller = DirectoryPoller(str(missing), seen.append, FakeDetector(), 15, clock=clock)

        assert poller.poll_once() == []

        missing.mkdir()
        path = touch(missing, "f.h5", 2001.0)
        clock.now = 2010.0
        assert poller.poll_once() == [path]

    def test_all_files_in_pass_checked(self, temp_dir):
        clock = FakeClock(2000.0)
        detector = FakeDetector()
        poller = DirectoryPoller(str(temp_dir), lambda p: None, detector, 15, clock=clock)
        for i in range(12):
            touch(temp_dir, f"f{i:02d}.h5", 2001.0)

        clock.now = 2010.0
        reported = poller.poll_once()

        assert len(reported) == 12
        assert sorted(detector.checked) == [f"f{i:02d}.h5" for i in range(12)]


class TestPollWatchSource:

    def test_add_watch_is_idempotent(self, temp_dir):
        source = PollWatchSource(lambda p: None, FakeDetector(), period=60)
        try:
            source.add_watch(str(temp_dir))
            source.add_watch(str(temp_dir) + "/")
            assert source.watched() == [os.path.abspath(str(temp_dir))]
            assert source.is_alive()
        finally:
            source.close(timeout=5)

    def test_close_stops_pollers(self, temp_dir):
        source = PollWatchSource(lambda p: None, FakeDetector(), period=60)
        source.add_watch(str(temp_dir))

        source.close(timeout=5)

        assert not source.is_alive()
        with pytest.raises(RuntimeError):
            source.add_watch(str(temp_dir))

    @pytest.mark.slow
    def test_reports_existing_file_from_thread(self, temp_dir):
        path = touch(temp_dir, "f.h5", 1000.0)
        seen = []
        source = PollWatchSource(seen.append, FakeDetector(), period=60, include_existing=True)
        try:
            source.add_watch(str(temp_dir))
            assert wait_for(lambda: seen == [path])
        finally:
            source.close(timeout=5)
