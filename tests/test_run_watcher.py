"""Tests for the command-line runner."""

import json

import pytest

from granule_watch.cli import run_watcher
from granule_watch.cli.run_watcher import main, run_granule_watch

pytestmark = pytest.mark.unit


class RecordingOrchestrator:
    instances = []

    def __init__(self, config, output_dirs):
        self.config = config
        self.output_dirs = output_dirs
        self.max_runtime = "unset"
        RecordingOrchestrator.instances.append(self)

    def start(self, max_runtime=None):
        self.max_runtime = max_runtime


@pytest.fixture
def recording(monkeypatch):
    RecordingOrchestrator.instances = []
    monkeypatch.setattr(run_watcher, "GranuleWatchOrchestrator", RecordingOrchestrator)
    return RecordingOrchestrator.instances


@pytest.fixture
def config_file(temp_dir):
    path = temp_dir / "config.json"
    path.write_text(json.dumps({
        "watchDir": str(temp_dir / "in"),
        "outputDir": str(temp_dir / "out"),
        "watcher": {"mode": "poll"},
    }))
    return path


def test_run_resolves_config_and_starts(config_file, temp_dir, recording):
    run_granule_watch(str(config_file), max_runtime=5)

    orch, = recording
    assert orch.config.watcher.mode == "poll"
    assert orch.max_runtime == 5
    assert orch.output_dirs["logs"].is_dir()
    assert orch.output_dirs["base"] == (temp_dir / "out").resolve()


def test_cli_args_override_file(config_file, temp_dir, recording):
    run_granule_watch(str(config_file), cli_args={"mode": "push", "watch_dir": None}, verbose=True)

    orch, = recording
    assert orch.config.watcher.mode == "push"
    assert orch.config.watch_dir == str(temp_dir / "in")
    assert orch.config.logging.level == "DEBUG"


def test_main_parses_arguments(config_file, temp_dir, recording):
    other = temp_dir / "elsewhere"

    assert main([str(config_file), "--output-dir", str(other), "--mode", "poll_nested",
                 "--max-runtime", "2"]) == 0

    orch, = recording
    assert orch.config.output_dir == str(other)
    assert orch.config.watcher.mode == "poll_nested"
    assert orch.max_runtime == 2


def test_main_exits_2_on_config_error(temp_dir, recording, capsys):
    assert main([str(temp_dir / "missing.json")]) == 2

    assert recording == []
    assert "Configuration error" in capsys.readouterr().err


def test_main_rejects_unknown_mode(config_file):
    with pytest.raises(SystemExit):
        main([str(config_file), "--mode", "inotify"])
