"""Tests for the command line interface."""

import logging
import os
import re
import signal
import subprocess
import sys
from pathlib import Path

import pytest

from src import cli
from src.fswatch.exceptions import ConfigError
from src.fswatch.watcher import Watcher


PROJECT_ROOT = Path(__file__).resolve().parent.parent
LINE = re.compile(r"^fswatch: \[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] (.*)$")


@pytest.fixture
def captured_signals(monkeypatch):
    """Record signal handlers instead of installing them."""
    handlers = {}
    monkeypatch.setattr(cli.signal, "signal", lambda signum, handler: handlers.__setitem__(signum, handler))
    return handlers


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("FSWATCH_"):
            monkeypatch.delenv(key)


class TestParseArgs:
    """Tests for parse_args."""

    def test_directories_only(self):
        args = cli.parse_args(["/tmp/a", "/tmp/b"])
        assert args.directories == ["/tmp/a", "/tmp/b"]
        assert args.extension is None

    def test_extension(self):
        args = cli.parse_args(["-t", "txt", "/tmp/a", "/tmp/b"])
        assert args.extension == "txt"
        assert args.directories == ["/tmp/a", "/tmp/b"]

    def test_double_dash_allows_dash_directories(self):
        args = cli.parse_args(["--", "-weird", "plain"])
        assert args.directories == ["-weird", "plain"]

    def test_extension_then_double_dash(self):
        args = cli.parse_args(["-t", "rb", "--", "-dir"])
        assert args.extension == "rb"
        assert args.directories == ["-dir"]

    def test_no_directories(self):
        with pytest.raises(ConfigError):
            cli.parse_args([])

    def test_only_extension(self):
        with pytest.raises(ConfigError):
            cli.parse_args(["-t", "txt"])

    def test_missing_extension_value(self):
        with pytest.raises(ConfigError):
            cli.parse_args(["-t"])

    @pytest.mark.parametrize("option", ["-x", "-h", "--help", "--verbose", "-", "-1", "-ttxt"])
    def test_unknown_option(self, option):
        with pytest.raises(ConfigError):
            cli.parse_args([option, "/tmp/a"])

    @pytest.mark.parametrize("argv", [
        ["-"],
        ["-1"],
        ["/tmp/a", "-5"],
        ["/tmp/a", "-t", "txt", "-"],
    ])
    def test_dash_arguments_before_terminator(self, argv):
        with pytest.raises(ConfigError):
            cli.parse_args(argv)

    def test_extension_between_directories(self):
        args = cli.parse_args(["a", "-t", "txt", "b"])
        assert args.extension == "txt"
        assert args.directories == ["a", "b"]

    def test_extension_after_directories(self):
        args = cli.parse_args(["a", "b", "-t", "rb"])
        assert args.extension == "rb"
        assert args.directories == ["a", "b"]

    def test_directory_then_double_dash(self):
        args = cli.parse_args(["a", "--", "-b"])
        assert args.directories == ["a", "-b"]

    def test_second_double_dash_is_a_directory(self):
        args = cli.parse_args(["--", "a", "--", "b"])
        assert args.directories == ["a", "--", "b"]

    def test_dash_arguments_after_terminator(self):
        args = cli.parse_args(["--", "-", "-1"])
        assert args.directories == ["-", "-1"]


class TestOutput:
    """Tests for output formatting."""

    def test_timestamp_format(self):
        assert re.match(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$", cli.timestamp())

    def test_say(self, capsys):
        cli.say("Change detected.")
        out = capsys.readouterr().out
        match = LINE.match(out.rstrip("\n"))
        assert match is not None
        assert match.group(1) == "Change detected."


class TestMain:
    """Tests for main."""

    def test_no_directories_prints_usage(self, capsys, monkeypatch):
        monkeypatch.setattr(cli, "Watcher", lambda *a, **k: pytest.fail("Watcher constructed"))

        with pytest.raises(SystemExit) as exc_info:
            cli.main([])

        assert exc_info.value.code == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err.splitlines() == [
            "Usage: fswatch [-t FILE-EXTENSION] DIRECTORIES...",
            "This will print one line to stdout for every change.",
        ]

    def test_unknown_option_prints_usage(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["-q", "/tmp/a"])

        assert exc_info.value.code == 1
        assert "Usage: fswatch" in capsys.readouterr().err

    def test_invalid_environment(self, capsys, monkeypatch):
        monkeypatch.setenv("FSWATCH_POLL_INTERVAL_MS", "soon")

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["/tmp/a"])

        assert exc_info.value.code == 1
        assert "fswatch: Invalid value for FSWATCH_POLL_INTERVAL_MS" in capsys.readouterr().err

    def test_prints_watching_and_changes(self, capsys, monkeypatch, captured_signals):
        def fake_run(self):
            for listener in self._listeners:
                listener()
                listener()

        monkeypatch.setattr(Watcher, "run", fake_run)

        cli.main(["-t", "txt", "/tmp/a", "/tmp/b"])

        lines = capsys.readouterr().out.splitlines()
        messages = [LINE.match(line).group(1) for line in lines]
        assert messages == [
            "Watching '/tmp/a:/tmp/b' for '**/[^.]*.txt'.",
            "Change detected.",
            "Change detected.",
        ]

    def test_default_glob_in_watching_line(self, capsys, monkeypatch, captured_signals):
        monkeypatch.setattr(Watcher, "run", lambda self: None)

        cli.main(["/tmp/a"])

        out = capsys.readouterr().out
        assert "Watching '/tmp/a' for '**/*'." in out

    def test_logs_stats_when_stopped(self, caplog, monkeypatch, captured_signals):
        def fake_run(self):
            self._stats.attempts = 2
            self._stats.changes = 3

        monkeypatch.setattr(Watcher, "run", fake_run)

        with caplog.at_level(logging.DEBUG, logger="cli"):
            cli.main(["/tmp/a"])

        assert "Watcher stats: {'attempts': 2, 'rebuilds': 0, 'failures': 0, 'changes': 3}" in caplog.text

    def test_signal_handlers_stop_watcher(self, monkeypatch, captured_signals):
        seen = {}

        def fake_run(self):
            captured_signals[signal.SIGINT](signal.SIGINT, None)
            seen["stopped"] = self.is_stopped

        monkeypatch.setattr(Watcher, "run", fake_run)

        cli.main(["/tmp/a"])

        assert set(captured_signals) == {signal.SIGINT, signal.SIGTERM}
        assert seen["stopped"] is True


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
class TestProcess:
    """Tests running the CLI in a subprocess."""

    def _spawn(self, *args):
        env = dict(os.environ, PYTHONPATH=str(PROJECT_ROOT), PYTHONUNBUFFERED="1")
        return subprocess.Popen(
            [sys.executable, "-m", "src.cli", *args],
            cwd=str(PROJECT_ROOT),
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )

    def test_zero_directories_exits_1(self):
        proc = self._spawn()
        out, err = proc.communicate(timeout=30)

        assert proc.returncode == 1
        assert out == ""
        assert "Usage: fswatch [-t FILE-EXTENSION] DIRECTORIES..." in err

    def test_interrupt_exits_0(self, tmp_path):
        proc = self._spawn("-t", "txt", str(tmp_path))
        try:
            first = proc.stdout.readline()
            assert f"Watching '{tmp_path}' for '**/[^.]*.txt'." in first

            proc.send_signal(signal.SIGINT)
            out, err = proc.communicate(timeout=30)
        finally:
            if proc.poll() is None:
                proc.kill()

        assert proc.returncode == 0
        assert "Watching" not in out
