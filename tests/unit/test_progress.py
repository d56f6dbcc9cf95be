"""Tests for download progress reporters."""

from __future__ import annotations

import io
import logging

from rich.console import Console

from overlayforge.monitor.progress import (
    LoggingProgressReporter,
    NullProgressReporter,
    ProgressReporter,
    RichProgressReporter,
    notify,
)


class TestReporters:
    def test_all_reporters_satisfy_protocol(self):
        console = Console(file=io.StringIO())
        for reporter in (
            NullProgressReporter(),
            LoggingProgressReporter(),
            RichProgressReporter(console),
        ):
            assert isinstance(reporter, ProgressReporter)

    def test_logging_reporter_logs_completion_only(self, caplog):
        reporter = LoggingProgressReporter()
        with caplog.at_level(logging.DEBUG, logger="overlayforge.monitor.progress"):
            reporter.report("a.jar", 10, 100)
            reporter.report("a.jar", 100, 100)
        assert len(caplog.records) == 1
        assert "a.jar" in caplog.records[0].getMessage()

    def test_rich_reporter_tracks_one_task_per_artifact(self):
        console = Console(file=io.StringIO(), force_terminal=False)
        with RichProgressReporter(console) as reporter:
            reporter.report("a.jar", 5, 10)
            reporter.report("a.jar", 10, 10)
            reporter.report("b.jar", 3, 0)
        assert set(reporter._tasks) == {"a.jar", "b.jar"}
        task = reporter._progress.tasks[0]
        assert task.completed == 10
        assert task.total == 10


class TestNotify:
    def test_delivers_report(self):
        calls = []

        class Recorder:
            def report(self, name, downloaded, total):
                calls.append((name, downloaded, total))

        notify(Recorder(), "a.jar", 1, 2)
        assert calls == [("a.jar", 1, 2)]

    def test_reporter_failure_is_logged(self, caplog):
        class Broken:
            def report(self, name, downloaded, total):
                raise ValueError("bad terminal")

        with caplog.at_level(logging.WARNING):
            notify(Broken(), "a.jar", 1, 2)
        assert "bad terminal" in caplog.text
