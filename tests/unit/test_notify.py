"""Unit tests for pacgrade.notify."""

from __future__ import annotations

import subprocess

import pytest

from pacgrade import notify
from pacgrade.notify import DesktopNotifier, NullNotifier, format_notification, notification_sink


class TestFormatNotification:
    def test_single_package(self) -> None:
        title, body = format_notification(1)
        assert title == "Packages out of date"
        assert body == "Found a package that is out of date.\nRemember to upgrade!"

    def test_several_packages(self) -> None:
        _, body = format_notification(4)
        assert body == "Found 4 packages that are out of date.\nRemember to upgrade!"


class TestNotificationSink:
    def test_disabled_yields_null_sink(self) -> None:
        with notification_sink(enabled=False) as sink:
            assert isinstance(sink, NullNotifier)

    def test_missing_executable_yields_null_sink(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(notify.shutil, "which", lambda name: None)
        with notification_sink() as sink:
            assert isinstance(sink, NullNotifier)

    def test_desktop_notifier_runs_notify_send(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[list[str]] = []

        def fake_run(args: list[str], **kwargs: object) -> subprocess.CompletedProcess[bytes]:
            calls.append(args)
            return subprocess.CompletedProcess(args, 0)

        monkeypatch.setattr(notify.shutil, "which", lambda name: "/usr/bin/notify-send")
        monkeypatch.setattr(notify.subprocess, "run", fake_run)

        with notification_sink() as sink:
            assert isinstance(sink, DesktopNotifier)
            sink.show("Packages out of date", "body")

        assert calls == [
            ["/usr/bin/notify-send", "--app-name=Pacgrade", "Packages out of date", "body"]
        ]

    def test_released_on_error_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(notify.shutil, "which", lambda name: "/usr/bin/notify-send")
        held: list[DesktopNotifier] = []

        with pytest.raises(RuntimeError), notification_sink() as sink:
            assert isinstance(sink, DesktopNotifier)
            held.append(sink)
            raise RuntimeError("boom")

        assert held[0]._closed is True

    def test_failure_is_not_raised(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def failing_run(args: list[str], **kwargs: object) -> None:
            raise subprocess.CalledProcessError(1, args)

        monkeypatch.setattr(notify.subprocess, "run", failing_run)
        DesktopNotifier("/usr/bin/notify-send").show("title", "body")
