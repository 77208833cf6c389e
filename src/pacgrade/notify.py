"""Desktop notification of outdated packages.

The reconciliation code never touches this module; the CLI acquires a sink
for the duration of the run and decides whether to show anything.
"""

from __future__ import annotations

import shutil
import subprocess
from contextlib import contextmanager
from typing import TYPE_CHECKING, Protocol

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator

log = structlog.get_logger()

APP_NAME = "Pacgrade"
TITLE = "Packages out of date"


class NotificationSink(Protocol):
    def show(self, title: str, body: str) -> None: ...


class NullNotifier:
    def show(self, title: str, body: str) -> None:
        log.debug("notification_suppressed", title=title)


class DesktopNotifier:
    """Sends notifications through the ``notify-send`` executable."""

    def __init__(self, executable: str) -> None:
        self._executable = executable
        self._closed = False

    def show(self, title: str, body: str) -> None:
        if self._closed:
            return
        try:
            subprocess.run(
                [self._executable, f"--app-name={APP_NAME}", title, body],
                check=True,
                capture_output=True,
                timeout=10,
            )
        except (OSError, subprocess.SubprocessError):
            log.warning("notification_failed", exc_info=True)

    def close(self) -> None:
        self._closed = True


@contextmanager
def notification_sink(enabled: bool = True) -> Iterator[NotificationSink]:
    """Yield a sink for this run, released on every exit path."""
    if not enabled:
        yield NullNotifier()
        return

    executable = shutil.which("notify-send")
    if executable is None:
        log.info("notify_send_not_found")
        yield NullNotifier()
        return

    notifier = DesktopNotifier(executable)
    try:
        yield notifier
    finally:
        notifier.close()


def format_notification(count: int) -> tuple[str, str]:
    if count == 1:
        body = "Found a package that is out of date.\nRemember to upgrade!"
    else:
        body = f"Found {count} packages that are out of date.\nRemember to upgrade!"
    return TITLE, body
