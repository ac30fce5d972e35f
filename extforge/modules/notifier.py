"""Completion notifications.

A notifier is a side channel: nothing it does (or fails to do) may affect the
outcome of a build.
"""

import logging
import shutil
import subprocess
import sys
import threading

logger = logging.getLogger(__name__)


class Notifier:
    """Completion sink interface."""

    def notify(self, title: str, message: str) -> None:
        raise NotImplementedError


class NullNotifier(Notifier):
    """Discards notifications."""

    def notify(self, title: str, message: str) -> None:
        pass


class DesktopNotifier(Notifier):
    """Shows a desktop notification without waiting for it."""

    def _command(self, title: str, message: str):
        if sys.platform == 'darwin' and shutil.which('osascript'):
            script = f'display notification "{_escape(message)}" with title "{_escape(title)}"'
            return ['osascript', '-e', script]
        if shutil.which('notify-send'):
            return ['notify-send', title, message]
        return None

    def _send(self, title: str, message: str) -> None:
        cmd = self._command(title, message)
        if cmd is None:
            logger.debug("No desktop notification tool available")
            return
        subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)

    def _deliver(self, title: str, message: str) -> None:
        try:
            self._send(title, message)
        except Exception as e:
            logger.debug(f"Desktop notification failed: {e}")

    def notify(self, title: str, message: str) -> None:
        threading.Thread(target=self._deliver, args=(title, message), daemon=True).start()


def _escape(text: str) -> str:
    return text.replace('\\', '\\\\').replace('"', '\\"')


def safe_notify(notifier, title: str, message: str) -> None:
    """Deliver a notification, logging and discarding any failure."""
    if notifier is None:
        return
    try:
        notifier.notify(title, message)
    except Exception as e:
        logger.debug(f"Notification failed: {e}")
