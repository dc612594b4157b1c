"""Native OS notifications for BreakTimer."""

import logging
import platform
import subprocess
from typing import Optional
from xml.sax.saxutils import escape

logger = logging.getLogger(__name__)

APP_ID = "BreakTimer"
NOTIFY_TIMEOUT = 10  # seconds


def send_notification(title: str, message: str, sound: bool = False) -> None:
    """Show a desktop notification. Failures are logged, never raised.

    Args:
        title: Notification title.
        message: Notification body text.
        sound: Whether to play the system notification sound (macOS only).
    """
    system = platform.system()
    command = _build_command(system, title, message, sound)
    if command is None:
        logger.debug(f"Notifications not supported on {system}")
        return
    try:
        subprocess.run(command, capture_output=True, timeout=NOTIFY_TIMEOUT)
    except Exception as e:
        logger.debug(f"Failed to send notification: {e}")


class NativeNotifier:
    """NotificationSink backed by ``send_notification``.

    Break sounds go through the sound player, so the OS sound stays off.
    """

    def show(self, title: str, message: str) -> None:
        send_notification(title, message, sound=False)


def _build_command(system: str, title: str, message: str, sound: bool) -> Optional[list[str]]:
    if system == "Darwin":
        return ["osascript", "-e", _applescript(title, message, sound)]
    if system == "Windows":
        return ["powershell", "-NoProfile", "-Command", _toast_script(title, message)]
    if system == "Linux":
        return ["notify-send", "--app-name", APP_ID, title, message]
    return None


def _applescript(title: str, message: str, sound: bool) -> str:
    def quote(text: str) -> str:
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'

    script = f"display notification {quote(message)} with title {quote(title)}"
    if sound:
        script += ' sound name "default"'
    return script


def _toast_script(title: str, message: str) -> str:
    # XML-escaped text inside a single-quoted PowerShell literal
    xml = (
        "<toast><visual><binding template='ToastGeneric'>"
        f"<text>{escape(title)}</text><text>{escape(message)}</text>"
        "</binding></visual></toast>"
    ).replace("'", "''")
    return (
        "[Windows.UI.Notifications.ToastNotificationManager, Windows.UI.Notifications, "
        "ContentType = WindowsRuntime] > $null; "
        "[Windows.Data.Xml.Dom.XmlDocument, Windows.Data.Xml.Dom.XmlDocument, "
        "ContentType = WindowsRuntime] > $null; "
        "$doc = New-Object Windows.Data.Xml.Dom.XmlDocument; "
        f"$doc.LoadXml('{xml}'); "
        "$toast = New-Object Windows.UI.Notifications.ToastNotification $doc; "
        "[Windows.UI.Notifications.ToastNotificationManager]::"
        f"CreateToastNotifier('{APP_ID}').Show($toast)"
    )
