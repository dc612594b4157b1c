"""System tray icon and menu."""

import logging
import platform
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from PIL import Image, ImageDraw

from ..config import Settings
from ..scheduler import SchedulerState

try:
    import pystray
    from pystray import MenuItem as Item
except ImportError:
    pystray = None
    Item = None

__all__ = ["TrayIcon", "TrayState", "STATE_COLORS", "create_icon_image", "tray_state_for"]

logger = logging.getLogger(__name__)


def _hide_from_dock() -> None:
    """Hide the app from the macOS Dock."""
    if platform.system() != "Darwin":
        return
    try:
        import AppKit
        ns_app = AppKit.NSApplication.sharedApplication()
        # NSApplicationActivationPolicyAccessory = 1 (no Dock icon)
        ns_app.setActivationPolicy_(1)
    except Exception:
        pass


class TrayState(Enum):
    """Tray icon states."""

    SCHEDULED = "scheduled"  # Green - next break is counting down
    IDLE = "idle"  # Gray - no break pending (idle / outside working hours)
    ON_BREAK = "on_break"  # Blue - popup break open
    DISABLED = "disabled"  # Red - breaks turned off


STATE_COLORS = {
    TrayState.SCHEDULED: "#22c55e",
    TrayState.IDLE: "#9ca3af",
    TrayState.ON_BREAK: "#3b82f6",
    TrayState.DISABLED: "#ef4444",
}


def create_icon_image(color: str, size: int = 64) -> Image.Image:
    """Create a simple colored circle icon."""
    image = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    margin = size // 8
    draw.ellipse(
        [margin, margin, size - margin, size - margin],
        fill=color,
    )
    return image


def tray_state_for(status: SchedulerState, settings: Settings) -> TrayState:
    """Pick the icon state for a scheduler snapshot."""
    if not settings.breaks_enabled:
        return TrayState.DISABLED
    if status.having_break:
        return TrayState.ON_BREAK
    if status.break_time is None:
        return TrayState.IDLE
    return TrayState.SCHEDULED


def _format_next_break(break_time: Optional[datetime], now: datetime) -> str:
    if break_time is None:
        return "No break scheduled"
    remaining = max(0, int((break_time - now).total_seconds()))
    minutes = remaining // 60
    return f"Next break at {break_time:%H:%M} (in {minutes}m)"


class TrayIcon:
    """System tray icon showing the break schedule.

    Acts as the scheduler's TraySink: ``refresh()`` re-reads the scheduler
    state and redraws the icon and menu.
    """

    def __init__(
        self,
        get_status: Callable[[], SchedulerState],
        get_settings: Callable[[], Settings],
        on_start_break_now: Optional[Callable[[], None]] = None,
        on_toggle_breaks: Optional[Callable[[bool], None]] = None,
        on_quit: Optional[Callable[[], None]] = None,
    ):
        """Initialize tray icon.

        Args:
            get_status: Returns a scheduler state snapshot
            get_settings: Returns the current settings
            on_start_break_now: Callback when "Start Break Now" is clicked
            on_toggle_breaks: Callback with the new breaks-enabled value
            on_quit: Callback when quit is clicked
        """
        if pystray is None:
            raise ImportError("pystray is required for system tray support")

        self._get_status = get_status
        self._get_settings = get_settings
        self._on_start_break_now = on_start_break_now
        self._on_toggle_breaks = on_toggle_breaks
        self._on_quit = on_quit

        self._icon: Optional[pystray.Icon] = None

    def _create_menu(self) -> "pystray.Menu":
        """Create the tray menu."""
        status = self._get_status()
        settings = self._get_settings()

        return pystray.Menu(
            Item(_format_next_break(status.break_time, datetime.now()), None, enabled=False),
            Item(
                "Start Break Now",
                self._handle_start_break_now,
                enabled=settings.breaks_enabled and not status.having_break,
            ),
            Item(
                "Breaks Enabled",
                self._handle_toggle_breaks,
                checked=lambda item: self._get_settings().breaks_enabled,
            ),
            pystray.Menu.SEPARATOR,
            Item("Quit", self._handle_quit),
        )

    # -- Menu action handlers ------------------------------------------------

    def _handle_start_break_now(self, icon, item) -> None:
        if self._on_start_break_now:
            self._on_start_break_now()

    def _handle_toggle_breaks(self, icon, item) -> None:
        if self._on_toggle_breaks:
            self._on_toggle_breaks(not self._get_settings().breaks_enabled)

    def _handle_quit(self, icon, item) -> None:
        if self._on_quit:
            self._on_quit()
        self.stop()

    # -- TraySink ------------------------------------------------------------

    def refresh(self) -> None:
        """Update the tray icon image and menu."""
        if self._icon:
            state = tray_state_for(self._get_status(), self._get_settings())
            self._icon.icon = create_icon_image(STATE_COLORS[state])
            self._icon.menu = self._create_menu()

    def _build_icon(self) -> "pystray.Icon":
        state = tray_state_for(self._get_status(), self._get_settings())
        return pystray.Icon(
            "BreakTimer",
            create_icon_image(STATE_COLORS[state]),
            "BreakTimer",
            self._create_menu(),
        )

    def stop(self) -> None:
        """Stop the tray icon."""
        if self._icon:
            self._icon.stop()
            self._icon = None
            logger.info("Tray icon stopped")

    def run_detached(self) -> None:
        """Show the icon without taking over the main thread.

        The caller's main loop (Tk) keeps running the platform event loop.
        """
        if self._icon is not None:
            return
        _hide_from_dock()
        self._icon = self._build_icon()
        self._icon.run_detached()
        logger.info("Tray icon started")
