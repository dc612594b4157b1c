"""OS-level user idle and screen lock probe.

Platform-specific implementations:
- macOS: Quartz session dictionary + HID idle timer (pyobjc)
- Windows: ctypes OpenInputDesktop + GetLastInputInfo
- Fallback: always UNKNOWN
"""

import logging
import platform
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

_system = platform.system()


class IdleState(str, Enum):
    """Session state as reported by the OS."""

    ACTIVE = "active"
    IDLE = "idle"
    LOCKED = "locked"
    UNKNOWN = "unknown"


class SystemIdleProbe:
    """Reports whether the session is active, idle or locked."""

    def get_state(self, threshold_seconds: float) -> IdleState:
        """Classify the current session.

        Args:
            threshold_seconds: Seconds without input after which the user
                counts as idle.
        """
        try:
            if _system == "Darwin":
                locked, idle_seconds = _probe_macos()
            elif _system == "Windows":
                locked, idle_seconds = _probe_windows()
            else:
                return IdleState.UNKNOWN
        except Exception as e:
            logger.debug(f"Idle probe failed: {e}")
            return IdleState.UNKNOWN

        if locked:
            return IdleState.LOCKED
        if idle_seconds is None:
            return IdleState.UNKNOWN
        if idle_seconds >= threshold_seconds:
            return IdleState.IDLE
        return IdleState.ACTIVE


def _probe_macos() -> tuple[bool, Optional[float]]:
    """Read lock state and seconds since last input on macOS."""
    from Quartz.CoreGraphics import (  # type: ignore
        CGEventSourceSecondsSinceLastEventType,
        CGSessionCopyCurrentDictionary,
        kCGAnyInputEventType,
        kCGEventSourceStateHIDSystemState,
    )

    session = CGSessionCopyCurrentDictionary() or {}
    locked = bool(session.get("CGSSessionScreenIsLocked", 0))
    idle_seconds = CGEventSourceSecondsSinceLastEventType(
        kCGEventSourceStateHIDSystemState, kCGAnyInputEventType
    )
    return locked, idle_seconds


def _probe_windows() -> tuple[bool, Optional[float]]:
    """Read lock state and seconds since last input on Windows."""
    import ctypes
    import ctypes.wintypes as wintypes

    user32 = ctypes.windll.user32
    kernel32 = ctypes.windll.kernel32

    DESKTOP_SWITCHDESKTOP = 0x0100
    user32.OpenInputDesktop.restype = wintypes.HANDLE

    # The input desktop can't be opened while the workstation is locked
    desktop = user32.OpenInputDesktop(0, False, DESKTOP_SWITCHDESKTOP)
    if not desktop:
        return True, None
    try:
        locked = not user32.SwitchDesktop(desktop)
    finally:
        user32.CloseDesktop(desktop)

    class LASTINPUTINFO(ctypes.Structure):
        _fields_ = [("cbSize", wintypes.UINT), ("dwTime", wintypes.DWORD)]

    last_input = LASTINPUTINFO()
    last_input.cbSize = ctypes.sizeof(LASTINPUTINFO)
    if not user32.GetLastInputInfo(ctypes.byref(last_input)):
        return locked, None

    # Both counters are DWORD milliseconds that wrap after ~49.7 days
    millis = (kernel32.GetTickCount() - last_input.dwTime) & 0xFFFFFFFF
    return locked, millis / 1000.0
