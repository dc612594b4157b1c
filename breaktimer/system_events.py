"""System signal listeners for suspend/resume and screen lock/unlock.

The signals are informational: the scheduler logs them, but its state is
derived from the idle probe and tick drift.

Platform-specific implementations:
- macOS: pyobjc NSWorkspace + NSDistributedNotificationCenter notifications
- Windows: ctypes hidden window message pump
"""

import logging
import platform
import threading
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)

_system = platform.system()


class SystemSignal(Enum):
    SUSPEND = "suspend"
    RESUME = "resume"
    LOCK_SCREEN = "lock-screen"
    UNLOCK_SCREEN = "unlock-screen"


def start_system_signal_listener(on_signal: Callable[[SystemSignal], None]) -> None:
    """Start platform-specific listeners delivering ``SystemSignal`` values.

    Listeners run on daemon threads and die automatically on process exit.
    """
    if _system == "Darwin":
        _start_macos_listener(on_signal)
    elif _system == "Windows":
        _start_windows_listener(on_signal)
    else:
        logger.warning(f"System signals not supported on {_system}")


# ---------------------------------------------------------------------------
# macOS
# ---------------------------------------------------------------------------

_MACOS_WORKSPACE_SIGNALS = {
    "NSWorkspaceWillSleepNotification": SystemSignal.SUSPEND,
    "NSWorkspaceDidWakeNotification": SystemSignal.RESUME,
}

_MACOS_DISTRIBUTED_SIGNALS = {
    "com.apple.screenIsLocked": SystemSignal.LOCK_SCREEN,
    "com.apple.screenIsUnlocked": SystemSignal.UNLOCK_SCREEN,
}


def _start_macos_listener(on_signal: Callable[[SystemSignal], None]) -> None:
    """Listen for sleep/wake and lock/unlock notifications on macOS."""
    try:
        from AppKit import NSWorkspace
        from Foundation import NSDistributedNotificationCenter, NSObject
        from PyObjCTools import AppHelper
    except ImportError:
        logger.warning("pyobjc not available, system signals disabled")
        return

    names = {**_MACOS_WORKSPACE_SIGNALS, **_MACOS_DISTRIBUTED_SIGNALS}

    class _SignalObserver(NSObject):
        def handleSignal_(self, notification):
            signal = names.get(str(notification.name()))
            if signal is not None:
                _safe_call(on_signal, signal)

    def run_loop():
        observer = _SignalObserver.alloc().init()

        workspace_center = NSWorkspace.sharedWorkspace().notificationCenter()
        for name in _MACOS_WORKSPACE_SIGNALS:
            workspace_center.addObserver_selector_name_object_(
                observer, "handleSignal:", name, None,
            )

        distributed_center = NSDistributedNotificationCenter.defaultCenter()
        for name in _MACOS_DISTRIBUTED_SIGNALS:
            distributed_center.addObserver_selector_name_object_(
                observer, "handleSignal:", name, None,
            )

        logger.debug("macOS system signal listener started")
        AppHelper.runConsoleEventLoop()

    thread = threading.Thread(target=run_loop, name="system-signal-listener", daemon=True)
    thread.start()


# ---------------------------------------------------------------------------
# Windows
# ---------------------------------------------------------------------------

def _start_windows_listener(on_signal: Callable[[SystemSignal], None]) -> None:
    """Listen for power and session events via a hidden message-only window."""
    try:
        import ctypes
        import ctypes.wintypes as wintypes
    except ImportError:
        logger.warning("ctypes not available, system signals disabled")
        return

    user32 = ctypes.windll.user32
    kernel32 = ctypes.windll.kernel32

    WM_POWERBROADCAST = 0x0218
    WM_WTSSESSION_CHANGE = 0x02B1
    PBT_APMSUSPEND = 0x0004
    PBT_APMRESUMEAUTOMATIC = 0x0012
    WTS_SESSION_LOCK = 0x7
    WTS_SESSION_UNLOCK = 0x8
    NOTIFY_FOR_THIS_SESSION = 0
    HWND_MESSAGE = -3

    signals = {
        (WM_POWERBROADCAST, PBT_APMSUSPEND): SystemSignal.SUSPEND,
        (WM_POWERBROADCAST, PBT_APMRESUMEAUTOMATIC): SystemSignal.RESUME,
        (WM_WTSSESSION_CHANGE, WTS_SESSION_LOCK): SystemSignal.LOCK_SCREEN,
        (WM_WTSSESSION_CHANGE, WTS_SESSION_UNLOCK): SystemSignal.UNLOCK_SCREEN,
    }

    WNDPROC = ctypes.WINFUNCTYPE(
        ctypes.c_long, wintypes.HWND, ctypes.c_uint, wintypes.WPARAM, wintypes.LPARAM,
    )

    def wnd_proc(hwnd, msg, wparam, lparam):
        signal = signals.get((msg, wparam))
        if signal is not None:
            _safe_call(on_signal, signal)
        return user32.DefWindowProcW(hwnd, msg, wparam, lparam)

    def run_message_pump():
        wnd_proc_cb = WNDPROC(wnd_proc)
        class_name = "BreakTimerSignals"

        class WNDCLASSW(ctypes.Structure):
            _fields_ = [
                ("style", wintypes.UINT),
                ("lpfnWndProc", WNDPROC),
                ("cbClsExtra", ctypes.c_int),
                ("cbWndExtra", ctypes.c_int),
                ("hInstance", wintypes.HINSTANCE),
                ("hIcon", wintypes.HICON),
                ("hCursor", wintypes.HANDLE),
                ("hbrBackground", wintypes.HBRUSH),
                ("lpszMenuName", wintypes.LPCWSTR),
                ("lpszClassName", wintypes.LPCWSTR),
            ]

        wc = WNDCLASSW()
        wc.lpfnWndProc = wnd_proc_cb
        wc.hInstance = kernel32.GetModuleHandleW(None)
        wc.lpszClassName = class_name

        if not user32.RegisterClassW(ctypes.byref(wc)):
            logger.warning("Failed to register window class for system signals")
            return

        hwnd = user32.CreateWindowExW(
            0, class_name, "BreakTimer Signals", 0,
            0, 0, 0, 0,
            HWND_MESSAGE, None, wc.hInstance, None,
        )
        if not hwnd:
            logger.warning("Failed to create message window for system signals")
            return

        try:
            ctypes.windll.wtsapi32.WTSRegisterSessionNotification(hwnd, NOTIFY_FOR_THIS_SESSION)
        except Exception:
            logger.debug("WTS session notification registration failed")

        logger.debug("Windows system signal listener started")

        msg = wintypes.MSG()
        while user32.GetMessageW(ctypes.byref(msg), None, 0, 0) > 0:
            user32.TranslateMessage(ctypes.byref(msg))
            user32.DispatchMessageW(ctypes.byref(msg))

    thread = threading.Thread(target=run_message_pump, name="system-signal-listener", daemon=True)
    thread.start()


def _safe_call(fn: Callable, *args) -> None:
    """Call a function, catching and logging any exceptions."""
    try:
        fn(*args)
    except Exception:
        logger.exception(f"Error in system signal callback {fn.__name__}")
