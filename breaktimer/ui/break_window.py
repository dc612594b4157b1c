"""Popup break window using tkinter.

Tk must live on the main thread (macOS aborts otherwise), so
``BreakWindowManager.run_mainloop()`` owns a hidden root there. Other
threads only queue open requests, which the root drains with ``after()``.
"""

import logging
import queue
import threading
import tkinter as tk
from tkinter import ttk
from typing import Callable, Optional

from ..config import Settings, SoundType, duration_seconds
from ..ipc import IpcBridge, IpcChannel

logger = logging.getLogger(__name__)

POLL_INTERVAL_MS = 200
WINDOW_WIDTH = 480
WINDOW_HEIGHT = 260


class BreakWindow:
    """Topmost window counting down the break length.

    Talks to the core only through the IPC bridge, the same way a separate
    renderer would. ``on_closed`` fires however the window goes away.
    """

    def __init__(
        self,
        bridge: IpcBridge,
        settings: Settings,
        on_closed: Callable[[], None],
    ):
        self._bridge = bridge
        self._settings = settings
        self._on_closed = on_closed
        self._window: Optional[tk.Toplevel] = None
        self._remaining = 0
        self._countdown_var: Optional[tk.StringVar] = None

    def show(self, root: tk.Tk) -> None:
        """Build the window under ``root`` and start the countdown."""
        self._remaining = duration_seconds(self._bridge.invoke(IpcChannel.BREAK_LENGTH_GET))
        allow_postpone = self._bridge.invoke(IpcChannel.ALLOW_POSTPONE_GET)

        self._window = tk.Toplevel(root)
        self._window.title("BreakTimer")
        self._window.attributes("-topmost", True)
        self._window.geometry(f"{WINDOW_WIDTH}x{WINDOW_HEIGHT}")
        self._window.resizable(False, False)

        # Center on screen
        self._window.update_idletasks()
        x = (self._window.winfo_screenwidth() - WINDOW_WIDTH) // 2
        y = (self._window.winfo_screenheight() - WINDOW_HEIGHT) // 2
        self._window.geometry(f"+{x}+{y}")

        frame = ttk.Frame(self._window, padding=20)
        frame.pack(fill=tk.BOTH, expand=True)

        ttk.Label(
            frame, text=self._settings.break_title, font=("Helvetica", 18, "bold")
        ).pack(pady=(0, 10))
        ttk.Label(
            frame, text=self._settings.break_message, wraplength=420, justify=tk.CENTER
        ).pack(pady=5)

        self._countdown_var = tk.StringVar(master=self._window, value=self._format_remaining())
        ttk.Label(
            frame, textvariable=self._countdown_var, font=("Helvetica", 24)
        ).pack(pady=10)

        button_frame = ttk.Frame(frame)
        button_frame.pack(fill=tk.X, pady=10)

        ttk.Button(button_frame, text="Skip", command=self._close).pack(side=tk.LEFT)
        if allow_postpone:
            ttk.Button(button_frame, text="Postpone", command=self._postpone).pack(
                side=tk.RIGHT
            )

        self._window.protocol("WM_DELETE_WINDOW", self._close)
        self._window.after(1000, self._countdown)

    def _format_remaining(self) -> str:
        minutes, seconds = divmod(self._remaining, 60)
        return f"{minutes:02d}:{seconds:02d}"

    def _countdown(self) -> None:
        if self._window is None:
            return
        self._remaining -= 1
        if self._remaining <= 0:
            if self._settings.sound_type != SoundType.NONE:
                self._bridge.invoke(IpcChannel.SOUND_END_PLAY, self._settings.sound_type)
            self._close()
            return
        self._countdown_var.set(self._format_remaining())
        self._window.after(1000, self._countdown)

    def _postpone(self) -> None:
        self._bridge.invoke(IpcChannel.BREAK_POSTPONE)
        self._close()

    def _close(self) -> None:
        if self._window is None:
            return
        self._window.destroy()
        self._window = None
        self._on_closed()


class BreakWindowManager:
    """Shows break windows, one at a time, from the main-thread Tk loop.

    ``open_break_windows()`` and ``stop()`` may be called from any thread.
    """

    def __init__(
        self,
        bridge: IpcBridge,
        get_settings: Callable[[], Settings],
        on_closed: Callable[[], None],
    ):
        self._bridge = bridge
        self._get_settings = get_settings
        self._on_closed = on_closed
        self._requests: "queue.Queue[Optional[Settings]]" = queue.Queue()
        self._window_open = threading.Event()
        self._root: Optional[tk.Tk] = None

    @property
    def window_open(self) -> bool:
        return self._window_open.is_set()

    def open_break_windows(self) -> None:
        """Queue a break window unless one is already showing."""
        if self._window_open.is_set():
            logger.debug("Break window already open")
            return
        self._window_open.set()

        settings = self._get_settings()
        if settings.sound_type != SoundType.NONE:
            self._bridge.play_sound(settings.sound_type)

        self._requests.put(settings)
        logger.info("Break window requested")

    def stop(self) -> None:
        """Ask the main loop to exit."""
        self._requests.put(None)

    def run_mainloop(self) -> None:
        """Run the Tk loop on the calling thread until ``stop()``."""
        self._root = tk.Tk()
        self._root.withdraw()
        self._root.after(POLL_INTERVAL_MS, self._drain_requests)
        try:
            self._root.mainloop()
        finally:
            self._root.destroy()
            self._root = None

    def _drain_requests(self) -> None:
        while True:
            try:
                settings = self._requests.get_nowait()
            except queue.Empty:
                break
            if settings is None:
                self._root.quit()
                return
            self._show(settings)
        self._root.after(POLL_INTERVAL_MS, self._drain_requests)

    def _show(self, settings: Settings) -> None:
        window = BreakWindow(self._bridge, settings, self._handle_closed)
        try:
            window.show(self._root)
            logger.info("Break window opened")
        except Exception:
            logger.exception("Break window failed")
            self._handle_closed()

    def _handle_closed(self) -> None:
        self._window_open.clear()
        self._on_closed()
