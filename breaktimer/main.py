"""BreakTimer - Main entry point."""

import logging
import os
import signal
import sys
from dataclasses import replace

# Support both relative imports (module) and absolute imports (PyInstaller)
try:
    from . import __version__
    from .config import Settings, SettingsStore, setup_logging
    from .driver import TickDriver
    from .idle import SystemIdleProbe
    from .ipc import IpcBridge
    from .notifications import NativeNotifier
    from .scheduler import BreakScheduler
    from .sounds import SoundPlayer
    from .system_events import start_system_signal_listener
    from .ui.break_window import BreakWindowManager
    from .ui.tray import TrayIcon
except ImportError:
    from breaktimer import __version__
    from breaktimer.config import Settings, SettingsStore, setup_logging
    from breaktimer.driver import TickDriver
    from breaktimer.idle import SystemIdleProbe
    from breaktimer.ipc import IpcBridge
    from breaktimer.notifications import NativeNotifier
    from breaktimer.scheduler import BreakScheduler
    from breaktimer.sounds import SoundPlayer
    from breaktimer.system_events import start_system_signal_listener
    from breaktimer.ui.break_window import BreakWindowManager
    from breaktimer.ui.tray import TrayIcon

logger = logging.getLogger(__name__)


class BreakTimerApp:
    """Main application orchestrator.

    Wires the scheduler to its sinks, owns the tick driver and tray, and
    routes tray-menu actions and system signals to the scheduler.
    """

    def __init__(self):
        """Initialize the application."""
        self.settings_store = SettingsStore.load()
        setup_logging(self.settings_store.get().debug_mode)

        logger.info(f"BreakTimer {__version__} starting...")

        self.tray = TrayIcon(
            get_status=lambda: self.scheduler.get_status(),
            get_settings=self.settings_store.get,
            on_start_break_now=self._on_start_break_now,
            on_toggle_breaks=self._on_toggle_breaks,
            on_quit=self._on_quit,
        )

        # Window and sound effects go through the app: the bridge needs the scheduler first
        self.scheduler = BreakScheduler(
            settings_store=self.settings_store,
            idle_probe=SystemIdleProbe(),
            notifier=NativeNotifier(),
            window_manager=self,
            sound_sink=self,
            tray=self.tray,
        )

        self.bridge = IpcBridge(self.scheduler, self.settings_store)
        self.bridge.subscribe(SoundPlayer())
        self.break_windows = BreakWindowManager(
            self.bridge,
            get_settings=self.settings_store.get,
            on_closed=self.scheduler.end_popup_break,
        )

        self.driver = TickDriver(self.scheduler)
        self.settings_store.on_change = self._on_settings_changed

        self._shutdown_done = False

    def run(self) -> None:
        """Run the application."""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        self.driver.start()
        start_system_signal_listener(self.scheduler.on_system_signal)

        self.tray.run_detached()

        logger.info("BreakTimer running")
        try:
            # Tk owns the main thread; popups are queued onto it
            self.break_windows.run_mainloop()
        finally:
            self._shutdown()

    # -- Sinks forwarded once wiring is complete ---------------------------

    def open_break_windows(self) -> None:
        self.break_windows.open_break_windows()

    def play_sound(self, sound_type) -> None:
        self.bridge.play_sound(sound_type)

    # -- Event handlers ---------------------------------------------------

    def _on_start_break_now(self) -> None:
        logger.info("Break requested from tray")
        self.scheduler.start_break_now()

    def _on_toggle_breaks(self, enabled: bool) -> None:
        settings = replace(self.settings_store.get(), breaks_enabled=enabled)
        self.settings_store.set(settings)

    def _on_settings_changed(self, settings: Settings) -> None:
        """Re-initialize breaks so new frequencies apply immediately."""
        logger.info("Settings changed, re-initializing breaks")
        setup_logging(settings.debug_mode)
        self.driver.start()
        self.tray.refresh()

    def _on_quit(self) -> None:
        logger.info("Quit requested")
        self._stop_loops()

    def _signal_handler(self, signum, frame) -> None:
        logger.info(f"Received signal {signum}")
        self._stop_loops()

    def _stop_loops(self) -> None:
        self.tray.stop()
        self.break_windows.stop()

    # -- Lifecycle --------------------------------------------------------

    def _shutdown(self) -> None:
        """Shutdown the application. Safe to call multiple times."""
        if self._shutdown_done:
            return
        self._shutdown_done = True
        logger.info("Shutting down...")
        self.driver.stop()
        self.tray.stop()
        logger.info("Shutdown complete")

    def __enter__(self) -> "BreakTimerApp":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._shutdown()


class SingleInstanceLock:
    """File-based single-instance lock using advisory locking."""

    def __init__(self):
        self._file = None
        self._path = os.path.join(SettingsStore.get_config_dir(), ".breaktimer.lock")

    def acquire(self) -> bool:
        """Try to acquire the lock. Returns True on success."""
        os.makedirs(os.path.dirname(self._path), exist_ok=True)
        self._file = open(self._path, "a+")  # noqa: SIM115
        try:
            if sys.platform == "win32":
                import msvcrt
                msvcrt.locking(self._file.fileno(), msvcrt.LK_NBLCK, 1)
            else:
                import fcntl
                fcntl.flock(self._file, fcntl.LOCK_EX | fcntl.LOCK_NB)
            self._file.seek(0)
            self._file.truncate(0)
            self._file.write(str(os.getpid()))
            self._file.flush()
            return True
        except OSError:
            self._file.close()
            self._file = None
            return False

    def release(self) -> None:
        """Release the lock and clean up."""
        if self._file:
            try:
                if sys.platform == "win32":
                    import msvcrt
                    try:
                        msvcrt.locking(self._file.fileno(), msvcrt.LK_UNLCK, 1)
                    except OSError:
                        pass
                else:
                    import fcntl
                    fcntl.flock(self._file, fcntl.LOCK_UN)
                self._file.close()
                os.unlink(self._path)
            except OSError:
                pass
            self._file = None


def main() -> None:
    """Main entry point."""
    lock = SingleInstanceLock()
    if not lock.acquire():
        print("BreakTimer is already running.")
        sys.exit(0)

    try:
        with BreakTimerApp() as app:
            app.run()
    finally:
        lock.release()


if __name__ == "__main__":
    main()
