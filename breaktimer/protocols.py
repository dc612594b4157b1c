"""Protocol types for BreakScheduler dependencies.

Defines the interfaces that BreakScheduler requires from its collaborators,
so the scheduler can run headless in tests.
"""

from typing import Protocol, runtime_checkable

from .config import Settings, SoundType
from .idle import IdleState


@runtime_checkable
class SettingsStoreProtocol(Protocol):
    """Read access to user settings."""

    def get(self) -> Settings: ...


@runtime_checkable
class IdleProbeProtocol(Protocol):
    """Reports the session's idle/lock state."""

    def get_state(self, threshold_seconds: float) -> IdleState: ...


@runtime_checkable
class NotificationSinkProtocol(Protocol):
    """Shows a toast notification."""

    def show(self, title: str, message: str) -> None: ...


@runtime_checkable
class BreakWindowManagerProtocol(Protocol):
    """Opens popup break windows."""

    def open_break_windows(self) -> None: ...


@runtime_checkable
class SoundSinkProtocol(Protocol):
    """Triggers the break-start sound."""

    def play_sound(self, sound_type: SoundType) -> None: ...


@runtime_checkable
class TraySinkProtocol(Protocol):
    """Redraws the tray icon and menu."""

    def refresh(self) -> None: ...
