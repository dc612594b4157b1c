"""Command and event surfaces between the UI layer and the scheduler.

Commands are request/response calls (``invoke``) that map one-to-one onto
scheduler and settings operations. Events (``send``) are fire-and-forget
broadcasts to every subscribed listener, e.g. the sound player.
"""

import logging
from enum import Enum
from typing import Any, Callable

from .config import Settings, SoundType
from .protocols import SettingsStoreProtocol
from .scheduler import BreakScheduler

logger = logging.getLogger(__name__)

Listener = Callable[..., None]


class IpcChannel(str, Enum):
    ALLOW_POSTPONE_GET = "allow-postpone-get"
    BREAK_POSTPONE = "break-postpone"
    SOUND_START_PLAY = "sound-start-play"
    SOUND_END_PLAY = "sound-end-play"
    SETTINGS_GET = "settings-get"
    SETTINGS_SET = "settings-set"
    BREAK_LENGTH_GET = "break-length-get"


class IpcBridge:
    """Routes UI commands to the core and core events to UI listeners."""

    def __init__(self, scheduler: BreakScheduler, settings_store: SettingsStoreProtocol) -> None:
        self._scheduler = scheduler
        self._settings_store = settings_store
        self._listeners: list[Listener] = []
        self._handlers: dict[IpcChannel, Callable[..., Any]] = {
            IpcChannel.ALLOW_POSTPONE_GET: self._scheduler.get_allow_postpone,
            IpcChannel.BREAK_POSTPONE: self._scheduler.postpone_break,
            IpcChannel.SOUND_START_PLAY: self._relay(IpcChannel.SOUND_START_PLAY),
            IpcChannel.SOUND_END_PLAY: self._relay(IpcChannel.SOUND_END_PLAY),
            IpcChannel.SETTINGS_GET: self._settings_store.get,
            IpcChannel.SETTINGS_SET: self._set_settings,
            IpcChannel.BREAK_LENGTH_GET: self._scheduler.get_break_length,
        }

    def subscribe(self, listener: Listener) -> None:
        """Register ``listener(channel, *args)`` for outgoing events."""
        self._listeners.append(listener)

    def invoke(self, channel: IpcChannel, *args: Any) -> Any:
        """Handle a request from the UI and return its response."""
        try:
            handler = self._handlers[IpcChannel(channel)]
        except (KeyError, ValueError):
            raise ValueError(f"Unknown IPC channel: {channel}") from None
        logger.info(f"Handle {IpcChannel(channel).value}")
        return handler(*args)

    def send(self, channel: IpcChannel, *args: Any) -> None:
        """Broadcast an event to all listeners."""
        logger.info(f"Send event {channel.value} {list(args)}")
        for listener in list(self._listeners):
            try:
                listener(channel, *args)
            except Exception:
                logger.exception(f"Error in IPC listener for {channel.value}")

    def play_sound(self, sound_type: SoundType) -> None:
        """SoundSink: announce the start-of-break sound."""
        self.send(IpcChannel.SOUND_START_PLAY, sound_type)

    # -- Internal ---------------------------------------------------------

    def _relay(self, channel: IpcChannel) -> Callable[[SoundType], None]:
        def handler(sound_type: SoundType) -> None:
            self.send(channel, SoundType(sound_type))
        return handler

    def _set_settings(self, settings: Settings) -> None:
        self._settings_store.set(settings)
