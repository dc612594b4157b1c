"""Break start/end sounds.

``SoundPlayer`` subscribes to the IPC event surface and plays a short system
sound for ``sound-start-play`` and ``sound-end-play`` events. Playback is
started in the background and never waited on.
"""

import logging
import platform
import subprocess

from .config import SoundType
from .ipc import IpcChannel

logger = logging.getLogger(__name__)

# (start, end) system sound names per sound type
MACOS_SOUNDS = {
    SoundType.GONG: ("Glass", "Glass"),
    SoundType.BLIP: ("Tink", "Pop"),
    SoundType.BLOOP: ("Bottle", "Bottle"),
    SoundType.PING: ("Ping", "Purr"),
    SoundType.SCIFI: ("Funk", "Hero"),
}

LINUX_SOUNDS = {
    SoundType.GONG: ("bell", "complete"),
    SoundType.BLIP: ("message", "message"),
    SoundType.BLOOP: ("bell", "bell"),
    SoundType.PING: ("message-new-instant", "complete"),
    SoundType.SCIFI: ("service-login", "service-logout"),
}

LINUX_SOUND_DIR = "/usr/share/sounds/freedesktop/stereo"


class SoundPlayer:
    """IPC listener that plays break sounds."""

    def __call__(self, channel: IpcChannel, *args) -> None:
        if channel == IpcChannel.SOUND_START_PLAY:
            self.play(SoundType(args[0]), end=False)
        elif channel == IpcChannel.SOUND_END_PLAY:
            self.play(SoundType(args[0]), end=True)

    def play(self, sound_type: SoundType, end: bool = False) -> None:
        """Play the start (or end) sound for ``sound_type``."""
        if sound_type == SoundType.NONE:
            return

        system = platform.system()
        index = 1 if end else 0
        try:
            if system == "Darwin":
                name = MACOS_SOUNDS[sound_type][index]
                subprocess.Popen(["afplay", f"/System/Library/Sounds/{name}.aiff"])
            elif system == "Windows":
                import winsound

                flags = winsound.MB_OK if end else winsound.MB_ICONASTERISK
                winsound.MessageBeep(flags)
            elif system == "Linux":
                name = LINUX_SOUNDS[sound_type][index]
                subprocess.Popen(["paplay", f"{LINUX_SOUND_DIR}/{name}.oga"])
            else:
                logger.debug(f"Sounds not supported on {system}")
        except Exception as e:
            logger.debug(f"Failed to play sound {sound_type.value}: {e}")
