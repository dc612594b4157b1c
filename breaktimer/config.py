"""Settings management for BreakTimer."""

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from platformdirs import user_config_dir, user_log_dir

__all__ = [
    "Duration",
    "WorkingRange",
    "DayConfig",
    "NotificationType",
    "SoundType",
    "Settings",
    "SettingsStore",
    "WEEKDAY_KEYS",
    "duration_seconds",
    "setup_logging",
]

logger = logging.getLogger(__name__)

APP_NAME = "BreakTimer"
APP_AUTHOR = "BreakTimer"

# Index matches datetime.weekday() (Monday == 0)
WEEKDAY_KEYS = (
    "working_hours_monday",
    "working_hours_tuesday",
    "working_hours_wednesday",
    "working_hours_thursday",
    "working_hours_friday",
    "working_hours_saturday",
    "working_hours_sunday",
)


class NotificationType(str, Enum):
    """How a break is presented."""

    NOTIFICATION = "notification"  # Self-dismissing toast
    POPUP = "popup"  # Break window, stays open until closed


class SoundType(str, Enum):
    """Sound played when a break starts and ends."""

    NONE = "none"
    GONG = "gong"
    BLIP = "blip"
    BLOOP = "bloop"
    PING = "ping"
    SCIFI = "scifi"


@dataclass(frozen=True)
class Duration:
    """A length of time made of hour/minute/second components.

    There is no day component: durations are never wider than what
    ``HH:MM:SS`` can express.
    """

    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    @classmethod
    def parse(cls, value: str) -> "Duration":
        """Parse an ``HH:MM:SS`` (or ``MM:SS``) string."""
        parts = str(value).strip().split(":")
        if not 2 <= len(parts) <= 3:
            raise ValueError(f"Invalid duration: {value!r}")
        try:
            numbers = [int(p) for p in parts]
        except ValueError:
            raise ValueError(f"Invalid duration: {value!r}") from None
        if any(n < 0 for n in numbers):
            raise ValueError(f"Negative duration component: {value!r}")
        if len(numbers) == 2:
            numbers.insert(0, 0)
        hours, minutes, seconds = numbers
        return cls(hours=hours, minutes=minutes, seconds=seconds)

    def total_seconds(self) -> int:
        return self.hours * 3600 + self.minutes * 60 + self.seconds

    def add_to(self, moment: datetime) -> datetime:
        """Return ``moment`` advanced by this duration, component by component."""
        return moment + timedelta(
            hours=self.hours, minutes=self.minutes, seconds=self.seconds
        )

    def __str__(self) -> str:
        return f"{self.hours:02d}:{self.minutes:02d}:{self.seconds:02d}"


def duration_seconds(duration: Duration) -> int:
    """Length of ``duration`` in seconds, never less than 1."""
    return duration.total_seconds() or 1


@dataclass
class WorkingRange:
    """A time-of-day window, in minutes after midnight (inclusive)."""

    from_minutes: int = 9 * 60
    to_minutes: int = 18 * 60


@dataclass
class DayConfig:
    """Working hours for one weekday."""

    enabled: bool = True
    ranges: list[WorkingRange] = field(default_factory=lambda: [WorkingRange()])

    @classmethod
    def _from_dict(cls, data: dict) -> "DayConfig":
        return cls(
            enabled=bool(data.get("enabled", True)),
            ranges=[
                WorkingRange(int(r["from_minutes"]), int(r["to_minutes"]))
                for r in data.get("ranges", [])
            ],
        )

    def _to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "ranges": [
                {"from_minutes": r.from_minutes, "to_minutes": r.to_minutes}
                for r in self.ranges
            ],
        }


def _weekend() -> DayConfig:
    return DayConfig(enabled=False)


_DURATION_FIELDS = (
    "break_frequency",
    "break_length",
    "postpone_length",
    "idle_reset_length",
)


@dataclass
class Settings:
    """User configuration, read by the scheduler on every tick."""

    breaks_enabled: bool = True
    notification_type: NotificationType = NotificationType.POPUP
    break_frequency: Duration = Duration(minutes=28)
    break_length: Duration = Duration(minutes=2)
    postpone_length: Duration = Duration(minutes=3)
    postpone_limit: int = 0  # 0 = unlimited
    working_hours_enabled: bool = True
    working_hours_monday: DayConfig = field(default_factory=DayConfig)
    working_hours_tuesday: DayConfig = field(default_factory=DayConfig)
    working_hours_wednesday: DayConfig = field(default_factory=DayConfig)
    working_hours_thursday: DayConfig = field(default_factory=DayConfig)
    working_hours_friday: DayConfig = field(default_factory=DayConfig)
    working_hours_saturday: DayConfig = field(default_factory=_weekend)
    working_hours_sunday: DayConfig = field(default_factory=_weekend)
    idle_reset_enabled: bool = True
    idle_reset_length: Duration = Duration(minutes=5)
    idle_reset_notification: bool = False
    sound_type: SoundType = SoundType.GONG
    break_title: str = "Time for a break!"
    break_message: str = "Rest your eyes. Stretch your legs. Breathe. Relax."
    debug_mode: bool = False

    def day_config(self, weekday: int) -> DayConfig:
        """Working hours for ``weekday`` (Monday == 0)."""
        return getattr(self, WEEKDAY_KEYS[weekday])

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        """Create Settings from a JSON-compatible dictionary."""
        data = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}

        for key in _DURATION_FIELDS:
            if key in data:
                data[key] = Duration.parse(data[key])
        for key in WEEKDAY_KEYS:
            if key in data:
                data[key] = DayConfig._from_dict(data[key])
        if "notification_type" in data:
            data["notification_type"] = NotificationType(data["notification_type"])
        if "sound_type" in data:
            data["sound_type"] = SoundType(data["sound_type"])

        return cls(**data)

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dictionary."""
        data = {}
        for key in self.__dataclass_fields__:
            value = getattr(self, key)
            if isinstance(value, Duration):
                value = str(value)
            elif isinstance(value, DayConfig):
                value = value._to_dict()
            elif isinstance(value, Enum):
                value = value.value
            data[key] = value
        return data


class SettingsStore:
    """In-memory settings with JSON persistence.

    ``get()`` is cheap and safe to call every tick. ``set()`` persists the
    new settings and invokes ``on_change`` so the app can re-initialize
    breaks and refresh the tray.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        path: Optional[Path] = None,
        on_change: Optional[Callable[[Settings], None]] = None,
    ) -> None:
        self._settings = settings or Settings()
        self._path = path
        self._lock = threading.Lock()
        self.on_change = on_change

    @classmethod
    def get_config_dir(cls) -> Path:
        """Get the configuration directory path."""
        return Path(user_config_dir(APP_NAME, APP_AUTHOR))

    @classmethod
    def get_log_dir(cls) -> Path:
        """Get the log directory path."""
        return Path(user_log_dir(APP_NAME, APP_AUTHOR))

    @classmethod
    def get_settings_file(cls) -> Path:
        """Get the settings file path."""
        return cls.get_config_dir() / "settings.json"

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "SettingsStore":
        """Load settings from file, or fall back to defaults."""
        path = path or cls.get_settings_file()
        settings = Settings()
        if path.exists():
            try:
                with open(path, "r") as f:
                    settings = Settings.from_dict(json.load(f))
            except Exception as e:
                logger.warning(f"Failed to load settings: {e}, using defaults")
        return cls(settings, path=path)

    @property
    def path(self) -> Path:
        return self._path or self.get_settings_file()

    def get(self) -> Settings:
        with self._lock:
            return self._settings

    def set(self, settings: Settings) -> None:
        with self._lock:
            self._settings = settings
        self.save()
        if self.on_change:
            self.on_change(settings)

    def save(self) -> None:
        """Save settings to file."""
        path = self.path
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.get().to_dict(), f, indent=2)
        logger.info(f"Settings saved to {path}")


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    log_dir = SettingsStore.get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "breaktimer.log"

    level = logging.DEBUG if debug else logging.INFO
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(),
        ],
        force=True,
    )

    # Reduce noise from libraries
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)
