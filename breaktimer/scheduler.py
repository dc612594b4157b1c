"""Break scheduling state machine.

``BreakScheduler`` owns the timing state and is driven by ``tick(now)`` once
per second. Each tick first reconciles drift caused by sleep, screen lock or
stalls, then decides whether a break must be scheduled, suppressed or
started. User actions (postpone, start now, popup closed) call straight into
the public methods, which share one lock with ``tick``.
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from .config import Duration, NotificationType, Settings, SoundType, duration_seconds
from .idle import IdleState
from .protocols import (
    BreakWindowManagerProtocol,
    IdleProbeProtocol,
    NotificationSinkProtocol,
    SettingsStoreProtocol,
    SoundSinkProtocol,
    TraySinkProtocol,
)
from .working_hours import check_in_working_hours

__all__ = ["BreakScheduler", "SchedulerState", "TickOutcome"]

logger = logging.getLogger(__name__)

IDLE_RESET_TITLE = "Break countdown reset"


class TickOutcome(Enum):
    """What a tick ended up doing."""

    NOOP = "noop"
    SUPPRESSED = "suppressed"  # Pending break cleared (idle / outside hours)
    SCHEDULED = "scheduled"  # A fresh break was created
    BREAK_STARTED = "break_started"
    ERROR = "error"


@dataclass
class SchedulerState:
    """Mutable timing state for one scheduler instance."""

    break_time: Optional[datetime] = None
    having_break: bool = False
    postponed_count: int = 0
    idle_start: Optional[datetime] = None
    lock_start: Optional[datetime] = None
    last_tick: Optional[datetime] = None


def _format_hms(total_seconds: int) -> str:
    hours, rest = divmod(max(0, total_seconds), 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class BreakScheduler:
    """Decides when breaks are due and fires the matching effects."""

    def __init__(
        self,
        settings_store: SettingsStoreProtocol,
        idle_probe: IdleProbeProtocol,
        notifier: NotificationSinkProtocol,
        window_manager: BreakWindowManagerProtocol,
        sound_sink: SoundSinkProtocol,
        tray: TraySinkProtocol,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._settings_store = settings_store
        self._idle_probe = idle_probe
        self._notifier = notifier
        self._window_manager = window_manager
        self._sound_sink = sound_sink
        self._tray = tray
        self._clock = clock

        self.state = SchedulerState()
        # Re-entrant: do_break -> create_break, tick -> create_break / do_break
        self._lock = threading.RLock()

    # -- Read accessors ---------------------------------------------------

    def get_status(self) -> SchedulerState:
        """Snapshot of the current state."""
        with self._lock:
            return replace(self.state)

    def get_break_time(self) -> Optional[datetime]:
        with self._lock:
            return self.state.break_time

    def get_break_length(self) -> Duration:
        return self._settings_store.get().break_length

    # -- Break lifecycle --------------------------------------------------

    def init_breaks(self, now: Optional[datetime] = None) -> None:
        """Schedule a fresh break if breaks are enabled."""
        with self._lock:
            logger.info(f"Initializing breaks ({self._describe()})")
            if self._settings_store.get().breaks_enabled:
                self.create_break(now=now)

    def create_break(self, is_postpone: bool = False, now: Optional[datetime] = None) -> None:
        """Set the next break time from the break frequency or postpone length."""
        with self._lock:
            now = self._now(now)
            settings = self._settings_store.get()
            logger.info(f"Creating a break (postpone={is_postpone}, {self._describe()})")

            if self.state.idle_start is not None:
                self._notify_idle_reset(settings, now)
                self.state.idle_start = None
                self.state.postponed_count = 0

            duration = settings.postpone_length if is_postpone else settings.break_frequency
            self.state.break_time = duration.add_to(now)
            logger.info(f"Next break time is {self.state.break_time:%Y-%m-%d %H:%M:%S}")

            self._safe_call(self._tray.refresh)

    def do_break(self, now: Optional[datetime] = None) -> None:
        """Start the break that is due now."""
        with self._lock:
            now = self._now(now)
            logger.info(f"Starting break now ({self._describe()})")
            self.state.having_break = True

            settings = self._settings_store.get()

            if settings.notification_type == NotificationType.NOTIFICATION:
                self._safe_call(self._notifier.show, settings.break_title, settings.break_message)
                if settings.sound_type != SoundType.NONE:
                    self._safe_call(self._sound_sink.play_sound, settings.sound_type)
                # Toast breaks dismiss themselves
                self.state.having_break = False
                self.create_break(now=now)
            elif settings.notification_type == NotificationType.POPUP:
                self._safe_call(self._window_manager.open_break_windows)

    def end_popup_break(self, now: Optional[datetime] = None) -> None:
        """Finish a popup break. Ignored until the break time has passed."""
        with self._lock:
            now = self._now(now)
            if self.state.break_time is None or not self.state.break_time < now:
                logger.debug("Ignoring early end of popup break")
                return
            logger.info(f"Ending popup break ({self._describe()})")
            self.state.break_time = None
            self.state.having_break = False
            self.state.postponed_count = 0

    def get_allow_postpone(self) -> bool:
        limit = self._settings_store.get().postpone_limit
        with self._lock:
            return not limit or self.state.postponed_count < limit

    def postpone_break(self, now: Optional[datetime] = None) -> None:
        """Push the break back by the postpone length.

        Does not check the postpone limit; callers consult
        ``get_allow_postpone()`` first.
        """
        with self._lock:
            self.state.postponed_count += 1
            logger.info(f"Postponing break ({self._describe()})")
            self.state.having_break = False
            self.create_break(is_postpone=True, now=now)

    def start_break_now(self, now: Optional[datetime] = None) -> None:
        """Make the next tick treat the break as due."""
        with self._lock:
            logger.info(f"Starting break now on request ({self._describe()})")
            self.state.break_time = self._now(now)

    # -- Idle / lock / working hours --------------------------------------

    def check_idle(self, now: Optional[datetime] = None) -> bool:
        """Return True if the user has been idle or locked long enough to reset."""
        with self._lock:
            now = self._now(now)
            settings = self._settings_store.get()
            idle_reset_seconds = duration_seconds(settings.idle_reset_length)

            state = self._idle_probe.get_state(idle_reset_seconds)
            logger.debug(f"Current state is {state.value}")

            if state == IdleState.LOCKED:
                if self.state.lock_start is None:
                    logger.info(f"Screen is now locked ({self._describe()})")
                    self.state.lock_start = now
                    return False
                lock_seconds = round((now - self.state.lock_start).total_seconds())
                return lock_seconds > idle_reset_seconds

            self.state.lock_start = None

            if not settings.idle_reset_enabled:
                return False

            return state == IdleState.IDLE

    def check_in_working_hours(self, now: Optional[datetime] = None) -> bool:
        return check_in_working_hours(self._settings_store.get(), self._now(now))

    def check_should_have_break(self, now: Optional[datetime] = None) -> bool:
        with self._lock:
            now = self._now(now)
            settings = self._settings_store.get()
            in_working_hours = self.check_in_working_hours(now)
            idle = self.check_idle(now)
            logger.debug(
                f"Checking if user should have break: having_break={self.state.having_break}, "
                f"breaks_enabled={settings.breaks_enabled}, "
                f"in_working_hours={in_working_hours}, idle={idle}"
            )
            return (
                not self.state.having_break
                and settings.breaks_enabled
                and in_working_hours
                and not idle
            )

    # -- Tick -------------------------------------------------------------

    def tick(self, now: Optional[datetime] = None) -> TickOutcome:
        """Run one reconciliation cycle. Never raises."""
        with self._lock:
            now = self._now(now)
            try:
                return self._reconcile(now)
            except Exception:
                logger.exception("Caught error in tick")
                return TickOutcome.ERROR
            finally:
                self.state.last_tick = now

    def _reconcile(self, now: datetime) -> TickOutcome:
        settings = self._settings_store.get()
        last_tick = self.state.last_tick

        elapsed = abs((now - last_tick).total_seconds()) if last_tick else 0
        break_seconds = duration_seconds(settings.break_frequency)
        idle_reset_seconds = duration_seconds(settings.idle_reset_length)
        lock_seconds = (
            abs((now - self.state.lock_start).total_seconds())
            if self.state.lock_start
            else None
        )
        gaps = (
            f"elapsed={elapsed:.0f}s, break_seconds={break_seconds}, "
            f"lock_seconds={lock_seconds}, idle_reset_seconds={idle_reset_seconds}"
        )
        logger.debug(f"Checking if computer has been asleep ({gaps})")

        if lock_seconds is not None and lock_seconds > break_seconds:
            # An idle-reset notification is pointless after a lock this long
            logger.info(f"Locked longer than break period, resetting idle start ({gaps})")
            self.state.idle_start = None
            self.state.lock_start = None
        elif elapsed > break_seconds:
            # Sleep outlasted a whole break period: drop the pending break
            # An open popup keeps having_break set, and its later end_popup_break
            # is ignored because break_time is gone
            logger.info(f"No ticks for longer than break period, removing next break ({gaps})")
            self.state.lock_start = None
            self.state.break_time = None
        elif elapsed > idle_reset_seconds:
            logger.info(f"No ticks for longer than idle reset, resetting next break ({gaps})")
            if self.state.idle_start is None:
                logger.info("Setting idle start to last tick")
                self.state.idle_start = last_tick
            self.state.lock_start = None
            self.create_break(now=now)

        should_have_break = self.check_should_have_break(now)

        if not should_have_break and not self.state.having_break and self.state.break_time:
            if self.check_idle(now):
                logger.info(f"User is now idle ({self._describe()})")
                self.state.idle_start = now
            logger.info(f"Clearing next break time ({self._describe()})")
            self.state.break_time = None
            self._safe_call(self._tray.refresh)
            return TickOutcome.SUPPRESSED

        if should_have_break and self.state.break_time is None:
            self.create_break(now=now)
            return TickOutcome.SCHEDULED

        if should_have_break and now > self.state.break_time:
            self.do_break(now=now)
            return TickOutcome.BREAK_STARTED

        return TickOutcome.NOOP

    # -- System signals ---------------------------------------------------

    def on_system_signal(self, signal: Enum) -> None:
        """Log a suspend/resume/lock/unlock signal.

        State changes come from the idle probe and tick drift, not from here.
        """
        logger.info(f"System signal: {signal.value} ({self._describe()})")

    # -- Internal ---------------------------------------------------------

    def _now(self, now: Optional[datetime]) -> datetime:
        return now if now is not None else self._clock()

    def _notify_idle_reset(self, settings: Settings, now: datetime) -> None:
        if not settings.idle_reset_enabled or not settings.idle_reset_notification:
            return
        idle_seconds = round((now - self.state.idle_start).total_seconds())
        message = f"Idle for {_format_hms(idle_seconds)}"
        logger.info(f"Showing idle notification: {message}")
        self._safe_call(self._notifier.show, IDLE_RESET_TITLE, message)

    def _describe(self) -> str:
        s = self.state
        return (
            f"break_time={s.break_time}, having_break={s.having_break}, "
            f"postponed_count={s.postponed_count}, idle_start={s.idle_start}, "
            f"lock_start={s.lock_start}, last_tick={s.last_tick}"
        )

    @staticmethod
    def _safe_call(fn: Callable, *args) -> None:
        """Fire an effect, logging and dropping any exception."""
        try:
            fn(*args)
        except Exception:
            logger.exception(f"Error in effect callback {getattr(fn, '__name__', fn)}")
