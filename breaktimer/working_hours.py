"""Working-hours gating for breaks."""

import logging
from datetime import datetime

from .config import WEEKDAY_KEYS, Settings

logger = logging.getLogger(__name__)


def check_in_working_hours(settings: Settings, now: datetime) -> bool:
    """Return True if ``now`` falls inside one of today's working ranges.

    Always True when working hours are disabled. Ranges are inclusive on
    both ends and compared at minute resolution.
    """
    if not settings.working_hours_enabled:
        logger.debug("Working hours are currently disabled")
        return True

    weekday = now.weekday()
    today = settings.day_config(weekday)

    if not today.enabled:
        logger.debug(f"Working hours are disabled for today ({WEEKDAY_KEYS[weekday]})")
        return False

    current_minutes = now.hour * 60 + now.minute
    return any(
        r.from_minutes <= current_minutes <= r.to_minutes for r in today.ranges
    )
