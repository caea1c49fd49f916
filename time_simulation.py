# time_simulation.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Current time as naive UTC, the convention every engine timestamp uses"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimeSimulator:
    """Offset clock for training scenarios: real time plus a forward jump."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utc_now
        self.offset = timedelta(0)
        self.is_simulating = False

    def now(self) -> datetime:
        return self._clock() + self.offset

    def jump_forward(self, hours: float = 0, minutes: float = 0) -> datetime:
        """Advance the simulated time and return the new current time"""
        if hours < 0 or minutes < 0:
            raise ValueError("Time can only jump forward")
        self.offset += timedelta(hours=hours, minutes=minutes)
        self.is_simulating = True
        current = self.now()
        logger.info("Time jump: advanced %sh %sm to %s", hours, minutes, current.isoformat())
        return current

    def reset(self) -> datetime:
        self.offset = timedelta(0)
        self.is_simulating = False
        current = self.now()
        logger.info("Time reset: back to real time %s", current.isoformat())
        return current

    def status(self) -> Dict:
        total_minutes = int(self.offset.total_seconds() // 60)
        return {
            'current_time': self.now().isoformat(),
            'is_simulating': self.is_simulating,
            'offset_hours': total_minutes // 60,
            'offset_minutes': total_minutes % 60,
        }
