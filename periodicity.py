# periodicity.py
"""
Free-text dosing frequency -> structured interval.

Rules are checked in a fixed priority order and the first match wins:

1. PRN markers ("prn", "needed", "necessary")
2. continuous markers ("continuous", "ongoing")
3. every N hours / every N-M hrs (minimum bound) / qNh
4. every N minutes
5. N times daily / per day / a day (spread evenly over 24 h)
6. named frequencies (bid, tid, qid, daily ...)
7. anything else is ``unknown`` and must be treated as unschedulable
"""
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

FIXED = "fixed"
PRN = "prn"
CONTINUOUS = "continuous"
UNKNOWN = "unknown"

HOUR_MS = 60 * 60 * 1000
MINUTE_MS = 60 * 1000
DAY_MS = 24 * HOUR_MS

_PRN_RE = re.compile(r"prn|needed|necessary")
_CONTINUOUS_RE = re.compile(r"continuous|ongoing")

_EVERY_HOURS_RE = re.compile(r"every\s+(\d+)\s*(?:hours?|hrs?|h)\b")
_EVERY_RANGE_RE = re.compile(r"every\s+(\d+)\s*-\s*(\d+)\s*(?:hours?|hrs?|h)\b")
_Q_HOURS_RE = re.compile(r"\bq\s*(\d+)\s*(?:h|hr|hrs)\b")
_EVERY_MINUTES_RE = re.compile(r"every\s+(\d+)\s*(?:minutes?|mins?)\b")
_TIMES_PER_DAY_RE = re.compile(r"(\d+)\s+times?\s+(?:daily|per\s+day|a\s+day)")

# (pattern, hours); order matters, "daily" alone must come last
_NAMED = (
    (re.compile(r"twice[\s-]+daily|\bbid\b"), 12),
    (re.compile(r"three[\s-]+times[\s-]+daily|\btid\b"), 8),
    (re.compile(r"four[\s-]+times[\s-]+daily|\bqid\b"), 6),
    (re.compile(r"once[\s-]+daily|daily|\bqd\b"), 24),
)


@dataclass(frozen=True)
class IntervalResult:
    kind: str
    millis: Optional[float] = None

    @property
    def is_fixed(self) -> bool:
        return self.kind == FIXED

    @property
    def delta(self) -> Optional[timedelta]:
        if self.kind != FIXED:
            return None
        return timedelta(milliseconds=self.millis)


_PRN_RESULT = IntervalResult(PRN)
_CONTINUOUS_RESULT = IntervalResult(CONTINUOUS)
_UNKNOWN_RESULT = IntervalResult(UNKNOWN)


def _fixed(millis: float) -> IntervalResult:
    if millis <= 0:
        return _UNKNOWN_RESULT
    return IntervalResult(FIXED, millis)


def parse_interval(text: Optional[str]) -> IntervalResult:
    lower = (text or "").lower()

    prn = _PRN_RE.search(lower)
    continuous = _CONTINUOUS_RE.search(lower)
    if prn and continuous:
        # "Continuous infusion, PRN bolus": the leading marker describes the order
        return _PRN_RESULT if prn.start() < continuous.start() else _CONTINUOUS_RESULT
    if prn:
        return _PRN_RESULT
    if continuous:
        return _CONTINUOUS_RESULT

    m = _EVERY_HOURS_RE.search(lower)
    if m:
        return _fixed(int(m.group(1)) * HOUR_MS)
    m = _EVERY_RANGE_RE.search(lower)
    if m:
        # use the minimum for safety: earlier eligibility, never later
        low = min(int(m.group(1)), int(m.group(2)))
        return _fixed(low * HOUR_MS)
    m = _Q_HOURS_RE.search(lower)
    if m:
        return _fixed(int(m.group(1)) * HOUR_MS)

    m = _EVERY_MINUTES_RE.search(lower)
    if m:
        return _fixed(int(m.group(1)) * MINUTE_MS)

    m = _TIMES_PER_DAY_RE.search(lower)
    if m:
        times = int(m.group(1))
        if times <= 0:
            return _UNKNOWN_RESULT
        return _fixed(DAY_MS / times)

    for pattern, hours in _NAMED:
        if pattern.search(lower):
            return _fixed(hours * HOUR_MS)

    return _UNKNOWN_RESULT


def is_prn(text: Optional[str]) -> bool:
    return parse_interval(text).kind == PRN


def is_continuous(text: Optional[str]) -> bool:
    return parse_interval(text).kind == CONTINUOUS


def doses_per_day(result: IntervalResult) -> Optional[float]:
    """Doses implied per 24 hours by a fixed interval, None otherwise."""
    if not result.is_fixed:
        return None
    return DAY_MS / result.millis
