# dose_ledger.py
import logging
import math
import re
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from config import COLLECTION_STATUSES, DOSE_STATUSES, ENGINE_CONFIG
from data_schema import Administration, Prescription
from periodicity import PRN, doses_per_day, parse_interval

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-z]*)", re.IGNORECASE)
_DURATION_DAYS = {
    "h": 1 / 24, "hr": 1 / 24, "hrs": 1 / 24, "hour": 1 / 24, "hours": 1 / 24,
    "week": 7, "weeks": 7, "wk": 7, "wks": 7,
    "month": 30, "months": 30,
}


def _qualifies(admin: Administration) -> bool:
    return admin.status in DOSE_STATUSES


def linked_doses(prescription: Prescription, administrations: Iterable[Administration]) -> List[Administration]:
    """Qualifying administrations that carry this prescription's id."""
    return [a for a in administrations
            if a.prescription_id == prescription.id and _qualifies(a)]


def legacy_doses(prescription: Prescription, administrations: Iterable[Administration]) -> List[Administration]:
    """Qualifying unlinked administrations for the same patient and medicine."""
    return [a for a in administrations
            if a.prescription_id is None
            and a.patient_id == prescription.patient_id
            and a.medicine_id == prescription.medicine_id
            and _qualifies(a)]


def count_administered_doses(prescription: Prescription, administrations: Sequence[Administration]) -> int:
    """
    Number of doses given against a prescription.

    Linked records win outright. Unlinked (legacy) records are only counted
    when no linked record exists, so the two sets are never added together.
    """
    count = len(linked_doses(prescription, administrations))
    if count:
        return count

    count = len(legacy_doses(prescription, administrations))
    if count and ENGINE_CONFIG['log_legacy_fallback']:
        logger.warning(
            "DataIntegrityWarning: prescription %s counted %d unlinked administration(s) "
            "for patient %s / medicine %s",
            prescription.id, count, prescription.patient_id, prescription.medicine_id,
        )
    return count


def last_administered_at(medicine_id: str, administrations: Iterable[Administration],
                         statuses_allowed: Sequence[str] = COLLECTION_STATUSES) -> Optional[datetime]:
    """Latest timestamp for the medicine with an allowed status, regardless of prescription link."""
    times = [a.administered_at for a in administrations
             if a.medicine_id == medicine_id
             and a.status in statuses_allowed
             and a.administered_at is not None]
    return max(times) if times else None


# The cabinet shows this as "last collected"
last_collection_time = last_administered_at


def duration_days(duration: Optional[str]) -> Optional[float]:
    """Numeric prefix of a duration such as "5 days", "2 weeks" or "72 hours", in days."""
    m = _DURATION_RE.match(duration or "")
    if not m:
        return None
    return float(m.group(1)) * _DURATION_DAYS.get(m.group(2).lower(), 1)


def resolve_total_doses(prescription: Prescription) -> Optional[int]:
    if prescription.total_doses is not None:
        return prescription.total_doses

    per_day = doses_per_day(parse_interval(prescription.periodicity))
    days = duration_days(prescription.duration)
    if per_day is None or days is None:
        return None
    # tolerance keeps 24h / 8h from landing on 2.9999...
    return int(math.floor(per_day * days + 1e-9))


def remaining_doses(prescription: Prescription, administrations: Sequence[Administration]) -> Optional[int]:
    """Doses left on a bounded prescription, None for PRN or open-ended orders."""
    if parse_interval(prescription.periodicity).kind == PRN:
        return None
    total = resolve_total_doses(prescription)
    if not total:
        return None
    given = count_administered_doses(prescription, administrations)
    return max(0, total - given)


def format_remaining_doses(prescription: Prescription, administrations: Sequence[Administration]) -> str:
    remaining = remaining_doses(prescription, administrations)
    if remaining is None:
        return "PRN"
    return f"Doses Left: {remaining}"
