# completion.py
import re
from datetime import datetime
from typing import Optional, Sequence

from data_schema import Administration, Prescription
from dose_ledger import count_administered_doses, resolve_total_doses
from periodicity import PRN, parse_interval

_ONE_TIME_RE = re.compile(r"^(?:single[-\s]?dose|one[-\s]?time)\b", re.IGNORECASE)
_ONCE_RE = re.compile(r"^once\b", re.IGNORECASE)

# "once weekly" is a schedule, not a one-time order
_TEMPORAL_RE = re.compile(
    r"\b(?:daily|weekly|monthly|every|each|per"
    r"|a\s+(?:day|week|month|year)"
    r"|q(?:d|od|w|mo)"
    r"|q\d+(?:h|d)"
    r"|\d+\s*(?:/|x)\s*(?:day|week|month)"
    r"|\d+\s*times\s*(?:daily|weekly|monthly))\b",
    re.IGNORECASE,
)


def is_one_time(periodicity: Optional[str]) -> bool:
    p = (periodicity or "").strip()
    if not (_ONE_TIME_RE.search(p) or _ONCE_RE.search(p)):
        return False
    return not _TEMPORAL_RE.search(p)


def is_complete(prescription: Prescription, administrations: Sequence[Administration],
                now: Optional[datetime] = None) -> bool:
    """
    Whether a prescription needs no more doses.

    ``now`` is accepted for signature parity with the other engine calls;
    completion depends only on the flag and the dose ledger.
    """
    if prescription.completed:
        return True

    if parse_interval(prescription.periodicity).kind == PRN:
        return False

    given = count_administered_doses(prescription, administrations)

    if is_one_time(prescription.periodicity) and given > 0:
        return True

    total = resolve_total_doses(prescription)
    # a zero total is treated as "not bounded", as the cabinet always did
    if total and given >= total:
        return True

    return False
