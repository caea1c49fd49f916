# eligibility.py
"""
Next-due time and collection eligibility for a prescription.

Every function takes ``now`` explicitly. Callers running the time simulation
pass the simulated time; nothing here reads a clock.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

from completion import is_complete
from config import ENGINE_CONFIG
from data_schema import Administration, MedicationLink, Prescription
from dose_ledger import last_administered_at
from periodicity import CONTINUOUS, PRN, parse_interval
from protocol_links import binding_for, gates_on_trigger, trigger_administered_at

COMPLETED = "completed"
AWAITING_TRIGGER = "awaiting_trigger"
PROTOCOL_DELAY = "protocol_delay"
NOT_DUE = "not_due"


@dataclass(frozen=True)
class Eligibility:
    allowed: bool
    reason: Optional[str] = None
    time_remaining: Optional[timedelta] = None
    code: Optional[str] = None

    @property
    def time_display(self) -> Optional[str]:
        if self.time_remaining is None:
            return None
        return format_time_remaining(self.time_remaining)


_ALLOWED = Eligibility(True)


def collection_window() -> timedelta:
    return timedelta(minutes=ENGINE_CONFIG['collection_window_minutes'])


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}{'' if n == 1 else 's'}"


def format_time_remaining(delta: timedelta) -> str:
    """Largest units only: "1 day 3 hours", "2 hours 5 minutes", "40 minutes"."""
    total_minutes = max(0, int(delta.total_seconds() // 60))
    days, rest = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(rest, 60)
    if days:
        return f"{_plural(days, 'day')} {_plural(hours, 'hour')}"
    if hours:
        return f"{_plural(hours, 'hour')} {_plural(minutes, 'minute')}"
    return _plural(minutes, 'minute')


def next_due_time(medicine_id: str, periodicity: str, prescription: Optional[Prescription],
                  administrations: Sequence[Administration], now: datetime) -> Optional[datetime]:
    interval = parse_interval(periodicity)
    if not interval.is_fixed:
        return None

    last = last_administered_at(medicine_id, administrations)
    if last is not None:
        return last + interval.delta

    # first dose is due immediately, or at the prescribed start
    if prescription is not None and prescription.start_date is not None:
        return prescription.start_date
    return now


def can_administer(prescription: Prescription, administrations: Sequence[Administration],
                   medication_links: Sequence[MedicationLink], now: datetime) -> Eligibility:
    """
    Whether the prescription may be collected at ``now``.

    ``time_remaining`` is only set on blocked results and means different
    things per code. For PROTOCOL_DELAY it is the time until the collection
    window opens (trigger time + delay - 1 hour). For NOT_DUE it is the time
    until the dose is due; the window opens an hour earlier than that.
    """
    if is_complete(prescription, administrations, now):
        return Eligibility(False, "This prescription has been completed and no more doses are needed.",
                           code=COMPLETED)

    kind = parse_interval(prescription.periodicity).kind
    if kind in (PRN, CONTINUOUS):
        return _ALLOWED

    binding = binding_for(prescription, medication_links)
    if binding is not None and gates_on_trigger(binding):
        triggered_at = trigger_administered_at(binding, administrations)
        if triggered_at is None:
            return Eligibility(
                False,
                f"Awaiting trigger: medication {binding.trigger_medicine_id} must be administered first.",
                code=AWAITING_TRIGGER,
            )
        due = triggered_at + timedelta(minutes=binding.delay_minutes)
        opens = due - collection_window()
        if now < opens:
            left = opens - now
            return Eligibility(False, f"Collection window opens in {format_time_remaining(left)}.",
                               time_remaining=left, code=PROTOCOL_DELAY)
        return _ALLOWED

    due = next_due_time(prescription.medicine_id, prescription.periodicity, prescription,
                        administrations, now)
    if due is None:
        # never scheduled, so no timing restriction
        return _ALLOWED

    opens = due - collection_window()
    if now <= opens:
        left = due - now
        return Eligibility(
            False,
            f"Collection not allowed. Next dose due in {format_time_remaining(left)}; "
            f"the collection window opens 1 hour before the due time.",
            time_remaining=left,
            code=NOT_DUE,
        )
    return _ALLOWED


def _format_available_in(opens: datetime, now: datetime) -> str:
    diff = opens - now
    if diff <= timedelta(0):
        return "Available now"
    minutes = int(diff.total_seconds() // 60)
    if minutes < 60:
        return f"Available in {minutes} min"
    hours = minutes // 60
    if hours < 24:
        return f"Available in {_plural(hours, 'hour')}"
    days = hours // 24
    if days < 7:
        return f"Available in {_plural(days, 'day')}"
    return f"Available {opens.strftime('%Y-%m-%d %H:%M')}"


def format_next_collection(prescription: Prescription, administrations: Sequence[Administration],
                           medication_links: Sequence[MedicationLink], now: datetime) -> str:
    kind = parse_interval(prescription.periodicity).kind
    if kind == PRN:
        return "As needed"
    if kind == CONTINUOUS:
        return "Continuous"

    verdict = can_administer(prescription, administrations, medication_links, now)
    if not verdict.allowed:
        if verdict.code == COMPLETED:
            return "Completed"
        if verdict.code == AWAITING_TRIGGER:
            return "Awaiting trigger"
        if verdict.code == PROTOCOL_DELAY:
            return f"Delay: {verdict.time_display} left"
        due = next_due_time(prescription.medicine_id, prescription.periodicity, prescription,
                            administrations, now)
        if due is None:
            return "Not scheduled"
        return _format_available_in(due - collection_window(), now)

    if binding_for(prescription, medication_links) is None and next_due_time(
            prescription.medicine_id, prescription.periodicity, prescription, administrations, now) is None:
        return "Not scheduled"
    return "Available now"


def format_last_collected(at: Optional[datetime], now: datetime) -> str:
    if at is None:
        return "Never collected"

    diff = now - at
    minutes = int(diff.total_seconds() // 60)
    # a future timestamp reads as "Just now"
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} min ago"
    hours = minutes // 60
    if hours < 24:
        return f"{_plural(hours, 'hour')} ago"
    days = hours // 24
    if days < 7:
        return f"{_plural(days, 'day')} ago"
    return at.strftime("%Y-%m-%d %H:%M")
