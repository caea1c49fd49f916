# reminders.py
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

import pandas as pd

from config import ENGINE_CONFIG
from data_schema import Administration, Prescription
from dose_ledger import last_administered_at
from eligibility import collection_window
from periodicity import parse_interval


@dataclass
class MedicationReminder:
    patient_id: str
    patient_name: str
    medication_name: str
    prescription_id: str
    next_dose_time: datetime
    one_hour_warning: datetime
    route: str
    dosage: str
    is_overdue: bool


@dataclass
class MedicationAlert:
    id: str
    patient_name: str
    medication_name: str
    dose: str
    route: str
    type: str  # 'warning' | 'due' | 'overdue'
    due_time: str
    time_until_due: Optional[str] = None


def build_reminders(patient_id: str, patient_name: str, prescriptions: Sequence[Prescription],
                    administrations: Sequence[Administration], medicines: Dict[str, str],
                    now: datetime) -> List[MedicationReminder]:
    """
    One reminder per scheduled prescription that has been given at least once.

    Only ``administered`` records start the next interval; PRN, continuous and
    unparseable schedules get no reminder. Administrations for other patients
    are ignored.
    """
    administrations = [a for a in administrations if a.patient_id == patient_id]
    reminders = []
    for prescription in prescriptions:
        interval = parse_interval(prescription.periodicity)
        if not interval.is_fixed:
            continue

        last = last_administered_at(prescription.medicine_id, administrations, ('administered',))
        if last is None:
            continue

        next_dose = last + interval.delta
        reminders.append(MedicationReminder(
            patient_id=patient_id,
            patient_name=patient_name,
            medication_name=medicines.get(prescription.medicine_id, 'Unknown Medication'),
            prescription_id=prescription.id,
            next_dose_time=next_dose,
            one_hour_warning=next_dose - collection_window(),
            route=prescription.route or 'Oral',
            dosage=prescription.dosage,
            is_overdue=next_dose < now,
        ))
    return reminders


def upcoming_reminders(reminders: Sequence[MedicationReminder], now: datetime,
                       lookahead: Optional[timedelta] = None) -> List[MedicationReminder]:
    """Reminders that need attention: overdue, due within the lookahead, or inside the warning hour"""
    if lookahead is None:
        lookahead = timedelta(hours=ENGINE_CONFIG['reminder_lookahead_hours'])
    horizon = now + lookahead
    return [r for r in reminders
            if r.is_overdue
            or r.next_dose_time <= horizon
            or (r.one_hour_warning <= now < r.next_dose_time)]


def alerts_to_send(reminders: Sequence[MedicationReminder], now: datetime) -> Dict[str, List[MedicationReminder]]:
    due_soon = now + timedelta(minutes=ENGINE_CONFIG['due_now_minutes'])
    upcoming = upcoming_reminders(reminders, now)
    return {
        'overdue': [r for r in upcoming if r.is_overdue],
        'due_now': [r for r in upcoming if not r.is_overdue and r.next_dose_time <= due_soon],
        'one_hour_warning': [r for r in upcoming
                             if not r.is_overdue
                             and r.one_hour_warning <= now
                             and r.next_dose_time > due_soon],
    }


def active_alerts(reminders: Sequence[MedicationReminder], now: datetime) -> List[MedicationAlert]:
    grouped = alerts_to_send(reminders, now)
    alerts = []
    for key, alert_type in (('overdue', 'overdue'), ('due_now', 'due'), ('one_hour_warning', 'warning')):
        for r in grouped[key]:
            alerts.append(MedicationAlert(
                id=f"{r.patient_id}-{r.prescription_id}",
                patient_name=r.patient_name,
                medication_name=r.medication_name,
                dose=r.dosage,
                route=r.route,
                type=alert_type,
                due_time=r.next_dose_time.isoformat(),
                time_until_due='1 hour' if alert_type == 'warning' else None,
            ))
    return alerts


def reminders_frame(reminders: Sequence[MedicationReminder]) -> pd.DataFrame:
    columns = list(MedicationReminder.__dataclass_fields__)
    if not reminders:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame([asdict(r) for r in reminders], columns=columns).sort_values('next_dose_time')
