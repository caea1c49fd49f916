# data_schema.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List
import json

import pandas as pd

STATUSES = {"collected", "administered", "success", "warning", "error"}

@dataclass
class Prescription:
    id: str
    patient_id: str
    medicine_id: str
    dosage: str
    # Free text, e.g. "Every 6 hours", "PRN", "Once"
    periodicity: str
    # Free text, e.g. "5 days", "Ongoing"
    duration: Optional[str] = None
    route: str = "Oral"
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    # None means derive from periodicity + duration, or unbounded
    total_doses: Optional[int] = None
    completed: bool = False

@dataclass
class Administration:
    id: str
    patient_id: str
    medicine_id: str
    # None marks a legacy record created before prescription linkage
    prescription_id: Optional[str] = None
    administered_at: Optional[datetime] = None
    status: str = "administered"
    message: str = ""
    administered_by: Optional[str] = None

@dataclass
class MedicationLink:
    id: str
    trigger_medicine_id: str
    follow_medicine_id: str
    follow_frequency: str
    delay_minutes: int = 0
    start_after: str = "after_first_admin"  # or "immediate"
    follow_duration_hours: Optional[int] = None

@dataclass(frozen=True)
class ProtocolBinding:
    prescription_id: str
    link_id: str
    trigger_medicine_id: str
    follow_medicine_id: str
    delay_minutes: int
    follow_frequency: str
    start_after: str = "after_first_admin"

@dataclass
class Snapshot:
    prescriptions: List[Prescription] = field(default_factory=list)
    administrations: List[Administration] = field(default_factory=list)
    medication_links: List[MedicationLink] = field(default_factory=list)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    ISO string, epoch millis or datetime -> naive UTC datetime (None for empty values).

    Timestamps with a "Z" suffix or an offset are converted to UTC and the
    zone dropped, so every engine time (including ``now``) is naive UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime) and value.tzinfo is None:
        return value
    if isinstance(value, (int, float)):
        ts = pd.Timestamp(value, unit="ms")
    else:
        ts = pd.Timestamp(value)
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts.to_pydatetime()


def _pick(d: Dict[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    if snake in d:
        return d[snake]
    return d.get(camel, default)


def _require(kind: str, d: Dict[str, Any], fields: Dict[str, str]) -> None:
    missing = [snake for snake, camel in fields.items() if snake not in d and camel not in d]
    if missing:
        name = d.get("id", "<no id>")
        raise ValueError(f"{kind} {name}: missing fields: {sorted(missing)}")


def validate_prescription(d: Dict[str, Any]) -> Prescription:
    _require("prescription", d, {"id": "id", "patient_id": "patientId",
                                 "medicine_id": "medicineId", "periodicity": "periodicity"})
    total = _pick(d, "total_doses", "totalDoses")
    if total is not None:
        total = int(total)
        if total < 0:
            raise ValueError(f"prescription {d['id']}: total_doses cannot be negative")
    return Prescription(
        id=str(d["id"]),
        patient_id=str(_pick(d, "patient_id", "patientId")),
        medicine_id=str(_pick(d, "medicine_id", "medicineId")),
        dosage=str(d.get("dosage", "")),
        periodicity=str(d["periodicity"] or ""),
        duration=d.get("duration"),
        route=d.get("route") or "Oral",
        start_date=parse_timestamp(_pick(d, "start_date", "startDate")),
        end_date=parse_timestamp(_pick(d, "end_date", "endDate")),
        total_doses=total,
        # stored as 0/1 in the database
        completed=bool(d.get("completed") or False),
    )


def validate_administration(d: Dict[str, Any]) -> Administration:
    _require("administration", d, {"id": "id", "patient_id": "patientId",
                                   "medicine_id": "medicineId", "status": "status"})
    status = str(d["status"]).lower()
    if status not in STATUSES:
        raise ValueError(f"administration {d['id']}: unknown status {d['status']!r}")
    prescription_id = _pick(d, "prescription_id", "prescriptionId")
    return Administration(
        id=str(d["id"]),
        patient_id=str(_pick(d, "patient_id", "patientId")),
        medicine_id=str(_pick(d, "medicine_id", "medicineId")),
        prescription_id=str(prescription_id) if prescription_id else None,
        administered_at=parse_timestamp(_pick(d, "administered_at", "administeredAt")),
        status=status,
        message=d.get("message", ""),
        administered_by=_pick(d, "administered_by", "administeredBy"),
    )


def validate_link(d: Dict[str, Any]) -> MedicationLink:
    _require("medication link", d, {"trigger_medicine_id": "triggerMedicineId",
                                    "follow_medicine_id": "followMedicineId"})
    delay = int(_pick(d, "delay_minutes", "delayMinutes", 0) or 0)
    if delay < 0:
        raise ValueError(f"medication link {d.get('id')}: delay_minutes cannot be negative")
    trigger = str(_pick(d, "trigger_medicine_id", "triggerMedicineId"))
    follow = str(_pick(d, "follow_medicine_id", "followMedicineId"))
    duration_hours = _pick(d, "follow_duration_hours", "followDurationHours")
    return MedicationLink(
        id=str(d.get("id") or f"{trigger}->{follow}"),
        trigger_medicine_id=trigger,
        follow_medicine_id=follow,
        follow_frequency=str(_pick(d, "follow_frequency", "followFrequency", "") or ""),
        delay_minutes=delay,
        start_after=_pick(d, "start_after", "startAfter", "after_first_admin") or "after_first_admin",
        follow_duration_hours=int(duration_hours) if duration_hours is not None else None,
    )


def load_snapshot(data_or_filename) -> Snapshot:
    """Load a snapshot from JSON data or a filename"""
    if isinstance(data_or_filename, str):
        with open(data_or_filename, "r", encoding="utf-8") as f:
            data = json.load(f)
    else:
        data = data_or_filename

    links = _pick(data, "medication_links", "medicationLinks", [])
    return Snapshot(
        prescriptions=[validate_prescription(p) for p in data.get("prescriptions", [])],
        administrations=[validate_administration(a) for a in data.get("administrations", [])],
        medication_links=[validate_link(link) for link in links],
    )
