from datetime import datetime, timedelta, timezone

import pytest

from data_schema import (load_snapshot, parse_timestamp, validate_administration, validate_link,
                         validate_prescription)
from eligibility import can_administer


def test_prescription_from_api_record():
    p = validate_prescription({"id": "rx1", "patientId": "p1", "medicineId": "m1", "dosage": "10mg",
                               "periodicity": "Every 6 hours", "startDate": "2025-03-01T08:00:00",
                               "totalDoses": "4", "completed": 1})
    assert p.patient_id == "p1"
    assert p.start_date == datetime(2025, 3, 1, 8, 0)
    assert p.total_doses == 4
    assert p.completed is True
    assert p.route == "Oral"


def test_prescription_missing_fields():
    with pytest.raises(ValueError, match="missing fields"):
        validate_prescription({"id": "rx1", "periodicity": "PRN"})


def test_administration_statuses():
    a = validate_administration({"id": "a1", "patient_id": "p1", "medicine_id": "m1",
                                 "prescription_id": None, "status": "Administered"})
    assert a.status == "administered"
    assert a.prescription_id is None
    with pytest.raises(ValueError, match="unknown status"):
        validate_administration({"id": "a2", "patientId": "p1", "medicineId": "m1", "status": "lost"})


def test_link_defaults():
    link = validate_link({"triggerMedicineId": "A", "followMedicineId": "B", "followFrequency": "q4h"})
    assert link.id == "A->B"
    assert link.delay_minutes == 0
    assert link.start_after == "after_first_admin"
    with pytest.raises(ValueError):
        validate_link({"triggerMedicineId": "A", "followMedicineId": "B", "delayMinutes": -5})


def test_parse_timestamp():
    assert parse_timestamp(None) is None
    assert parse_timestamp("") is None
    assert parse_timestamp("2025-03-01T08:00:00") == datetime(2025, 3, 1, 8, 0)
    assert parse_timestamp(0) == datetime(1970, 1, 1)
    moment = datetime(2025, 1, 1)
    assert parse_timestamp(moment) is moment


def test_load_snapshot_from_dict():
    snapshot = load_snapshot({"prescriptions": [], "administrations": [], "medication_links": []})
    assert snapshot.prescriptions == []
    assert snapshot.medication_links == []


def test_zoned_timestamps_become_naive_utc():
    assert parse_timestamp("2025-03-01T08:00:00.000Z") == datetime(2025, 3, 1, 8, 0)
    assert parse_timestamp("2025-03-01T10:30:00+02:00") == datetime(2025, 3, 1, 8, 30)
    aware = datetime(2025, 3, 1, 3, 0, tzinfo=timezone(timedelta(hours=-5)))
    assert parse_timestamp(aware) == datetime(2025, 3, 1, 8, 0)
    assert parse_timestamp("2025-03-01T08:00:00Z").tzinfo is None


def test_mixed_timestamp_formats_compare_with_naive_now():
    snapshot = load_snapshot({
        "prescriptions": [{"id": "rx1", "patientId": "p1", "medicineId": "m1",
                           "periodicity": "Every 6 hours"}],
        "administrations": [
            {"id": "a1", "patientId": "p1", "medicineId": "m1", "prescriptionId": "rx1",
             "status": "administered", "administeredAt": "2025-03-01T08:00:00.000Z"},
            {"id": "a2", "patientId": "p1", "medicineId": "m1", "prescriptionId": "rx1",
             "status": "administered", "administeredAt": 1740808800000},
        ],
    })
    rx = snapshot.prescriptions[0]
    # 1740808800000 ms is 2025-03-01T06:00Z, so the 08:00 dose is the latest
    verdict = can_administer(rx, snapshot.administrations, [], datetime(2025, 3, 1, 9, 0))
    assert not verdict.allowed
    assert can_administer(rx, snapshot.administrations, [], datetime(2025, 3, 1, 13, 30)).allowed
