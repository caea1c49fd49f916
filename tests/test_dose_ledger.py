import logging
from datetime import datetime, timedelta

from data_schema import Administration, Prescription
from dose_ledger import (count_administered_doses, format_remaining_doses,
                         last_administered_at, remaining_doses)

T0 = datetime(2025, 3, 1, 8, 0)


def rx(**kw):
    base = dict(id="rx1", patient_id="p1", medicine_id="m1", dosage="10mg",
                periodicity="Every 6 hours", total_doses=4)
    base.update(kw)
    return Prescription(**base)


def admin(n, status="administered", prescription_id="rx1", medicine_id="m1", patient_id="p1", at=None):
    return Administration(id=f"a{n}", patient_id=patient_id, medicine_id=medicine_id,
                          prescription_id=prescription_id, status=status,
                          administered_at=at or T0 + timedelta(hours=n))


def test_counts_only_qualifying_statuses():
    admins = [admin(1), admin(2, status="success"), admin(3, status="collected"),
              admin(4, status="warning"), admin(5, status="error")]
    assert count_administered_doses(rx(), admins) == 2


def test_other_prescriptions_are_ignored():
    admins = [admin(1), admin(2, prescription_id="rx2")]
    assert count_administered_doses(rx(), admins) == 1


def test_legacy_fallback_when_nothing_is_linked(caplog):
    admins = [admin(1, prescription_id=None), admin(2, prescription_id=None),
              admin(3, prescription_id=None, patient_id="p2"),
              admin(4, prescription_id=None, medicine_id="m9"),
              admin(5, prescription_id=None, status="collected")]
    with caplog.at_level(logging.WARNING, logger="dose_ledger"):
        assert count_administered_doses(rx(), admins) == 2
    assert "DataIntegrityWarning" in caplog.text


def test_fallback_never_adds_to_linked_records(caplog):
    admins = [admin(1), admin(2, prescription_id=None), admin(3, prescription_id=None)]
    with caplog.at_level(logging.WARNING, logger="dose_ledger"):
        assert count_administered_doses(rx(), admins) == 1
    assert "DataIntegrityWarning" not in caplog.text


def test_last_administered_scans_collected_and_administered():
    admins = [admin(1), admin(5, status="collected", prescription_id=None),
              admin(7, status="success"), admin(9, medicine_id="m2")]
    assert last_administered_at("m1", admins) == T0 + timedelta(hours=5)
    assert last_administered_at("m1", admins, ("success",)) == T0 + timedelta(hours=7)
    assert last_administered_at("m3", admins) is None


def test_remaining_doses():
    admins = [admin(1), admin(2)]
    assert remaining_doses(rx(), admins) == 2
    assert format_remaining_doses(rx(), admins) == "Doses Left: 2"
    assert remaining_doses(rx(total_doses=1), admins) == 0
    assert format_remaining_doses(rx(periodicity="PRN"), admins) == "PRN"
    assert remaining_doses(rx(total_doses=None), admins) is None


def test_remaining_doses_uses_derived_total():
    order = rx(periodicity="Twice daily", duration="5 days", total_doses=None)
    admins = [admin(1), admin(2), admin(3)]
    assert remaining_doses(order, admins) == 7
    assert format_remaining_doses(order, admins) == "Doses Left: 7"
    assert format_remaining_doses(rx(total_doses=None, duration="Ongoing"), admins) == "PRN"
