import json
import logging
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd

from completion import is_complete
from data_schema import Administration, MedicationLink, Prescription, Snapshot, load_snapshot
from dose_ledger import format_remaining_doses, last_collection_time
from eligibility import can_administer, format_last_collected, format_next_collection, next_due_time
from periodicity import CONTINUOUS, PRN, parse_interval

logger = logging.getLogger(__name__)

CATEGORIES = ('Ordered', 'PRN', 'Continuous', 'Completed')


class MedPyxisBoard:
    """MedPyxis cabinet view of prescriptions, recomputed on every call.

    A board may hold several patients; each row only sees its own patient's
    administrations.
    """

    def __init__(self, prescriptions: List[Prescription] = None,
                 administrations: List[Administration] = None,
                 medication_links: List[MedicationLink] = None):
        self.prescriptions = list(prescriptions or [])
        self.administrations = list(administrations or [])
        self.medication_links = list(medication_links or [])

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot, patient_id: Optional[str] = None) -> 'MedPyxisBoard':
        """Build a board, optionally restricted to one patient"""
        prescriptions = snapshot.prescriptions
        administrations = snapshot.administrations
        if patient_id is not None:
            prescriptions = [p for p in prescriptions if p.patient_id == patient_id]
            administrations = [a for a in administrations if a.patient_id == patient_id]
        return cls(prescriptions, administrations, snapshot.medication_links)

    def import_snapshot(self, data_or_filename):
        """Replace the board contents from JSON data or a filename"""
        snapshot = load_snapshot(data_or_filename)
        self.prescriptions = snapshot.prescriptions
        self.administrations = snapshot.administrations
        self.medication_links = snapshot.medication_links
        logger.info("Loaded %d prescriptions, %d administrations, %d medication links",
                    len(self.prescriptions), len(self.administrations), len(self.medication_links))

    def administrations_for(self, prescription: Prescription) -> List[Administration]:
        """Administrations recorded for the prescription's own patient"""
        return [a for a in self.administrations if a.patient_id == prescription.patient_id]

    def category(self, prescription: Prescription, now: datetime) -> str:
        if is_complete(prescription, self.administrations_for(prescription), now):
            return 'Completed'

        kind = parse_interval(prescription.periodicity).kind
        if kind == PRN:
            return 'PRN'
        if kind == CONTINUOUS or prescription.duration == 'Ongoing':
            return 'Continuous'
        if prescription.end_date is None and prescription.start_date is None:
            # protocol-delayed orders have no dates yet but are still scheduled
            return 'Ordered'
        if prescription.end_date is None:
            return 'Continuous'
        return 'Ordered'

    def grouped(self, now: datetime) -> Dict[str, List[Prescription]]:
        groups: Dict[str, List[Prescription]] = {}
        for prescription in self.prescriptions:
            groups.setdefault(self.category(prescription, now), []).append(prescription)
        return groups

    def row(self, prescription: Prescription, now: datetime) -> Dict:
        administrations = self.administrations_for(prescription)
        verdict = can_administer(prescription, administrations, self.medication_links, now)
        last = last_collection_time(prescription.medicine_id, administrations)
        return {
            'prescription_id': prescription.id,
            'medicine_id': prescription.medicine_id,
            'dosage': prescription.dosage,
            'periodicity': prescription.periodicity,
            'route': prescription.route,
            'category': self.category(prescription, now),
            'last_collected': format_last_collected(last, now),
            'next_due': next_due_time(prescription.medicine_id, prescription.periodicity,
                                      prescription, administrations, now),
            'next_collection': format_next_collection(prescription, administrations,
                                                      self.medication_links, now),
            'doses_left': format_remaining_doses(prescription, administrations),
            'allowed': verdict.allowed,
            'reason': verdict.reason,
        }

    def frame(self, now: datetime) -> pd.DataFrame:
        columns = ['prescription_id', 'medicine_id', 'dosage', 'periodicity', 'route', 'category',
                   'last_collected', 'next_due', 'next_collection', 'doses_left', 'allowed', 'reason']
        rows = [self.row(p, now) for p in self.prescriptions]
        df = pd.DataFrame(rows, columns=columns)
        if not df.empty:
            df['category'] = pd.Categorical(df['category'], categories=CATEGORIES, ordered=True)
            df = df.sort_values(['category', 'prescription_id']).reset_index(drop=True)
        return df

    def export_board(self, now: datetime, filename: str = None) -> str:
        """Export the board as seen at ``now`` to JSON"""
        if filename is None:
            filename = f"medpyxis_board_{now.strftime('%Y%m%d_%H%M%S')}.json"

        export_data = {
            'export_time': now.isoformat(),
            'rows': json.loads(self.frame(now).to_json(orient='records', date_format='iso')),
        }

        with open(filename, 'w') as f:
            json.dump(export_data, f, indent=2)

        return filename
