# protocol_links.py
import logging
from datetime import datetime
from typing import Dict, Iterable, Optional, Sequence

from data_schema import Administration, MedicationLink, Prescription, ProtocolBinding

logger = logging.getLogger(__name__)

IMMEDIATE = "immediate"


def resolve_links(prescriptions: Iterable[Prescription],
                  medication_links: Sequence[MedicationLink]) -> Dict[str, ProtocolBinding]:
    """
    Map each follow-type prescription id to the protocol link gating it.

    The first link in insertion order wins. Duplicate (trigger, follow) pairs
    and follow medicines claimed by several triggers are logged, never
    resolved differently between calls.
    """
    by_follow: Dict[str, MedicationLink] = {}
    seen_pairs = set()
    for link in medication_links or ():
        pair = (link.trigger_medicine_id, link.follow_medicine_id)
        if pair in seen_pairs:
            logger.warning(
                "DataIntegrityWarning: duplicate medication link %s for trigger %s -> follow %s; "
                "keeping %s",
                link.id, pair[0], pair[1], by_follow[link.follow_medicine_id].id,
            )
            continue
        seen_pairs.add(pair)
        if link.follow_medicine_id in by_follow:
            logger.warning(
                "DataIntegrityWarning: follow medicine %s is linked to triggers %s and %s; "
                "keeping %s",
                link.follow_medicine_id, by_follow[link.follow_medicine_id].trigger_medicine_id,
                link.trigger_medicine_id, by_follow[link.follow_medicine_id].id,
            )
            continue
        by_follow[link.follow_medicine_id] = link

    bindings = {}
    for prescription in prescriptions:
        link = by_follow.get(prescription.medicine_id)
        if link is None:
            continue
        bindings[prescription.id] = ProtocolBinding(
            prescription_id=prescription.id,
            link_id=link.id,
            trigger_medicine_id=link.trigger_medicine_id,
            follow_medicine_id=link.follow_medicine_id,
            delay_minutes=link.delay_minutes,
            follow_frequency=link.follow_frequency,
            start_after=link.start_after,
        )
    return bindings


def binding_for(prescription: Prescription,
                medication_links: Sequence[MedicationLink]) -> Optional[ProtocolBinding]:
    return resolve_links([prescription], medication_links).get(prescription.id)


def trigger_administered_at(binding: ProtocolBinding,
                            administrations: Iterable[Administration]) -> Optional[datetime]:
    """Earliest ``administered`` record of the trigger medicine; the protocol starts after the first dose."""
    times = [a.administered_at for a in administrations
             if a.medicine_id == binding.trigger_medicine_id
             and a.status == "administered"
             and a.administered_at is not None]
    return min(times) if times else None


def gates_on_trigger(binding: ProtocolBinding) -> bool:
    return binding.start_after != IMMEDIATE
