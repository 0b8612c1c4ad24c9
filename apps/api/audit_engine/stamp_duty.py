"""
MERIDIAN Audit Engine: Stamp Duty / Acquisition Cost

Real-asset audit documents are keyed by free-text jurisdiction names
("Dubai", "Singapore (Core Central Region)", "_kg_stats"). Lookup:
1. first entry whose key contains the destination name
2. otherwise first non-metadata entry that does not overlap the source name,
   so an ambiguous key never hands back the buyer's home-country schedule
"""

import logging
from typing import Any, Dict, Optional, Tuple

from audit_engine.formatting import format_pct, format_usd
from audit_engine.models import (
    AcquisitionAudit,
    RealAssetEntry,
    SelectedStructure,
    StampDutySchedule,
)

logger = logging.getLogger(__name__)

METADATA_KEYS = {"_kg_stats", "metadata"}


def _schedule_for(key: str, raw: Any) -> Optional[StampDutySchedule]:
    if not isinstance(raw, dict):
        return None
    schedule = RealAssetEntry.model_validate(raw).stamp_duty
    if schedule is None or not schedule.has_rates():
        logger.debug("Skipping real-asset entry %r: no usable stamp duty rates", key)
        return None
    return schedule


def find_stamp_duty_entry(
    real_asset_audit: Optional[Dict[str, Any]],
    destination: str,
    source: str,
) -> Optional[Tuple[str, StampDutySchedule]]:
    """Return (key, schedule) for the destination, or None if nothing usable."""
    if not isinstance(real_asset_audit, dict) or not real_asset_audit:
        return None

    dest_lower = (destination or "").lower()
    source_lower = (source or "").lower()

    # Priority 1: key names the destination
    if dest_lower:
        for key, raw in real_asset_audit.items():
            key_lower = key.lower()
            if key_lower in METADATA_KEYS or dest_lower not in key_lower:
                continue
            schedule = _schedule_for(key, raw)
            if schedule is not None:
                return key, schedule

    # Priority 2: any non-metadata, non-source key
    for key, raw in real_asset_audit.items():
        key_lower = key.lower()
        if key_lower in METADATA_KEYS or key_lower.startswith("_"):
            continue
        is_source = bool(source_lower) and (source_lower in key_lower or key_lower in source_lower)
        if is_source:
            continue
        schedule = _schedule_for(key, raw)
        if schedule is not None:
            logger.debug("No stamp duty entry for %r, using %r", destination, key)
            return key, schedule

    return None


def _split_rates(
    base_pct: float,
    surcharge_pct: float,
    blended_pct: Optional[float],
) -> Tuple[float, float]:
    """
    Apply a blended total rate, keeping base + surcharge == blended.
    The surcharge survives only if it fits inside the blended figure.
    """
    if blended_pct is None:
        return base_pct, surcharge_pct
    if 0 <= surcharge_pct <= blended_pct:
        return blended_pct - surcharge_pct, surcharge_pct
    return blended_pct, 0.0


def explain_acquisition(audit: AcquisitionAudit) -> str:
    if audit.stamp_duty_source is None:
        return (
            f"No stamp duty schedule available for this jurisdiction. "
            f"Acquisition cost shown at property value ({format_usd(audit.property_value)})."
        )
    text = (
        f"Stamp duty {format_pct(audit.bsd_rate_pct)}% ({format_usd(audit.bsd_stamp_duty)})"
    )
    if audit.absd_rate_pct > 0:
        text += (
            f" plus foreign buyer surcharge {format_pct(audit.absd_rate_pct)}% "
            f"({format_usd(audit.absd_additional_stamp_duty)})"
        )
    text += (
        f". Total acquisition cost {format_usd(audit.total_acquisition_cost)}; "
        f"day-one loss {audit.day_one_loss_pct:.1f}%."
    )
    return text


def calculate_acquisition_audit(
    transaction_value: float,
    structure: Optional[SelectedStructure] = None,
    real_asset_audit: Optional[Dict[str, Any]] = None,
    destination: str = "",
    source: str = "",
) -> AcquisitionAudit:
    """Day-one cost of the acquisition: value + BSD + ABSD."""
    base_pct = 0.0
    surcharge_pct = 0.0
    blended_pct: Optional[float] = None
    origin: Optional[str] = None

    if structure is not None and structure.stamp_duty_rate_pct is not None:
        base_pct = structure.stamp_duty_rate_pct
        origin = "selected_structure"

    match = find_stamp_duty_entry(real_asset_audit, destination, source)
    if match is not None:
        key, schedule = match
        origin = f"real_asset_audit:{key}"
        if schedule.residential_rates and schedule.residential_rates[0].rate_pct is not None:
            base_pct = schedule.residential_rates[0].rate_pct
        if schedule.foreign_buyer_surcharge is not None:
            surcharge_pct = schedule.foreign_buyer_surcharge.rate_pct or 0.0
        blended_pct = schedule.total_effective_rate_pct

    base_pct, surcharge_pct = _split_rates(base_pct, surcharge_pct, blended_pct)

    bsd = transaction_value * (base_pct / 100)
    absd = transaction_value * (surcharge_pct / 100)
    total = bsd + absd

    audit = AcquisitionAudit(
        property_value=transaction_value,
        bsd_rate_pct=base_pct,
        absd_rate_pct=surcharge_pct,
        bsd_stamp_duty=bsd,
        absd_additional_stamp_duty=absd,
        total_stamp_duties=total,
        total_acquisition_cost=transaction_value + total,
        day_one_loss_pct=base_pct + surcharge_pct,
        stamp_duty_source=origin,
    )
    return audit.model_copy(update={"explanation": explain_acquisition(audit)})
