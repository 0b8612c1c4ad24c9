"""
MERIDIAN Audit Engine: Core Assembler

CrossBorderAuditEngine is the single entry point. It:
1. Resolves source/destination rates through the fallback chain
2. Applies the minimum-data gate (returns None, never a partial artifact)
3. Runs stamp duty, the three treatment auditors and net yield
4. Matches the corridor table and writes the executive summary
"""

import copy
import logging
from typing import Any, Dict, Optional, Union

from audit_engine.corridors import DEFAULT_CORRIDOR_TABLE, CorridorRule, CorridorTable
from audit_engine.formatting import format_millions, format_pct, format_usd
from audit_engine.models import (
    AcquisitionAudit,
    CrossBorderAuditSummary,
    NetYieldAudit,
    PreviewData,
    StartingPosition,
)
from audit_engine.net_yield import calculate_net_yield_audit
from audit_engine.rates import has_minimum_data, resolve_tax_rates
from audit_engine.stamp_duty import calculate_acquisition_audit
from audit_engine.treatment import (
    CAPITAL_GAINS_AUDITOR,
    ESTATE_TAX_AUDITOR,
    RENTAL_INCOME_AUDITOR,
    TreatmentContext,
)

logger = logging.getLogger(__name__)

DEFAULT_STRUCTURE_NAME = "Direct Purchase"
US_WORLDWIDE_FLAG = "US_WORLDWIDE_TAXATION"


def _as_preview(preview: Union[PreviewData, Dict[str, Any], None]) -> PreviewData:
    if isinstance(preview, PreviewData):
        return preview
    if not isinstance(preview, dict):
        if preview is not None:
            logger.debug("Ignoring non-object preview_data of type %s", type(preview).__name__)
        return PreviewData()
    return PreviewData.model_validate(preview)


def _as_starting_position(
    starting_position: Union[StartingPosition, Dict[str, Any], None],
    preview: PreviewData,
) -> StartingPosition:
    if isinstance(starting_position, StartingPosition):
        return starting_position
    if isinstance(starting_position, dict):
        return StartingPosition.model_validate(starting_position)
    wpd = preview.wealth_projection_data
    if wpd is not None and wpd.starting_position is not None:
        return wpd.starting_position
    return StartingPosition()


class CrossBorderAuditEngine:
    """
    Builds CrossBorderAuditSummary artifacts from loosely-typed upstream data.
    Stateless apart from the injected corridor table.
    """

    def __init__(self, corridor_table: Optional[CorridorTable] = None):
        self.corridor_table = corridor_table if corridor_table is not None else DEFAULT_CORRIDOR_TABLE

    def assemble(
        self,
        preview: Union[PreviewData, Dict[str, Any], None],
        starting_position: Union[StartingPosition, Dict[str, Any], None] = None,
        real_asset_audit: Optional[Dict[str, Any]] = None,
    ) -> Optional[CrossBorderAuditSummary]:
        """Return the audit artifact, or None when the data is insufficient."""
        preview = _as_preview(preview)
        position = _as_starting_position(starting_position, preview)
        if real_asset_audit is None:
            real_asset_audit = preview.real_asset_audit

        transaction_value = position.resolved_transaction_value()
        if not has_minimum_data(preview, transaction_value):
            return None

        rates = resolve_tax_rates(preview)
        destination = preview.resolved_destination()
        source = preview.resolved_source()
        structure = position.selected_structure

        acquisition = calculate_acquisition_audit(
            transaction_value,
            structure=structure,
            real_asset_audit=real_asset_audit,
            destination=destination,
            source=source,
        )

        ctx = TreatmentContext(
            source=rates.source,
            destination=rates.destination,
            structure=structure,
            relocating=preview.relocating_tax_residency,
        )
        gross_yield_pct = position.rental_yield_pct or 0.0
        rental = RENTAL_INCOME_AUDITOR.audit(ctx, gross_yield_pct=gross_yield_pct)
        capital_gains = CAPITAL_GAINS_AUDITOR.audit(ctx)
        estate = ESTATE_TAX_AUDITOR.audit(ctx)

        net_yield = calculate_net_yield_audit(
            transaction_value,
            gross_yield_pct,
            rental.net_tax_rate_pct,
            net_yield_pct=position.net_rental_yield_pct,
            annual_gross_income=position.annual_rental,
        )

        corridor = self.corridor_table.match(source, destination)

        data_sources = [
            origin for origin in (rates.source_origin, rates.destination_origin, acquisition.stamp_duty_source)
            if origin
        ]

        summary = CrossBorderAuditSummary(
            executive_summary=self.executive_summary(
                destination, source, structure.structure_name if structure else None,
                acquisition, net_yield, corridor,
            ),
            acquisition_audit=acquisition,
            rental_income_audit=rental,
            capital_gains_audit=capital_gains,
            estate_tax_audit=estate,
            net_yield_audit=net_yield,
            total_tax_savings_pct=rental.tax_savings_pct,
            compliance_flags=list(corridor.flags) if corridor else [],
            warnings=list(corridor.warnings) if corridor else [],
            corridor=corridor.key if corridor else None,
            data_sources=data_sources,
        )
        logger.debug(
            "Assembled cross-border audit %s→%s (corridor=%s, sources=%s)",
            source or "?", destination or "?", summary.corridor, data_sources,
        )
        return summary

    @staticmethod
    def executive_summary(
        destination: str,
        source: str,
        structure_name: Optional[str],
        acquisition: AcquisitionAudit,
        net_yield: NetYieldAudit,
        corridor: Optional[CorridorRule],
    ) -> str:
        parts = [
            f"Cross-border acquisition: {format_millions(acquisition.property_value)} "
            f"{destination or 'destination'} property from {source or 'source'} jurisdiction.",
            f"Structure: {structure_name or DEFAULT_STRUCTURE_NAME}.",
        ]
        if acquisition.stamp_duty_source is None:
            parts.append("Day-one stamp duty cost: no stamp duty data available.")
        else:
            parts.append(
                f"Day-one stamp duty cost: {acquisition.day_one_loss_pct:.1f}% "
                f"({format_usd(acquisition.total_stamp_duties)})."
            )
        parts.append(
            f"Net rental yield: {net_yield.net_yield_pct:.2f}% after "
            f"{format_pct(net_yield.tax_rate_applied_pct)}% effective tax rate."
        )
        if corridor is not None:
            parts.append(
                f"Corridor: {corridor.key}, {len(corridor.flags)} compliance requirements identified."
            )
        return " ".join(parts)


# ─────────────────────────────────────────────
# Payload helpers
# ─────────────────────────────────────────────

AUDIT_ENGINE = CrossBorderAuditEngine()


def assemble_cross_border_audit(
    preview: Union[PreviewData, Dict[str, Any], None],
    starting_position: Union[StartingPosition, Dict[str, Any], None] = None,
    real_asset_audit: Optional[Dict[str, Any]] = None,
    engine: Optional[CrossBorderAuditEngine] = None,
) -> Optional[CrossBorderAuditSummary]:
    return (engine or AUDIT_ENGINE).assemble(preview, starting_position, real_asset_audit)


def attach_cross_border_audit(
    memo_payload: Dict[str, Any],
    engine: Optional[CrossBorderAuditEngine] = None,
) -> Dict[str, Any]:
    """
    Return a copy of a memo payload with
    preview_data.wealth_projection_data.starting_position.cross_border_audit_summary
    filled in. A summary the upstream service already supplied is kept as is.
    """
    payload = copy.deepcopy(memo_payload)
    preview = payload.get("preview_data")
    if not isinstance(preview, dict):
        return payload
    projection = preview.get("wealth_projection_data")
    position = projection.get("starting_position") if isinstance(projection, dict) else None
    if not isinstance(position, dict) or position.get("cross_border_audit_summary"):
        return payload

    summary = assemble_cross_border_audit(
        preview, position, preview.get("real_asset_audit"), engine=engine,
    )
    if summary is not None:
        position["cross_border_audit_summary"] = summary.model_dump()
    return payload


def should_show_tax_savings(
    preview: Union[PreviewData, Dict[str, Any], None],
    summary: Optional[CrossBorderAuditSummary],
) -> bool:
    """
    The upstream show_tax_savings flag wins when it is explicitly False.
    US worldwide taxation also hides theoretical savings.
    """
    preview = _as_preview(preview)
    if preview.show_tax_savings is False:
        return False
    if summary is not None and US_WORLDWIDE_FLAG in summary.compliance_flags:
        return False
    return True
