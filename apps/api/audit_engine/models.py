"""
MERIDIAN Audit Engine: Data Models

Upstream analysis payloads are loosely shaped. Every input field is optional and
unknown keys are tolerated, because the analysis service does not guarantee its
output contract. A rate of None means "unknown"; a rate of 0 means "confirmed
zero". The two must never be collapsed before the resolver has run.

Unit conventions used across the object graph:
1. Percentage100 -> 37 means 37%
2. Probability01 -> 0.60 means 60%
3. USD           -> plain float amount
"""

import logging
from typing import Annotated, Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────
# Units
# ─────────────────────────────────────────────

Percentage100 = Annotated[float, Field(description="Percentage on a 0-100 scale (37 = 37%)")]
Probability01 = Annotated[float, Field(ge=0.0, le=1.0, description="Probability on a 0-1 scale (0.6 = 60%)")]
USD = Annotated[float, Field(description="Amount in USD")]


class _UpstreamModel(BaseModel):
    """Base for payload fragments received from the analysis service."""
    model_config = ConfigDict(extra="allow")

    @field_validator("*", mode="wrap")
    @classmethod
    def _default_on_invalid(cls, value: Any, handler, info: ValidationInfo) -> Any:
        # A wrongly-typed field degrades to its default instead of rejecting the payload
        try:
            return handler(value)
        except ValidationError as e:
            logger.debug(
                "Ignoring invalid %s.%s=%r: %s", cls.__name__, info.field_name, value, e.errors()[0]["msg"],
            )
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)


# ─────────────────────────────────────────────
# Input Models
# ─────────────────────────────────────────────

class TaxRates(_UpstreamModel):
    """Per-jurisdiction headline rates."""
    income_tax: Optional[Percentage100] = Field(default=None, description="Income / rental income tax")
    cgt: Optional[Percentage100] = Field(default=None, description="Capital gains tax")
    wealth_tax: Optional[Percentage100] = Field(default=None)
    estate_tax: Optional[Percentage100] = Field(default=None, description="Estate / inheritance tax")


class TaxDifferential(_UpstreamModel):
    """Differential block; carries a duplicate of both rate sets."""
    source: Optional[TaxRates] = None
    destination: Optional[TaxRates] = None
    income_tax_differential_pct: Optional[Percentage100] = None
    cgt_differential_pct: Optional[Percentage100] = None
    estate_tax_differential_pct: Optional[Percentage100] = None
    cumulative_tax_differential_pct: Optional[Percentage100] = None
    weighted_tax_differential_pct: Optional[Percentage100] = None


class SelectedStructure(_UpstreamModel):
    """Ownership wrapper whose net rates override raw jurisdiction rates."""
    structure_name: Optional[str] = None
    net_rental_rate_pct: Optional[Percentage100] = None
    net_cgt_rate_pct: Optional[Percentage100] = None
    net_estate_rate_pct: Optional[Percentage100] = None
    stamp_duty_rate_pct: Optional[Percentage100] = None


class StampDutyRate(_UpstreamModel):
    rate_pct: Optional[Percentage100] = None
    description: Optional[str] = None
    band: Optional[str] = None


class ForeignBuyerSurcharge(_UpstreamModel):
    rate_pct: Optional[Percentage100] = None
    description: Optional[str] = None


class StampDutySchedule(_UpstreamModel):
    residential_rates: List[StampDutyRate] = Field(default_factory=list)
    foreign_buyer_surcharge: Optional[ForeignBuyerSurcharge] = None
    total_effective_rate_pct: Optional[Percentage100] = Field(
        default=None,
        description="Blended rate reported instead of separable components",
    )

    def has_rates(self) -> bool:
        base = self.residential_rates[0].rate_pct if self.residential_rates else None
        surcharge = self.foreign_buyer_surcharge.rate_pct if self.foreign_buyer_surcharge else None
        return any(r is not None for r in (base, surcharge, self.total_effective_rate_pct))


class RealAssetEntry(_UpstreamModel):
    """One jurisdiction entry of the real-asset audit document."""
    stamp_duty: Optional[StampDutySchedule] = None


class StartingPosition(_UpstreamModel):
    """The proposed transaction and the principal's current position."""
    transaction_value: Optional[USD] = None
    transaction_amount: Optional[USD] = Field(default=None, description="Alias of transaction_value")
    rental_yield_pct: Optional[Percentage100] = None
    net_rental_yield_pct: Optional[Percentage100] = None
    annual_rental: Optional[USD] = None
    selected_structure: Optional[SelectedStructure] = None

    # Projection inputs
    current_net_worth: Optional[USD] = None
    remaining_liquid: Optional[USD] = None
    annual_income: Optional[USD] = None
    current_tax_rate: Optional[Percentage100] = None
    target_tax_rate: Optional[Percentage100] = None
    appreciation_rate_pct: Optional[Percentage100] = None

    cross_border_audit_summary: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Artifact already attached by the upstream service, if any",
    )

    def resolved_transaction_value(self) -> float:
        return self.transaction_value or self.transaction_amount or 0.0


class WealthProjectionInput(_UpstreamModel):
    starting_position: Optional[StartingPosition] = None


class PreviewData(_UpstreamModel):
    """Top-level analysis document consumed by the audit assembler."""
    source_tax_rates: Optional[TaxRates] = None
    destination_tax_rates: Optional[TaxRates] = None
    tax_differential: Optional[TaxDifferential] = None
    source_jurisdiction: Optional[str] = None
    destination_jurisdiction: Optional[str] = None
    target_locations: Optional[List[str]] = None
    show_tax_savings: Optional[bool] = None
    relocating_tax_residency: bool = Field(
        default=False,
        description="True when the principal gives up source tax residency",
    )
    wealth_projection_data: Optional[WealthProjectionInput] = None
    real_asset_audit: Optional[Dict[str, Any]] = None

    def resolved_destination(self) -> str:
        if self.destination_jurisdiction:
            return self.destination_jurisdiction
        if self.target_locations:
            return self.target_locations[0] or ""
        return ""

    def resolved_source(self) -> str:
        return self.source_jurisdiction or ""


# ─────────────────────────────────────────────
# Output Models
# ─────────────────────────────────────────────

class AcquisitionAudit(BaseModel):
    """Day-one transaction costs (property + BSD + ABSD)."""
    property_value: USD
    bsd_rate_pct: Percentage100 = 0.0
    absd_rate_pct: Percentage100 = 0.0
    bsd_stamp_duty: USD = 0.0
    absd_additional_stamp_duty: USD = 0.0
    total_stamp_duties: USD = 0.0
    total_acquisition_cost: USD = 0.0
    day_one_loss_pct: Percentage100 = 0.0
    stamp_duty_source: Optional[str] = Field(
        default=None,
        description="Where the stamp duty rate came from; None means no data, not zero cost",
    )
    explanation: str = ""


class RentalIncomeAudit(BaseModel):
    gross_yield_pct: Percentage100
    destination_tax_rate_pct: Percentage100
    source_tax_rate_pct: Percentage100
    ftc_available: bool
    net_tax_rate_pct: Percentage100
    tax_savings_pct: Percentage100 = 0.0
    explanation: str = ""


class CapitalGainsAudit(BaseModel):
    destination_cgt_pct: Percentage100
    source_cgt_pct: Percentage100
    ftc_available: bool
    net_cgt_rate_pct: Percentage100
    tax_savings_pct: Percentage100 = 0.0
    explanation: str = ""


class EstateTaxAudit(BaseModel):
    destination_estate_pct: Percentage100
    source_estate_pct: Percentage100
    worldwide_applies: bool
    ftc_available: bool
    net_estate_rate_pct: Percentage100
    tax_savings_pct: Percentage100 = 0.0
    explanation: str = ""


class NetYieldAudit(BaseModel):
    property_value: USD
    gross_yield_pct: Percentage100
    tax_rate_applied_pct: Percentage100
    net_yield_pct: Percentage100
    annual_gross_income: USD
    annual_tax_paid: USD
    annual_net_income: USD
    explanation: str = ""


class CrossBorderAuditSummary(BaseModel):
    """Root artifact rendered by the dashboard's cross-border tax audit view."""
    executive_summary: str
    acquisition_audit: AcquisitionAudit
    rental_income_audit: RentalIncomeAudit
    capital_gains_audit: CapitalGainsAudit
    estate_tax_audit: EstateTaxAudit
    net_yield_audit: NetYieldAudit
    total_tax_savings_pct: Percentage100 = 0.0
    compliance_flags: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    corridor: Optional[str] = Field(default=None, description="Matched corridor key, e.g. 'India→UAE'")
    data_sources: List[str] = Field(default_factory=list)
