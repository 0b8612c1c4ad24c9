"""
MERIDIAN Audit Engine: Tax Treatment Auditors

One auditor per income category, sharing the same rules:
- Net rate: structure-adjusted rate when present, else the higher of source and
  destination (the source jurisdiction taxes worldwide income).
- FTC: only when the source claims worldwide rights (rate > 0) AND tax is
  actually paid in the destination (rate > 0). A 0% destination leaves nothing
  to credit.
- Savings: 0% unless the principal gives up source tax residency. The engine
  never claims savings for a non-relocating cross-border purchase.
"""

from abc import ABC, abstractmethod
from typing import Optional
from pydantic import BaseModel

from audit_engine.formatting import format_pct
from audit_engine.models import (
    CapitalGainsAudit,
    EstateTaxAudit,
    RentalIncomeAudit,
    SelectedStructure,
    TaxRates,
)
from audit_engine.rates import rate_or_zero


class TreatmentContext(BaseModel):
    """Everything a category auditor needs, already resolved."""
    source: TaxRates
    destination: TaxRates
    structure: Optional[SelectedStructure] = None
    relocating: bool = False


class Treatment(BaseModel):
    """Category-independent outcome of the treatment rules."""
    source_rate_pct: float
    destination_rate_pct: float
    net_rate_pct: float
    ftc_available: bool
    tax_savings_pct: float


# ─────────────────────────────────────────────
# Abstract Auditor
# ─────────────────────────────────────────────

class AbstractTreatmentAuditor(ABC):
    """Base class for category-specific tax treatment."""

    CATEGORY: str = ""
    RATE_FIELD: str = ""        # attribute on TaxRates
    STRUCTURE_FIELD: str = ""   # attribute on SelectedStructure

    def structure_rate(self, ctx: TreatmentContext) -> Optional[float]:
        if ctx.structure is None:
            return None
        return getattr(ctx.structure, self.STRUCTURE_FIELD)

    def evaluate(self, ctx: TreatmentContext) -> Treatment:
        source_rate = rate_or_zero(ctx.source, self.RATE_FIELD)
        dest_rate = rate_or_zero(ctx.destination, self.RATE_FIELD)
        structure_rate = self.structure_rate(ctx)
        ftc_available = source_rate > 0 and dest_rate > 0

        if ctx.relocating:
            # Source residency is given up: only the destination (or structure) taxes
            net_rate = structure_rate if structure_rate is not None else dest_rate
            savings = max(source_rate - net_rate, 0.0)
        else:
            net_rate = structure_rate if structure_rate is not None else max(source_rate, dest_rate)
            savings = 0.0

        return Treatment(
            source_rate_pct=source_rate,
            destination_rate_pct=dest_rate,
            net_rate_pct=net_rate,
            ftc_available=ftc_available,
            tax_savings_pct=savings,
        )

    @abstractmethod
    def audit(self, ctx: TreatmentContext, **kwargs) -> BaseModel:
        """Build the category's sub-audit, explanation included."""
        pass


# ─────────────────────────────────────────────
# Category Auditors
# ─────────────────────────────────────────────

class RentalIncomeAuditor(AbstractTreatmentAuditor):
    CATEGORY = "rental_income"
    RATE_FIELD = "income_tax"
    STRUCTURE_FIELD = "net_rental_rate_pct"

    def audit(self, ctx: TreatmentContext, gross_yield_pct: float = 0.0) -> RentalIncomeAudit:
        t = self.evaluate(ctx)
        audit = RentalIncomeAudit(
            gross_yield_pct=gross_yield_pct,
            destination_tax_rate_pct=t.destination_rate_pct,
            source_tax_rate_pct=t.source_rate_pct,
            ftc_available=t.ftc_available,
            net_tax_rate_pct=t.net_rate_pct,
            tax_savings_pct=t.tax_savings_pct,
        )
        return audit.model_copy(update={"explanation": self.explain(audit)})

    @staticmethod
    def explain(a: RentalIncomeAudit) -> str:
        dest, src, net = (format_pct(v) for v in (
            a.destination_tax_rate_pct, a.source_tax_rate_pct, a.net_tax_rate_pct))
        if a.destination_tax_rate_pct == 0 and a.source_tax_rate_pct > 0 and a.tax_savings_pct == 0:
            text = (
                f"Destination charges 0% income tax. Source jurisdiction taxes worldwide "
                f"income at {src}%. Net effective rate after structure: {net}%."
            )
        else:
            ftc = "available" if a.ftc_available else "not available"
            text = f"Destination: {dest}%. Source: {src}%. FTC {ftc}. Net: {net}%."
        if a.tax_savings_pct > 0:
            text += f" Saving vs source residency: {format_pct(a.tax_savings_pct)}%."
        return text


class CapitalGainsAuditor(AbstractTreatmentAuditor):
    CATEGORY = "capital_gains"
    RATE_FIELD = "cgt"
    STRUCTURE_FIELD = "net_cgt_rate_pct"

    def audit(self, ctx: TreatmentContext, **kwargs) -> CapitalGainsAudit:
        t = self.evaluate(ctx)
        audit = CapitalGainsAudit(
            destination_cgt_pct=t.destination_rate_pct,
            source_cgt_pct=t.source_rate_pct,
            ftc_available=t.ftc_available,
            net_cgt_rate_pct=t.net_rate_pct,
            tax_savings_pct=t.tax_savings_pct,
        )
        return audit.model_copy(update={"explanation": self.explain(audit)})

    @staticmethod
    def explain(a: CapitalGainsAudit) -> str:
        dest, src, net = (format_pct(v) for v in (
            a.destination_cgt_pct, a.source_cgt_pct, a.net_cgt_rate_pct))
        if a.destination_cgt_pct == 0 and a.source_cgt_pct > 0 and a.tax_savings_pct == 0:
            text = f"Destination: 0% CGT. Source: {src}% on worldwide gains. Net effective rate: {net}%."
        else:
            text = f"Destination: {dest}%. Source: {src}%. Net: {net}%."
            if a.ftc_available:
                text += " FTC available for destination CGT."
        if a.tax_savings_pct > 0:
            text += f" Saving vs source residency: {format_pct(a.tax_savings_pct)}%."
        return text


class EstateTaxAuditor(AbstractTreatmentAuditor):
    CATEGORY = "estate"
    RATE_FIELD = "estate_tax"
    STRUCTURE_FIELD = "net_estate_rate_pct"

    def audit(self, ctx: TreatmentContext, **kwargs) -> EstateTaxAudit:
        t = self.evaluate(ctx)
        source_income = rate_or_zero(ctx.source, "income_tax")
        worldwide = not ctx.relocating and (t.source_rate_pct > 0 or source_income > 0)
        audit = EstateTaxAudit(
            destination_estate_pct=t.destination_rate_pct,
            source_estate_pct=t.source_rate_pct,
            worldwide_applies=worldwide,
            ftc_available=t.ftc_available,
            net_estate_rate_pct=t.net_rate_pct,
            tax_savings_pct=t.tax_savings_pct,
        )
        return audit.model_copy(update={"explanation": self.explain(audit)})

    @staticmethod
    def explain(a: EstateTaxAudit) -> str:
        src, dest, net = (format_pct(v) for v in (
            a.source_estate_pct, a.destination_estate_pct, a.net_estate_rate_pct))
        if a.source_estate_pct == 0 and a.destination_estate_pct == 0:
            text = "Neither jurisdiction imposes estate/inheritance tax on this asset class."
            if a.net_estate_rate_pct > 0:
                text += f" Structure-level estate exposure: {net}%."
            return text
        if a.destination_estate_pct == 0 and a.worldwide_applies:
            text = (
                f"Destination levies no estate tax. Source: {src}% on the worldwide estate. "
                f"Net effective rate: {net}%."
            )
        else:
            applies = "applies" if a.worldwide_applies else "does not apply"
            text = f"Source: {src}%. Destination: {dest}%. Worldwide taxation {applies}. Net: {net}%."
        if a.tax_savings_pct > 0:
            text += f" Saving vs source residency: {format_pct(a.tax_savings_pct)}%."
        return text


RENTAL_INCOME_AUDITOR = RentalIncomeAuditor()
CAPITAL_GAINS_AUDITOR = CapitalGainsAuditor()
ESTATE_TAX_AUDITOR = EstateTaxAuditor()
