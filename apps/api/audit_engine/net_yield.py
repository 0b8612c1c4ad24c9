"""MERIDIAN Audit Engine: post-tax rental yield."""

from typing import Optional

from audit_engine.formatting import format_millions, format_pct, format_usd
from audit_engine.models import NetYieldAudit


def explain_net_yield(a: NetYieldAudit) -> str:
    return (
        f"Gross yield {format_pct(a.gross_yield_pct)}% on {format_millions(a.property_value)} "
        f"→ {format_pct(a.tax_rate_applied_pct)}% effective tax → {a.net_yield_pct:.2f}% net yield "
        f"({format_usd(a.annual_net_income)}/yr)."
    )


def calculate_net_yield_audit(
    transaction_value: float,
    gross_yield_pct: float,
    net_rate_pct: float,
    net_yield_pct: Optional[float] = None,
    annual_gross_income: Optional[float] = None,
) -> NetYieldAudit:
    """
    Upstream-supplied net yield / annual rental take precedence over the
    derived figures. Net income is always gross income minus tax paid.
    """
    if net_yield_pct is None:
        net_yield_pct = gross_yield_pct * (1 - net_rate_pct / 100)
    if annual_gross_income is None:
        annual_gross_income = transaction_value * gross_yield_pct / 100

    annual_tax_paid = annual_gross_income * (net_rate_pct / 100)

    audit = NetYieldAudit(
        property_value=transaction_value,
        gross_yield_pct=gross_yield_pct,
        tax_rate_applied_pct=net_rate_pct,
        net_yield_pct=net_yield_pct,
        annual_gross_income=annual_gross_income,
        annual_tax_paid=annual_tax_paid,
        annual_net_income=annual_gross_income - annual_tax_paid,
    )
    return audit.model_copy(update={"explanation": explain_net_yield(audit)})
