"""
MERIDIAN Audit Engine: Tax Rate Resolver

The session layer upstream sometimes overwrites `source_tax_rates` /
`destination_tax_rates` with an empty object while the same data survives in
`tax_differential.source` / `tax_differential.destination`. The resolver picks
the first candidate with real data so an accidental empty object never masks it.
"""

import logging
from typing import Optional, Tuple
from pydantic import BaseModel, Field

from audit_engine.models import PreviewData, TaxRates

logger = logging.getLogger(__name__)

RATE_FIELDS = ("income_tax", "cgt", "wealth_tax", "estate_tax")


class ResolvedTaxRates(BaseModel):
    """Canonical source/destination rate sets plus the field each came from."""
    source: TaxRates = Field(default_factory=TaxRates)
    destination: TaxRates = Field(default_factory=TaxRates)
    source_origin: Optional[str] = Field(default=None, description="Upstream field the source rates came from")
    destination_origin: Optional[str] = None


def has_meaningful_rates(rates: Optional[TaxRates]) -> bool:
    """True if at least one rate is known and non-zero."""
    if rates is None:
        return False
    return any((getattr(rates, name) or 0) > 0 for name in RATE_FIELDS)


def _rates_conflict(a: TaxRates, b: TaxRates) -> bool:
    return any(
        getattr(a, name) is not None
        and getattr(b, name) is not None
        and getattr(a, name) != getattr(b, name)
        for name in RATE_FIELDS
    )


def resolve_rate_set(
    direct: Optional[TaxRates],
    fallback: Optional[TaxRates],
    direct_label: str = "direct",
    fallback_label: str = "fallback",
) -> Tuple[TaxRates, Optional[str]]:
    """
    Pick one rate set out of a direct and a fallback candidate.

    Priority:
    1. direct, if it has a non-zero rate
    2. fallback, if it has a non-zero rate
    3. whichever object exists (direct first), even if empty
    4. an empty TaxRates
    """
    if has_meaningful_rates(direct):
        if has_meaningful_rates(fallback) and _rates_conflict(direct, fallback):
            logger.warning(
                "Conflicting tax rates between %s and %s; using %s",
                direct_label, fallback_label, direct_label,
            )
        return direct, direct_label
    if has_meaningful_rates(fallback):
        logger.debug("%s has no usable rates, falling back to %s", direct_label, fallback_label)
        return fallback, fallback_label
    if direct is not None:
        return direct, direct_label
    if fallback is not None:
        return fallback, fallback_label
    return TaxRates(), None


def resolve_tax_rates(preview: PreviewData) -> ResolvedTaxRates:
    differential = preview.tax_differential
    source, source_origin = resolve_rate_set(
        preview.source_tax_rates,
        differential.source if differential else None,
        "source_tax_rates",
        "tax_differential.source",
    )
    destination, destination_origin = resolve_rate_set(
        preview.destination_tax_rates,
        differential.destination if differential else None,
        "destination_tax_rates",
        "tax_differential.destination",
    )
    return ResolvedTaxRates(
        source=source,
        destination=destination,
        source_origin=source_origin,
        destination_origin=destination_origin,
    )


def has_minimum_data(preview: PreviewData, transaction_value: float) -> bool:
    """
    Gate for the whole audit: at least one rate object must exist (even empty)
    and the transaction value must be positive.
    """
    differential = preview.tax_differential
    candidates = (
        preview.source_tax_rates,
        preview.destination_tax_rates,
        differential.source if differential else None,
        differential.destination if differential else None,
    )
    if all(c is None for c in candidates):
        logger.debug("Audit gate failed: no tax rate data")
        return False
    if transaction_value <= 0:
        logger.debug("Audit gate failed: transaction value %s", transaction_value)
        return False
    return True


def rate_or_zero(rates: TaxRates, name: str) -> float:
    value = getattr(rates, name)
    return float(value) if value is not None else 0.0
