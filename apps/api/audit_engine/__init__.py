"""
MERIDIAN Audit Engine: Cross-Border Tax Audit

Architecture:
- CrossBorderAuditEngine: Assembles the audit artifact from upstream data
- Tax rate resolver: Fallback chain over redundant upstream rate fields
- Treatment auditors: Rental income, capital gains, estate (FTC + worldwide rules)
- CorridorTable: Injectable corridor compliance knowledge
- CrossBorderAuditSummary: Root output artifact
"""

from audit_engine.models import (
    TaxRates,
    SelectedStructure,
    StartingPosition,
    PreviewData,
    AcquisitionAudit,
    RentalIncomeAudit,
    CapitalGainsAudit,
    EstateTaxAudit,
    NetYieldAudit,
    CrossBorderAuditSummary,
    Percentage100,
    Probability01,
    USD,
)
from audit_engine.corridors import CorridorRule, CorridorTable, DEFAULT_CORRIDOR_TABLE
from audit_engine.core import (
    CrossBorderAuditEngine,
    AUDIT_ENGINE,
    assemble_cross_border_audit,
    attach_cross_border_audit,
    should_show_tax_savings,
)

__all__ = [
    "CrossBorderAuditEngine",
    "AUDIT_ENGINE",
    "assemble_cross_border_audit",
    "attach_cross_border_audit",
    "should_show_tax_savings",
    "CorridorRule",
    "CorridorTable",
    "DEFAULT_CORRIDOR_TABLE",
    "TaxRates",
    "SelectedStructure",
    "StartingPosition",
    "PreviewData",
    "AcquisitionAudit",
    "RentalIncomeAudit",
    "CapitalGainsAudit",
    "EstateTaxAudit",
    "NetYieldAudit",
    "CrossBorderAuditSummary",
    "Percentage100",
    "Probability01",
    "USD",
]
