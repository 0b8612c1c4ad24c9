"""
MERIDIAN Audit Engine: Corridor Compliance

A corridor is a (source, destination) jurisdiction pair with catalogued
cross-border obligations. Rules are data: new corridors are added to a table
(or loaded from JSON) without touching the matching code.

No match is a valid outcome ("no specific guidance"), not an error.
"""

import json
import logging
from typing import Any, Iterable, List, Optional
from pydantic import BaseModel, Field

from audit_engine.jurisdictions import normalize_jurisdiction

logger = logging.getLogger(__name__)


class CorridorRule(BaseModel):
    key: str = Field(..., description="Display key, e.g. 'India→UAE'")
    source: str = Field(..., description="ISO code of the principal's jurisdiction")
    destination: str = Field(..., description="ISO code of the asset's jurisdiction")
    flags: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class CorridorTable:
    """Ordered corridor rules; first matching rule wins."""

    def __init__(self, rules: Iterable[CorridorRule] = ()):
        self._rules: List[CorridorRule] = list(rules)

    @property
    def rules(self) -> List[CorridorRule]:
        return list(self._rules)

    def register(self, rule: CorridorRule) -> "CorridorTable":
        """Return a new table with `rule` appended."""
        return CorridorTable(self._rules + [rule])

    def match(self, source: Optional[str], destination: Optional[str]) -> Optional[CorridorRule]:
        source_code = normalize_jurisdiction(source)
        dest_code = normalize_jurisdiction(destination)
        if not source_code or not dest_code:
            return None
        for rule in self._rules:
            if rule.source == source_code and rule.destination == dest_code:
                return rule
        logger.debug("No corridor for %s→%s", source_code, dest_code)
        return None

    @classmethod
    def from_records(cls, records: List[Any]) -> "CorridorTable":
        return cls(CorridorRule.model_validate(r) for r in records)

    @classmethod
    def from_json(cls, path: str) -> "CorridorTable":
        """Load a table from a JSON file holding a list of rule objects."""
        with open(path, "r", encoding="utf-8") as f:
            records = json.load(f)
        if not isinstance(records, list):
            raise ValueError(f"Corridor table at {path} must be a JSON list")
        return cls.from_records(records)

    def __len__(self) -> int:
        return len(self._rules)


# ─────────────────────────────────────────────
# Default Corridors
# ─────────────────────────────────────────────

DEFAULT_CORRIDOR_RULES = [
    CorridorRule(
        key="India→UAE",
        source="IN",
        destination="AE",
        flags=[
            "RBI_LRS_COMPLIANCE",
            "FEMA_REPORTING",
            "INDIA_WORLDWIDE_TAXATION",
            "INDIA_UAE_DTAA",
        ],
        warnings=[
            "India taxes worldwide income: rental income from Dubai is taxable in India at slab rates",
            "RBI Liberalised Remittance Scheme: $250,000/person/year limit applies to outward remittance",
            "FEMA compliance: All foreign property acquisitions must be reported to RBI",
            "India-UAE DTAA: Foreign Tax Credit available for taxes paid in UAE (currently 0%)",
        ],
    ),
    CorridorRule(
        key="India→Singapore",
        source="IN",
        destination="SG",
        flags=[
            "RBI_LRS_COMPLIANCE",
            "FEMA_REPORTING",
            "INDIA_WORLDWIDE_TAXATION",
            "INDIA_SINGAPORE_DTAA",
            "SINGAPORE_ABSD_FOREIGN_BUYER",
        ],
        warnings=[
            "India taxes worldwide income: rental and capital gains from Singapore taxable in India",
            "Singapore ABSD: 60% Additional Buyer's Stamp Duty for foreign buyers",
            "RBI LRS: $250,000/person/year outward remittance cap",
        ],
    ),
    CorridorRule(
        key="US→Singapore",
        source="US",
        destination="SG",
        flags=[
            "US_WORLDWIDE_TAXATION",
            "FBAR_REPORTING",
            "FATCA_COMPLIANCE",
            "US_SINGAPORE_FTA",
            "PFIC_RISK",
        ],
        warnings=[
            "US worldwide taxation: All foreign rental income and capital gains reported on Schedule E/D",
            "FBAR: Foreign bank accounts > $10,000 must be reported (FinCEN 114)",
            "FATCA: Form 8938 required for specified foreign financial assets",
            "PFIC risk: Investing through foreign REITs triggers punitive PFIC taxation",
        ],
    ),
    CorridorRule(
        key="US→UAE",
        source="US",
        destination="AE",
        flags=[
            "US_WORLDWIDE_TAXATION",
            "FBAR_REPORTING",
            "FATCA_COMPLIANCE",
        ],
        warnings=[
            "US worldwide taxation: All foreign rental income taxable at ordinary rates",
            "No US-UAE income tax treaty: FTC limited to taxes actually paid in UAE (typically 0%)",
            "FBAR: Foreign bank accounts > $10,000 must be reported",
        ],
    ),
]

DEFAULT_CORRIDOR_TABLE = CorridorTable(DEFAULT_CORRIDOR_RULES)
