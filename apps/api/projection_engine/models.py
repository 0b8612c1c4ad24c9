"""
MERIDIAN Projection Engine: Data Models

Percentages are 0-100 (Percentage100), probabilities are 0-1 (Probability01).
Both conventions live side by side in the same objects; the Annotated unit
aliases keep them apart at every declaration.
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

from audit_engine.models import USD, Percentage100, Probability01

CHECKPOINT_YEARS = (0, 1, 3, 5, 10)
HORIZON_YEARS = 10
PROBABILITY_TOLERANCE = 1e-6


class ScenarioName(str, Enum):
    BASE_CASE = "BASE_CASE"
    STRESS_CASE = "STRESS_CASE"
    OPPORTUNITY_CASE = "OPPORTUNITY_CASE"


class StructureVerdict(str, Enum):
    PROCEED_NOW = "PROCEED_NOW"
    PROCEED_MODIFIED = "PROCEED_MODIFIED"
    DO_NOT_PROCEED = "DO_NOT_PROCEED"


# ─────────────────────────────────────────────
# Input Models
# ─────────────────────────────────────────────

class ProjectionStartingPosition(BaseModel):
    """Principal's position at year 0."""
    current_net_worth: USD = Field(..., gt=0)
    transaction_value: USD = Field(..., ge=0, description="Capital deployed into the move")
    remaining_liquid: Optional[USD] = Field(
        default=None,
        description="Liquid assets after the transaction; defaults to net worth minus transaction",
    )
    annual_income: USD = Field(default=0.0, ge=0)
    current_tax_rate: Percentage100 = Field(default=0.0)
    target_tax_rate: Percentage100 = Field(default=0.0)
    appreciation_rate_pct: Optional[Percentage100] = None
    rental_yield_pct: Optional[Percentage100] = None
    destination: Optional[str] = Field(default=None, description="Free-text destination, used in driver labels")

    @model_validator(mode="before")
    @classmethod
    def _accept_transaction_amount(cls, data):
        # Upstream sends transaction_amount; transaction_value is the alias
        if isinstance(data, dict) and data.get("transaction_value") is None and "transaction_amount" in data:
            data = {**data, "transaction_value": data["transaction_amount"]}
        return data

    def liquid_at_start(self) -> float:
        if self.remaining_liquid is not None:
            return self.remaining_liquid
        return max(self.current_net_worth - self.transaction_value, 0.0)

    def annual_tax_arbitrage_pct(self) -> float:
        return max(self.current_tax_rate - self.target_tax_rate, 0.0)


class ScenarioAssumption(BaseModel):
    """Growth/yield assumptions for one scenario."""
    name: ScenarioName
    probability: Probability01
    appreciation_rate_pct: Percentage100 = 0.0
    rental_yield_pct: Percentage100 = 0.0
    liquid_return_pct: Percentage100 = 0.0
    income_growth_pct: Percentage100 = 0.0
    first_year_shock_pct: Percentage100 = Field(
        default=0.0,
        description="One-time property re-pricing in year 1 (e.g. -15 for currency depreciation)",
    )
    assumptions: List[str] = Field(default_factory=list)


class ScenarioTable(BaseModel):
    """Exactly one assumption per scenario; probabilities sum to 1."""
    scenarios: List[ScenarioAssumption]

    @model_validator(mode="after")
    def _check_table(self):
        names = [s.name for s in self.scenarios]
        if sorted(n.value for n in names) != sorted(n.value for n in ScenarioName):
            raise ValueError(f"Scenario table must contain each of {[n.value for n in ScenarioName]} once")
        total = sum(s.probability for s in self.scenarios)
        if abs(total - 1.0) > PROBABILITY_TOLERANCE:
            raise ValueError(f"Scenario probabilities must sum to 1.0, got {total:.6f}")
        return self

    def get(self, name: ScenarioName) -> ScenarioAssumption:
        return next(s for s in self.scenarios if s.name == name)


class StructureOption(BaseModel):
    """Alternative ownership structure ranked by 10-year net benefit."""
    name: str
    net_benefit_10yr: USD = 0.0


# ─────────────────────────────────────────────
# Output Models
# ─────────────────────────────────────────────

class YearProjection(BaseModel):
    year: int
    property_value: USD
    liquid_assets: USD
    income: USD
    tax_saved: USD = Field(default=0.0, description="Cumulative tax saved up to this year")
    net_worth: USD


class TenYearOutcome(BaseModel):
    property_appreciation: USD
    investment_growth: USD
    tax_savings_cumulative: USD
    total_value_creation: USD
    percentage_gain: Percentage100
    final_value: USD


class ProjectionScenario(BaseModel):
    name: ScenarioName
    probability: Probability01
    assumptions: List[str] = Field(default_factory=list)
    year_by_year: List[YearProjection] = Field(default_factory=list)
    ten_year_outcome: TenYearOutcome


class CostOfInaction(BaseModel):
    year_1: USD
    year_5: USD
    year_10: USD
    primary_driver: str
    secondary_driver: Optional[str] = None
    structure_blocked: bool = False
    context_note: Optional[str] = None


class ProbabilityWeightedOutcome(BaseModel):
    expected_net_worth: USD
    expected_value_creation: USD
    vs_stay_expected: USD = Field(..., description="Expected net worth if the move is not made")
    net_benefit_of_move: USD


class WealthProjectionData(BaseModel):
    starting_position: ProjectionStartingPosition
    horizon_years: int = Field(default=HORIZON_YEARS, description="Last projected year")
    scenarios: List[ProjectionScenario]
    cost_of_inaction: CostOfInaction
    probability_weighted_outcome: ProbabilityWeightedOutcome
