"""
MERIDIAN Projection Engine: Multi-Scenario Wealth Projection

Single pass, no state machine:
1. Compound the starting position through each scenario's assumptions
   (property, liquid assets, income, tax arbitrage) to year 10
2. Sample the path at checkpoints 0/1/3/5/10
3. Weight year-10 outcomes by scenario probability
4. Compare against a stay-put baseline for cost of inaction

Year 0 net worth of every scenario equals the starting net worth exactly:
net worth is computed as starting net worth plus pool deltas, and all deltas
are zero at year 0.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import numpy as np

from audit_engine.formatting import format_pct
from projection_engine.models import (
    CHECKPOINT_YEARS,
    HORIZON_YEARS,
    CostOfInaction,
    ProbabilityWeightedOutcome,
    ProjectionScenario,
    ProjectionStartingPosition,
    ScenarioAssumption,
    ScenarioName,
    ScenarioTable,
    StructureOption,
    StructureVerdict,
    TenYearOutcome,
    WealthProjectionData,
    YearProjection,
)

logger = logging.getLogger(__name__)

DEFAULT_APPRECIATION_PCT = 4.0
DEFAULT_RENTAL_YIELD_PCT = 4.0

# Share of the 10-year structure delta carried into cost of inaction at years 1/5/10
INACTION_DELTA_SHARE = {"year_1": 0.1, "year_5": 0.5, "year_10": 1.0}

SCENARIO_DISPLAY_NAMES = {
    ScenarioName.BASE_CASE: "Base Case",
    ScenarioName.STRESS_CASE: "Stress Case",
    ScenarioName.OPPORTUNITY_CASE: "Opportunity Case",
}


def scenario_display_name(name: Union[ScenarioName, str]) -> str:
    try:
        return SCENARIO_DISPLAY_NAMES[ScenarioName(name)]
    except ValueError:
        return str(name)


# ─────────────────────────────────────────────
# Scenario assumptions
# ─────────────────────────────────────────────

def _assumption_text(a: ScenarioAssumption) -> List[str]:
    lines = [
        f"Property appreciation: {format_pct(a.appreciation_rate_pct)}% annually",
        f"Rental yield: {format_pct(a.rental_yield_pct)}%",
        f"Liquid portfolio return: {format_pct(a.liquid_return_pct)}%",
        f"Income growth: {format_pct(a.income_growth_pct)}% annually",
    ]
    if a.first_year_shock_pct:
        lines.append(f"One-time year-1 re-pricing: {format_pct(a.first_year_shock_pct)}%")
    return lines


def default_scenario_table(starting: ProjectionStartingPosition) -> ScenarioTable:
    """Base / stress / opportunity at 60 / 25 / 15, anchored on the intake's own figures."""
    appreciation = (
        starting.appreciation_rate_pct
        if starting.appreciation_rate_pct is not None else DEFAULT_APPRECIATION_PCT
    )
    rental_yield = (
        starting.rental_yield_pct
        if starting.rental_yield_pct is not None else DEFAULT_RENTAL_YIELD_PCT
    )

    scenarios = [
        ScenarioAssumption(
            name=ScenarioName.BASE_CASE,
            probability=0.60,
            appreciation_rate_pct=appreciation,
            rental_yield_pct=rental_yield,
            liquid_return_pct=5.0,
            income_growth_pct=2.5,
        ),
        ScenarioAssumption(
            name=ScenarioName.STRESS_CASE,
            probability=0.25,
            appreciation_rate_pct=appreciation - 3.0,
            rental_yield_pct=round(rental_yield * 0.6, 4),
            liquid_return_pct=2.0,
            income_growth_pct=1.0,
            first_year_shock_pct=-8.0,
        ),
        ScenarioAssumption(
            name=ScenarioName.OPPORTUNITY_CASE,
            probability=0.15,
            appreciation_rate_pct=appreciation + 3.0,
            rental_yield_pct=round(rental_yield * 1.3, 4),
            liquid_return_pct=8.0,
            income_growth_pct=3.5,
        ),
    ]
    return ScenarioTable(scenarios=[
        s.model_copy(update={"assumptions": _assumption_text(s)}) for s in scenarios
    ])


# ─────────────────────────────────────────────
# Engine
# ─────────────────────────────────────────────

def stay_put_net_worth(
    starting: ProjectionStartingPosition,
    assumption: ScenarioAssumption,
    year: Union[int, np.ndarray],
) -> Union[float, np.ndarray]:
    """
    Net worth if the move is not made: the transaction capital stays liquid
    alongside the rest of the liquid pool at the scenario's liquid return,
    with no tax arbitrage. Accepts a single year or an array of years.
    """
    invested = starting.transaction_value + starting.liquid_at_start()
    growth = 1 + assumption.liquid_return_pct / 100
    return starting.current_net_worth + invested * (growth ** year - 1)


@dataclass
class ScenarioPath:
    """Full annual path (years 0..horizon) behind one projected scenario."""
    assumption: ScenarioAssumption
    property_value: np.ndarray
    liquid_assets: np.ndarray
    income: np.ndarray
    tax_saved: np.ndarray       # cumulative
    rental_income: np.ndarray   # cumulative, after tax
    net_worth: np.ndarray
    stay_net_worth: np.ndarray


class WealthProjectionEngine:
    """Projects one starting position across the three scenarios."""

    def __init__(self, horizon_years: int = HORIZON_YEARS):
        self.horizon_years = horizon_years
        self.years = np.arange(horizon_years + 1)

    def project_scenario(self, starting: ProjectionStartingPosition, a: ScenarioAssumption) -> ScenarioPath:
        """Compound the starting position through one scenario, year by year."""
        years = self.years
        p0 = starting.transaction_value
        l0 = starting.liquid_at_start()

        shock = np.where(years >= 1, 1 + a.first_year_shock_pct / 100, 1.0)
        property_value = p0 * shock * (1 + a.appreciation_rate_pct / 100) ** years
        income = starting.annual_income * (1 + a.income_growth_pct / 100) ** years

        annual_tax_saved = income * starting.annual_tax_arbitrage_pct() / 100
        annual_tax_saved[0] = 0.0

        annual_rental = np.zeros_like(property_value)
        annual_rental[1:] = (
            property_value[:-1] * a.rental_yield_pct / 100 * (1 - starting.target_tax_rate / 100)
        )

        growth = 1 + a.liquid_return_pct / 100
        liquid = np.empty_like(property_value)
        liquid[0] = l0
        for t in years[1:]:
            liquid[t] = liquid[t - 1] * growth + annual_rental[t] + annual_tax_saved[t]

        net_worth = starting.current_net_worth + (property_value - p0) + (liquid - l0)
        stay = stay_put_net_worth(starting, a, years)

        return ScenarioPath(
            assumption=a,
            property_value=property_value,
            liquid_assets=liquid,
            income=income,
            tax_saved=np.cumsum(annual_tax_saved),
            rental_income=np.cumsum(annual_rental),
            net_worth=net_worth,
            stay_net_worth=stay,
        )

    def to_scenario(self, starting: ProjectionStartingPosition, path: ScenarioPath) -> ProjectionScenario:
        h = self.horizon_years
        checkpoints = [
            YearProjection(
                year=int(t),
                property_value=float(path.property_value[t]),
                liquid_assets=float(path.liquid_assets[t]),
                income=float(path.income[t]),
                tax_saved=float(path.tax_saved[t]),
                net_worth=float(path.net_worth[t]),
            )
            for t in CHECKPOINT_YEARS if t <= h
        ]

        appreciation = float(path.property_value[h] - starting.transaction_value)
        tax_savings = float(path.tax_saved[h])
        investment_growth = float(path.liquid_assets[h] - starting.liquid_at_start()) - tax_savings
        value_creation = appreciation + investment_growth + tax_savings

        return ProjectionScenario(
            name=path.assumption.name,
            probability=path.assumption.probability,
            assumptions=list(path.assumption.assumptions),
            year_by_year=checkpoints,
            ten_year_outcome=TenYearOutcome(
                property_appreciation=appreciation,
                investment_growth=investment_growth,
                tax_savings_cumulative=tax_savings,
                total_value_creation=value_creation,
                percentage_gain=value_creation / starting.current_net_worth * 100,
                final_value=float(path.net_worth[h]),
            ),
        )

    @staticmethod
    def weighted(paths: List[ScenarioPath], attr: str) -> np.ndarray:
        return sum(p.assumption.probability * getattr(p, attr) for p in paths)

    def probability_weighted_outcome(
        self,
        starting: ProjectionStartingPosition,
        scenarios: List[ProjectionScenario],
        paths: List[ScenarioPath],
    ) -> ProbabilityWeightedOutcome:
        expected_net_worth = sum(s.probability * s.ten_year_outcome.final_value for s in scenarios)
        expected_value_creation = sum(s.probability * s.ten_year_outcome.total_value_creation for s in scenarios)
        stay = float(self.weighted(paths, "stay_net_worth")[self.horizon_years])
        return ProbabilityWeightedOutcome(
            expected_net_worth=expected_net_worth,
            expected_value_creation=expected_value_creation,
            vs_stay_expected=stay,
            net_benefit_of_move=expected_net_worth - stay,
        )

    def cost_of_inaction(
        self,
        starting: ProjectionStartingPosition,
        paths: List[ScenarioPath],
        structure_verdict: Optional[StructureVerdict] = None,
    ) -> CostOfInaction:
        h = self.horizon_years
        gap = self.weighted(paths, "net_worth") - self.weighted(paths, "stay_net_worth")

        where = f" in {starting.destination}" if starting.destination else ""
        drivers = {
            f"Forgone property appreciation{where}":
                float(self.weighted(paths, "property_value")[h] - starting.transaction_value),
            (f"Continued tax exposure at {format_pct(starting.current_tax_rate)}% "
             f"vs {format_pct(starting.target_tax_rate)}% target"):
                float(self.weighted(paths, "tax_saved")[h]),
            "Forgone net rental income": float(self.weighted(paths, "rental_income")[h]),
        }
        ranked = sorted(drivers.items(), key=lambda kv: abs(kv[1]), reverse=True)
        secondary = ranked[1][0] if len(ranked) > 1 and ranked[1][1] != 0 else None

        blocked = structure_verdict == StructureVerdict.DO_NOT_PROCEED
        return CostOfInaction(
            year_1=float(gap[min(1, h)]),
            year_5=float(gap[min(5, h)]),
            year_10=float(gap[h]),
            primary_driver=ranked[0][0],
            secondary_driver=secondary,
            structure_blocked=blocked,
            context_note=(
                "Structure verdict is DO_NOT_PROCEED: figures show the exposure that remains "
                "without acting, not a case for proceeding with this structure."
                if blocked else None
            ),
        )

    def run(
        self,
        starting: ProjectionStartingPosition,
        scenario_table: Optional[ScenarioTable] = None,
        structure_verdict: Optional[StructureVerdict] = None,
    ) -> WealthProjectionData:
        table = scenario_table or default_scenario_table(starting)
        paths = [self.project_scenario(starting, table.get(name)) for name in ScenarioName]
        scenarios = [self.to_scenario(starting, p) for p in paths]

        result = WealthProjectionData(
            starting_position=starting,
            horizon_years=self.horizon_years,
            scenarios=scenarios,
            cost_of_inaction=self.cost_of_inaction(starting, paths, structure_verdict),
            probability_weighted_outcome=self.probability_weighted_outcome(starting, scenarios, paths),
        )
        logger.debug(
            "Wealth projection: expected NW %.0f vs stay %.0f",
            result.probability_weighted_outcome.expected_net_worth,
            result.probability_weighted_outcome.vs_stay_expected,
        )
        return result


PROJECTION_ENGINE = WealthProjectionEngine()


def run_wealth_projection(
    starting_position: Union[ProjectionStartingPosition, Dict[str, Any]],
    scenario_table: Union[ScenarioTable, Dict[str, Any], None] = None,
    structure_verdict: Union[StructureVerdict, str, None] = None,
) -> WealthProjectionData:
    """Module-level entry point. Raises ValidationError for invalid scenario tables."""
    if not isinstance(starting_position, ProjectionStartingPosition):
        starting_position = ProjectionStartingPosition.model_validate(starting_position)
    if scenario_table is not None and not isinstance(scenario_table, ScenarioTable):
        scenario_table = ScenarioTable.model_validate(scenario_table)
    if structure_verdict is not None:
        structure_verdict = StructureVerdict(structure_verdict)
    return PROJECTION_ENGINE.run(starting_position, scenario_table, structure_verdict)


# ─────────────────────────────────────────────
# Per-structure projections
# ─────────────────────────────────────────────

def derive_structure_projections(
    data: WealthProjectionData,
    structures: List[StructureOption],
    reference_name: Optional[str] = None,
) -> Dict[str, WealthProjectionData]:
    """
    Derive projections for alternative structures from the one the projection
    was computed for, shifting every figure by the 10-year net-benefit delta.
    Net worth is shifted linearly by year, so year 0 stays untouched.
    """
    if not structures:
        return {}
    reference = next((s for s in structures if s.name == reference_name), structures[0])
    net_worth_0 = data.starting_position.current_net_worth

    projections: Dict[str, WealthProjectionData] = {}
    for structure in structures:
        if structure.name == reference.name:
            projections[structure.name] = data
            continue

        delta = structure.net_benefit_10yr - reference.net_benefit_10yr
        scenarios = []
        for scenario in data.scenarios:
            outcome = scenario.ten_year_outcome
            value_creation = outcome.total_value_creation + delta
            scenarios.append(scenario.model_copy(update={
                "year_by_year": [
                    yp.model_copy(update={"net_worth": yp.net_worth + delta * yp.year / data.horizon_years})
                    for yp in scenario.year_by_year
                ],
                "ten_year_outcome": outcome.model_copy(update={
                    "total_value_creation": value_creation,
                    "final_value": outcome.final_value + delta,
                    "percentage_gain": value_creation / net_worth_0 * 100,
                }),
            }))

        coi = data.cost_of_inaction
        pwo = data.probability_weighted_outcome
        projections[structure.name] = data.model_copy(update={
            "scenarios": scenarios,
            "cost_of_inaction": coi.model_copy(update={
                field: getattr(coi, field) + delta * share
                for field, share in INACTION_DELTA_SHARE.items()
            }),
            "probability_weighted_outcome": pwo.model_copy(update={
                "expected_net_worth": pwo.expected_net_worth + delta,
                "expected_value_creation": pwo.expected_value_creation + delta,
                "net_benefit_of_move": pwo.net_benefit_of_move + delta,
            }),
        })
    return projections
