"""
MERIDIAN Projection Engine: Probability-Weighted Wealth Projection

Architecture:
- WealthProjectionEngine: Compounds a starting position through three scenarios
- ScenarioTable: Base / stress / opportunity assumptions (probabilities sum to 1)
- ProbabilityWeightedOutcome: Expected value of proceeding vs. staying put
- CostOfInaction: Forgone value at years 1/5/10 with attributed drivers
"""

from projection_engine.models import (
    ScenarioName,
    StructureVerdict,
    ProjectionStartingPosition,
    ScenarioAssumption,
    ScenarioTable,
    StructureOption,
    YearProjection,
    TenYearOutcome,
    ProjectionScenario,
    CostOfInaction,
    ProbabilityWeightedOutcome,
    WealthProjectionData,
    CHECKPOINT_YEARS,
)
from projection_engine.core import (
    WealthProjectionEngine,
    PROJECTION_ENGINE,
    run_wealth_projection,
    default_scenario_table,
    derive_structure_projections,
    scenario_display_name,
    stay_put_net_worth,
)

__all__ = [
    "WealthProjectionEngine",
    "PROJECTION_ENGINE",
    "run_wealth_projection",
    "default_scenario_table",
    "derive_structure_projections",
    "scenario_display_name",
    "stay_put_net_worth",
    "ScenarioName",
    "StructureVerdict",
    "ProjectionStartingPosition",
    "ScenarioAssumption",
    "ScenarioTable",
    "StructureOption",
    "YearProjection",
    "TenYearOutcome",
    "ProjectionScenario",
    "CostOfInaction",
    "ProbabilityWeightedOutcome",
    "WealthProjectionData",
    "CHECKPOINT_YEARS",
]
