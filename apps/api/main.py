import os
import logging
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, ValidationError

from audit_engine import (
    CrossBorderAuditEngine,
    CorridorTable,
    DEFAULT_CORRIDOR_TABLE,
    PreviewData,
    StartingPosition,
    CrossBorderAuditSummary,
    attach_cross_border_audit,
    should_show_tax_savings,
)
from audit_engine.jurisdictions import SUPPORTED_JURISDICTIONS, jurisdiction_name
from projection_engine import (
    ProjectionStartingPosition,
    ScenarioTable,
    StructureOption,
    StructureVerdict,
    WealthProjectionData,
    derive_structure_projections,
    run_wealth_projection,
)

load_dotenv()

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
CORRIDOR_TABLE_PATH = os.getenv("CORRIDOR_TABLE_PATH", "").strip()

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("meridian.api")


def load_corridor_table(path: str = CORRIDOR_TABLE_PATH) -> CorridorTable:
    if not path:
        return DEFAULT_CORRIDOR_TABLE
    table = CorridorTable.from_json(path)
    logger.info("Loaded %d corridor rules from %s", len(table), path)
    return table


cross_border_engine = CrossBorderAuditEngine(corridor_table=load_corridor_table())

app = FastAPI(title="MERIDIAN API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----------------------------
# Models
# ----------------------------
class CrossBorderAuditIn(BaseModel):
    preview_data: PreviewData
    starting_position: Optional[StartingPosition] = Field(
        default=None,
        description="Defaults to preview_data.wealth_projection_data.starting_position",
    )
    real_asset_audit: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Defaults to preview_data.real_asset_audit",
    )


class CrossBorderAuditOut(BaseModel):
    ok: bool
    status: str = Field(..., description="complete | insufficient_data")
    audit: Optional[CrossBorderAuditSummary] = None
    show_tax_savings: bool = False


class ProjectionIn(BaseModel):
    starting_position: ProjectionStartingPosition
    scenario_table: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Custom scenario assumptions; defaults to the 60/25/15 table",
    )
    structure_verdict: Optional[StructureVerdict] = None


class ProjectionOut(BaseModel):
    ok: bool
    projection: WealthProjectionData


class StructureProjectionIn(ProjectionIn):
    structures: List[StructureOption] = Field(default_factory=list)
    reference_structure: Optional[str] = Field(
        default=None,
        description="Structure the projection was computed for; defaults to the first one",
    )


# ----------------------------
# Health / reference data
# ----------------------------
@app.get("/api/v1/health")
def health():
    return {"ok": True, "corridors": len(cross_border_engine.corridor_table)}


@app.get("/api/v1/audit/jurisdictions")
def audit_jurisdictions():
    return {
        "ok": True,
        "jurisdictions": {code: jurisdiction_name(code) for code in SUPPORTED_JURISDICTIONS},
    }


@app.get("/api/v1/audit/corridors")
def audit_corridors():
    return {"ok": True, "corridors": [r.model_dump() for r in cross_border_engine.corridor_table.rules]}


# ----------------------------
# Cross-border audit
# ----------------------------
@app.post("/api/v1/audit/cross-border", response_model=CrossBorderAuditOut)
def audit_cross_border(body: CrossBorderAuditIn):
    """
    Assemble the cross-border tax audit artifact.
    Insufficient data is a normal outcome (status=insufficient_data, audit=None).
    """
    summary = cross_border_engine.assemble(body.preview_data, body.starting_position, body.real_asset_audit)
    if summary is None:
        return CrossBorderAuditOut(ok=True, status="insufficient_data")
    return CrossBorderAuditOut(
        ok=True,
        status="complete",
        audit=summary,
        show_tax_savings=should_show_tax_savings(body.preview_data, summary),
    )


@app.post("/api/v1/audit/attach")
def audit_attach(memo: Dict[str, Any]):
    """Fill in cross_border_audit_summary on a memo payload when the upstream left it empty."""
    return {"ok": True, "memo": attach_cross_border_audit(memo, engine=cross_border_engine)}


# ----------------------------
# Wealth projection
# ----------------------------
def _project(body: ProjectionIn) -> WealthProjectionData:
    try:
        table = ScenarioTable.model_validate(body.scenario_table) if body.scenario_table else None
    except ValidationError as e:
        raise HTTPException(
            status_code=400,
            detail={"error": "Invalid scenario table", "message": str(e)},
        )
    return run_wealth_projection(body.starting_position, table, body.structure_verdict)


@app.post("/api/v1/projection/run", response_model=ProjectionOut)
def projection_run(body: ProjectionIn):
    return ProjectionOut(ok=True, projection=_project(body))


@app.post("/api/v1/projection/structures")
def projection_structures(body: StructureProjectionIn):
    """Projection per ownership structure, derived from the reference structure's run."""
    base = _project(body)
    projections = derive_structure_projections(base, body.structures, body.reference_structure)
    return {
        "ok": True,
        "projections": {name: p.model_dump() for name, p in projections.items()},
    }
