import sys
import os
import copy
import pytest

# ensure local app package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
from audit_engine import (
    CorridorRule,
    CorridorTable,
    CrossBorderAuditEngine,
    assemble_cross_border_audit,
    attach_cross_border_audit,
    should_show_tax_savings,
)


def singapore_preview(**overrides):
    preview = {
        "source_jurisdiction": "India",
        "destination_jurisdiction": "Singapore",
        "source_tax_rates": {"income_tax": 30, "cgt": 20, "estate_tax": 0},
        "destination_tax_rates": {"income_tax": 0, "cgt": 0, "estate_tax": 0},
        "real_asset_audit": {
            "_kg_stats": {"edges": 40},
            "Singapore": {
                "stamp_duty": {
                    "residential_rates": [{"rate_pct": 5}],
                    "foreign_buyer_surcharge": {"rate_pct": 20},
                }
            },
        },
        "wealth_projection_data": {
            "starting_position": {"transaction_value": 6_160_000, "rental_yield_pct": 6},
        },
    }
    preview.update(overrides)
    return preview


def test_full_audit_for_singapore_acquisition():
    summary = assemble_cross_border_audit(singapore_preview())
    assert summary is not None

    acq = summary.acquisition_audit
    assert acq.total_stamp_duties == pytest.approx(1_540_000)
    assert acq.day_one_loss_pct == pytest.approx(25)

    assert summary.rental_income_audit.ftc_available is False
    assert summary.rental_income_audit.net_tax_rate_pct == 30
    assert summary.net_yield_audit.net_yield_pct == pytest.approx(4.2)

    assert summary.corridor == "India→Singapore"
    assert "SINGAPORE_ABSD_FOREIGN_BUYER" in summary.compliance_flags
    assert summary.total_tax_savings_pct == 0
    assert summary.data_sources == [
        "source_tax_rates", "destination_tax_rates", "real_asset_audit:Singapore",
    ]
    assert summary.executive_summary == (
        "Cross-border acquisition: $6.2M Singapore property from India jurisdiction. "
        "Structure: Direct Purchase. "
        "Day-one stamp duty cost: 25.0% ($1,540,000). "
        "Net rental yield: 4.20% after 30% effective tax rate. "
        "Corridor: India→Singapore, 5 compliance requirements identified."
    )


def test_no_rate_data_returns_none():
    preview = singapore_preview(source_tax_rates=None, destination_tax_rates=None, tax_differential=None)
    assert assemble_cross_border_audit(preview) is None


def test_non_positive_transaction_returns_none():
    preview = singapore_preview()
    assert assemble_cross_border_audit(preview, {"transaction_value": 0}) is None
    assert assemble_cross_border_audit(preview, {"transaction_value": -100}) is None


def test_empty_rate_objects_still_produce_artifact():
    preview = singapore_preview(source_tax_rates={}, destination_tax_rates={})
    summary = assemble_cross_border_audit(preview)
    assert summary is not None
    assert summary.rental_income_audit.net_tax_rate_pct == 0
    assert summary.estate_tax_audit.explanation.startswith("Neither jurisdiction")


def test_tax_differential_fallback_feeds_audit():
    preview = singapore_preview(
        source_tax_rates={},
        destination_tax_rates=None,
        tax_differential={"source": {"income_tax": 37}, "destination": {"income_tax": 0}},
    )
    summary = assemble_cross_border_audit(preview)
    assert summary.rental_income_audit.source_tax_rate_pct == 37
    assert "tax_differential.source" in summary.data_sources


def test_target_locations_used_when_destination_missing():
    preview = singapore_preview(destination_jurisdiction=None, target_locations=["Dubai Marina"])
    summary = assemble_cross_border_audit(preview)
    assert summary.corridor == "India→UAE"


def test_explicit_starting_position_and_alias():
    summary = assemble_cross_border_audit(
        singapore_preview(),
        starting_position={
            "transaction_amount": 2_000_000,
            "rental_yield_pct": 4,
            "selected_structure": {"structure_name": "Singapore VCC", "net_rental_rate_pct": 17},
        },
    )
    assert summary.acquisition_audit.property_value == 2_000_000
    assert summary.rental_income_audit.net_tax_rate_pct == 17
    assert "Structure: Singapore VCC." in summary.executive_summary


def test_missing_stamp_duty_is_stated_in_summary():
    preview = singapore_preview(real_asset_audit=None)
    summary = assemble_cross_border_audit(preview)
    assert summary.acquisition_audit.stamp_duty_source is None
    assert "no stamp duty data available" in summary.executive_summary


def test_unmatched_corridor_has_no_flags():
    preview = singapore_preview(source_jurisdiction="Paris", destination_jurisdiction="Tokyo")
    summary = assemble_cross_border_audit(preview)
    assert summary.corridor is None
    assert summary.compliance_flags == []
    assert summary.warnings == []
    assert "Corridor:" not in summary.executive_summary


def test_relocation_reports_savings():
    summary = assemble_cross_border_audit(singapore_preview(relocating_tax_residency=True))
    assert summary.rental_income_audit.net_tax_rate_pct == 0
    assert summary.total_tax_savings_pct == 30


def test_assembly_is_deterministic():
    preview = singapore_preview()
    assert assemble_cross_border_audit(preview).model_dump() == assemble_cross_border_audit(preview).model_dump()


def test_injected_corridor_table():
    table = CorridorTable([
        CorridorRule(key="India→Singapore", source="IN", destination="SG", flags=["CUSTOM"]),
    ])
    summary = CrossBorderAuditEngine(corridor_table=table).assemble(singapore_preview())
    assert summary.compliance_flags == ["CUSTOM"]


# ─────────────────────────────────────────────
# Payload helpers
# ─────────────────────────────────────────────

def test_attach_fills_missing_summary_without_mutating_input():
    payload = {"preview_data": singapore_preview()}
    original = copy.deepcopy(payload)
    result = attach_cross_border_audit(payload)
    position = result["preview_data"]["wealth_projection_data"]["starting_position"]
    assert position["cross_border_audit_summary"]["corridor"] == "India→Singapore"
    assert payload == original


def test_attach_keeps_upstream_summary():
    preview = singapore_preview()
    preview["wealth_projection_data"]["starting_position"]["cross_border_audit_summary"] = {"executive_summary": "upstream"}
    result = attach_cross_border_audit({"preview_data": preview})
    position = result["preview_data"]["wealth_projection_data"]["starting_position"]
    assert position["cross_border_audit_summary"] == {"executive_summary": "upstream"}


def test_attach_leaves_insufficient_payload_alone():
    payload = {"preview_data": singapore_preview(source_tax_rates=None, destination_tax_rates=None)}
    result = attach_cross_border_audit(payload)
    assert "cross_border_audit_summary" not in result["preview_data"]["wealth_projection_data"]["starting_position"]
    assert attach_cross_border_audit({}) == {}


def test_should_show_tax_savings():
    preview = singapore_preview()
    summary = assemble_cross_border_audit(preview)
    assert should_show_tax_savings(preview, summary) is True
    assert should_show_tax_savings(singapore_preview(show_tax_savings=False), summary) is False

    us_preview = singapore_preview(source_jurisdiction="New York")
    us_summary = assemble_cross_border_audit(us_preview)
    assert "US_WORLDWIDE_TAXATION" in us_summary.compliance_flags
    assert should_show_tax_savings(us_preview, us_summary) is False


# ─────────────────────────────────────────────
# Malformed upstream data
# ─────────────────────────────────────────────

@pytest.mark.parametrize("overrides", [
    {"target_locations": "Dubai", "destination_jurisdiction": None},
    {"destination_tax_rates": {"income_tax": "N/A"}},
    {"relocating_tax_residency": None},
    {"source_tax_rates": {}, "tax_differential": {"source": {"income_tax": "30%"}}},
    {"show_tax_savings": "maybe", "real_asset_audit": ["Singapore"]},
])
def test_wrongly_typed_fields_degrade_instead_of_raising(overrides):
    summary = assemble_cross_border_audit(singapore_preview(**overrides))
    assert summary is not None
    assert summary.acquisition_audit.property_value == 6_160_000


def test_wrongly_typed_transaction_value_fails_gate():
    preview = singapore_preview()
    assert assemble_cross_border_audit(preview, {"transaction_value": "lots"}) is None


def test_non_object_preview_fails_gate():
    assert assemble_cross_border_audit(["not", "a", "preview"]) is None
    assert assemble_cross_border_audit(None) is None


def test_attach_ignores_non_object_fragments():
    assert attach_cross_border_audit({"preview_data": ["x"]}) == {"preview_data": ["x"]}
    payload = {"preview_data": {"wealth_projection_data": "pending"}}
    assert attach_cross_border_audit(payload) == payload


def test_attach_with_malformed_rates_still_attaches():
    preview = singapore_preview(destination_tax_rates={"income_tax": "N/A"}, real_asset_audit="n/a")
    result = attach_cross_border_audit({"preview_data": preview})
    summary = result["preview_data"]["wealth_projection_data"]["starting_position"]["cross_border_audit_summary"]
    assert summary["rental_income_audit"]["destination_tax_rate_pct"] == 0
    assert summary["acquisition_audit"]["stamp_duty_source"] is None
