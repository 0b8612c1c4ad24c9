import sys
import os
import pytest

# ensure local app package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
from audit_engine.models import SelectedStructure
from audit_engine.stamp_duty import calculate_acquisition_audit, find_stamp_duty_entry


def schedule(base=None, surcharge=None, blended=None):
    sd = {"residential_rates": [{"rate_pct": base, "band": "all"}] if base is not None else []}
    if surcharge is not None:
        sd["foreign_buyer_surcharge"] = {"rate_pct": surcharge, "description": "Foreign buyer"}
    if blended is not None:
        sd["total_effective_rate_pct"] = blended
    return {"stamp_duty": sd}


def test_singapore_foreign_buyer_example():
    audit = calculate_acquisition_audit(
        6_160_000,
        real_asset_audit={"Singapore": schedule(base=5, surcharge=20)},
        destination="Singapore",
        source="India",
    )
    assert audit.bsd_stamp_duty == pytest.approx(308_000)
    assert audit.absd_additional_stamp_duty == pytest.approx(1_232_000)
    assert audit.total_stamp_duties == pytest.approx(1_540_000)
    assert audit.total_acquisition_cost == pytest.approx(7_700_000)
    assert audit.day_one_loss_pct == pytest.approx(25)
    assert audit.stamp_duty_source == "real_asset_audit:Singapore"


def test_totals_are_sums_of_components():
    audit = calculate_acquisition_audit(
        3_333_333.33,
        real_asset_audit={"Dubai": schedule(base=4, surcharge=1.5)},
        destination="Dubai",
    )
    assert audit.total_stamp_duties == audit.bsd_stamp_duty + audit.absd_additional_stamp_duty
    assert audit.total_acquisition_cost == audit.property_value + audit.total_stamp_duties
    assert audit.day_one_loss_pct == audit.bsd_rate_pct + audit.absd_rate_pct


def test_destination_entry_preferred_over_other_keys():
    audit_doc = {
        "_kg_stats": {"nodes": 12},
        "London": schedule(base=12),
        "Dubai (Downtown)": schedule(base=4),
    }
    key, sd = find_stamp_duty_entry(audit_doc, "Dubai", "London")
    assert key == "Dubai (Downtown)"
    assert sd.residential_rates[0].rate_pct == 4


def test_fallback_skips_source_jurisdiction_entry():
    audit_doc = {
        "India": schedule(base=7),
        "Dubai": schedule(base=4),
    }
    key, _ = find_stamp_duty_entry(audit_doc, "Abu Dhabi", "Hyderabad, India")
    assert key == "Dubai"


def test_fallback_skips_metadata_and_non_dict_values():
    audit_doc = {
        "metadata": schedule(base=99),
        "_private": schedule(base=98),
        "summary": "text blob",
    }
    assert find_stamp_duty_entry(audit_doc, "Lisbon", "Paris") is None


def test_malformed_entry_is_skipped():
    audit_doc = {
        "Dubai": {"stamp_duty": {"residential_rates": "4%"}},
        "Dubai Marina": schedule(base=4),
    }
    key, _ = find_stamp_duty_entry(audit_doc, "Dubai", "")
    assert key == "Dubai Marina"


def test_blended_rate_overrides_components():
    audit = calculate_acquisition_audit(
        1_000_000,
        real_asset_audit={"Singapore": schedule(base=3, surcharge=4, blended=8)},
        destination="Singapore",
    )
    assert audit.bsd_rate_pct == pytest.approx(4)
    assert audit.absd_rate_pct == pytest.approx(4)
    assert audit.total_stamp_duties == pytest.approx(80_000)


def test_blended_rate_smaller_than_surcharge_absorbs_it():
    audit = calculate_acquisition_audit(
        1_000_000,
        real_asset_audit={"Singapore": schedule(base=3, surcharge=20, blended=6)},
        destination="Singapore",
    )
    assert audit.bsd_rate_pct == 6
    assert audit.absd_rate_pct == 0
    assert audit.day_one_loss_pct == 6


def test_structure_rate_used_without_schedule():
    audit = calculate_acquisition_audit(
        2_000_000,
        structure=SelectedStructure(structure_name="DIFC Foundation", stamp_duty_rate_pct=4),
        real_asset_audit=None,
        destination="Dubai",
    )
    assert audit.bsd_stamp_duty == pytest.approx(80_000)
    assert audit.stamp_duty_source == "selected_structure"


def test_missing_stamp_duty_data_is_reported_as_unknown():
    audit = calculate_acquisition_audit(2_000_000, destination="Tokyo", source="Paris")
    assert audit.total_stamp_duties == 0
    assert audit.stamp_duty_source is None
    assert audit.explanation.startswith("No stamp duty schedule available")


def test_entry_without_usable_rates_is_skipped():
    audit_doc = {
        "Singapore": {"stamp_duty": {"residential_rates": [{"rate_pct": "five"}]}},
        "Singapore (CCR)": schedule(base=5, surcharge=20),
    }
    key, sd = find_stamp_duty_entry(audit_doc, "Singapore", "India")
    assert key == "Singapore (CCR)"
    assert sd.foreign_buyer_surcharge.rate_pct == 20


def test_non_object_real_asset_audit_is_ignored():
    assert find_stamp_duty_entry(["Dubai"], "Dubai", "India") is None
