import sys
import os
import json
import pytest

# ensure local app package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
from audit_engine.corridors import DEFAULT_CORRIDOR_TABLE, CorridorRule, CorridorTable
from audit_engine.jurisdictions import jurisdiction_name, normalize_jurisdiction


# ─────────────────────────────────────────────
# Jurisdiction normalisation
# ─────────────────────────────────────────────

@pytest.mark.parametrize("text,code", [
    ("Dubai, UAE", "AE"),
    ("Abu Dhabi", "AE"),
    ("Hyderabad", "IN"),
    ("Indian resident", "IN"),
    ("Mumbai, India", "IN"),
    ("SG", "SG"),
    ("ae", "AE"),
    ("New York", "US"),
    ("Austin, US", "US"),
    ("London", "GB"),
])
def test_normalize_known_jurisdictions(text, code):
    assert normalize_jurisdiction(text) == code


@pytest.mark.parametrize("text", ["Russia", "Atlantis", "", None])
def test_normalize_unknown_jurisdictions(text):
    assert normalize_jurisdiction(text) is None


def test_australia_is_not_the_united_states():
    assert normalize_jurisdiction("Australia") == "AU"


def test_jurisdiction_name():
    assert jurisdiction_name("ae") == "United Arab Emirates"
    assert jurisdiction_name("ZZ") == "ZZ"
    assert jurisdiction_name(None) == ""


# ─────────────────────────────────────────────
# Corridor table
# ─────────────────────────────────────────────

def test_india_uae_corridor():
    rule = DEFAULT_CORRIDOR_TABLE.match("Mumbai, India", "Dubai")
    assert rule is not None
    assert rule.key == "India→UAE"
    assert "RBI_LRS_COMPLIANCE" in rule.flags
    assert "INDIA_WORLDWIDE_TAXATION" in rule.flags
    assert len(rule.warnings) == 4


def test_any_indian_city_matches_singapore_corridor():
    rule = DEFAULT_CORRIDOR_TABLE.match("Bengaluru", "Singapore")
    assert rule.key == "India→Singapore"


def test_us_corridors():
    assert DEFAULT_CORRIDOR_TABLE.match("New York", "Singapore").key == "US→Singapore"
    assert DEFAULT_CORRIDOR_TABLE.match("USA", "Dubai").key == "US→UAE"


def test_unknown_corridor_is_not_an_error():
    assert DEFAULT_CORRIDOR_TABLE.match("France", "Japan") is None
    assert DEFAULT_CORRIDOR_TABLE.match("Australia", "Singapore") is None
    assert DEFAULT_CORRIDOR_TABLE.match("", "Dubai") is None


def test_register_returns_new_table():
    rule = CorridorRule(key="UK→Portugal", source="GB", destination="PT", flags=["NHR_REGIME"])
    extended = DEFAULT_CORRIDOR_TABLE.register(rule)
    assert len(extended) == len(DEFAULT_CORRIDOR_TABLE) + 1
    assert extended.match("London", "Lisbon").flags == ["NHR_REGIME"]
    assert DEFAULT_CORRIDOR_TABLE.match("London", "Lisbon") is None


def test_from_json(tmp_path):
    path = tmp_path / "corridors.json"
    path.write_text(json.dumps([
        {"key": "Canada→US", "source": "CA", "destination": "US", "flags": ["CRA_T1135"], "warnings": ["Report foreign property"]},
    ]), encoding="utf-8")
    table = CorridorTable.from_json(str(path))
    assert len(table) == 1
    assert table.match("Toronto", "Miami").warnings == ["Report foreign property"]


def test_from_json_rejects_non_list(tmp_path):
    path = tmp_path / "corridors.json"
    path.write_text(json.dumps({"key": "x"}), encoding="utf-8")
    with pytest.raises(ValueError):
        CorridorTable.from_json(str(path))
