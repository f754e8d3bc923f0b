from farmledger.engine.scheme_matcher import match_scheme, match_schemes
from farmledger.models.database import Scheme


def scheme(id, criteria, name="Test Scheme"):
    return Scheme(id=id, name=name, type="Subsidy", provider="Govt", criteria=criteria)


DRIP = scheme(
    2,
    {
        "minScore": 40,
        "location": ["Mandya", "Kolar", "Mysore"],
        "crops": ["Sugarcane", "Tomato", "Banana"],
    },
    name="Drip Irrigation Subsidy",
)


def test_all_criteria_met():
    match = match_scheme(DRIP, score=55, place="Mandya district", crops={"Tomato"})
    assert match.is_eligible
    assert match.match_reason == ["Good Credit Score", "Location Match", "Crop Match"]
    assert match.missing_criteria == []


def test_low_score_is_reported():
    match = match_scheme(DRIP, score=10, place="Kolar", crops={"Tomato"})
    assert not match.is_eligible
    assert match.missing_criteria == ["Min Score: 40"]


def test_location_match_is_case_insensitive():
    match = match_scheme(DRIP, score=40, place="near MYSORE", crops=set())
    assert match.is_eligible
    assert "Location Match" in match.match_reason


def test_wrong_location_and_crop():
    match = match_scheme(DRIP, score=90, place="Hubli", crops={"Wheat"})
    assert not match.is_eligible
    assert match.missing_criteria == [
        "Valid Districts: Mandya, Kolar, Mysore",
        "Eligible Crops: Sugarcane, Tomato, Banana",
    ]


def test_unknown_place_and_crops_are_not_held_against_farmer():
    match = match_scheme(DRIP, score=40, place=None, crops=())
    assert match.is_eligible
    assert match.match_reason == ["Good Credit Score"]


def test_zero_min_score_and_extra_keys_are_ignored():
    match = match_scheme(scheme(1, {"minScore": 0, "maxAcreage": 5}), score=0, place=None, crops=())
    assert match.is_eligible
    assert match.match_reason == []


def test_match_schemes_preserves_order_and_applied_flag():
    catalogue = [scheme(1, {}), DRIP, scheme(3, {"minScore": 80})]
    matches = match_schemes(catalogue, score=50, place="Kolar", crops={"Banana"}, applied_ids={3})
    assert [m.scheme.id for m in matches] == [1, 2, 3]
    assert [m.is_eligible for m in matches] == [True, True, False]
    assert [m.has_applied for m in matches] == [False, False, True]
