import pytest

from farmledger.engine.point_calculator import calculate_points, match_rule
from farmledger.engine.scoring_rules import DEFAULT_SCORING_RULES, ScoringRules
from farmledger.errors import ValidationError


def test_high_confidence_adds_bonus():
    # irrigation 8, +1 above 90
    assert calculate_points("Drip irrigation optimization", 95) == 9


def test_low_confidence_halves_and_floors():
    assert calculate_points("Sowing seeds", 65) == 5
    assert calculate_points("Pest_control spraying", 10) == 3


def test_mid_confidence_keeps_base_points():
    assert calculate_points("Harvesting paddy", 70) == 15
    assert calculate_points("Harvesting paddy", 90) == 15


def test_unknown_action_uses_default():
    assert match_rule("Mulching beds") is None
    assert calculate_points("Mulching beds", 80) == DEFAULT_SCORING_RULES.default_points


def test_matching_is_case_insensitive():
    assert calculate_points("FERTILIZER application", 80) == 10


def test_longest_keyword_wins_regardless_of_order():
    rules = ScoringRules.from_pairs([("water", 1), ("watering", 5)], default_points=2)
    assert match_rule("evening watering", rules).points == 5
    assert calculate_points("evening watering", 80, rules) == 5


def test_equal_length_keywords_fall_back_to_declaration_order():
    rules = ScoringRules.from_pairs([("weed", 4), ("seed", 9)], default_points=1)
    assert match_rule("seed and weed", rules).points == 4


@pytest.mark.parametrize("confidence", [0, 1, 50, 69, 70, 89, 90, 91, 100])
def test_points_never_negative(confidence):
    for label in ("watering", "proof_upload", "anything else"):
        assert calculate_points(label, confidence) >= 0


def test_zero_point_rule_with_bonus():
    rules = ScoringRules.from_pairs([("photo", 1)], default_points=0)
    assert calculate_points("photo", 50, rules) == 0
    assert calculate_points("photo", 95, rules) == 2


@pytest.mark.parametrize("confidence", [-1, 101, 85.5, "80", True, None])
def test_rejects_bad_confidence(confidence):
    with pytest.raises(ValidationError):
        calculate_points("watering", confidence)


def test_rejects_non_string_label():
    with pytest.raises(ValidationError):
        calculate_points(None, 80)
