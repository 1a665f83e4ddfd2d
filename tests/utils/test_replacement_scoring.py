"""Tests for pinout and spec compatibility scoring."""

from typing import NamedTuple

import pytest

from partswap.models.pinout import PinFunction
from partswap.schemas.replacement import Severity
from partswap.utils.replacement_scoring import (
    calculate_pinout_match,
    calculate_specs_match,
    combine_scores,
    get_severity,
    rank_results,
)


class Pin(NamedTuple):
    pin_number: int
    pin_function: str


class Ranked(NamedTuple):
    name: str
    match_score: float


BUCK_PINOUT = [
    Pin(1, "BOOTSTRAP"),
    Pin(2, "INPUT_VOLTAGE"),
    Pin(3, "ENABLE"),
    Pin(4, "SOFT_START"),
    Pin(5, "FEEDBACK"),
    Pin(6, "COMPENSATION"),
    Pin(7, "GROUND"),
    Pin(8, "SWITCH_NODE"),
]


class TestCalculatePinoutMatch:
    """Test cases for calculate_pinout_match."""

    def test_identical_pinout(self):
        result = calculate_pinout_match(BUCK_PINOUT, BUCK_PINOUT)

        assert result.matched == 8
        assert result.total == 8
        assert result.score == 1.0
        assert result.differences == []

    def test_empty_side_scores_zero(self):
        assert calculate_pinout_match([], BUCK_PINOUT).score == 0.0
        result = calculate_pinout_match(BUCK_PINOUT, [])
        assert result.score == 0.0
        assert result.total == 8

    def test_critical_pin_difference_is_incompatible(self):
        candidate = list(BUCK_PINOUT)
        candidate[1] = Pin(2, "ENABLE")

        result = calculate_pinout_match(BUCK_PINOUT, candidate)

        assert result.matched == 7
        assert result.score == pytest.approx(7 / 8)
        assert len(result.differences) == 1
        difference = result.differences[0]
        assert difference.pin_number == 2
        assert difference.original_function == PinFunction.INPUT_VOLTAGE
        assert difference.replacement_function == PinFunction.ENABLE
        assert difference.severity == Severity.INCOMPATIBLE

    def test_non_critical_pin_difference_is_warning(self):
        candidate = list(BUCK_PINOUT)
        candidate[3] = Pin(4, "NC")

        result = calculate_pinout_match(BUCK_PINOUT, candidate)

        assert result.differences[0].severity == Severity.WARNING

    def test_nc_on_original_side_is_warning(self):
        result = calculate_pinout_match([Pin(1, "NC"), Pin(2, "GROUND")], [Pin(1, "OTHER"), Pin(2, "GROUND")])

        assert result.matched == 1
        assert result.differences[0].original_function == PinFunction.NC
        assert result.differences[0].severity == Severity.WARNING

    def test_score_is_relative_to_original_pins_only(self):
        """Pins only the candidate has do not count; pins it lacks are not differences."""
        original = BUCK_PINOUT[:4]
        candidate = [Pin(1, "BOOTSTRAP"), Pin(2, "INPUT_VOLTAGE"), Pin(9, "GROUND"), Pin(10, "NC")]

        result = calculate_pinout_match(original, candidate)

        assert result.matched == 2
        assert result.total == 4
        assert result.score == 0.5
        assert result.differences == []

    def test_free_form_functions_are_coerced(self):
        result = calculate_pinout_match([Pin(1, "ground")], [Pin(1, "GROUND")])
        assert result.score == 1.0


class TestGetSeverity:
    """Test cases for get_severity."""

    @pytest.mark.parametrize(
        ("original", "candidate", "expected"),
        [
            (PinFunction.GROUND, PinFunction.OUTPUT_VOLTAGE, Severity.INCOMPATIBLE),
            (PinFunction.SWITCH_NODE, PinFunction.NC, Severity.INCOMPATIBLE),
            (PinFunction.INPUT_VOLTAGE, PinFunction.GROUND, Severity.INCOMPATIBLE),
            (PinFunction.NC, PinFunction.OTHER, Severity.WARNING),
            (PinFunction.ENABLE, PinFunction.INPUT_VOLTAGE, Severity.WARNING),
            (PinFunction.FEEDBACK, PinFunction.NC, Severity.WARNING),
        ],
    )
    def test_severity(self, original, candidate, expected):
        assert get_severity(original, candidate) == expected

    def test_ground_against_output_voltage_in_pinout(self):
        result = calculate_pinout_match([Pin(1, "GROUND")], [Pin(1, "OUTPUT_VOLTAGE")])
        assert result.score == 0.0
        assert result.differences[0].severity == Severity.INCOMPATIBLE


class TestCalculateSpecsMatch:
    """Test cases for calculate_specs_match."""

    def test_missing_specs_are_neutral(self):
        assert calculate_specs_match(None, {"vin_max": 28}).score == 0.5
        assert calculate_specs_match({"vin_max": 28}, None).score == 0.5

    def test_no_runnable_checks_is_neutral(self):
        result = calculate_specs_match({"vin_max": 28}, {"iout_max": 3})
        assert result.score == 0.5
        assert result.compatible == []

    def test_higher_ratings_are_compatible(self):
        result = calculate_specs_match({"vin_max": 28, "iout_max": 3}, {"vin_max": 36, "iout_max": 3})

        assert result.compatible == ["Input voltage", "Output current"]
        assert result.incompatible == []
        assert result.score == 1.0

    def test_lower_rating_is_incompatible(self):
        result = calculate_specs_match({"vin_max": 28, "iout_max": 3}, {"vin_max": 36, "iout_max": 2})

        assert result.compatible == ["Input voltage"]
        assert result.incompatible == ["Iout max: 2A < 3A"]
        assert result.score == 0.5

    def test_narrower_output_range_is_a_warning(self):
        result = calculate_specs_match(
            {"vout_min": 0.6, "vout_max": 6},
            {"vout_min": 0.8, "vout_max": 5},
        )

        assert result.warnings == ["Vout range: 0.8-5V vs 0.6-6V"]
        assert result.score == 0.5

    def test_wider_output_range_is_compatible(self):
        result = calculate_specs_match(
            {"vout_min": 0.8, "vout_max": 5},
            {"vout_min": 0.6, "vout_max": 6},
        )
        assert result.compatible == ["Output voltage range"]

    def test_non_numeric_values_skip_the_check(self):
        result = calculate_specs_match({"vin_max": "28V"}, {"vin_max": 36})
        assert result.score == 0.5

    def test_numeric_strings_are_accepted(self):
        result = calculate_specs_match({"vin_max": "28"}, {"vin_max": 36.0})
        assert result.compatible == ["Input voltage"]


class TestCombineAndRank:
    """Test cases for score combination and ranking."""

    def test_combine_scores_weights(self):
        assert combine_scores(1.0, 1.0) == pytest.approx(1.0)
        assert combine_scores(1.0, 0.5) == pytest.approx(0.8)
        assert combine_scores(0.0, 0.5) == pytest.approx(0.2)

    def test_pinout_dominates_combined_score(self):
        assert combine_scores(1.0, 0.0) == pytest.approx(0.6)
        assert combine_scores(0.0, 1.0) == pytest.approx(0.4)

    def test_rank_orders_scores_descending(self):
        ranked = rank_results([Ranked("a", 0.9), Ranked("b", 0.3), Ranked("c", 0.6)])
        assert [item.match_score for item in ranked] == [0.9, 0.6, 0.3]

    def test_rank_is_descending_and_stable(self):
        ranked = rank_results([
            Ranked("a", 0.5),
            Ranked("b", 0.9),
            Ranked("c", 0.5),
            Ranked("d", 1.0),
        ])
        assert [item.name for item in ranked] == ["d", "b", "a", "c"]

    def test_drop_in_buck_converter_ranks_first(self):
        """SOIC-8 buck with a higher-rated identical-pinout candidate scores 1.0."""
        original_specs = {"vin_max": 28, "iout_max": 3}

        drop_in_pins = calculate_pinout_match(BUCK_PINOUT, BUCK_PINOUT)
        drop_in_specs = calculate_specs_match(original_specs, {"vin_max": 36, "iout_max": 3})
        drop_in = Ranked("drop-in", combine_scores(drop_in_pins.score, drop_in_specs.score))

        swapped = list(BUCK_PINOUT)
        swapped[7] = Pin(8, "GROUND")
        swapped[6] = Pin(7, "SWITCH_NODE")
        other_pins = calculate_pinout_match(BUCK_PINOUT, swapped)
        other_specs = calculate_specs_match(original_specs, {"vin_max": 17, "iout_max": 3})
        other = Ranked("swapped", combine_scores(other_pins.score, other_specs.score))

        assert drop_in_pins.score == 1.0
        assert "Input voltage" in drop_in_specs.compatible
        assert "Output current" in drop_in_specs.compatible
        assert drop_in.match_score == pytest.approx(1.0)
        assert [item.name for item in rank_results([other, drop_in])] == ["drop-in", "swapped"]
