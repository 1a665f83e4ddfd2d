"""Pin and electrical-spec compatibility scoring for drop-in replacements."""

from collections.abc import Iterable, Mapping, Sequence
from numbers import Real
from typing import Any, Protocol, TypeVar

from partswap.models.pinout import PinFunction
from partswap.schemas.replacement import (
    PinDifference,
    PinoutMatchResult,
    Severity,
    SpecsMatchResult,
)
from partswap.utils.pinout_matching import map_to_pin_function

PINOUT_WEIGHT = 0.6
SPECS_WEIGHT = 0.4
NEUTRAL_SPECS_SCORE = 0.5
WARNING_WEIGHT = 0.5

CRITICAL_PIN_FUNCTIONS = frozenset({
    PinFunction.INPUT_VOLTAGE,
    PinFunction.OUTPUT_VOLTAGE,
    PinFunction.GROUND,
    PinFunction.SWITCH_NODE,
})


class PinLike(Protocol):
    pin_number: int
    pin_function: Any


class Scored(Protocol):
    match_score: float


ScoredT = TypeVar("ScoredT", bound=Scored)


def get_severity(original: PinFunction, candidate: PinFunction) -> Severity:
    if original in CRITICAL_PIN_FUNCTIONS and original != candidate:
        return Severity.INCOMPATIBLE
    return Severity.WARNING


def calculate_pinout_match(
    original: Sequence[PinLike],
    candidate: Sequence[PinLike],
) -> PinoutMatchResult:
    """Score how well ``candidate`` reproduces the original's pin functions.

    Only the original's pins count: the score is matched / len(original).
    A pin missing on the candidate is neither a match nor a difference.
    """
    if not original or not candidate:
        return PinoutMatchResult(matched=0, total=len(original), score=0.0, differences=[])

    candidate_by_number: dict[int, PinFunction] = {}
    for pin in candidate:
        candidate_by_number.setdefault(pin.pin_number, map_to_pin_function(pin.pin_function))

    matched = 0
    differences: list[PinDifference] = []

    for pin in original:
        original_function = map_to_pin_function(pin.pin_function)
        candidate_function = candidate_by_number.get(pin.pin_number)
        if candidate_function is None:
            continue
        if candidate_function == original_function:
            matched += 1
        else:
            differences.append(PinDifference(
                pin_number=pin.pin_number,
                original_function=original_function,
                replacement_function=candidate_function,
                severity=get_severity(original_function, candidate_function),
            ))

    return PinoutMatchResult(
        matched=matched,
        total=len(original),
        score=matched / len(original),
        differences=differences,
    )


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, Real):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _fmt(value: float) -> str:
    return f"{value:g}"


def calculate_specs_match(
    original: Mapping[str, Any] | None,
    candidate: Mapping[str, Any] | None,
) -> SpecsMatchResult:
    """Check input voltage, output current and output voltage range.

    A check only runs when both sides carry numeric values for it. Missing
    spec maps, or no runnable checks, give the neutral score 0.5.
    """
    if original is None or candidate is None:
        return SpecsMatchResult(score=NEUTRAL_SPECS_SCORE)

    compatible: list[str] = []
    incompatible: list[str] = []
    warnings: list[str] = []

    orig_vin_max = _as_number(original.get("vin_max"))
    cand_vin_max = _as_number(candidate.get("vin_max"))
    if orig_vin_max is not None and cand_vin_max is not None:
        if cand_vin_max >= orig_vin_max:
            compatible.append("Input voltage")
        else:
            incompatible.append(f"Vin max: {_fmt(cand_vin_max)}V < {_fmt(orig_vin_max)}V")

    orig_iout_max = _as_number(original.get("iout_max"))
    cand_iout_max = _as_number(candidate.get("iout_max"))
    if orig_iout_max is not None and cand_iout_max is not None:
        if cand_iout_max >= orig_iout_max:
            compatible.append("Output current")
        else:
            incompatible.append(f"Iout max: {_fmt(cand_iout_max)}A < {_fmt(orig_iout_max)}A")

    orig_vout = (_as_number(original.get("vout_min")), _as_number(original.get("vout_max")))
    cand_vout = (_as_number(candidate.get("vout_min")), _as_number(candidate.get("vout_max")))
    if None not in orig_vout and None not in cand_vout:
        orig_min, orig_max = orig_vout
        cand_min, cand_max = cand_vout
        if cand_min <= orig_min and cand_max >= orig_max:  # type: ignore[operator]
            compatible.append("Output voltage range")
        else:
            # narrower adjustable range may still cover the design point
            warnings.append(
                f"Vout range: {_fmt(cand_min)}-{_fmt(cand_max)}V "  # type: ignore[arg-type]
                f"vs {_fmt(orig_min)}-{_fmt(orig_max)}V"  # type: ignore[arg-type]
            )

    total_checks = len(compatible) + len(incompatible) + len(warnings)
    if total_checks:
        score = (len(compatible) + WARNING_WEIGHT * len(warnings)) / total_checks
    else:
        score = NEUTRAL_SPECS_SCORE

    return SpecsMatchResult(
        compatible=compatible,
        incompatible=incompatible,
        warnings=warnings,
        score=score,
    )


def combine_scores(pinout_score: float, specs_score: float) -> float:
    return PINOUT_WEIGHT * pinout_score + SPECS_WEIGHT * specs_score


def rank_results(results: Iterable[ScoredT]) -> list[ScoredT]:
    """Highest match_score first; equal scores keep their input order."""
    return sorted(results, key=lambda result: result.match_score, reverse=True)
