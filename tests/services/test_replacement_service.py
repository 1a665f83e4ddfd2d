"""Tests for the replacement search."""

import pytest
from sqlalchemy.orm import Session

from partswap.exceptions import PreconditionFailedException, RecordNotFoundException
from partswap.schemas.component import ManualComponentCreateSchema, ManualPinSchema
from partswap.schemas.replacement import Severity
from partswap.services.component_service import ComponentService
from partswap.services.replacement_service import ReplacementService

BUCK_PINOUT = [
    "BOOTSTRAP", "INPUT_VOLTAGE", "ENABLE", "SOFT_START",
    "FEEDBACK", "COMPENSATION", "GROUND", "SWITCH_NODE",
]


def _manual(mpn: str, package: str | None, functions: list[str], specs: dict | None = None) -> ManualComponentCreateSchema:
    return ManualComponentCreateSchema(
        mpn=mpn,
        manufacturer="Texas Instruments",
        package=package,
        specs=specs,
        pinouts=[
            ManualPinSchema(pin_number=index, pin_name=function[:3], pin_function=function)
            for index, function in enumerate(functions, start=1)
        ],
    )


@pytest.fixture
def component_service(session: Session) -> ComponentService:
    return ComponentService(session)


@pytest.fixture
def replacement_service(session: Session, component_service: ComponentService) -> ReplacementService:
    return ReplacementService(session, component_service)


class TestReplacementService:
    """Test cases for ReplacementService."""

    def test_ranks_same_package_candidates(
        self, component_service: ComponentService, replacement_service: ReplacementService
    ):
        component_service.import_manual_component(
            _manual("TPS54331DR", "8-SOIC", BUCK_PINOUT, {"vin_max": 28, "iout_max": 3})
        )
        component_service.import_manual_component(
            _manual("TPS54332DR", "SO-8", BUCK_PINOUT, {"vin_max": 28, "iout_max": 3.5})
        )
        swapped = list(BUCK_PINOUT)
        swapped[6], swapped[7] = swapped[7], swapped[6]
        component_service.import_manual_component(
            _manual("OTHER8", "SOIC-8", swapped, {"vin_max": 40, "iout_max": 2})
        )
        component_service.import_manual_component(
            _manual("LM1117-3.3", "SOT-223", ["ADJUST", "OUTPUT_VOLTAGE", "INPUT_VOLTAGE"])
        )

        result = replacement_service.find_replacements_by_mpn("tps54331dr")

        assert result.original.mpn == "TPS54331DR"
        assert [r.component.mpn for r in result.results] == ["TPS54332DR", "OTHER8"]

        best = result.results[0]
        assert best.match_score == pytest.approx(1.0)
        assert best.pinout_match.matched == 8
        assert best.specs_match.compatible == ["Input voltage", "Output current"]

        worst = result.results[1]
        assert worst.pinout_match.matched == 6
        assert worst.pinout_match.score == pytest.approx(0.75)
        assert {d.severity for d in worst.pinout_match.differences} == {Severity.INCOMPATIBLE}
        assert worst.specs_match.incompatible == ["Iout max: 2A < 3A"]
        assert worst.match_score == pytest.approx(0.6 * 0.75 + 0.4 * 0.5)

    def test_no_candidates(self, component_service: ComponentService, replacement_service: ReplacementService):
        component_service.import_manual_component(_manual("TPS54331DR", "SOIC-8", BUCK_PINOUT))

        result = replacement_service.find_replacements_by_mpn("TPS54331DR")

        assert result.results == []

    def test_missing_specs_score_neutral(
        self, component_service: ComponentService, replacement_service: ReplacementService
    ):
        component_service.import_manual_component(_manual("TPS54331DR", "SOIC-8", BUCK_PINOUT))
        component_service.import_manual_component(_manual("TPS54332DR", "SOIC-8", BUCK_PINOUT))

        result = replacement_service.find_replacements_by_mpn("TPS54331DR")

        assert result.results[0].specs_match.score == pytest.approx(0.5)
        assert result.results[0].match_score == pytest.approx(0.8)

    def test_component_without_package(
        self, component_service: ComponentService, replacement_service: ReplacementService
    ):
        component_service.import_manual_component(_manual("MYSTERY1", None, ["GROUND"]))

        with pytest.raises(PreconditionFailedException):
            replacement_service.find_replacements_by_mpn("MYSTERY1")

    def test_unknown_mpn(self, replacement_service: ReplacementService):
        with pytest.raises(RecordNotFoundException):
            replacement_service.find_replacements_by_mpn("NOPE")
