"""Tests for the replacement search endpoint."""

from flask.testing import FlaskClient
from sqlalchemy.orm import Session

from partswap.schemas.component import ManualComponentCreateSchema
from partswap.services.container import ServiceContainer

LDO_PINS = [
    {"pin_number": 1, "pin_name": "ADJ", "pin_function": "ADJUST"},
    {"pin_number": 2, "pin_name": "VOUT", "pin_function": "OUTPUT_VOLTAGE"},
    {"pin_number": 3, "pin_name": "VIN", "pin_function": "INPUT_VOLTAGE"},
]


def _seed(container: ServiceContainer, session: Session, mpn: str, package: str | None, specs: dict | None = None):
    container.component_service().import_manual_component(ManualComponentCreateSchema.model_validate({
        "mpn": mpn,
        "manufacturer": "Diodes Inc",
        "package": package,
        "specs": specs,
        "pinouts": LDO_PINS,
    }))
    session.commit()


class TestReplacementsAPI:
    """Test cases for the replacement search endpoint."""

    def test_find_replacements(self, client: FlaskClient, container: ServiceContainer, session: Session):
        _seed(container, session, "AZ1117CH-3.3TRG1", "SOT-223", {"vin_max": 15, "iout_max": 1})
        _seed(container, session, "LM1117MPX-3.3", "SOT223", {"vin_max": 20, "iout_max": 0.8})
        _seed(container, session, "AMS1117-3.3", "SOT-223-4", {"vin_max": 15, "iout_max": 1})

        response = client.get("/api/replacements/AZ1117CH-3.3TRG1")

        assert response.status_code == 200
        data = response.get_json()
        assert data["original"]["mpn"] == "AZ1117CH-3.3TRG1"
        assert [item["component"]["mpn"] for item in data["results"]] == ["AMS1117-3.3", "LM1117MPX-3.3"]
        assert data["results"][0]["match_score"] == 1.0
        assert data["results"][1]["specs_match"]["incompatible"] == ["Iout max: 0.8A < 1A"]

    def test_unknown_mpn(self, client: FlaskClient):
        response = client.get("/api/replacements/NOPE123")

        assert response.status_code == 404

    def test_component_without_package(self, client: FlaskClient, container: ServiceContainer, session: Session):
        _seed(container, session, "MYSTERY1", None)

        response = client.get("/api/replacements/MYSTERY1")

        assert response.status_code == 400
        assert "has no normalized package" in response.get_json()["error"]
