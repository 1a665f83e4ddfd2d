"""Tests for prompt management endpoints."""

import json

from flask.testing import FlaskClient


class TestPromptsAPI:
    """Test cases for prompt endpoints."""

    def test_list_prompts(self, client: FlaskClient):
        response = client.get("/api/prompts")

        assert response.status_code == 200
        names = {prompt["name"] for prompt in response.get_json()["prompts"]}
        assert names == {"multi_pinout_extraction", "pinout_extraction", "specs_extraction"}

    def test_update_prompt(self, client: FlaskClient):
        response = client.put(
            "/api/prompts/specs_extraction",
            data=json.dumps({"model": "gpt-5", "user_prompt_template": "Specs of {{ mpn }}"}),
            content_type="application/json",
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["source"] == "database"
        assert data["version"] == 1
        assert data["model"] == "gpt-5"

        listed = {prompt["name"]: prompt for prompt in client.get("/api/prompts").get_json()["prompts"]}
        assert listed["specs_extraction"]["user_prompt_template"] == "Specs of {{ mpn }}"

    def test_update_unknown_prompt(self, client: FlaskClient):
        response = client.put(
            "/api/prompts/haiku",
            data=json.dumps({"model": "gpt-5"}),
            content_type="application/json",
        )

        assert response.status_code == 404
