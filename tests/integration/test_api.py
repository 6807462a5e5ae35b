"""Integration tests for promptworks.api.main — FastAPI REST API endpoints.

All tests use the FastAPI TestClient against the small fixture catalog.
Tests cover every endpoint:

- ``GET /api/catalog`` — Catalog listing.
- ``POST /api/prompt/compile`` — Prompt compilation.
- ``POST /api/user-blueprints`` — User blueprint creation.
- ``GET /api/user-blueprints/{id}`` — User blueprint history.
- ``PUT /api/user-blueprints/{id}`` — New user blueprint version.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Catalog endpoint tests.
# ---------------------------------------------------------------------------


class TestGetCatalog:
    """Test GET /api/catalog."""

    def test_catalog_lists_records(self, test_client):
        resp = test_client.get("/api/catalog")
        assert resp.status_code == 200
        data = resp.json()
        assert "version" in data
        assert {p["id"] for p in data["profiles"]} == {"example", "strict"}
        assert {b["id"] for b in data["blueprints"]} == {"cat_painting", "style_first", "broken"}

    def test_filters_use_schema_alias(self, test_client):
        data = test_client.get("/api/catalog").json()
        grain = next(f for f in data["filters"] if f["key"] == "grain")
        assert grain["schema"]["type"] == "range"

    def test_gems_listed(self, test_client):
        data = test_client.get("/api/catalog").json()
        assert {g["id"] for g in data["gems"]} == {
            "face_swapper",
            "ai_instagram_media",
            "tattoo_preservation",
            "real_life_context",
        }


# ---------------------------------------------------------------------------
# Compile endpoint tests.
# ---------------------------------------------------------------------------


class TestCompile:
    """Test POST /api/prompt/compile."""

    def _payload(self, **overrides) -> dict:
        """Build a valid compile payload with optional overrides."""
        payload = {
            "profile_id": "example",
            "blueprint_id": "cat_painting",
            "subject": "cat",
            "context": "watercolor",
            "seed": "seed0001",
        }
        payload.update(overrides)
        return payload

    def test_compile_success(self, test_client):
        resp = test_client.post("/api/prompt/compile", json=self._payload())
        assert resp.status_code == 200
        data = resp.json()
        assert data["compiled_prompt"] == "A cat in watercolor style"
        assert data["score"] == 100
        assert data["warnings"] == []
        assert data["seed"] == "seed0001"
        assert data["metadata"]["profile_name"] == "Example Profile"
        assert data["character_pack"] is None

    def test_compile_is_repeatable(self, test_client):
        payload = self._payload(filters={"camera_angle_a": "low", "camera_angle_b": "high"})
        first = test_client.post("/api/prompt/compile", json=payload).json()
        second = test_client.post("/api/prompt/compile", json=payload).json()
        assert first == second

    def test_character_pack_returned(self, test_client):
        payload = self._payload(lora={"version_id": "lora-v1", "target_platform": "kling"})
        data = test_client.post("/api/prompt/compile", json=payload).json()
        pack = data["character_pack"]
        assert pack["platform"] == "kling"
        assert pack["reference_image_count"] == 5
        assert pack["recommended_params"]["aspect_ratio"] == "16:9"

    def test_gems_reported(self, test_client):
        data = test_client.post("/api/prompt/compile", json=self._payload(gems=["face_swapper"])).json()
        assert data["gems"]["applied_gems"] == ["FACE-SWAPPER"]
        assert data["metadata"]["gem_count"] == 1
        assert len(data["compiled_prompt"]) <= 50

    def test_missing_blueprint_reference_is_400(self, test_client):
        resp = test_client.post("/api/prompt/compile", json=self._payload(blueprint_id=None))
        assert resp.status_code == 400
        assert "blueprint_id" in resp.json()["detail"]

    def test_missing_record_is_400(self, test_client):
        resp = test_client.post("/api/prompt/compile", json=self._payload(profile_id="nope"))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Profile not found: nope"

    def test_untrained_lora_is_400(self, test_client):
        resp = test_client.post(
            "/api/prompt/compile",
            json=self._payload(lora={"version_id": "lora-untrained"}),
        )
        assert resp.status_code == 400

    def test_invalid_payload_is_422(self, test_client):
        resp = test_client.post("/api/prompt/compile", json={"blueprint_id": "cat_painting"})
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# User blueprint endpoint tests.
# ---------------------------------------------------------------------------


class TestUserBlueprints:
    """Test the /api/user-blueprints endpoints."""

    def _create(self, test_client, **overrides) -> dict:
        payload = {"name": "Mine", "blocks": ["subj_block"]}
        payload.update(overrides)
        resp = test_client.post("/api/user-blueprints", json=payload)
        assert resp.status_code == 201
        return resp.json()

    def test_create(self, test_client):
        data = self._create(test_client, constraints=["no text"])
        assert data["name"] == "Mine"
        assert data["versions"] == [{"version": 1, "blocks": ["subj_block"], "constraints": ["no text"]}]

    def test_create_unknown_block_is_400(self, test_client):
        resp = test_client.post("/api/user-blueprints", json={"name": "Mine", "blocks": ["nope"]})
        assert resp.status_code == 400

    def test_get(self, test_client):
        created = self._create(test_client)
        resp = test_client.get(f"/api/user-blueprints/{created['id']}")
        assert resp.status_code == 200
        assert resp.json() == created

    def test_get_unknown_is_404(self, test_client):
        assert test_client.get("/api/user-blueprints/nope").status_code == 404

    def test_revise_and_compile_pinned_version(self, test_client):
        created = self._create(test_client)
        resp = test_client.put(
            f"/api/user-blueprints/{created['id']}",
            json={"blocks": ["subj_block", "style_block"]},
        )
        assert resp.status_code == 200
        assert [v["version"] for v in resp.json()["versions"]] == [1, 2]

        base = {"profile_id": "example", "user_blueprint_id": created["id"], "subject": "cat", "context": "ink"}
        latest = test_client.post("/api/prompt/compile", json=base).json()
        pinned = test_client.post("/api/prompt/compile", json={**base, "user_blueprint_version": 1}).json()
        assert latest["compiled_prompt"] == "A cat in ink style"
        assert latest["metadata"]["blueprint_version"] == 2
        assert pinned["compiled_prompt"] == "A cat"

    def test_revise_unknown_is_404(self, test_client):
        resp = test_client.put("/api/user-blueprints/nope", json={"blocks": ["subj_block"]})
        assert resp.status_code == 404

    def test_revise_unknown_block_is_400(self, test_client):
        created = self._create(test_client)
        resp = test_client.put(f"/api/user-blueprints/{created['id']}", json={"blocks": ["nope"]})
        assert resp.status_code == 400
