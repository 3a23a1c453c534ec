"""HTTP-level tests for the FastAPI application.

Mock strategy:
  - ``create_app`` runs its real lifespan (the catalog is loaded from v1/).
  - ``get_db`` is overridden to yield an AsyncMock session.
  - ``get_flow`` / ``get_token_service`` are overridden with instances
    wired to the in-memory MockRepository, and the admin router's module
    ``_repo`` is monkeypatched to the same repository.
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from mock_repository import MockProgress
from nom035_db.models.enums import AssessmentType
from nom035_engine.flow import AssessmentFlow
from nom035_engine.tokens import AccessTokenService
from nom035_server import app as app_module
from nom035_server.app import create_app
from nom035_server.config import ServerSettings
from nom035_server.dependencies import get_db, get_flow, get_token_service
from nom035_server.routes import admin as admin_routes

ADMIN_KEY = "test-admin-key"
BASE = "/api/v1"
IDENTITY = {"name": "Juan Pérez", "email": "juan.perez@example.com", "phone": "5512345678"}


@pytest.fixture
def client(catalog, mock_repo, monkeypatch):
    app = create_app(ServerSettings(admin_api_key=ADMIN_KEY))

    async def override_db():
        yield AsyncMock()

    flow = AssessmentFlow(catalog, repo=mock_repo)
    service = AccessTokenService(mock_repo)
    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_flow] = lambda: flow
    app.dependency_overrides[get_token_service] = lambda: service
    monkeypatch.setattr(admin_routes, "_repo", mock_repo)

    with TestClient(app) as c:
        yield c


@pytest.fixture
def trauma_link(mock_repo, worker):
    mock_repo.add_token(worker, "tok-tr", assessment_type=AssessmentType.TRAUMA_SCREENING)
    return f"{BASE}/assessment/tok-tr"


def _walk_to_questionnaire(client, link):
    assert client.post(f"{link}/identity", json=IDENTITY).status_code == 200
    resp = client.post(f"{link}/consent", json={"accepted": True})
    assert resp.status_code == 200
    return resp.json()


# ======================================================================
# Respondent flow
# ======================================================================

class TestAssessmentRoutes:
    def test_unknown_token_is_terminal_step(self, client):
        resp = client.get(f"{BASE}/assessment/nope")
        assert resp.status_code == 200
        assert resp.json()["type"] == "invalid"

    def test_identity_step(self, client, trauma_link):
        body = client.get(trauma_link).json()
        assert body["type"] == "identity"
        assert body["assessment_type"] == "trauma_screening"

    def test_identity_mismatch_is_401(self, client, trauma_link):
        resp = client.post(
            f"{trauma_link}/identity", json={**IDENTITY, "email": "wrong@example.com"}
        )
        assert resp.status_code == 401
        assert "wrong@example.com" not in resp.text

    def test_consent_decline(self, client, trauma_link):
        client.post(f"{trauma_link}/identity", json=IDENTITY)
        resp = client.post(f"{trauma_link}/consent", json={"accepted": False})
        assert resp.json()["type"] == "identity"

    def test_full_trauma_flow(self, client, mock_repo, trauma_link):
        step = _walk_to_questionnaire(client, trauma_link)
        assert step["type"] == "questionnaire"
        assert len(step["questions"]) == 20

        answers = {str(i): False for i in range(1, 21)}
        answers["3"] = True
        resp = client.post(f"{trauma_link}/answers", json={"answers": answers})
        assert resp.status_code == 200
        assert resp.json()["missing"] == []

        resp = client.post(f"{trauma_link}/submit")
        assert resp.status_code == 200
        body = resp.json()
        assert body["type"] == "completed"
        evaluation = mock_repo.evaluations[uuid.UUID(body["evaluation_id"])]
        assert evaluation.positive_sections == ["I"]
        assert evaluation.requires_attention is False

        assert client.get(trauma_link).json()["type"] == "already_used"

    def test_incomplete_submit_is_422(self, client, trauma_link):
        _walk_to_questionnaire(client, trauma_link)
        client.post(f"{trauma_link}/answers", json={"answers": {"1": True}})
        resp = client.post(f"{trauma_link}/submit")
        assert resp.status_code == 422
        assert resp.json()["missing"] == list(range(2, 21))

    def test_invalid_answer_is_400(self, client, trauma_link):
        _walk_to_questionnaire(client, trauma_link)
        resp = client.post(f"{trauma_link}/answers", json={"answers": {"99": True}})
        assert resp.status_code == 400

    def test_wrong_stage_is_400(self, client, trauma_link):
        resp = client.post(f"{trauma_link}/submit")
        assert resp.status_code == 400

    def test_storage_failure_is_503(self, client, mock_repo, trauma_link):
        _walk_to_questionnaire(client, trauma_link)
        client.post(
            f"{trauma_link}/answers",
            json={"answers": {str(i): False for i in range(1, 21)}},
        )
        mock_repo.fail_on = {"create_evaluation"}
        resp = client.post(f"{trauma_link}/submit")
        assert resp.status_code == 503
        assert mock_repo.evaluations == {}

    def test_psychosocial_conditions(self, client, mock_repo, worker):
        mock_repo.add_token(worker, "tok-psy")
        link = f"{BASE}/assessment/tok-psy"
        step = _walk_to_questionnaire(client, link)
        assert step["questions"] == []
        assert len(step["conditional_prompts"]) == 2

        resp = client.post(
            f"{link}/conditions",
            json={"serves_customers": True, "supervises_others": False},
        )
        assert resp.status_code == 200
        assert len(resp.json()["questions"]) == 68

        resp = client.post(f"{link}/restart")
        assert resp.json()["type"] == "consent"


# ======================================================================
# Reference data
# ======================================================================

class TestReferenceRoutes:
    def test_risk_levels(self, client):
        body = client.get(f"{BASE}/reference/risk-levels").json()
        assert [b["id"] for b in body] == ["none", "low", "medium", "high", "very_high"]
        assert body[-1]["max"] is None

    def test_psychosocial_questions(self, client):
        body = client.get(f"{BASE}/reference/questions/psychosocial_risk").json()
        assert body["catalog_version"] == "v1"
        assert len(body["questions"]) == 72
        assert len(body["likert_labels"]) == 5

    def test_trauma_questions(self, client):
        body = client.get(f"{BASE}/reference/questions/trauma_screening").json()
        assert len(body["questions"]) == 20
        assert [s["id"] for s in body["sections"]] == ["I", "II", "III", "IV"]

    def test_unknown_assessment_type(self, client):
        assert client.get(f"{BASE}/reference/questions/guide_ii").status_code == 422


# ======================================================================
# Admin
# ======================================================================

class TestAdminRoutes:
    def test_missing_key(self, client, worker):
        resp = client.post(
            f"{BASE}/admin/tokens",
            json={"worker_id": str(worker.id), "assessment_type": "trauma_screening"},
        )
        assert resp.status_code == 401

    def test_wrong_key(self, client, worker):
        resp = client.post(
            f"{BASE}/admin/tokens",
            json={"worker_id": str(worker.id), "assessment_type": "trauma_screening"},
            headers={"X-Admin-Key": "nope"},
        )
        assert resp.status_code == 403

    def test_issue_token(self, client, mock_repo, worker):
        resp = client.post(
            f"{BASE}/admin/tokens",
            json={"worker_id": str(worker.id), "assessment_type": "psychosocial_risk", "ttl_days": 2},
            headers={"X-Admin-Key": ADMIN_KEY},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["link"] == f"/assessment/{body['token']}"
        assert body["token"] in mock_repo.tokens

        step = client.get(f"{BASE}{body['link']}").json()
        assert step["type"] == "identity"

    def test_issue_token_unknown_worker(self, client):
        resp = client.post(
            f"{BASE}/admin/tokens",
            json={"worker_id": str(uuid.uuid4()), "assessment_type": "trauma_screening"},
            headers={"X-Admin-Key": ADMIN_KEY},
        )
        assert resp.status_code == 404

    def test_cleanup_progress(self, client, mock_repo, worker):
        used = mock_repo.add_token(worker, "tok-used", consumed=True)
        old = mock_repo.add_token(
            worker, "tok-old", expires_at=datetime.now(timezone.utc) - timedelta(days=1)
        )
        live = mock_repo.add_token(worker, "tok-live")
        for t in (used, old, live):
            mock_repo.progress[t.id] = MockProgress(token_id=t.id)

        resp = client.post(
            f"{BASE}/admin/cleanup/progress", headers={"X-Admin-Key": ADMIN_KEY}
        )
        assert resp.status_code == 200
        assert resp.json() == {"affected_rows": 2, "action": "purge_stale_progress"}
        assert list(mock_repo.progress) == [live.id]

    def test_evaluation_detail(self, client, mock_repo, worker):
        mock_repo.add_token(worker, "tok-psy")
        link = f"{BASE}/assessment/tok-psy"
        _walk_to_questionnaire(client, link)
        client.post(
            f"{link}/conditions",
            json={"serves_customers": False, "supervises_others": False},
        )
        answers = {str(i): 2 for i in range(1, 65)}
        client.post(f"{link}/answers", json={"answers": answers})
        evaluation_id = client.post(f"{link}/submit").json()["evaluation_id"]

        resp = client.get(
            f"{BASE}/admin/evaluations/{evaluation_id}",
            headers={"X-Admin-Key": ADMIN_KEY},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["id"] == evaluation_id
        assert body["assessment_type"] == "psychosocial_risk"
        # "sometimes" scores 2 on both scales
        assert body["total_score"] == 128
        assert body["risk_level"] == "high"
        assert [r["question_id"] for r in body["responses"]] == list(range(1, 65))
        assert {r["value"] for r in body["responses"]} == {2}
        assert sum(c["score"] for c in body["category_scores"]) == 128

    def test_evaluation_detail_unknown(self, client):
        resp = client.get(
            f"{BASE}/admin/evaluations/{uuid.uuid4()}",
            headers={"X-Admin-Key": ADMIN_KEY},
        )
        assert resp.status_code == 404

    def test_evaluation_detail_requires_key(self, client):
        resp = client.get(f"{BASE}/admin/evaluations/{uuid.uuid4()}")
        assert resp.status_code == 401

    def test_admin_disabled_without_key(self):
        app = create_app(ServerSettings(admin_api_key=None))

        async def override_db():
            yield AsyncMock()

        app.dependency_overrides[get_db] = override_db
        with TestClient(app) as c:
            resp = c.post(
                f"{BASE}/admin/cleanup/progress", headers={"X-Admin-Key": "anything"}
            )
        assert resp.status_code == 403


# ======================================================================
# Health
# ======================================================================

class _DownEngine:
    def connect(self):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))


class TestHealth:
    def test_database_down_is_503(self, client, monkeypatch):
        monkeypatch.setattr(app_module, "get_engine", lambda: _DownEngine())
        resp = client.get("/health")
        assert resp.status_code == 503
        assert resp.json() == {"status": "error", "database": "unavailable", "catalog": "v1"}
