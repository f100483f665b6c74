"""HTTP-level tests for the FastAPI application."""

import pytest
from accountform.drafts.backends import MemoryBackend
from accountform.lookup.models import CompanyAddress, SearchResult
from core.rate_limit import InMemoryRateLimitStore
from core.settings import FormSettings
from fastapi.testclient import TestClient
from main import app
from services.form_sessions import FormSessionRegistry

ACME = SearchResult(
    siren="404833048",
    siret="40483304800022",
    legal_name="ACME Industrie",
    naf_ape="62.01Z",
    vat_number="FR83404833048",
    address=CompanyAddress(street="10 RUE DE LA PAIX", postal_code="75002", city="PARIS"),
)


class FakeInsee:
    api_key = "test-key"

    def __init__(self):
        self.calls = []

    async def search_by_name(self, name, postal_code=None):
        self.calls.append((name, postal_code))
        return [ACME]

    async def search_by_siren(self, siren):
        return [ACME] if siren == ACME.siren else []


class StubRenderer:
    available = True

    def render(self, form_data):
        return b"%PDF-1.4\nrecap"


class RecordingDispatcher:
    def __init__(self):
        self.payloads = []

    async def dispatch(self, payload):
        self.payloads.append(payload)
        return {"success": True}


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        insee = FakeInsee()
        dispatcher = RecordingDispatcher()
        app.state.insee_client = insee
        app.state.renderer = StubRenderer()
        app.state.rate_limit_store = InMemoryRateLimitStore(max_requests=1000, window_seconds=60)
        app.state.form_sessions = FormSessionRegistry(
            backend=MemoryBackend(),
            directory=insee,
            renderer=app.state.renderer,
            dispatcher=dispatcher,
            settings=FormSettings(STEP_TRANSITION_SECONDS=0, SEARCH_DEBOUNCE_SECONDS=0),
        )
        test_client.dispatcher = dispatcher
        yield test_client


class TestHealth:
    """Tests for GET /health."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["insee_configured"] is True
        assert body["pdf_rendering"] is True
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert "X-Trace-ID" in response.headers


class TestSearch:
    """Tests for the registry search endpoints."""

    def test_search_by_name(self, client):
        response = client.get("/search", params={"name": "acme", "postalCode": "75002"})

        assert response.status_code == 200
        assert response.json()["results"][0]["siret"] == "40483304800022"
        assert app.state.insee_client.calls == [("acme", "75002")]

    def test_bad_postal_code_is_problem_detail(self, client):
        response = client.get("/search", params={"name": "acme", "postalCode": "750"})

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["instance"] == "/search"
        assert body["trace_id"] == response.headers["X-Trace-ID"]
        assert app.state.insee_client.calls == []

    def test_missing_name(self, client):
        response = client.get("/search")

        assert response.status_code == 422
        assert "name" in response.json()["field_errors"]

    def test_rate_limit(self, client):
        app.state.rate_limit_store = InMemoryRateLimitStore(max_requests=1, window_seconds=60)

        assert client.get("/search/siren/404833048").status_code == 200
        response = client.get("/search/siren/404833048")

        assert response.status_code == 429
        assert response.json()["code"] == "RATE_LIMIT_EXCEEDED"
        assert 0 < int(response.headers["Retry-After"]) <= 60


class TestSecureCompany:
    """Tests for the CSRF-protected company records."""

    PAYLOAD = {
        "siren": "404833048",
        "siret": "40483304800022",
        "nafApe": "62.01Z",
        "tvaIntracom": "FR83404833048",
        "companyName": "ACME Industrie",
        "address": "10 rue de la Paix",
        "postalCode": "75002",
        "city": "Paris",
    }

    def test_rejected_without_token(self, client):
        response = client.post("/secure/company", json=self.PAYLOAD)

        assert response.status_code == 403
        assert response.json()["code"] == "CSRF_INVALID"

    def test_round_trip_with_token(self, client):
        token_response = client.get("/csrf/token")
        assert token_response.status_code == 200
        assert token_response.headers["Cache-Control"] == "no-store"
        token = token_response.json()["token"]
        headers = {"X-CSRF-Token": token}

        created = client.post("/secure/company", json=self.PAYLOAD, headers=headers)
        assert created.status_code == 200
        body = created.json()
        assert body["encrypted_fields"] == ["siren", "siret", "tvaIntracom"]

        fetched = client.get("/secure/company", params={"id": body["id"]}, headers=headers)
        assert fetched.status_code == 200
        assert fetched.json()["siret"] == "40483304800022"

    def test_wrong_token(self, client):
        client.get("/csrf/token")

        response = client.post(
            "/secure/company", json=self.PAYLOAD, headers={"X-CSRF-Token": "0" * 64}
        )

        assert response.status_code == 403


class TestSecurityStatus:
    """Tests for /security/status."""

    def test_status(self, client):
        response = client.get("/security/status")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"]["csrf"] is True
        assert body["config"]["rateLimitInfo"]["limit"] == 1000
        assert "no-store" in response.headers["Cache-Control"]

    def test_full_check(self, client):
        response = client.post("/security/status", json={"checkType": "full"})

        assert response.status_code == 200
        names = [check["name"] for check in response.json()["health"]["checks"]]
        assert "Origines autorisées" in names


class TestFormSessions:
    """Tests for the form session flow."""

    def test_unknown_session(self, client):
        response = client.get("/form/sessions/does-not-exist")

        assert response.status_code == 404
        assert response.json()["code"] == "RESOURCE_NOT_FOUND"

    def test_step_gate(self, client):
        session_id = client.post("/form/sessions").json()["session_id"]

        response = client.post(f"/form/sessions/{session_id}/next")

        body = response.json()
        assert body["advanced"] is False
        assert body["state"]["step_submit_attempted"] is True
        assert "siret" in body["field_errors"]

    def test_search_and_select(self, client):
        session_id = client.post("/form/sessions").json()["session_id"]

        search = client.post(
            f"/form/sessions/{session_id}/search",
            json={"name": "acme", "immediate": True},
        ).json()
        assert search["show_results"] is True

        client.post(f"/form/sessions/{session_id}/search/key", json={"key": "ArrowDown"})
        response = client.post(
            f"/form/sessions/{session_id}/search/key", json={"key": "Enter"}
        )

        body = response.json()
        assert body["handled"] is True
        assert body["data"]["siren"] == "404833048"
        assert body["data"]["city"] == "PARIS"

    def test_full_submission(self, client, complete_record):
        created = client.post("/form/sessions")
        assert created.status_code == 201
        session_id = created.json()["session_id"]
        fields = {k: v for k, v in complete_record.items() if k != "legalDocument"}

        client.patch(f"/form/sessions/{session_id}/fields", json={"fields": fields})
        assert client.post(f"/form/sessions/{session_id}/next").json()["advanced"] is True
        assert client.post(f"/form/sessions/{session_id}/next").json()["advanced"] is True

        response = client.post(
            f"/form/sessions/{session_id}/submit",
            files={"legalDocument": ("kbis.pdf", b"%PDF-1.4 kbis", "application/pdf")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["confirmed"] is True
        assert body["outcome"]["delivered"] is True
        assert body["data"]["legalDocument"]["filename"] == "kbis.pdf"
        assert len(client.dispatcher.payloads) == 1

        again = client.post(f"/form/sessions/{session_id}/submit")
        assert again.status_code == 409
        assert again.json()["code"] == "ALREADY_SUBMITTED"

        edit = client.patch(
            f"/form/sessions/{session_id}/fields", json={"fields": {"companyName": "Autre"}}
        )
        assert edit.status_code == 409
        search = client.post(
            f"/form/sessions/{session_id}/search", json={"name": "acme", "immediate": True}
        )
        assert search.status_code == 409

        reopened = client.post("/form/sessions", params={"session_id": session_id})
        assert reopened.status_code == 201
        assert reopened.json()["confirmed"] is False
        assert reopened.json()["draft"] is None

    def test_incomplete_submission(self, client):
        session_id = client.post("/form/sessions").json()["session_id"]

        response = client.post(f"/form/sessions/{session_id}/submit")

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "FORM_INCOMPLETE"
        assert "legalDocument" in body["field_errors"]
