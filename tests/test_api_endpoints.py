import pytest

from src.services.errors import UpstreamError
from src.services.vacancy_service import VacancyService

USER_A = {"X-User-Id": "user-a"}


@pytest.fixture
def api_client(hh_client, vacancy_store, saved_service):
    from src.api import server

    original_vacancy_service = server.vacancy_service
    original_saved_service = server.saved_vacancy_service
    server.vacancy_service = VacancyService(client=hh_client, store=vacancy_store)
    server.saved_vacancy_service = saved_service

    try:
        yield server.app.test_client()
    finally:
        server.vacancy_service = original_vacancy_service
        server.saved_vacancy_service = original_saved_service


def test_health(api_client):
    response = api_client.get("/health")

    assert response.status_code == 200
    assert response.get_json()["status"] == "healthy"


def test_search_passes_criteria_through(api_client, hh_client):
    response = api_client.get(
        "/vacancies/search",
        query_string={"text": "javascript", "area": "1", "only_with_salary": "true"},
    )

    assert response.status_code == 200
    assert response.get_json()["data"]["found"] == 3
    assert hh_client.calls[-1] == (
        "search",
        {"text": "javascript", "area": 1, "only_with_salary": True},
    )


def test_search_rejects_oversized_page(api_client):
    response = api_client.get("/vacancies/search", query_string={"per_page": "500"})

    assert response.status_code == 400
    assert response.get_json()["status"] == "failed"


def test_get_vacancy_returns_cached_document(api_client):
    response = api_client.get("/vacancies/100000001")

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["external_id"] == "100000001"
    assert data["key_skills"] == ["JavaScript", "TypeScript"]
    assert "cache_expires_at" in data


def test_unknown_vacancy_returns_404(api_client):
    response = api_client.get("/vacancies/404404")

    assert response.status_code == 404
    assert response.get_json()["error"] == "Vacancy not found"


def test_dictionaries_areas_and_employer_pass_through(api_client):
    assert api_client.get("/vacancies/dictionaries").get_json()["data"]["experience"][0]["id"] == "noExperience"
    assert api_client.get("/vacancies/areas").get_json()["data"][0]["name"] == "Moscow"
    assert api_client.get("/employers/1000").get_json()["data"]["name"] == "TechCorp"


def test_saved_vacancy_routes_require_user_header(api_client):
    response = api_client.get("/users/me/vacancies")

    assert response.status_code == 401
    assert "X-User-Id" in response.get_json()["error"]


def test_unknown_user_returns_404(api_client):
    response = api_client.post("/users/me/vacancies/100000001", headers={"X-User-Id": "ghost"})

    assert response.status_code == 404
    assert response.get_json()["error"] == "User not found"


def test_save_list_progress_flow(api_client):
    saved = api_client.post("/users/me/vacancies/100000001", headers=USER_A)
    assert saved.status_code == 200
    assert saved.get_json()["saved_vacancy"]["current_status"] == "saved"

    progressed = api_client.put(
        "/users/me/vacancies/100000001/progress", headers=USER_A, json={"status": "applied"}
    )
    assert progressed.status_code == 200
    body = progressed.get_json()["saved_vacancy"]
    assert [p["status"] for p in body["progress"]] == ["saved", "applied"]
    assert body["current_status"] == "applied"

    listed = api_client.get(
        "/users/me/vacancies",
        headers=USER_A,
        query_string={"status": "applied", "sortBy": "name", "sortOrder": "asc"},
    )
    assert listed.status_code == 200
    page = listed.get_json()
    assert page["total"] == 1
    assert page["items"][0]["external_id"] == "100000001"
    assert page["items"][0]["vacancy"]["name"] == "Senior JavaScript Developer"

    stats = api_client.get("/users/me/vacancies/statistics", headers=USER_A)
    assert stats.get_json()["statistics"] == {"applied": 1}


def test_notes_checklist_and_remove(api_client):
    api_client.post("/users/me/vacancies/100000002", headers=USER_A)

    notes = api_client.put(
        "/users/me/vacancies/100000002/notes", headers=USER_A, json={"notes": "asked for referral"}
    )
    checklist = api_client.put(
        "/users/me/vacancies/100000002/checklist",
        headers=USER_A,
        json={"checklist": [{"text": "Update CV", "checked": True}]},
    )

    assert notes.get_json()["saved_vacancy"]["notes"] == "asked for referral"
    assert checklist.get_json()["saved_vacancy"]["checklist"] == [{"text": "Update CV", "checked": True}]

    first = api_client.delete("/users/me/vacancies/100000002", headers=USER_A)
    second = api_client.delete("/users/me/vacancies/100000002", headers=USER_A)
    assert first.get_json()["removed"] is True
    assert second.get_json()["removed"] is False

    missing = api_client.get("/users/me/vacancies/100000002", headers=USER_A)
    assert missing.status_code == 404


def test_refresh_route_rewrites_snapshot(api_client, hh_client):
    api_client.post("/users/me/vacancies/100000003", headers=USER_A)
    hh_client.vacancies["100000003"]["name"] = "Senior Node.js Developer"

    response = api_client.post("/users/me/vacancies/100000003/refresh", headers=USER_A)

    assert response.status_code == 200
    assert response.get_json()["saved_vacancy"]["vacancy"]["name"] == "Senior Node.js Developer"


def test_notes_longer_than_limit_are_rejected(api_client):
    api_client.post("/users/me/vacancies/100000001", headers=USER_A)

    response = api_client.put(
        "/users/me/vacancies/100000001/notes", headers=USER_A, json={"notes": "x" * 2001}
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "Invalid request"


def test_invalid_status_is_rejected(api_client):
    api_client.post("/users/me/vacancies/100000001", headers=USER_A)

    response = api_client.put(
        "/users/me/vacancies/100000001/progress", headers=USER_A, json={"status": "hired"}
    )

    assert response.status_code == 400
    detail = api_client.get("/users/me/vacancies/100000001", headers=USER_A).get_json()
    assert detail["saved_vacancy"]["current_status"] == "saved"


def test_checklist_over_limit_is_rejected(api_client):
    api_client.post("/users/me/vacancies/100000001", headers=USER_A)
    items = [{"text": f"item {i}", "checked": False} for i in range(51)]

    response = api_client.put(
        "/users/me/vacancies/100000001/checklist", headers=USER_A, json={"checklist": items}
    )

    assert response.status_code == 400


def test_list_rejects_out_of_range_limit(api_client):
    response = api_client.get("/users/me/vacancies", headers=USER_A, query_string={"limit": "0"})

    assert response.status_code == 400


def test_unknown_employer_returns_employer_specific_404(api_client, hh_client, monkeypatch):
    def missing_employer(employer_id):
        raise UpstreamError(404, {"errors": [{"type": "not_found"}]})

    monkeypatch.setattr(hh_client, "get_employer", missing_employer)

    response = api_client.get("/employers/999")

    assert response.status_code == 404
    assert response.get_json()["error"] == "Employer not found"


def test_malformed_upstream_vacancy_is_served(api_client, hh_client):
    hh_client.vacancies["100000001"]["schedule"] = "remote"

    response = api_client.get("/vacancies/100000001")

    assert response.status_code == 200
    assert "schedule" not in response.get_json()["data"]


def test_upstream_failure_keeps_upstream_status(api_client, hh_client, monkeypatch):
    def unavailable(criteria=None):
        raise UpstreamError(503, "Service Unavailable")

    monkeypatch.setattr(hh_client, "search", unavailable)

    response = api_client.get("/vacancies/search", query_string={"text": "go"})

    assert response.status_code == 503
    assert response.get_json()["upstream_body"] == "Service Unavailable"
