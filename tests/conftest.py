import copy
from datetime import datetime, timedelta

import pytest

from src.db.base import create_schema
from src.services.errors import UpstreamError
from src.services.saved_vacancy_repository import SavedVacancyRepository
from src.services.saved_vacancy_service import SavedVacancyService
from src.services.vacancy_store import VacancyStore


def make_raw_vacancy(external_id: str, name: str, **overrides) -> dict:
    """hh.ru ``GET /vacancies/{id}`` payload."""
    raw = {
        "id": external_id,
        "name": name,
        "employer": {
            "id": "1000",
            "name": "TechCorp",
            "url": "https://api.hh.ru/employers/1000",
            "alternate_url": "https://hh.ru/employer/1000",
            "logo_urls": {"90": "https://example.com/logo90.png", "240": "https://example.com/logo.png"},
            "trusted": True,
            "accredited_it_employer": False,
        },
        "salary": {"from": 150000, "to": 250000, "currency": "RUR", "gross": False},
        "area": {"id": "1", "name": "Moscow", "url": "https://api.hh.ru/areas/1"},
        "url": f"https://api.hh.ru/vacancies/{external_id}",
        "alternate_url": f"https://hh.ru/vacancy/{external_id}",
        "description": "<p>We are looking for a developer...</p>",
        "schedule": {"id": "remote", "name": "Remote working"},
        "experience": {"id": "between3And6", "name": "3–6 years"},
        "employment": {"id": "full", "name": "Full-time employment"},
        "key_skills": [{"name": "JavaScript"}, {"name": "TypeScript"}],
        "professional_roles": [{"id": "96", "name": "Programmer, developer"}],
        "work_format": [{"id": "REMOTE", "name": "Remote"}],
        "accept_handicapped": False,
        "accept_kids": False,
        "accept_temporary": True,
        "accept_incomplete_resumes": True,
        "published_at": "2025-01-05T10:30:00+0300",
    }
    raw.update(overrides)
    return raw


class FakeHhClient:
    """In-memory stand-in for ``HhApiClient``."""

    def __init__(self, vacancies):
        self.vacancies = {raw["id"]: copy.deepcopy(raw) for raw in vacancies}
        self.calls = []

    def get_vacancy(self, external_id):
        self.calls.append(("get_vacancy", external_id))
        if external_id not in self.vacancies:
            raise UpstreamError(404, {"errors": [{"type": "not_found"}]})
        return copy.deepcopy(self.vacancies[external_id])

    def search(self, criteria=None):
        self.calls.append(("search", criteria))
        items = list(self.vacancies.values())
        return {"items": items, "found": len(items), "pages": 1, "page": 0, "per_page": 20}

    def get_dictionaries(self):
        self.calls.append(("get_dictionaries", None))
        return {"experience": [{"id": "noExperience", "name": "No experience"}]}

    def get_areas(self):
        self.calls.append(("get_areas", None))
        return [{"id": "1", "name": "Moscow", "areas": []}]

    def get_employer(self, employer_id):
        self.calls.append(("get_employer", employer_id))
        return {"id": employer_id, "name": "TechCorp"}

    def vacancy_fetches(self, external_id=None):
        return [
            call for call in self.calls
            if call[0] == "get_vacancy" and (external_id is None or call[1] == external_id)
        ]


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 10, 12, 0, 0))


@pytest.fixture
def hh_client():
    return FakeHhClient([
        make_raw_vacancy("100000001", "Senior JavaScript Developer"),
        make_raw_vacancy("100000002", "Frontend React Developer"),
        make_raw_vacancy("100000003", "Node.js Backend Developer"),
    ])


@pytest.fixture
def database_url(tmp_path):
    db_url = f"sqlite:///{tmp_path/'jobflow.db'}"
    create_schema(db_url)
    return db_url


@pytest.fixture
def vacancy_store(database_url, hh_client, clock):
    return VacancyStore(client=hh_client, database_url=database_url, clock=clock)


@pytest.fixture
def repository(database_url):
    repo = SavedVacancyRepository(database_url=database_url)
    repo.create_user("user-a", email="a@example.com", first_name="Anna", last_name="A")
    repo.create_user("user-b", email="b@example.com", first_name="Boris", last_name="B")
    return repo


@pytest.fixture
def saved_service(repository, vacancy_store, clock):
    return SavedVacancyService(repository=repository, vacancy_store=vacancy_store, clock=clock)
