"""Read-only vacancy operations: lookup by id plus hh.ru passthroughs."""

from typing import Any, Dict, Optional

from src.services.hh_api_client import HhApiClient
from src.services.vacancy_store import Vacancy, VacancyStore


class VacancyService:
    """Search and reference data come straight from hh.ru; single vacancies go through the store."""

    def __init__(
        self,
        client: Optional[HhApiClient] = None,
        store: Optional[VacancyStore] = None,
    ) -> None:
        self._client = client or HhApiClient()
        self._store = store or VacancyStore(client=self._client)

    def search(self, criteria: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._client.search(criteria)

    def get_vacancy(self, external_id: str) -> Vacancy:
        return self._store.get_or_fetch(external_id)

    def get_dictionaries(self) -> Dict[str, Any]:
        return self._client.get_dictionaries()

    def get_areas(self) -> Any:
        return self._client.get_areas()

    def get_employer(self, employer_id: str) -> Dict[str, Any]:
        return self._client.get_employer(employer_id)
