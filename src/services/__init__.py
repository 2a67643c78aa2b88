"""Services module exports."""

from .hh_api_client import HhApiClient
from .saved_vacancy_service import SavedVacancyService
from .vacancy_service import VacancyService
from .vacancy_store import VacancyStore

__all__ = ["HhApiClient", "SavedVacancyService", "VacancyService", "VacancyStore"]
