"""Error types raised by the vacancy and saved-vacancy services."""

from typing import Any, Optional


class JobFlowError(Exception):
    """Base class for domain errors."""


class NotFoundError(JobFlowError):
    """A user, saved entry or vacancy document does not exist."""


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("User not found")


class SavedVacancyNotFoundError(NotFoundError):
    """Raised by external id from the service, or by snapshot id from the repository."""

    def __init__(
        self,
        user_id: str,
        external_id: Optional[str] = None,
        *,
        vacancy_id: Optional[str] = None,
    ):
        self.user_id = user_id
        self.external_id = external_id
        self.vacancy_id = vacancy_id
        if external_id is not None:
            super().__init__(f"Saved vacancy {external_id} not found")
        else:
            super().__init__("Saved vacancy not found")


class VacancyNotFoundError(NotFoundError):
    def __init__(self, vacancy_id: str):
        self.vacancy_id = vacancy_id
        super().__init__(f"Vacancy {vacancy_id} not found")


class UpstreamError(JobFlowError):
    """
    A call to the hh.ru API failed.

    Attributes:
        status_code: HTTP status returned upstream, or None when no response arrived
        body: Response body exactly as received (decoded JSON when possible)
    """

    def __init__(self, status_code: Optional[int], body: Any = None):
        self.status_code = status_code
        self.body = body
        super().__init__(f"hh.ru request failed with status {status_code}: {body}")

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404
