"""HTTP client for the hh.ru public API."""

import logging
from typing import Any, Dict, Optional

import requests

from config.settings import (
    HH_API_BASE_URL,
    HH_API_LOCALE,
    HH_REQUEST_TIMEOUT,
    HH_USER_AGENT,
)
from src.services.errors import UpstreamError

logger = logging.getLogger(__name__)


def clean_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop unset criteria; hh.ru rejects some parameters when sent empty."""
    cleaned: Dict[str, Any] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned


class HhApiClient:
    """Thin wrapper around the hh.ru endpoints the application reads.

    Each call is a single GET with a fixed timeout. Failures are raised as
    ``UpstreamError`` carrying the upstream status and body; nothing is retried.
    """

    def __init__(
        self,
        base_url: str = HH_API_BASE_URL,
        user_agent: str = HH_USER_AGENT,
        locale: str = HH_API_LOCALE,
        timeout: float = HH_REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.locale = locale
        self.timeout = timeout
        self._session = session or requests.Session()

    def search(self, criteria: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Search vacancies. Returns the upstream result page (items, found, pages, page, per_page)."""
        return self._request("/vacancies", criteria)

    def get_vacancy(self, external_id: str) -> Dict[str, Any]:
        return self._request(f"/vacancies/{external_id}")

    def get_dictionaries(self) -> Dict[str, Any]:
        return self._request("/dictionaries")

    def get_areas(self) -> Any:
        return self._request("/areas")

    def get_employer(self, employer_id: str) -> Dict[str, Any]:
        return self._request(f"/employers/{employer_id}")

    def _headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "HH-User-Agent": self.user_agent,
        }

    def _request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{endpoint}"
        query = clean_params(params)
        query["locale"] = self.locale

        logger.debug("Request to %s with params %s", url, query)

        try:
            response = self._session.get(
                url,
                params=query,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as error:
            logger.error("hh.ru request to %s failed: %s", endpoint, error)
            raise UpstreamError(None, str(error)) from error

        if not response.ok:
            body = _response_body(response)
            logger.error(
                "hh.ru API error on %s: status=%s body=%s",
                endpoint,
                response.status_code,
                body,
            )
            raise UpstreamError(response.status_code, body)

        return response.json()


def _response_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
