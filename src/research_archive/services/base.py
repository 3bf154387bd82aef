"""
Shared HTTP plumbing for the bibliographic source adapters.
"""

import logging
from typing import Any, Dict, Optional

import requests

from ..models import ApiSettings, Paper, SearchOptions, SourceResult
from ..utils.error_handler import APIError, NetworkError, RateLimitError, SourceError

logger = logging.getLogger(__name__)


class BaseSource:
    """Base class for adapters that normalize one upstream API into ``Paper`` records.

    Subclasses implement ``search`` and ``get_by_external_id``. ``search``
    raises ``SourceError`` on any failure; lookups return None instead.
    """

    name = ""
    display_name = ""

    def __init__(
        self,
        settings: Optional[ApiSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the adapter.

        Args:
            settings: User agent, contact address and timeouts
            session: HTTP session to reuse, a new one by default
        """
        self.settings = settings or ApiSettings()
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self._user_agent()})
        self.timeout = self.settings.request_timeout

    def _user_agent(self) -> str:
        return self.settings.user_agent

    def search(self, query: str, options: Optional[SearchOptions] = None) -> SourceResult:
        raise NotImplementedError

    def get_by_external_id(self, external_id: str) -> Optional[Paper]:
        raise NotImplementedError

    def _get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        """Issue a GET and translate transport failures into domain errors.

        Raises:
            NetworkError: On connection failures and timeouts
            RateLimitError: When the upstream answers 429
            APIError: On any other non-success status
        """
        try:
            response = self.session.get(url, params=params, timeout=timeout or self.timeout)
        except requests.Timeout as e:
            raise NetworkError(f"{self.display_name} request timed out") from e
        except requests.RequestException as e:
            raise NetworkError(f"{self.display_name} request failed: {e}") from e

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"{self.display_name} rate limit exceeded",
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
            )

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise APIError(f"{self.display_name} returned HTTP {response.status_code}") from e

        return response

    def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        response = self._get(url, params=params, timeout=timeout)
        try:
            return response.json()
        except ValueError as e:
            raise APIError(f"{self.display_name} returned invalid JSON") from e

    def _search_error(self, query: str, error: Exception) -> SourceError:
        """Log a failed search and wrap it in the adapter's domain error."""
        logger.error(f"Error searching {self.display_name} for query '{query}': {error}")
        return SourceError(self.name, f"Failed to search {self.display_name}: {error}")
