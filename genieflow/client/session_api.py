"""HTTP client for the genie session API."""

import logging
from typing import Any, Dict, Optional, Type

import httpx

from genieflow.errors import GenieFlowError, NotFoundError

logger = logging.getLogger(__name__)


class SessionApiError(GenieFlowError):
    """The session API answered with an unexpected status."""


class SessionLoadError(SessionApiError):
    """A session could not be loaded for a reason other than not found."""


class SessionNotFoundError(NotFoundError):
    """Session does not exist or belongs to another user."""


class SessionApiClient:
    """Client for /genie-sessions acting as one authenticated user."""

    def __init__(
        self,
        user_id: str,
        base_url: str = "",
        http_client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        """
        Args:
            user_id: Identity forwarded in the X-User-Id header
            base_url: API root, used when no http_client is given
            http_client: Preconfigured client (e.g. a FastAPI TestClient)
            timeout: Request timeout in seconds
        """
        self.http = http_client or httpx.Client(base_url=base_url, timeout=timeout)
        self.headers = {"X-User-Id": user_id}

    def _check(
        self,
        response: httpx.Response,
        session_id: Optional[int] = None,
        error_class: Type[SessionApiError] = SessionApiError,
    ) -> Dict[str, Any]:
        if response.status_code == 404:
            raise SessionNotFoundError(f"Genie session {session_id} not found")
        if response.status_code >= 400:
            raise error_class(f"Session API returned {response.status_code}: {response.text[:200]}")
        return response.json()

    def create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self.http.post("/genie-sessions", json=payload, headers=self.headers)
        return self._check(response)

    def update(self, session_id: int, payload: Dict[str, Any], log_execution: bool = False) -> Dict[str, Any]:
        body = dict(payload, logExecution=log_execution)
        response = self.http.patch(f"/genie-sessions/{session_id}", json=body, headers=self.headers)
        return self._check(response, session_id)

    def get(self, session_id: int) -> Dict[str, Any]:
        try:
            response = self.http.get(f"/genie-sessions/{session_id}", headers=self.headers)
        except httpx.HTTPError as e:
            raise SessionLoadError(f"Could not reach session API: {e}") from e
        return self._check(response, session_id, SessionLoadError)

    def delete(self, session_id: int, permanent: bool = False) -> Dict[str, Any]:
        response = self.http.delete(
            f"/genie-sessions/{session_id}",
            params={"permanent": "true" if permanent else "false"},
            headers=self.headers,
        )
        return self._check(response, session_id)
