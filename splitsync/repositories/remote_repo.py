"""HTTP access to the remote split-testing authority.

Every call is bounded by ``REMOTE_TIMEOUT_SECONDS``. Timeouts and network
failures surface as ``RemoteUnavailableError`` so callers can degrade;
unexpected statuses and bodies surface as ``RemoteServiceError``.
"""

from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError

from splitsync.core.exceptions import RemoteServiceError, RemoteUnavailableError
from splitsync.core.settings import config_settings
from splitsync.models.schemas.assignment import AssignmentCreateModel
from splitsync.models.schemas.split_registry import SplitRegistry
from splitsync.models.schemas.visitor import (
    IdentifierCreateModel,
    IdentifierResponseModel,
    RemoteVisitorModel,
)

logger = structlog.get_logger(__name__)

API_PREFIX = "/api/v1"


class RemoteRepository:
    def __init__(self, http_client: httpx.Client | None = None):
        """
        Args:
            http_client: Preconfigured client (base URL, auth, timeout). When
                omitted, one is built from settings on first use.
        """
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.Client:
        if self._http_client is None:
            headers = {}
            if config_settings.API_TOKEN:
                headers["Authorization"] = f"Bearer {config_settings.API_TOKEN}"
            self._http_client = httpx.Client(
                base_url=config_settings.API_URL,
                headers=headers,
                timeout=config_settings.REMOTE_TIMEOUT_SECONDS,
            )
        return self._http_client

    def close(self) -> None:
        if self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def __enter__(self) -> "RemoteRepository":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs):
        try:
            response = self.http_client.request(method, f"{API_PREFIX}{path}", **kwargs)
        except httpx.TransportError as e:
            raise RemoteUnavailableError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            logger.error(
                "remote_request_failed",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise RemoteServiceError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise RemoteServiceError(f"{method} {path} returned a non-JSON body") from e

    @staticmethod
    def _parse(model, data, what: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise RemoteServiceError(f"Malformed {what} payload: {e}") from e

    def fetch_visitor(self, visitor_id: str) -> RemoteVisitorModel:
        data = self._request("GET", f"/visitors/{quote(visitor_id, safe='')}")
        return self._parse(RemoteVisitorModel, data, "visitor")

    def fetch_split_registry(self) -> SplitRegistry:
        data = self._request("GET", "/split_registry")
        return self._parse(SplitRegistry, data, "split registry")

    def create_identifier(self, identifier_type: str, visitor_id: str, value) -> RemoteVisitorModel:
        """Links ``value`` to the visitor and returns the canonical visitor state."""
        body = IdentifierCreateModel(
            identifier_type=identifier_type, visitor_id=visitor_id, value=value
        )
        data = self._request("POST", "/identifier", json=body.model_dump())
        return self._parse(IdentifierResponseModel, data, "identifier").visitor

    def visitor_from_identifier(self, identifier_type: str, identifier_value) -> RemoteVisitorModel:
        path = (
            f"/identifier_types/{quote(identifier_type, safe='')}"
            f"/identifiers/{quote(str(identifier_value), safe='')}/visitor"
        )
        data = self._request("GET", path)
        return self._parse(RemoteVisitorModel, data, "visitor")

    def create_assignment(self, visitor_id: str, split_name: str, variant: str) -> None:
        body = AssignmentCreateModel(visitor_id=visitor_id, split_name=split_name, variant=variant)
        self._request("POST", "/assignment", json=body.model_dump())


_default_remote: RemoteRepository | None = None


def default_remote() -> RemoteRepository:
    """Process-wide repository built from settings, so its connection pool is reused."""
    global _default_remote
    if _default_remote is None:
        _default_remote = RemoteRepository()
    return _default_remote
