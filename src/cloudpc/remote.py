from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

import requests
from tenacity import retry

from .core import (
    CLOUDPCS_PATH,
    DEFAULT_PAGE_SIZE,
    DEFAULT_TIMEOUT,
    GRAPH_BASE_URL,
    GRAPH_SCOPE,
    REMOTE_ACTIONS,
    RETRY_CONFIG,
)
from .errors import RemoteCallError, ResourceNotFound
from .logger import logger

RawResourceRecord = dict[str, Any]


class RemoteCloudPCClient(Protocol):
    """What the registry and dispatcher need from the provider."""

    def list_all(self) -> list[RawResourceRecord]: ...

    def get_one(self, resource_id: str) -> RawResourceRecord: ...

    def start(self, resource_id: str) -> None: ...

    def stop(self, resource_id: str) -> None: ...

    def restart(self, resource_id: str) -> None: ...

    def reprovision(self, resource_id: str) -> None: ...


class GraphCloudPCClient:
    """Microsoft Graph (beta) implementation of RemoteCloudPCClient."""

    def __init__(
        self,
        credential: Any,
        session: requests.Session | None = None,
        base_url: str = GRAPH_BASE_URL,
        timeout: int = DEFAULT_TIMEOUT,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.credential = credential
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.page_size = page_size

        self._token: str | None = None
        self._token_expires: datetime | None = None

    def _get_token(self) -> str:
        """Get a Graph access token (cached until 5 minutes before expiry)."""
        if self._token and self._token_expires:
            if datetime.now(timezone.utc) < self._token_expires:
                return self._token

        token = self.credential.get_token(GRAPH_SCOPE)
        self._token = token.token
        self._token_expires = datetime.fromtimestamp(
            token.expires_on, tz=timezone.utc
        ) - timedelta(minutes=5)
        return self._token

    def _request(
        self,
        method: str,
        url: str,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        headers = {"Authorization": f"Bearer {self._get_token()}"}
        try:
            response = self.session.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise RemoteCallError(f"{method} {url} failed: {e}") from e

        if response.status_code == 404 and resource_id is not None:
            raise ResourceNotFound(resource_id)
        if not response.ok:
            raise RemoteCallError(
                f"{method} {url} returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        return response

    @retry(**RETRY_CONFIG)  # type: ignore[call-overload, untyped-decorator]
    def _get_json(self, url: str, resource_id: str | None = None, **kwargs: Any) -> Any:
        response = self._request("GET", url, resource_id=resource_id, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise RemoteCallError(f"GET {url} returned invalid JSON") from e

    def list_all(self) -> list[RawResourceRecord]:
        """
        Lists every Cloud PC in the tenant.
        Follows @odata.nextLink until the collection is exhausted.
        """
        url: str | None = f"{self.base_url}{CLOUDPCS_PATH}"
        params: dict[str, Any] | None = {"$top": self.page_size}
        records: list[RawResourceRecord] = []

        while url:
            payload = self._get_json(url, params=params)
            if not isinstance(payload, dict) or not isinstance(
                payload.get("value"), list
            ):
                raise RemoteCallError(f"Unexpected listing payload from {url}")
            records.extend(payload["value"])
            url = payload.get("@odata.nextLink")
            # nextLink already carries the query string
            params = None

        logger.debug(f"Fetched {len(records)} Cloud PC records")
        return records

    def get_one(self, resource_id: str) -> RawResourceRecord:
        url = f"{self.base_url}{CLOUDPCS_PATH}/{resource_id}"
        payload = self._get_json(url, resource_id=resource_id)
        if not isinstance(payload, dict):
            raise RemoteCallError(f"Unexpected payload for Cloud PC {resource_id}")
        return payload

    def _post_action(self, resource_id: str, operation: str) -> None:
        remote_name = REMOTE_ACTIONS[operation]
        url = f"{self.base_url}{CLOUDPCS_PATH}/{resource_id}/{remote_name}"
        logger.info(f"POST {remote_name} for Cloud PC {resource_id}")
        self._request("POST", url, resource_id=resource_id, json={})

    def start(self, resource_id: str) -> None:
        self._post_action(resource_id, "start")

    def stop(self, resource_id: str) -> None:
        self._post_action(resource_id, "stop")

    def restart(self, resource_id: str) -> None:
        self._post_action(resource_id, "restart")

    def reprovision(self, resource_id: str) -> None:
        self._post_action(resource_id, "reprovision")
