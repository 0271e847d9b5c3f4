from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any

from .errors import FetchError, ResourceNotFound, UnknownResource
from .mapping import to_resource
from .remote import RemoteCloudPCClient
from .schemas.cloudpc import CloudPCResource


class ResourceRegistry:
    """
    In-memory working set of Cloud PC records for the current session.

    Not authoritative: the provider is the source of truth. The snapshot is
    only ever replaced wholesale (refresh) or per entry (reload); a failed
    fetch never touches the existing snapshot.
    """

    def __init__(self, client: RemoteCloudPCClient) -> None:
        self.client = client
        self._snapshot: dict[str, CloudPCResource] = {}
        # guards read-copy-write of the snapshot in reload()
        self._lock = threading.Lock()
        self.refreshed_at: datetime | None = None

    def refresh(self) -> list[CloudPCResource]:
        try:
            raw_records: Any = self.client.list_all()
        except Exception as e:
            raise FetchError(f"Cloud PC listing failed: {e}") from e

        if not isinstance(raw_records, (list, tuple)):
            raise FetchError(
                f"Cloud PC listing returned {type(raw_records).__name__}, expected a list"
            )

        # MalformedRecord is a FetchError and propagates as is
        resources = [to_resource(raw) for raw in raw_records]

        snapshot: dict[str, CloudPCResource] = {}
        for resource in resources:
            if resource.id in snapshot:
                raise FetchError(f"Duplicate Cloud PC id in listing: {resource.id}")
            snapshot[resource.id] = resource

        with self._lock:
            self._snapshot = snapshot
        self.refreshed_at = datetime.now(timezone.utc)
        return resources

    def get(self, resource_id: str) -> CloudPCResource | None:
        return self._snapshot.get(resource_id)

    def reload(self, resource_id: str) -> CloudPCResource:
        """Re-fetches a single Cloud PC, e.g. after an action was accepted."""
        try:
            raw = self.client.get_one(resource_id)
        except ResourceNotFound as e:
            raise UnknownResource(resource_id) from e
        except Exception as e:
            raise FetchError(f"Fetching Cloud PC {resource_id} failed: {e}") from e

        if raw is None:
            raise UnknownResource(resource_id)

        resource = to_resource(raw)
        if resource.id != resource_id:
            raise FetchError(
                f"Asked for Cloud PC {resource_id}, provider returned {resource.id}"
            )

        with self._lock:
            self._snapshot = {**self._snapshot, resource_id: resource}
        return resource

    @property
    def resources(self) -> tuple[CloudPCResource, ...]:
        return tuple(self._snapshot.values())

    def __len__(self) -> int:
        return len(self._snapshot)

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self._snapshot
