from dataclasses import dataclass

from .clients import get_credential, get_http_session
from .config import Settings
from .dispatcher import ActionDispatcher
from .registry import ResourceRegistry
from .remote import GraphCloudPCClient, RemoteCloudPCClient


@dataclass
class Session:
    """Everything a front end needs, wired explicitly instead of via globals."""

    settings: Settings
    client: RemoteCloudPCClient
    registry: ResourceRegistry
    dispatcher: ActionDispatcher


def build_session(
    settings: Settings, client: RemoteCloudPCClient | None = None
) -> Session:
    if client is None:
        credential = get_credential(
            settings.tenant_id, settings.client_id, settings.client_secret
        )
        client = GraphCloudPCClient(
            credential,
            session=get_http_session(),
            base_url=settings.graph_base_url,
            timeout=settings.timeout,
            page_size=settings.page_size,
        )
    registry = ResourceRegistry(client)
    return Session(
        settings=settings,
        client=client,
        registry=registry,
        dispatcher=ActionDispatcher(registry, client),
    )
