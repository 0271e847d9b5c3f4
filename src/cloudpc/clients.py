from __future__ import annotations

from functools import lru_cache
from typing import Any

import requests
from azure.identity import ClientSecretCredential, DefaultAzureCredential

# Shared Client Registry (Lazy-loaded and cached)


@lru_cache(maxsize=4)
def get_credential(
    tenant_id: str | None = None,
    client_id: str | None = None,
    client_secret: str | None = None,
) -> Any:
    # App-only auth when a secret is configured, otherwise the default chain
    # (environment, managed identity, Azure CLI, ...)
    if tenant_id and client_id and client_secret:
        return ClientSecretCredential(tenant_id, client_id, client_secret)
    return DefaultAzureCredential()


@lru_cache(maxsize=1)
def get_http_session() -> requests.Session:
    session = requests.Session()
    session.headers.update(
        {"Accept": "application/json", "User-Agent": "cloudpc-console/1.0"}
    )
    return session
