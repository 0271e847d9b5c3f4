"""Error taxonomy shared by the registry, the dispatcher and the Graph adapter."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .schemas.cloudpc import Action, ProvisioningType


class CloudPCError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(CloudPCError):
    pass


class RemoteCallError(CloudPCError):
    """A Graph request failed (transport error or non-2xx response)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResourceNotFound(RemoteCallError):
    def __init__(self, resource_id: str) -> None:
        super().__init__(f"Cloud PC {resource_id} not found", status_code=404)
        self.resource_id = resource_id


class FetchError(CloudPCError):
    """Registry refresh failed; the previous snapshot is kept."""


class MalformedRecord(FetchError):
    pass


class DispatchError(CloudPCError):
    """Base class for every failure an action dispatch can report."""


class UnknownResource(DispatchError):
    def __init__(self, resource_id: str) -> None:
        super().__init__(f"Unknown Cloud PC id: {resource_id}")
        self.resource_id = resource_id


class UnsupportedAction(DispatchError):
    def __init__(self, provisioning_type: ProvisioningType, action: Action) -> None:
        super().__init__(
            f"{action.value} is not supported for {provisioning_type.value} Cloud PCs"
        )
        self.provisioning_type = provisioning_type
        self.action = action


class NoOpRejected(DispatchError):
    def __init__(self, resource_id: str, action: Action, power_state: str) -> None:
        super().__init__(
            f"{action.value} rejected for {resource_id}: already {power_state}"
        )
        self.resource_id = resource_id
        self.action = action
        self.power_state = power_state


class ConfirmationRequired(DispatchError):
    def __init__(self, resource_id: str, action: Action) -> None:
        super().__init__(
            f"{action.value} of {resource_id} is destructive and must be confirmed"
        )
        self.resource_id = resource_id
        self.action = action


class RemoteOperationFailed(DispatchError):
    def __init__(self, action: Action, resource_id: str, cause: BaseException) -> None:
        super().__init__(f"{action.value} failed for {resource_id}: {cause}")
        self.action = action
        self.resource_id = resource_id
        self.cause = cause
        self.__cause__ = cause
