from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from types import MappingProxyType

from .errors import (
    ConfirmationRequired,
    DispatchError,
    FetchError,
    NoOpRejected,
    RemoteOperationFailed,
    UnknownResource,
    UnsupportedAction,
)
from .registry import ResourceRegistry
from .remote import RemoteCloudPCClient
from .schemas.cloudpc import (
    Action,
    ActionRequest,
    ActionResult,
    CloudPCResource,
    PowerState,
    ProvisioningType,
)


@dataclass(frozen=True)
class ActionRule:
    allowed_types: frozenset[ProvisioningType]
    # power states in which the request would be a no-op
    redundant_states: frozenset[PowerState] = frozenset()
    requires_confirmation: bool = False
    # name of the RemoteCloudPCClient method, None for local-only actions
    remote_operation: str | None = None


_ALL_TYPES = frozenset(ProvisioningType)

COMPATIBILITY: MappingProxyType[Action, ActionRule] = MappingProxyType(
    {
        Action.START: ActionRule(
            allowed_types=frozenset({ProvisioningType.FRONTLINE_DEDICATED}),
            redundant_states=frozenset({PowerState.RUNNING}),
            remote_operation="start",
        ),
        Action.STOP: ActionRule(
            allowed_types=frozenset({ProvisioningType.FRONTLINE_DEDICATED}),
            redundant_states=frozenset({PowerState.STOPPED, PowerState.POWERED_OFF}),
            remote_operation="stop",
        ),
        Action.RESTART: ActionRule(
            allowed_types=frozenset(
                {ProvisioningType.ENTERPRISE, ProvisioningType.FRONTLINE_DEDICATED}
            ),
            remote_operation="restart",
        ),
        Action.REPROVISION: ActionRule(
            allowed_types=frozenset({ProvisioningType.FRONTLINE_SHARED}),
            requires_confirmation=True,
            remote_operation="reprovision",
        ),
        Action.REFRESH: ActionRule(allowed_types=_ALL_TYPES),
    }
)


def is_supported(provisioning_type: ProvisioningType, action: Action) -> bool:
    return provisioning_type in COMPATIBILITY[action].allowed_types


def allowed_actions(resource: CloudPCResource) -> list[Action]:
    """Actions that would pass validation right now (for menu filtering)."""
    return [
        action
        for action, rule in COMPATIBILITY.items()
        if resource.provisioning_type in rule.allowed_types
        and resource.power_state not in rule.redundant_states
    ]


class ActionDispatcher:
    """
    Validates an ActionRequest against COMPATIBILITY and forwards it to
    exactly one remote operation. Every failure comes back as an
    ActionResult carrying a typed error; nothing is retried.
    """

    def __init__(self, registry: ResourceRegistry, client: RemoteCloudPCClient) -> None:
        self.registry = registry
        self.client = client
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, resource_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(resource_id, threading.Lock())

    def validate(self, request: ActionRequest) -> CloudPCResource:
        """Raises the matching DispatchError if the request must not be forwarded."""
        resource = self.registry.get(request.resource_id)
        if resource is None:
            raise UnknownResource(request.resource_id)

        rule = COMPATIBILITY[request.action]
        if resource.provisioning_type not in rule.allowed_types:
            raise UnsupportedAction(resource.provisioning_type, request.action)

        if resource.power_state in rule.redundant_states:
            raise NoOpRejected(
                resource.id, request.action, resource.power_state.value
            )

        if rule.requires_confirmation and not request.confirmed:
            raise ConfirmationRequired(resource.id, request.action)

        return resource

    def dispatch(self, request: ActionRequest) -> ActionResult:
        # one in-flight action per Cloud PC
        with self._lock_for(request.resource_id):
            try:
                resource = self.validate(request)
            except DispatchError as e:
                return ActionResult.failed(e)

            rule = COMPATIBILITY[request.action]
            if rule.remote_operation is None:
                return self._refresh(resource.id)

            operation: Callable[[str], object] = getattr(
                self.client, rule.remote_operation
            )
            try:
                operation(resource.id)
            except Exception as e:
                return ActionResult.failed(
                    RemoteOperationFailed(request.action, resource.id, e)
                )

            return ActionResult.ok()

    def _refresh(self, resource_id: str) -> ActionResult:
        try:
            resource = self.registry.reload(resource_id)
        except (UnknownResource, FetchError) as e:
            return ActionResult.failed(e)
        return ActionResult.ok(resource)
