"""Windows 365 Cloud PC lifecycle console."""

from .dispatcher import COMPATIBILITY, ActionDispatcher, allowed_actions, is_supported
from .registry import ResourceRegistry
from .schemas.cloudpc import (
    Action,
    ActionRequest,
    ActionResult,
    CloudPCResource,
    PowerState,
    ProvisioningType,
)

__all__ = [
    "COMPATIBILITY",
    "Action",
    "ActionDispatcher",
    "ActionRequest",
    "ActionResult",
    "CloudPCResource",
    "PowerState",
    "ProvisioningType",
    "ResourceRegistry",
    "allowed_actions",
    "is_supported",
]
