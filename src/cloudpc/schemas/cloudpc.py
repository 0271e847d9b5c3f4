from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..errors import DispatchError, FetchError


class ProvisioningType(str, Enum):
    ENTERPRISE = "Enterprise"
    FRONTLINE_DEDICATED = "FrontlineDedicated"
    FRONTLINE_SHARED = "FrontlineShared"
    UNKNOWN = "Unknown"


class PowerState(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    POWERED_OFF = "poweredOff"
    UNKNOWN = "unknown"


class Action(str, Enum):
    START = "Start"
    STOP = "Stop"
    RESTART = "Restart"
    REPROVISION = "Reprovision"
    REFRESH = "Refresh"


class CloudPCResource(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    display_name: str | None = None
    user_principal_name: str | None = None
    managed_device_name: str | None = None
    provisioning_type: ProvisioningType = ProvisioningType.UNKNOWN
    status: str = Field(default="unknown", description="Provider lifecycle string")
    power_state: PowerState = PowerState.UNKNOWN
    service_plan_name: str | None = None
    last_modified: datetime | None = None
    grace_period_end: datetime | None = None

    @property
    def label(self) -> str:
        return self.display_name or self.managed_device_name or self.id


class ActionRequest(BaseModel):
    resource_id: str
    action: Action
    confirmed: bool = Field(
        default=False, description="Explicit consent for destructive actions"
    )


@dataclass
class ActionResult:
    accepted: bool
    reason: str | None = None
    error: DispatchError | FetchError | None = None
    resource: CloudPCResource | None = None

    @classmethod
    def ok(cls, resource: CloudPCResource | None = None) -> "ActionResult":
        return cls(accepted=True, resource=resource)

    @classmethod
    def failed(cls, error: DispatchError | FetchError) -> "ActionResult":
        return cls(accepted=False, reason=str(error), error=error)

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error
