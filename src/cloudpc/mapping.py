import re
from datetime import datetime
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .errors import MalformedRecord
from .schemas.cloudpc import CloudPCResource, PowerState, ProvisioningType

_POWER_STATES = {p.value.lower(): p for p in PowerState}
_DATETIME = TypeAdapter(datetime)
_EXTRA_FRACTION = re.compile(r"(\.\d{6})\d+")


def resolve_provisioning_type(raw: dict[str, Any]) -> ProvisioningType:
    """
    Derives the deployment model from Graph's provisioningType + servicePlanName.
    Graph reports 'dedicated' for both Enterprise and Frontline dedicated PCs,
    so the service plan name is what tells them apart.
    """
    kind = str(raw.get("provisioningType") or "").lower()
    plan = str(raw.get("servicePlanName") or "").lower()

    if kind.startswith("shared"):
        return ProvisioningType.FRONTLINE_SHARED
    if kind == "dedicated":
        if "frontline" in plan:
            return ProvisioningType.FRONTLINE_DEDICATED
        return ProvisioningType.ENTERPRISE
    return ProvisioningType.UNKNOWN


def _parse_power_state(value: Any) -> PowerState:
    if not value:
        return PowerState.UNKNOWN
    return _POWER_STATES.get(str(value).lower(), PowerState.UNKNOWN)


def _parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    # Graph emits 7 fractional digits, pydantic accepts at most 6
    text = _EXTRA_FRACTION.sub(r"\1", str(value))
    try:
        return _DATETIME.validate_python(text)
    except ValidationError:
        return None


def to_resource(raw: Any) -> CloudPCResource:
    """Maps one Graph cloudPC JSON object into a CloudPCResource."""
    if not isinstance(raw, dict):
        raise MalformedRecord(f"Expected a JSON object, got {type(raw).__name__}")

    resource_id = raw.get("id")
    if not resource_id or not isinstance(resource_id, str):
        raise MalformedRecord(
            f"Cloud PC record without id (displayName={raw.get('displayName')!r})"
        )

    try:
        return CloudPCResource(
            id=resource_id,
            display_name=raw.get("displayName"),
            user_principal_name=raw.get("userPrincipalName"),
            managed_device_name=raw.get("managedDeviceName"),
            provisioning_type=resolve_provisioning_type(raw),
            status=raw.get("status") or "unknown",
            power_state=_parse_power_state(raw.get("powerState")),
            service_plan_name=raw.get("servicePlanName"),
            last_modified=_parse_timestamp(raw.get("lastModifiedDateTime")),
            grace_period_end=_parse_timestamp(raw.get("gracePeriodEndDateTime")),
        )
    except ValidationError as e:
        raise MalformedRecord(f"Invalid Cloud PC record {resource_id}: {e}") from e
