def raw_cloudpc(
    id="A1",
    provisioning="dedicated",
    plan="Cloud PC Frontline 2vCPU/8GB/128GB",
    power="running",
    **extra,
):
    """Graph-shaped cloudPC record."""
    record = {
        "id": id,
        "displayName": f"CPC-{id}",
        "userPrincipalName": f"{id.lower()}@contoso.com",
        "managedDeviceName": f"CPC-{id}-DEV",
        "provisioningType": provisioning,
        "servicePlanName": plan,
        "status": "provisioned",
        "powerState": power,
        "lastModifiedDateTime": "2024-05-01T10:00:00Z",
    }
    record.update(extra)
    return record


ENTERPRISE = {"provisioning": "dedicated", "plan": "Cloud PC Enterprise 4vCPU/16GB/256GB"}
FRONTLINE_DEDICATED = {"provisioning": "dedicated", "plan": "Cloud PC Frontline 2vCPU/8GB/128GB"}
FRONTLINE_SHARED = {"provisioning": "sharedByUser", "plan": "Cloud PC Frontline 2vCPU/8GB/128GB"}
