import threading
import time

import pytest

from cloudpc.dispatcher import COMPATIBILITY, ActionDispatcher, allowed_actions, is_supported
from cloudpc.errors import (
    ConfirmationRequired,
    FetchError,
    NoOpRejected,
    RemoteCallError,
    RemoteOperationFailed,
    UnknownResource,
    UnsupportedAction,
)
from cloudpc.registry import ResourceRegistry
from cloudpc.schemas.cloudpc import Action, ActionRequest, PowerState, ProvisioningType

from helpers import ENTERPRISE, FRONTLINE_DEDICATED, FRONTLINE_SHARED, raw_cloudpc

REMOTE_METHODS = ["start", "stop", "restart", "reprovision"]


def _dispatcher(client, *records):
    client.list_all.return_value = list(records)
    registry = ResourceRegistry(client)
    registry.refresh()
    return ActionDispatcher(registry, client)


def _assert_no_remote_calls(client):
    for name in REMOTE_METHODS:
        getattr(client, name).assert_not_called()


def test_compatibility_table_is_read_only():
    with pytest.raises(TypeError):
        COMPATIBILITY[Action.START] = COMPATIBILITY[Action.STOP]


def test_is_supported():
    assert is_supported(ProvisioningType.FRONTLINE_DEDICATED, Action.START)
    assert not is_supported(ProvisioningType.ENTERPRISE, Action.START)
    assert is_supported(ProvisioningType.ENTERPRISE, Action.RESTART)
    assert not is_supported(ProvisioningType.FRONTLINE_DEDICATED, Action.REPROVISION)
    assert is_supported(ProvisioningType.UNKNOWN, Action.REFRESH)


@pytest.mark.parametrize("power", ["running", "stopped", "poweredOff", None])
@pytest.mark.parametrize("action", [Action.START, Action.STOP])
def test_enterprise_start_stop_unsupported(client, action, power):
    dispatcher = _dispatcher(client, raw_cloudpc(id="E1", power=power, **ENTERPRISE))

    result = dispatcher.dispatch(ActionRequest(resource_id="E1", action=action))

    assert not result.accepted
    assert isinstance(result.error, UnsupportedAction)
    assert result.error.provisioning_type == ProvisioningType.ENTERPRISE
    assert result.error.action == action
    _assert_no_remote_calls(client)


def test_enterprise_restart_forwarded(client):
    dispatcher = _dispatcher(client, raw_cloudpc(id="E1", **ENTERPRISE))

    result = dispatcher.dispatch(ActionRequest(resource_id="E1", action=Action.RESTART))

    assert result.accepted
    assert result.reason is None
    client.restart.assert_called_once_with("E1")


@pytest.mark.parametrize("action", [Action.START, Action.STOP, Action.RESTART])
def test_frontline_shared_rejects_power_actions(client, action):
    dispatcher = _dispatcher(client, raw_cloudpc(id="C3", **FRONTLINE_SHARED))

    result = dispatcher.dispatch(
        ActionRequest(resource_id="C3", action=action, confirmed=True)
    )

    assert isinstance(result.error, UnsupportedAction)
    _assert_no_remote_calls(client)


def test_reprovision_requires_confirmation(client):
    dispatcher = _dispatcher(client, raw_cloudpc(id="C3", **FRONTLINE_SHARED))

    result = dispatcher.dispatch(
        ActionRequest(resource_id="C3", action=Action.REPROVISION, confirmed=False)
    )

    assert not result.accepted
    assert isinstance(result.error, ConfirmationRequired)
    client.reprovision.assert_not_called()

    result = dispatcher.dispatch(
        ActionRequest(resource_id="C3", action=Action.REPROVISION, confirmed=True)
    )

    assert result.accepted
    client.reprovision.assert_called_once_with("C3")


def test_reprovision_unsupported_for_frontline_dedicated(client):
    dispatcher = _dispatcher(client, raw_cloudpc(id="A1", **FRONTLINE_DEDICATED))

    result = dispatcher.dispatch(
        ActionRequest(resource_id="A1", action=Action.REPROVISION, confirmed=True)
    )

    assert isinstance(result.error, UnsupportedAction)
    client.reprovision.assert_not_called()


def test_start_running_is_noop_rejected(client):
    dispatcher = _dispatcher(
        client, raw_cloudpc(id="A1", power="running", **FRONTLINE_DEDICATED)
    )

    result = dispatcher.dispatch(ActionRequest(resource_id="A1", action=Action.START))

    assert isinstance(result.error, NoOpRejected)
    assert result.error.power_state == "running"
    client.start.assert_not_called()


def test_start_stopped_is_forwarded_once(client):
    dispatcher = _dispatcher(
        client, raw_cloudpc(id="B2", power="stopped", **FRONTLINE_DEDICATED)
    )

    result = dispatcher.dispatch(ActionRequest(resource_id="B2", action=Action.START))

    assert result.accepted
    client.start.assert_called_once_with("B2")


@pytest.mark.parametrize("power", ["stopped", "poweredOff"])
def test_stop_already_off_is_noop_rejected(client, power):
    dispatcher = _dispatcher(
        client, raw_cloudpc(id="A1", power=power, **FRONTLINE_DEDICATED)
    )

    result = dispatcher.dispatch(ActionRequest(resource_id="A1", action=Action.STOP))

    assert isinstance(result.error, NoOpRejected)
    client.stop.assert_not_called()


def test_unknown_power_state_is_forwarded(client):
    dispatcher = _dispatcher(
        client, raw_cloudpc(id="A1", power=None, **FRONTLINE_DEDICATED)
    )

    assert dispatcher.dispatch(ActionRequest(resource_id="A1", action=Action.STOP)).accepted
    client.stop.assert_called_once_with("A1")


@pytest.mark.parametrize("action", list(Action))
def test_unknown_id_always_unknown_resource(client, action):
    dispatcher = _dispatcher(client, raw_cloudpc(id="A1"))

    result = dispatcher.dispatch(
        ActionRequest(resource_id="missing", action=action, confirmed=True)
    )

    assert isinstance(result.error, UnknownResource)
    _assert_no_remote_calls(client)
    client.get_one.assert_not_called()


def test_remote_failure_is_wrapped_not_retried(client):
    dispatcher = _dispatcher(client, raw_cloudpc(id="C3", **FRONTLINE_SHARED))
    cause = RemoteCallError("Graph said no", status_code=500)
    client.reprovision.side_effect = cause

    result = dispatcher.dispatch(
        ActionRequest(resource_id="C3", action=Action.REPROVISION, confirmed=True)
    )

    assert not result.accepted
    assert isinstance(result.error, RemoteOperationFailed)
    assert result.error.cause is cause
    assert result.error.action == Action.REPROVISION
    assert result.error.resource_id == "C3"
    assert "Graph said no" in result.reason
    client.reprovision.assert_called_once()

    with pytest.raises(RemoteOperationFailed):
        result.raise_for_error()


def test_dispatch_does_not_mutate_registry(client):
    dispatcher = _dispatcher(
        client, raw_cloudpc(id="B2", power="stopped", **FRONTLINE_DEDICATED)
    )

    dispatcher.dispatch(ActionRequest(resource_id="B2", action=Action.START))

    assert dispatcher.registry.get("B2").power_state == PowerState.STOPPED


def test_refresh_action_reloads_resource(client):
    dispatcher = _dispatcher(client, raw_cloudpc(id="U1", provisioning="weird"))
    client.get_one.return_value = raw_cloudpc(id="U1", provisioning="weird", power="stopped")

    result = dispatcher.dispatch(ActionRequest(resource_id="U1", action=Action.REFRESH))

    assert result.accepted
    assert result.resource.power_state == PowerState.STOPPED
    assert dispatcher.registry.get("U1").power_state == PowerState.STOPPED
    _assert_no_remote_calls(client)


def test_refresh_action_reports_fetch_failure(client):
    dispatcher = _dispatcher(client, raw_cloudpc(id="A1"))
    client.get_one.side_effect = RemoteCallError("timeout")

    result = dispatcher.dispatch(ActionRequest(resource_id="A1", action=Action.REFRESH))

    assert not result.accepted
    assert isinstance(result.error, FetchError)


def test_allowed_actions(client):
    dispatcher = _dispatcher(
        client,
        raw_cloudpc(id="A1", power="running", **FRONTLINE_DEDICATED),
        raw_cloudpc(id="E1", **ENTERPRISE),
        raw_cloudpc(id="C3", **FRONTLINE_SHARED),
        raw_cloudpc(id="U1", provisioning=None),
    )
    registry = dispatcher.registry

    assert allowed_actions(registry.get("A1")) == [Action.STOP, Action.RESTART, Action.REFRESH]
    assert allowed_actions(registry.get("E1")) == [Action.RESTART, Action.REFRESH]
    assert allowed_actions(registry.get("C3")) == [Action.REPROVISION, Action.REFRESH]
    assert allowed_actions(registry.get("U1")) == [Action.REFRESH]


def test_concurrent_dispatch_serialized_per_resource(client):
    dispatcher = _dispatcher(client, raw_cloudpc(id="E1", **ENTERPRISE))
    in_flight = []
    overlaps = []

    def slow_restart(resource_id):
        if in_flight:
            overlaps.append(resource_id)
        in_flight.append(resource_id)
        time.sleep(0.05)
        in_flight.pop()

    client.restart.side_effect = slow_restart
    request = ActionRequest(resource_id="E1", action=Action.RESTART)
    threads = [
        threading.Thread(target=dispatcher.dispatch, args=(request,)) for _ in range(3)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert client.restart.call_count == 3
    assert overlaps == []
