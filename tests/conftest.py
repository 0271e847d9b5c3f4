import pytest

from cloudpc.config import Settings
from cloudpc.session import build_session


@pytest.fixture
def client(mocker):
    """A RemoteCloudPCClient double with an empty listing."""
    mock = mocker.Mock()
    mock.list_all.return_value = []
    return mock


@pytest.fixture
def session(client):
    return build_session(Settings(), client=client)
