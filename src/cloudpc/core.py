from tenacity import retry_if_exception, stop_after_attempt, wait_exponential

from .errors import RemoteCallError


def _is_transient(exc: BaseException) -> bool:
    # 404 and other client errors will not get better by asking again
    if isinstance(exc, RemoteCallError):
        return exc.status_code is None or exc.status_code == 429 or exc.status_code >= 500
    return False


# Shared retry configuration for read-only Graph calls
# usage: @retry(**RETRY_CONFIG)
# Mutating calls (start/stop/reboot/reprovision) are never retried.
RETRY_CONFIG = {
    "stop": stop_after_attempt(3),
    "wait": wait_exponential(multiplier=1, min=4, max=10),
    "retry": retry_if_exception(_is_transient),
    "reraise": True,
}

GRAPH_BASE_URL = "https://graph.microsoft.com/beta"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
CLOUDPCS_PATH = "/deviceManagement/virtualEndpoint/cloudPCs"

# Graph action names differ from ours for Restart
REMOTE_ACTIONS = {
    "start": "start",
    "stop": "stop",
    "restart": "reboot",
    "reprovision": "reprovision",
}

DEFAULT_TIMEOUT = 30
DEFAULT_PAGE_SIZE = 100
