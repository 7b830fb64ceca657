"""
auth/remote.py -- Client side of the remote identity verification endpoint.

Other trusted services (e.g. the vault item API) never see SECRET_KEY. They
hand the bearer token they received to this service's internal endpoint
(api/internal.py) and get back the user id, or a rejection.

  RemoteAuthClient.verify(token) -> user_id
      200 -> user id
      401 -> UnauthorizedError (generic "Invalid token")
      anything else, or no answer within the timeout -> ServiceUnavailableError

  RemoteUser(client)
      FastAPI dependency for the consuming service. Reads the bearer header
      exactly like auth.dependencies.get_current_user_id and resolves it
      remotely instead of locally.

No retries: a failed verification fails the caller's request.
"""

import logging

import requests
from fastapi import Request

from auth.dependencies import bearer_token
from core.config import get_settings
from core.errors import ServiceUnavailableError, UnauthorizedError

logger = logging.getLogger("vaultauth.remote")

VERIFY_PATH = "/internal/v1/auth/verify"


class RemoteAuthClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        if base_url is None or timeout is None:
            # Only the consuming service's own fields are read here; a fully
            # configured client never loads Settings (and its SECRET_KEY rule).
            settings = get_settings()
            base_url = base_url or settings.auth_service_url
            timeout = timeout if timeout is not None else settings.remote_auth_timeout_seconds
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def verify(self, token: str) -> str:
        """Exchange a bearer token for the user id it was issued to."""
        try:
            resp = self.session.post(f"{self.base_url}{VERIFY_PATH}", json={"token": token}, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Remote verification unreachable: %s", e)
            raise ServiceUnavailableError() from e

        if resp.status_code == 401:
            raise UnauthorizedError("rejected by auth service")
        if resp.status_code != 200:
            logger.warning("Remote verification returned HTTP %d", resp.status_code)
            raise ServiceUnavailableError()
        try:
            user_id = resp.json()["user_id"]
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Remote verification returned an unexpected body")
            raise ServiceUnavailableError() from e
        return str(user_id)

    def close(self) -> None:
        self.session.close()


class RemoteUser:
    """Dependency that authenticates a request through RemoteAuthClient.

    Usage in the consuming service:
        current_user = RemoteUser(RemoteAuthClient())

        @router.get("/items")
        def list_items(user_id: str = Depends(current_user)): ...
    """

    def __init__(self, client: RemoteAuthClient) -> None:
        self.client = client

    def __call__(self, request: Request) -> str:
        return self.client.verify(bearer_token(request))
