from typing import Any, Dict, Optional

import httpx

from .config import Settings, settings as default_settings
from .exceptions import AuthenticationError, TransportError, ValidationError
from .logging import jlog
from .retry import RetryPolicy
from .schemas import Auth, Credentials, Server

# see https://docs.ceph.com/en/latest/mgr/ceph_api/

DEFAULT_HEADERS = {
    "Accept": "application/vnd.ceph.api.v1.0+json",
}

DEFAULT_HEADERS_JSON = {
    "Accept": "application/vnd.ceph.api.v1.0+json",
    "Content-Type": "application/json",
}


class Session:
    """
    HTTP session against one Ceph manager.

    Holds the httpx client, the auth token and the transport RetryPolicy. The
    client is safe to share between threads; nothing on the session changes
    after login apart from the token.
    """

    def __init__(
        self,
        server: Server,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.server = server
        self.settings = settings or default_settings
        self.retry_policy = RetryPolicy(self.settings)
        self.auth = Auth()

        # Explicit timeouts; reads can take long while the manager is busy
        self.client = http_client or httpx.Client(
            timeout=httpx.Timeout(
                connect=self.settings.connect_timeout_s,
                read=self.settings.request_timeout_s,
                write=self.settings.connect_timeout_s,
                pool=None,
            ),
            limits=httpx.Limits(max_connections=self.settings.max_connections),
            verify=not server.insecure_skip_verify,
        )

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()

    def url(self, sub_path: str) -> str:
        return self.server.url(sub_path)

    def _headers(self, with_body: bool) -> Dict[str, str]:
        headers = dict(DEFAULT_HEADERS_JSON if with_body else DEFAULT_HEADERS)
        if self.auth.token:
            headers["Authorization"] = f"Bearer {self.auth.token}"
        return headers

    def request(
        self,
        method: str,
        sub_path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        retry: bool = True,
    ) -> httpx.Response:
        """
        Send one request. With `retry` the RetryPolicy resends it on
        retryable statuses and network errors; without it a network error is
        raised as TransportError straight away.
        """
        url = self.url(sub_path)
        headers = self._headers(with_body=json is not None)

        def _send() -> httpx.Response:
            return self.client.request(method, url, json=json, params=params, headers=headers)

        if retry:
            return self.retry_policy.call(_send)
        try:
            return _send()
        except httpx.TransportError as e:
            raise TransportError(f"{method} {url}: {e}") from e

    def login(self, username: str, password: str) -> int:
        """Log in (POST /api/auth) and keep the token for later requests."""
        if not username:
            raise ValidationError("param username can not be empty")
        if not password:
            raise ValidationError("param password can not be empty")

        body = Credentials(username=username, password=password).model_dump()
        resp = self.request("POST", "auth", json=body, retry=False)

        if not resp.is_success:
            jlog(event="login_failed", severity="WARNING", status_code=resp.status_code, username=username)
            raise AuthenticationError(f"could not login: {resp.text[:512]}", status_code=resp.status_code)

        self.auth = Auth.model_validate(resp.json())
        jlog(event="login_ok", username=self.auth.username or username, status_code=resp.status_code)
        return resp.status_code

    def logout(self) -> int:
        resp = self.request("POST", "auth/logout", retry=False)
        if not resp.is_success:
            raise AuthenticationError(f"could not logout: {resp.text[:512]}", status_code=resp.status_code)
        self.auth = Auth()
        jlog(event="logout_ok", status_code=resp.status_code)
        return resp.status_code
