"""HTTP client for the E-Ballot API."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, payload: dict[str, Any] | None = None) -> None:
        self.status_code = status_code
        self.payload = payload or {}
        self.code = str(self.payload.get("code") or "")
        self.message = str(
            self.payload.get("error") or self.payload.get("message") or f"HTTP {status_code}"
        )
        super().__init__(self.message)

    @property
    def requires_profile_url(self) -> bool:
        return self.status_code == 403 and bool(self.payload.get("requires_profile_url"))


class BallotClient:
    """Thin cookie-carrying wrapper over the JSON API."""

    def __init__(
        self,
        base_url: str,
        http: httpx.Client | None = None,
        timeout: float = 20.0,
    ) -> None:
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> BallotClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def cookies(self) -> httpx.Cookies:
        return self.http.cookies

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self.http.request(method, path, **kwargs)
        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = {"error": response.text}
            raise ApiError(response.status_code, payload if isinstance(payload, dict) else None)
        if not response.content:
            return None
        return response.json()

    def register(self, name: str, email: str, password: str) -> dict[str, Any]:
        body = {"name": name, "email": email, "password": password}
        return self._request("POST", "/auth/register", json=body)["user"]

    def login(self, email: str, password: str) -> dict[str, Any]:
        body = {"email": email, "password": password}
        return self._request("POST", "/auth/login", json=body)["user"]

    def forgot_password(self, email: str) -> dict[str, Any]:
        return self._request("POST", "/auth/forgot-password", json={"email": email})

    def reset_password(self, token: str, password: str) -> dict[str, Any]:
        body = {"token": token, "password": password}
        return self._request("POST", "/auth/reset-password", json=body)

    def session_user(self) -> dict[str, Any]:
        """Return the signed-in user; raises ApiError(401) when signed out."""
        return self._request("GET", "/auth/login/success")["user"]

    def logout(self) -> None:
        self.http.get("/auth/logout", follow_redirects=False)
        self.http.cookies.clear()

    def candidates(self) -> list[dict[str, Any]]:
        return self._request("GET", "/api/candidates")

    def voters(self) -> list[dict[str, Any]]:
        return self._request("GET", "/api/voters")

    def update_profile_url(self, url: str) -> dict[str, Any]:
        return self._request("POST", "/api/update-linkedin", json={"url": url})

    def vote(self, candidate_id: str) -> dict[str, Any]:
        return self._request("POST", f"/api/vote/{candidate_id}")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded linear backoff: ``initial_delay + step * attempt`` seconds."""

    max_attempts: int = 7
    initial_delay: float = 2.0
    step: float = 1.0

    def delays(self) -> list[float]:
        """Return the wait before each retry (one fewer than attempts)."""
        return [self.initial_delay + self.step * i for i in range(max(0, self.max_attempts - 1))]


def probe_session(
    client: BallotClient,
    policy: RetryPolicy | None = None,
    cancel: threading.Event | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> dict[str, Any] | None:
    """Poll the session probe until it reports a user or attempts run out.

    Right after an OAuth redirect the session cookie may not be usable yet,
    so 401s and timeouts are retried. Setting ``cancel`` stops the loop
    before the next attempt. Returns None when no session materialized.
    """
    policy = policy or RetryPolicy()
    delays = policy.delays()
    for attempt in range(policy.max_attempts):
        if cancel is not None and cancel.is_set():
            return None
        try:
            return client.session_user()
        except ApiError as exc:
            if exc.status_code != 401:
                raise
            logger.debug("Session not ready (attempt %s/%s)", attempt + 1, policy.max_attempts)
        except httpx.TimeoutException:
            logger.debug("Session probe timed out (attempt %s)", attempt + 1)

        if attempt < len(delays):
            if cancel is not None:
                if cancel.wait(delays[attempt]):
                    return None
            else:
                sleep(delays[attempt])
    return None
