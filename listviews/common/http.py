"""HTTP client for the dashboard proxy endpoints, with retries and timeouts."""

from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType
from typing import Any, Mapping

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from listviews.common.constants import USER_AGENT
from listviews.common.errors import FetchError
from listviews.common.formatting import decode_strings

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}
UNAUTHORIZED_STATUS_CODES = {401, 403}


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 10.0
    read: float = 60.0


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    multiplier: float = 0.5
    max_wait: float = 8.0


class HttpRequestError(FetchError):
    error_code = "HTTP_ERROR"


class RetryableHttpError(HttpRequestError):
    pass


class UnauthorizedError(HttpRequestError):
    error_code = "UNAUTHORIZED"


def error_message(err: Any) -> str:
    if not err:
        return "Unknown error"
    if isinstance(err, str):
        return err
    if isinstance(err, Mapping) and err.get("message"):
        return str(err["message"])
    return str(err)


class HttpClient:
    def __init__(
        self,
        *,
        base_url: str,
        token: str | None = None,
        api_key: str | None = None,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.api_key = api_key
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.session = requests.Session()

    @classmethod
    def from_config(cls, api_config: Mapping[str, Any], *, token: str, api_key: str | None) -> "HttpClient":
        timeout_cfg = api_config.get("timeout") or {}
        retry_cfg = api_config.get("retry") or {}
        return cls(
            base_url=api_config["base_url"],
            token=token,
            api_key=api_key,
            timeout=TimeoutConfig(
                connect=float(timeout_cfg.get("connect", 10.0)),
                read=float(timeout_cfg.get("read", 60.0)),
            ),
            retry=RetryConfig(
                max_attempts=int(retry_cfg.get("max_attempts", 3)),
                multiplier=float(retry_cfg.get("multiplier", 0.5)),
                max_wait=float(retry_cfg.get("max_wait", 8.0)),
            ),
        )

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self, headers: dict[str, str] | None) -> dict[str, str]:
        out = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        if self.token:
            out["Authorization"] = f"Bearer {self.token}"
        if self.api_key:
            out["apikey"] = self.api_key
        if headers:
            out.update(headers)
        return out

    def _raise_for_status_or_retry(self, response: requests.Response, url: str) -> None:
        status = response.status_code
        if status < 400:
            return
        try:
            detail = error_message(response.json().get("error"))
        except (ValueError, AttributeError):
            detail = f"HTTP status: {status}"
        if status in UNAUTHORIZED_STATUS_CODES:
            raise UnauthorizedError(f"Unauthorized ({status}) for {url}: {detail}")
        if status in RETRYABLE_STATUS_CODES:
            raise RetryableHttpError(f"Retryable HTTP status {status} for {url}: {detail}")
        raise HttpRequestError(f"HTTP status {status} for {url}: {detail}")

    def _request_json(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        body: Any = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> dict[str, Any]:
        req_timeout = timeout or self.timeout
        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=body,
                headers=self._headers(headers),
                timeout=(req_timeout.connect, req_timeout.read),
            )
        except requests.RequestException as exc:
            raise RetryableHttpError(f"Request to {url} failed: {exc}") from exc
        self._raise_for_status_or_retry(response, url)

        try:
            payload = response.json()
        except ValueError as exc:
            raise HttpRequestError(f"Invalid JSON payload from {url}") from exc

        if not isinstance(payload, dict):
            raise HttpRequestError(f"Unexpected payload shape from {url}")
        if payload.get("success") is False:
            raise HttpRequestError(error_message(payload.get("error") or payload.get("message")))
        return decode_strings(payload)

    def request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: Any = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> dict[str, Any]:
        url = self._url(path)

        @retry(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.retry.multiplier,
                max=self.retry.max_wait,
                jitter=1.0,
            ),
            retry=retry_if_exception_type(RetryableHttpError),
            reraise=True,
        )
        def _wrapped() -> dict[str, Any]:
            return self._request_json(
                method,
                url,
                params=params,
                body=body,
                headers=headers,
                timeout=timeout,
            )

        return _wrapped()

    def get_json(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> dict[str, Any]:
        return self.request_json("GET", path, params=params, headers=headers, timeout=timeout)

    def post_json(
        self,
        path: str,
        *,
        body: Any,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> dict[str, Any]:
        merged = {"Content-Type": "application/json"}
        if headers:
            merged.update(headers)
        return self.request_json("POST", path, params=params, body=body, headers=merged, timeout=timeout)
