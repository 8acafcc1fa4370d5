"""HTTP client abstraction for remote release APIs.

This module provides:
- HttpClient: Protocol for HTTP operations (injectable for tests)
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Mock implementation for testing
"""

from __future__ import annotations

import json
import mimetypes
import ssl
import urllib.error
import urllib.request
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from relkit.core.result import Err, Ok, Result
from relkit.core.structured import as_str_dict

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
    "MockHttpClient",
    "RealHttpClient",
    "RecordedRequest",
]


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors and timeouts)
        message: Human-readable error message (API message when available)
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """A successful response with its decoded JSON body (None when empty)."""

    status: int
    body: object = None
    headers: Mapping[str, str] = field(default_factory=dict)

    def json_object(self) -> dict[str, object]:
        return as_str_dict(self.body) or {}


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP operations.

    This abstraction allows injecting mock clients for testing,
    avoiding real network calls in unit tests.
    """

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: object = None,
    ) -> Result[HttpResponse, HttpError]:
        """Send a request with an optional JSON body.

        Returns:
            Ok with the response, or Err with HttpError for any non-2xx
            status or transport failure.
        """
        ...

    def upload(
        self,
        url: str,
        path: Path,
        *,
        headers: Mapping[str, str] | None = None,
        multipart_field: str | None = None,
    ) -> Result[HttpResponse, HttpError]:
        """Upload a file, as the raw body or as a multipart form field."""
        ...


def _error_message(raw: bytes, fallback: str) -> str:
    # GitHub and GitLab report {"message": ...}; GitLab sometimes {"error": ...}.
    try:
        data = as_str_dict(json.loads(raw.decode("utf-8")))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return fallback
    if data is None:
        return fallback
    for key in ("message", "error"):
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
    return fallback


def _decode_body(raw: bytes) -> object:
    if not raw.strip():
        return None
    try:
        return json.loads(raw.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return raw.decode("utf-8", errors="replace")


def _content_type(path: Path) -> str:
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or "application/octet-stream"


def _multipart(field_name: str, path: Path) -> tuple[bytes, str]:
    boundary = "relkit-" + path.name.encode("utf-8").hex()[:24]
    head = (
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="{field_name}"; filename="{path.name}"\r\n'
        f"Content-Type: {_content_type(path)}\r\n\r\n"
    ).encode()
    tail = f"\r\n--{boundary}--\r\n".encode()
    return head + path.read_bytes() + tail, f"multipart/form-data; boundary={boundary}"


class RealHttpClient:
    """Real HTTP client using urllib.

    Handles:
    - HTTPS with system certificates
    - JSON request and response bodies
    - Raw and multipart file uploads
    - Timeout handling
    """

    def __init__(self, timeout: float = 30.0, user_agent: str = "relkit") -> None:
        """Initialize HTTP client.

        Args:
            timeout: Request timeout in seconds
            user_agent: User-Agent header value
        """
        self.timeout = timeout
        self.user_agent = user_agent
        # Use system certificates
        self._ssl_context = ssl.create_default_context()

    def _send(
        self,
        method: str,
        url: str,
        data: bytes | None,
        headers: Mapping[str, str],
    ) -> Result[HttpResponse, HttpError]:
        all_headers = {"User-Agent": self.user_agent, **headers}
        try:
            req = urllib.request.Request(url, data=data, headers=all_headers, method=method)
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                raw = response.read()
                return Ok(
                    HttpResponse(
                        status=response.status,
                        body=_decode_body(raw),
                        headers=dict(response.headers.items()),
                    )
                )
        except urllib.error.HTTPError as e:
            message = _error_message(e.read(), str(e.reason))
            return Err(HttpError(url=url, status=e.code, message=message))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: object = None,
    ) -> Result[HttpResponse, HttpError]:
        all_headers = {"Accept": "application/json", **(headers or {})}
        data: bytes | None = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            all_headers["Content-Type"] = "application/json"
        return self._send(method, url, data, all_headers)

    def upload(
        self,
        url: str,
        path: Path,
        *,
        headers: Mapping[str, str] | None = None,
        multipart_field: str | None = None,
    ) -> Result[HttpResponse, HttpError]:
        try:
            if multipart_field is None:
                data = path.read_bytes()
                content_type = _content_type(path)
            else:
                data, content_type = _multipart(multipart_field, path)
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=f"Cannot read {path}: {e}"))

        all_headers = {
            "Content-Type": content_type,
            "Content-Length": str(len(data)),
            **(headers or {}),
        }
        return self._send("POST", url, data, all_headers)


@dataclass(frozen=True, slots=True)
class RecordedRequest:
    method: str
    url: str
    headers: Mapping[str, str]
    body: object = None
    path: Path | None = None


class MockHttpClient:
    """Mock HTTP client for testing.

    Responses are queued per (method, url); a queue's last response is
    reused once it is the only one left, so a single `set_json` answers
    every call.

    Usage:
        client = MockHttpClient()
        client.set_json("POST", "https://api.example.com/data", {"key": "value"})
        result = client.request_json("POST", "https://api.example.com/data")
        assert result.unwrap().body == {"key": "value"}
    """

    def __init__(self) -> None:
        self._responses: dict[tuple[str, str], deque[HttpResponse | HttpError]] = {}
        self.requests: list[RecordedRequest] = []

    def set_json(
        self,
        method: str,
        url: str,
        body: object,
        *,
        status: int = 200,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Queue a successful response for (method, url)."""
        self._queue(method, url, HttpResponse(status=status, body=body, headers=dict(headers or {})))

    def set_error(self, method: str, url: str, status: int, message: str = "mock error") -> None:
        """Queue an error response for (method, url)."""
        self._queue(method, url, HttpError(url=url, status=status, message=message))

    def calls(self, method: str | None = None) -> list[RecordedRequest]:
        return [r for r in self.requests if method is None or r.method == method]

    def _queue(self, method: str, url: str, response: HttpResponse | HttpError) -> None:
        self._responses.setdefault((method.upper(), url), deque()).append(response)

    def _next(self, method: str, url: str) -> Result[HttpResponse, HttpError]:
        queue = self._responses.get((method.upper(), url))
        if not queue:
            return Err(HttpError(url=url, status=404, message="Not Found (mock)"))
        response = queue.popleft() if len(queue) > 1 else queue[0]
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: object = None,
    ) -> Result[HttpResponse, HttpError]:
        self.requests.append(RecordedRequest(method.upper(), url, dict(headers or {}), body))
        return self._next(method, url)

    def upload(
        self,
        url: str,
        path: Path,
        *,
        headers: Mapping[str, str] | None = None,
        multipart_field: str | None = None,
    ) -> Result[HttpResponse, HttpError]:
        self.requests.append(RecordedRequest("POST", url, dict(headers or {}), path=path))
        return self._next("POST", url)
