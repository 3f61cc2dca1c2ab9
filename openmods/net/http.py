"""JSON-over-HTTPS for LNURL-pay lookups.

LNURL servers answer every step (the pay-request document and the callback)
with a JSON object, so the injectable surface is a single ``get_json``.
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from openmods import __version__
from openmods.core.result import Err, Ok, Result
from openmods.core.structured import StrDict, as_str_dict

__all__ = [
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
]

# Pay-request documents are tiny; anything larger is not an LNURL endpoint.
MAX_BODY_BYTES = 1 << 20


@dataclass(frozen=True, slots=True)
class HttpError:
    url: str
    status: int  # 0 when no HTTP response was received
    message: str

    def __str__(self) -> str:
        prefix = f"HTTP {self.status}: " if self.status else ""
        return f"{prefix}{self.message} ({self.url})"


@runtime_checkable
class HttpClient(Protocol):
    def get_json(self, url: str) -> Result[StrDict, HttpError]: ...


def _decode_object(url: str, body: bytes) -> Result[StrDict, HttpError]:
    try:
        parsed: object = json.loads(body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return Err(HttpError(url, 0, f"response is not JSON: {e}"))
    data = as_str_dict(parsed)
    if data is None:
        return Err(HttpError(url, 0, "response is not a JSON object"))
    return Ok(data)


def _error_reason(e: urllib.error.HTTPError) -> str:
    """LNURL servers put the failure in ``{"status": "ERROR", "reason": ...}``."""
    try:
        data = as_str_dict(json.loads(e.read(MAX_BODY_BYTES).decode("utf-8")))
    except (OSError, ValueError):
        data = None
    reason = data.get("reason") if data is not None else None
    return reason if isinstance(reason, str) and reason else str(e.reason)


class RealHttpClient:
    """urllib client verifying TLS against the system trust store."""

    def __init__(self, timeout: float = 10.0) -> None:
        self.timeout = timeout
        self._headers = {"User-Agent": f"openmods/{__version__}", "Accept": "application/json"}
        self._ssl_context = ssl.create_default_context()

    def get_json(self, url: str) -> Result[StrDict, HttpError]:
        try:
            request = urllib.request.Request(url, headers=self._headers)
            with urllib.request.urlopen(request, timeout=self.timeout, context=self._ssl_context) as response:
                body: bytes = response.read(MAX_BODY_BYTES + 1)
        except urllib.error.HTTPError as e:
            return Err(HttpError(url, e.code, _error_reason(e)))
        except urllib.error.URLError as e:
            return Err(HttpError(url, 0, str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url, 0, "request timed out"))
        except (ValueError, OSError) as e:
            # ValueError: unsupported or malformed URL
            return Err(HttpError(url, 0, str(e)))

        if len(body) > MAX_BODY_BYTES:
            return Err(HttpError(url, 0, "response too large"))
        return _decode_object(url, body)


@dataclass
class MockHttpClient:
    """Canned responses keyed by exact URL; anything else is a 404.

    Usage:
        http = MockHttpClient()
        http.set_json("https://pay.example/.well-known/lnurlp/lumen", {"callback": "..."})
    """

    responses: dict[str, StrDict | HttpError] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    def set_json(self, url: str, response: StrDict | HttpError) -> None:
        self.responses[url] = response

    def get_json(self, url: str) -> Result[StrDict, HttpError]:
        self.calls.append(url)
        match self.responses.get(url):
            case None:
                return Err(HttpError(url, 404, "Not found (mock)"))
            case HttpError() as error:
                return Err(error)
            case data:
                return Ok(data)
