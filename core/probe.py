"""Bounded-timeout HTTP requests against device endpoints.

`fetch_json` raises typed errors; `probe` folds them into a `ProbeResult`
for callers that only care about success or failure. Neither retries.

The timeout is a deadline for the whole request: the body is streamed and
abandoned once the deadline passes, so a device that trickles its response
cannot hold a poll or a scan batch open.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any

import requests

from core.errors import MalformedPayload, ProbeTimeout, ProbeTransportError

logger = logging.getLogger(__name__)

# Small reads so the deadline is checked as bytes arrive
READ_CHUNK_SIZE = 1


@dataclass
class ProbeResult:
    """Outcome of a single probe."""
    ok: bool
    payload: Any = None
    reason: str | None = None
    timed_out: bool = False


def build_url(address: str, path: str) -> str:
    """Build a device URL from a cleaned address and an absolute path."""
    return f"http://{address}{path}"


def _read_body(response: requests.Response, url: str, deadline: float, timeout: float) -> bytes:
    chunks = []
    for chunk in response.iter_content(chunk_size=READ_CHUNK_SIZE):
        chunks.append(chunk)
        if time.monotonic() > deadline:
            raise ProbeTimeout(f"{url} timed out after {timeout}s")
    return b''.join(chunks)


def fetch_json(address: str, path: str, timeout: float, method: str = 'GET',
               body: dict | None = None) -> Any:
    """Request a device endpoint and decode its JSON body.

    Args:
        timeout: Deadline in seconds for connecting, headers and body together

    Raises:
        ProbeTimeout: deadline passed before the full body arrived
        ProbeTransportError: connection error or non-2xx status
        MalformedPayload: body is not valid JSON
    """
    url = build_url(address, path)
    deadline = time.monotonic() + timeout
    try:
        response = requests.request(method, url, json=body, timeout=timeout, stream=True)
        try:
            response.raise_for_status()
            content = _read_body(response, url, deadline, timeout)
        finally:
            response.close()
    except requests.exceptions.Timeout as e:
        raise ProbeTimeout(f"{url} timed out after {timeout}s") from e
    except requests.exceptions.RequestException as e:
        raise ProbeTransportError(f"{url}: {e}") from e

    try:
        return json.loads(content)
    except ValueError as e:
        raise MalformedPayload(f"{url} returned invalid JSON") from e


def probe(address: str, path: str, timeout: float, method: str = 'GET',
          body: dict | None = None) -> ProbeResult:
    """Request a device endpoint, returning success or failure instead of raising."""
    try:
        payload = fetch_json(address, path, timeout, method=method, body=body)
    except ProbeTimeout as e:
        logger.debug("Probe timeout: %s", e)
        return ProbeResult(ok=False, reason=str(e), timed_out=True)
    except (ProbeTransportError, MalformedPayload) as e:
        logger.debug("Probe failed: %s", e)
        return ProbeResult(ok=False, reason=str(e))
    return ProbeResult(ok=True, payload=payload)
