"""
API server client built from a ResolvedEndpoint.

This module provides:
- TokenBucket: client-side QPS/burst limiter
- RateLimitedTransport: httpx transport applying the limiter to every request
- ssl_context: server verification and client certificate settings
- build_http_client: httpx.AsyncClient with auth, TLS, timeout and user agent
- KubeClient: minimal namespaced get/create/update over the core and
  coordination APIs, used by the resource locks and the event sink

KubeClient receives an injected httpx.AsyncClient, the same way the PD and
Prometheus clients do, so tests can swap the transport.

Example:
    ```python
    http = build_http_client(endpoint, user_agent=RESOURCE_SYNCER_USER_AGENT)
    client = KubeClient(http=http)
    lease = await client.get("leases", "vc-manager", "vc-syncer-leaderelection-lock")
    ```
"""

import asyncio
import os
import ssl
import tempfile
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import httpx

from syncer_core.endpoint import ResolvedEndpoint
from syncer_core.exceptions import ApiError

# API group prefix per resource
RESOURCE_PREFIXES = {
    "configmaps": "/api/v1",
    "endpoints": "/api/v1",
    "events": "/api/v1",
    "leases": "/apis/coordination.k8s.io/v1",
}


class TokenBucket:
    """
    Async token bucket allowing `burst` requests at once and `qps` sustained.

    Attributes:
        qps: Refill rate in tokens per second
        burst: Bucket capacity
    """

    def __init__(self, qps: float, burst: int) -> None:
        self.qps = qps
        self.burst = max(burst, 1)
        self._tokens = float(self.burst)
        self._last = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        self._tokens = min(self.burst, self._tokens + (now - self._last) * self.qps)
        self._last = now

    async def acquire(self) -> None:
        """Wait until a token is available, then take it."""
        async with self._lock:
            self._refill()
            if self._tokens < 1:
                await asyncio.sleep((1 - self._tokens) / self.qps)
                self._refill()
            self._tokens -= 1


class RateLimitedTransport(httpx.AsyncBaseTransport):
    """Wraps another transport and takes a token before each request."""

    def __init__(self, inner: httpx.AsyncBaseTransport, bucket: TokenBucket) -> None:
        self._inner = inner
        self._bucket = bucket

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await self._bucket.acquire()
        return await self._inner.handle_async_request(request)

    async def aclose(self) -> None:
        await self._inner.aclose()


def _materialize(data: bytes, suffix: str) -> str:
    """Write PEM bytes to a private temp file (ssl only loads chains from files)."""
    fd, name = tempfile.mkstemp(prefix="syncer-", suffix=suffix)
    with open(fd, "wb") as f:
        f.write(data)
    return name


def ssl_context(endpoint: ResolvedEndpoint) -> ssl.SSLContext | bool:
    """
    TLS settings for an endpoint: False when insecure, else a verifying context.

    Inline client certificate and key data are written to temp files only
    for the duration of load_cert_chain.
    """
    rest = endpoint.rest
    if rest.insecure:
        return False

    ctx = ssl.create_default_context(
        cafile=rest.ca_file,
        cadata=rest.ca_data.decode() if rest.ca_data else None,
    )

    temp_files: list[str] = []
    try:
        cert = rest.cert_file
        if not cert and rest.cert_data:
            cert = _materialize(rest.cert_data, ".crt")
            temp_files.append(cert)
        key = rest.key_file
        if not key and rest.key_data:
            key = _materialize(rest.key_data, ".key")
            temp_files.append(key)
        if cert:
            ctx.load_cert_chain(cert, key)
    finally:
        for name in temp_files:
            os.unlink(name)
    return ctx


def build_http_client(
    endpoint: ResolvedEndpoint,
    user_agent: str,
    timeout: timedelta | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Create an httpx.AsyncClient for one endpoint.

    Args:
        endpoint: Resolved endpoint (host, credentials, limits)
        user_agent: User-Agent header value
        timeout: Request timeout; defaults to the endpoint's timeout
        transport: Underlying transport; defaults to a real HTTP transport.
            Always wrapped with the endpoint's QPS/burst limiter.

    Returns:
        A configured client; callers own it and must close it.
    """
    rest = endpoint.rest
    headers = {"User-Agent": user_agent, "Accept": endpoint.content_type}
    if rest.bearer_token:
        headers["Authorization"] = f"Bearer {rest.bearer_token}"

    if transport is None:
        transport = httpx.AsyncHTTPTransport(verify=ssl_context(endpoint))

    effective = timeout if timeout is not None else endpoint.timeout
    return httpx.AsyncClient(
        base_url=rest.host,
        headers=headers,
        auth=(rest.username, rest.password) if rest.username else None,
        timeout=effective.total_seconds(),
        transport=RateLimitedTransport(transport, TokenBucket(endpoint.qps, endpoint.burst)),
    )


@dataclass
class KubeClient:
    """
    Minimal namespaced object client.

    Attributes:
        http: Pre-configured httpx.AsyncClient (see build_http_client)
    """

    http: httpx.AsyncClient

    @staticmethod
    def path(resource: str, namespace: str, name: str | None = None) -> str:
        prefix = RESOURCE_PREFIXES[resource]
        base = f"{prefix}/namespaces/{namespace}/{resource}"
        return f"{base}/{name}" if name else base

    async def get(self, resource: str, namespace: str, name: str) -> dict[str, Any]:
        """
        Fetch one object.

        Raises:
            ApiError: On non-2xx responses (is_not_found for 404)
            httpx.HTTPError: On transport failures and timeouts
        """
        response = await self.http.get(self.path(resource, namespace, name))
        return self._check(response)

    async def create(self, resource: str, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        """Create an object; raises ApiError with 409 if it already exists."""
        response = await self.http.post(self.path(resource, namespace), json=body)
        return self._check(response)

    async def update(self, resource: str, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        """
        Replace an object.

        The body's metadata.resourceVersion must match the stored object;
        otherwise the server answers 409 and ApiError.is_conflict is True.
        """
        name = body["metadata"]["name"]
        response = await self.http.put(self.path(resource, namespace, name), json=body)
        return self._check(response)

    @staticmethod
    def _check(response: httpx.Response) -> dict[str, Any]:
        if response.is_success:
            return response.json()

        reason = message = ""
        try:
            status = response.json()
            reason = status.get("reason", "")
            message = status.get("message", "")
        except ValueError:
            message = response.text
        raise ApiError(response.status_code, reason, message)
