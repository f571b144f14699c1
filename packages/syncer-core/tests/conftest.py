"""
Shared fixtures for syncer-core tests.

FakeApiServer is an httpx transport that keeps objects in memory and
enforces the API server rules the resource locks depend on:
- GET of a missing object answers 404 NotFound
- POST of an existing object answers 409 AlreadyExists
- PUT with a stale metadata.resourceVersion answers 409 Conflict
"""

import copy
import json
import time
from datetime import timedelta
from typing import Any

import httpx
import pytest
import yaml

from syncer_core.client import KubeClient, build_http_client
from syncer_core.endpoint import ResolvedEndpoint
from syncer_core.kubeconfig import RestConfig


class FakeApiServer(httpx.AsyncBaseTransport):
    """In-memory API server honoring optimistic concurrency."""

    def __init__(self):
        self.objects: dict[str, dict[str, Any]] = {}
        self.requests: list[tuple[str, str, float]] = []
        self.last_request: httpx.Request | None = None
        self.fail_with: int | None = None
        self._version = 0

    def put_object(self, path: str, obj: dict[str, Any]) -> dict[str, Any]:
        """Store an object at a path, bumping its resourceVersion."""
        self._version += 1
        stored = copy.deepcopy(obj)
        stored.setdefault("metadata", {})["resourceVersion"] = str(self._version)
        self.objects[path] = stored
        return stored

    def gets(self, path: str) -> list[float]:
        """Timestamps of every GET of a path."""
        return [t for method, p, t in self.requests if method == "GET" and p == path]

    def _status(self, request: httpx.Request, code: int, reason: str, message: str) -> httpx.Response:
        body = {"kind": "Status", "status": "Failure", "reason": reason, "message": message, "code": code}
        return httpx.Response(code, json=body, request=request)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path, time.monotonic()))
        self.last_request = request

        if self.fail_with is not None:
            return self._status(request, self.fail_with, "InternalError", "injected failure")

        if request.method == "GET":
            obj = self.objects.get(path)
            if obj is None:
                return self._status(request, 404, "NotFound", f"{path} not found")
            return httpx.Response(200, json=obj, request=request)

        body = json.loads(await request.aread())
        if request.method == "POST":
            key = f"{path}/{body['metadata']['name']}"
            if key in self.objects:
                return self._status(request, 409, "AlreadyExists", f"{key} already exists")
            return httpx.Response(201, json=self.put_object(key, body), request=request)

        if request.method == "PUT":
            current = self.objects.get(path)
            if current is None:
                return self._status(request, 404, "NotFound", f"{path} not found")
            if body["metadata"].get("resourceVersion") != current["metadata"]["resourceVersion"]:
                return self._status(
                    request,
                    409,
                    "Conflict",
                    "the object has been modified; please apply your changes to the latest version",
                )
            return httpx.Response(200, json=self.put_object(path, body), request=request)

        return self._status(request, 405, "MethodNotAllowed", request.method)


@pytest.fixture
def api_server():
    """A fresh in-memory API server."""
    return FakeApiServer()


@pytest.fixture
def endpoint():
    """Resolved endpoint for a meta cluster with a bearer token."""
    return ResolvedEndpoint(
        rest=RestConfig(host="https://meta.example:6443", bearer_token="meta-token"),
        timeout=timedelta(seconds=5),
        qps=1000.0,
        burst=1000,
    )


@pytest.fixture
def make_client(api_server, endpoint):
    """Factory for KubeClients talking to the fake API server."""

    def _make(user_agent: str = "syncer-test") -> KubeClient:
        return KubeClient(http=build_http_client(endpoint, user_agent, transport=api_server))

    return _make


@pytest.fixture
def write_kubeconfig(tmp_path):
    """
    Factory writing a single-context kubeconfig into tmp_path.

    Extra keyword arguments are merged into the context entry (e.g.,
    request_timeout="10s" becomes "request-timeout").
    """

    def _write(
        server: str = "https://super.example:6443",
        name: str = "kubeconfig",
        token: str = "super-token",
        cluster: dict[str, Any] | None = None,
        user: dict[str, Any] | None = None,
        **context_extra: Any,
    ) -> str:
        cluster_body = {"server": server, **(cluster or {})}
        user_body = {"token": token, **(user or {})} if token else dict(user or {})
        context_body = {"cluster": "main", "user": "admin"}
        context_body.update({k.replace("_", "-"): v for k, v in context_extra.items()})
        data = {
            "apiVersion": "v1",
            "kind": "Config",
            "current-context": "main",
            "clusters": [{"name": "main", "cluster": cluster_body}],
            "users": [{"name": "admin", "user": user_body}],
            "contexts": [{"name": "main", "context": context_body}],
        }
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data))
        return str(path)

    return _write
