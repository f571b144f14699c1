"""
Resource locks backing leader election.

A resource lock stores a LeaderElectionRecord inside an API object and
relies on the API server's optimistic concurrency (resourceVersion) for
mutual exclusion: an update built from a stale read fails with 409, so at
most one participant can win any given round.

Backends:
- configmaps: record as JSON in a ConfigMap annotation
- endpoints: record as JSON in an Endpoints annotation
- leases: record in the spec of a coordination.k8s.io/v1 Lease

Example:
    ```python
    lock = new_resource_lock(
        "leases", "vc-manager", "vc-syncer-leaderelection-lock",
        client=KubeClient(http=http), identity="node-a_1234",
    )
    record = await lock.get()
    ```
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from syncer_core.client import KubeClient
from syncer_core.events import EventRecorderProtocol
from syncer_core.exceptions import LockConstructionError

LEADER_ANNOTATION = "control-plane.alpha.kubernetes.io/leader"


class LockBackendKind(str, Enum):
    """Supported resource lock backends."""

    CONFIGMAPS = "configmaps"
    LEASES = "leases"
    ENDPOINTS = "endpoints"


class LeaderElectionRecord(BaseModel):
    """
    The leader election state stored in the lock object.

    Serialized with the camelCase field names used by every Kubernetes
    client, so syncers written in other languages can share the lock.
    """

    model_config = ConfigDict(populate_by_name=True)

    holder_identity: str = Field(default="", alias="holderIdentity")
    lease_duration_seconds: int = Field(default=0, alias="leaseDurationSeconds")
    acquire_time: datetime | None = Field(default=None, alias="acquireTime")
    renew_time: datetime | None = Field(default=None, alias="renewTime")
    leader_transitions: int = Field(default=0, alias="leaderTransitions")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class LockNotInitialized(Exception):
    """Raised when update() is called before get() or create() succeeded."""


@dataclass(frozen=True)
class LockDescriptor:
    """
    Everything needed to identify a lock and its holder.

    Attributes:
        backend_kind: Which kind of object stores the record
        namespace: Namespace of the lock object
        name: Name of the lock object
        holder_identity: Identity written into the record when holding
    """

    backend_kind: LockBackendKind
    namespace: str
    name: str
    holder_identity: str

    def describe(self) -> str:
        return f"{self.namespace}/{self.name}"


class ResourceLock(ABC):
    """
    Base class for API-object backed locks.

    Subclasses define where the record lives inside their object. The last
    object read or written is cached so updates carry its resourceVersion.
    """

    resource: str = ""
    kind: str = ""
    api_version: str = "v1"

    def __init__(
        self,
        descriptor: LockDescriptor,
        client: KubeClient,
        recorder: EventRecorderProtocol | None = None,
    ) -> None:
        self.descriptor = descriptor
        self.client = client
        self.recorder = recorder
        self._object: dict[str, Any] | None = None

    @property
    def identity(self) -> str:
        return self.descriptor.holder_identity

    def describe(self) -> str:
        return self.descriptor.describe()

    async def get(self) -> LeaderElectionRecord:
        """
        Read the current record.

        Raises:
            ApiError: is_not_found if the lock object does not exist yet
        """
        obj = await self.client.get(self.resource, self.descriptor.namespace, self.descriptor.name)
        self._object = obj
        return self._extract(obj)

    async def create(self, record: LeaderElectionRecord) -> None:
        """Create the lock object holding the record."""
        body = {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": {"name": self.descriptor.name, "namespace": self.descriptor.namespace},
        }
        self._embed(body, record)
        self._object = await self.client.create(self.resource, self.descriptor.namespace, body)

    async def update(self, record: LeaderElectionRecord) -> None:
        """
        Replace the record, guarded by the cached resourceVersion.

        Raises:
            LockNotInitialized: If nothing was read or created yet
            ApiError: is_conflict if another participant wrote first
        """
        if self._object is None:
            raise LockNotInitialized(
                f"{self.kind} {self.describe()} not initialized, call get or create first"
            )
        body = dict(self._object)
        body["metadata"] = dict(body.get("metadata") or {})
        self._embed(body, record)
        self._object = await self.client.update(self.resource, self.descriptor.namespace, body)

    def record_event(self, message: str) -> None:
        """Emit "<identity> <message>" as a LeaderElection event."""
        if self.recorder is None:
            return
        self.recorder.event("LeaderElection", f"{self.identity} {message}")

    @abstractmethod
    def _extract(self, obj: dict[str, Any]) -> LeaderElectionRecord:
        ...

    @abstractmethod
    def _embed(self, body: dict[str, Any], record: LeaderElectionRecord) -> None:
        ...


class _AnnotationLock(ResourceLock):
    """Stores the record as JSON in the leader annotation."""

    def _extract(self, obj: dict[str, Any]) -> LeaderElectionRecord:
        annotations = (obj.get("metadata") or {}).get("annotations") or {}
        raw = annotations.get(LEADER_ANNOTATION)
        if not raw:
            return LeaderElectionRecord()
        try:
            return LeaderElectionRecord.model_validate_json(raw)
        except ValidationError:
            # Unreadable record: treat as unheld so it can be replaced
            return LeaderElectionRecord()

    def _embed(self, body: dict[str, Any], record: LeaderElectionRecord) -> None:
        annotations = dict(body["metadata"].get("annotations") or {})
        annotations[LEADER_ANNOTATION] = record.to_json()
        body["metadata"]["annotations"] = annotations


class ConfigMapLock(_AnnotationLock):
    resource = "configmaps"
    kind = "ConfigMap"


class EndpointsLock(_AnnotationLock):
    resource = "endpoints"
    kind = "Endpoints"


class LeaseLock(ResourceLock):
    """Stores the record in a Lease spec."""

    resource = "leases"
    kind = "Lease"
    api_version = "coordination.k8s.io/v1"

    def _extract(self, obj: dict[str, Any]) -> LeaderElectionRecord:
        spec = obj.get("spec") or {}
        return LeaderElectionRecord(
            holder_identity=spec.get("holderIdentity") or "",
            lease_duration_seconds=spec.get("leaseDurationSeconds") or 0,
            acquire_time=spec.get("acquireTime"),
            renew_time=spec.get("renewTime"),
            leader_transitions=spec.get("leaseTransitions") or 0,
        )

    def _embed(self, body: dict[str, Any], record: LeaderElectionRecord) -> None:
        data = record.model_dump(mode="json", by_alias=True)
        body["spec"] = {
            "holderIdentity": data["holderIdentity"],
            "leaseDurationSeconds": data["leaseDurationSeconds"],
            "acquireTime": data["acquireTime"],
            "renewTime": data["renewTime"],
            "leaseTransitions": data["leaderTransitions"],
        }


_BACKENDS: dict[LockBackendKind, type[ResourceLock]] = {
    LockBackendKind.CONFIGMAPS: ConfigMapLock,
    LockBackendKind.ENDPOINTS: EndpointsLock,
    LockBackendKind.LEASES: LeaseLock,
}


def new_resource_lock(
    backend_kind: str | LockBackendKind,
    namespace: str,
    name: str,
    client: KubeClient,
    identity: str,
    recorder: EventRecorderProtocol | None = None,
) -> ResourceLock:
    """
    Build a resource lock for a backend kind.

    Raises:
        LockConstructionError: On an unknown backend kind or an incomplete
            descriptor (empty namespace, name or identity)
    """
    try:
        kind = LockBackendKind(backend_kind)
    except ValueError:
        raise LockConstructionError(
            str(backend_kind),
            f"invalid lock-type {backend_kind!r}, supported options are "
            + ", ".join(k.value for k in LockBackendKind),
        ) from None

    for field_name, value in (("namespace", namespace), ("name", name), ("identity", identity)):
        if not value:
            raise LockConstructionError(kind.value, f"lock {field_name} must not be empty")

    descriptor = LockDescriptor(
        backend_kind=kind,
        namespace=namespace,
        name=name,
        holder_identity=identity,
    )
    return _BACKENDS[kind](descriptor, client, recorder)
