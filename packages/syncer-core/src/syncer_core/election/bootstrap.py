"""
Leader election bootstrap.

Assembles a resource lock and an ElectionPolicy into a ready-to-run
LeaderElectionConfig:

1. Validate the policy timings
2. Resolve identity (hostname + uuid) and namespace (explicit or in-cluster)
3. Name the lock "<syncer name>-syncer-leaderelection-lock"
4. Build the lock for the configured backend kind
5. Attach a liveness watchdog

The lock client must time out each request within renew_deadline, so a
stalled renewal fails before leadership is due to expire. Use
leader_election_client to build it from the coordination endpoint.
"""

from pathlib import Path

import httpx

from syncer_core.client import KubeClient, build_http_client
from syncer_core.constants import (
    LEADER_ELECTION_USER_AGENT,
    LOCK_NAME_SUFFIX,
    NAMESPACE_FILE,
    RESOURCE_SYNCER_USER_AGENT,
)
from syncer_core.election.elector import ElectionPolicy, LeaderCallbacks, LeaderElectionConfig
from syncer_core.election.lock import new_resource_lock
from syncer_core.election.watchdog import HealthzAdaptor
from syncer_core.endpoint import ResolvedEndpoint
from syncer_core.events import EventRecorderProtocol
from syncer_core.identity import HostnameIdentityProvider, IdentityProvider, discover_namespace


def lock_object_name(syncer_name: str) -> str:
    """Lock object name for a syncer instance name."""
    return f"{syncer_name}-{LOCK_NAME_SUFFIX}"


def leader_election_client(
    endpoint: ResolvedEndpoint,
    policy: ElectionPolicy,
    transport: httpx.AsyncBaseTransport | None = None,
) -> KubeClient:
    """Lock client for the coordination endpoint, timing out at renew_deadline."""
    http = build_http_client(
        endpoint.with_timeout(policy.renew_deadline),
        user_agent=LEADER_ELECTION_USER_AGENT,
        transport=transport,
    )
    return KubeClient(http=http)


def make_leader_election_config(
    policy: ElectionPolicy,
    syncer_name: str,
    client: KubeClient,
    recorder: EventRecorderProtocol | None = None,
    identity_provider: IdentityProvider | None = None,
    namespace_file: str | Path = NAMESPACE_FILE,
    callbacks: LeaderCallbacks | None = None,
) -> LeaderElectionConfig:
    """
    Build a leader election configuration with a fresh resource lock.

    Args:
        policy: Timings, backend kind and optional explicit namespace
        syncer_name: Syncer instance name (lock name prefix)
        client: Lock client (see leader_election_client)
        recorder: Sink for "became leader" / "stopped leading" events
        identity_provider: Identity source (defaults to hostname + uuid)
        namespace_file: Where to discover the namespace in-cluster
        callbacks: Leadership hooks

    Raises:
        InvalidElectionPolicy: Timings cannot guarantee a single leader
        HostnameUnavailable: Host name cannot be determined
        NamespaceUndiscoverable: No namespace configured and not in-cluster
        LockConstructionError: Unsupported backend kind
    """
    policy.validate()

    if identity_provider is None:
        identity_provider = HostnameIdentityProvider()
    identity = identity_provider.identity()

    namespace = policy.lock_namespace or discover_namespace(namespace_file)

    lock = new_resource_lock(
        policy.resource_lock,
        namespace,
        lock_object_name(syncer_name),
        client=client,
        identity=str(identity),
        recorder=recorder,
    )

    return LeaderElectionConfig(
        lock=lock,
        policy=policy,
        name=RESOURCE_SYNCER_USER_AGENT,
        watchdog=HealthzAdaptor(policy.watchdog_threshold),
        callbacks=callbacks or LeaderCallbacks(),
    )
