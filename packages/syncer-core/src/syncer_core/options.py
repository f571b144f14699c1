"""
Resolved syncer configuration bundle.

build_config turns SyncerSettings into everything startup orchestration
needs: resolved topology, API clients for the super, meta and
leader-election endpoints, event recorders, the leader election config
(None when election is disabled) and the frozen feature gates.

Every resolution error is fatal and raised to the caller; nothing is
retried here.

Example:
    ```python
    config = build_config(SyncerSettings())
    try:
        elector = config.new_elector()
        ...
    finally:
        await config.aclose()
    ```
"""

import functools
import logging
from dataclasses import dataclass
from pathlib import Path

import httpx

from syncer_core.client import KubeClient, build_http_client
from syncer_core.constants import NAMESPACE_FILE, RESOURCE_SYNCER_USER_AGENT
from syncer_core.election.bootstrap import leader_election_client, make_leader_election_config
from syncer_core.election.elector import (
    ElectionPolicy,
    LeaderCallbacks,
    LeaderElectionConfig,
    LeaderElector,
)
from syncer_core.endpoint import resolve_endpoint
from syncer_core.events import EventRecorder, EventSink
from syncer_core.features import FeatureGateSet
from syncer_core.identity import IdentityProvider
from syncer_core.kubeconfig import CredentialLoader
from syncer_core.settings import SyncerSettings
from syncer_core.topology import Topology, resolve_topology

logger = logging.getLogger(__name__)


@dataclass
class SyncerConfig:
    """
    Everything resolved at startup.

    Attributes:
        settings: The settings this bundle was built from
        topology: Super/meta/coordination endpoints
        super_client: Client for the super cluster
        meta_client: Client for the meta cluster (same object if shared)
        leader_election_client: Client for the lock, timing out at renew_deadline
        event_sink: Shared sink behind both recorders
        recorder: Recorder for normal operation events
        leader_election_recorder: Recorder for election events
        leader_election: Election config, or None if election is disabled
        feature_gates: Frozen feature gates
        address: Metrics server address
        port: Metrics server port
        cert_file: Metrics server certificate
        key_file: Metrics server key
    """

    settings: SyncerSettings
    topology: Topology
    super_client: KubeClient
    meta_client: KubeClient
    leader_election_client: KubeClient
    event_sink: EventSink
    recorder: EventRecorder
    leader_election_recorder: EventRecorder
    leader_election: LeaderElectionConfig | None
    feature_gates: FeatureGateSet
    address: str = ""
    port: str = "80"
    cert_file: str = ""
    key_file: str = ""

    @property
    def election_policy(self) -> ElectionPolicy | None:
        """Validated election timings, or None if election is disabled."""
        if self.leader_election is None:
            return None
        return self.leader_election.policy

    def new_elector(self) -> LeaderElector | None:
        """Create the elector for this config (None if election is disabled)."""
        if self.leader_election is None:
            return None
        return LeaderElector(self.leader_election)

    async def aclose(self) -> None:
        """Close every distinct HTTP client."""
        seen: set[int] = set()
        for client in (self.super_client, self.meta_client, self.leader_election_client):
            if id(client.http) in seen:
                continue
            seen.add(id(client.http))
            await client.http.aclose()


def build_config(
    settings: SyncerSettings,
    loader: CredentialLoader | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    identity_provider: IdentityProvider | None = None,
    namespace_file: str | Path = NAMESPACE_FILE,
    callbacks: LeaderCallbacks | None = None,
) -> SyncerConfig:
    """
    Resolve settings into a SyncerConfig.

    Args:
        settings: Syncer settings
        loader: Credential loading capability (defaults to KubeconfigLoader)
        transport: HTTP transport for every client (defaults to real HTTP)
        identity_provider: Lock identity source (defaults to hostname + uuid)
        namespace_file: In-cluster namespace file
        callbacks: Leadership hooks for the election config

    Raises:
        SyncerConfigError: Any resolution failure (see syncer_core.exceptions)
    """
    resolver = functools.partial(resolve_endpoint, loader=loader)
    topology = resolve_topology(
        settings.primary_spec(),
        settings.secondary_spec(),
        deploy_on_secondary=settings.deployment_on_meta,
        resolver=resolver,
    )
    feature_gates = settings.feature_gate_set()

    le_settings = settings.leader_election
    policy = le_settings.policy()
    if le_settings.leader_elect:
        policy.validate()

    super_client = KubeClient(
        http=build_http_client(topology.primary, RESOURCE_SYNCER_USER_AGENT, transport=transport)
    )
    if topology.shares_endpoint:
        meta_client = super_client
    else:
        meta_client = KubeClient(
            http=build_http_client(
                topology.secondary, RESOURCE_SYNCER_USER_AGENT, transport=transport
            )
        )
    # Deployment side cluster for leader election, for better stability
    le_client = leader_election_client(topology.coordination, policy, transport=transport)

    event_sink = EventSink()
    recorder = event_sink.recorder(RESOURCE_SYNCER_USER_AGENT)
    le_recorder = event_sink.recorder(RESOURCE_SYNCER_USER_AGENT)

    config = SyncerConfig(
        settings=settings,
        topology=topology,
        super_client=super_client,
        meta_client=meta_client,
        leader_election_client=le_client,
        event_sink=event_sink,
        recorder=recorder,
        leader_election_recorder=le_recorder,
        leader_election=None,
        feature_gates=feature_gates,
        address=settings.address,
        port=settings.port,
        cert_file=settings.cert_file,
        key_file=settings.key_file,
    )

    # Clients have not opened any connection yet, so a failure here leaks nothing
    if le_settings.leader_elect:
        config.leader_election = make_leader_election_config(
            policy,
            settings.syncer_name,
            le_client,
            recorder=le_recorder,
            identity_provider=identity_provider,
            namespace_file=namespace_file,
            callbacks=callbacks,
        )

    logger.info(
        "Resolved syncer topology: super=%s meta=%s leader-election=%s",
        topology.primary.host,
        topology.secondary.host,
        topology.coordination.host,
    )
    return config
