"""Tests for leader election bootstrap."""

from datetime import timedelta

import pytest

from syncer_core.constants import LEADER_ELECTION_USER_AGENT
from syncer_core.election.bootstrap import (
    leader_election_client,
    lock_object_name,
    make_leader_election_config,
)
from syncer_core.election.elector import ElectionPolicy, LeaderCallbacks, LeaderElector
from syncer_core.election.lock import LeaseLock
from syncer_core.election.watchdog import HealthzAdaptor
from syncer_core.exceptions import (
    InvalidElectionPolicy,
    LockConstructionError,
    NamespaceUndiscoverable,
)
from syncer_core.identity import StaticIdentityProvider


@pytest.fixture
def namespace_file(tmp_path):
    path = tmp_path / "namespace"
    path.write_text("vc-manager\n")
    return path


def test_lock_object_name():
    """The lock name is derived from the syncer name."""
    assert lock_object_name("vc") == "vc-syncer-leaderelection-lock"


class TestLeaderElectionClient:
    """Tests for leader_election_client."""

    @pytest.mark.asyncio
    async def test_timeout_is_renew_deadline(self, api_server, endpoint):
        """Lock requests time out at renew_deadline, not the endpoint timeout."""
        policy = ElectionPolicy(renew_deadline=timedelta(seconds=10))

        client = leader_election_client(endpoint, policy, transport=api_server)

        assert endpoint.timeout == timedelta(seconds=5)
        assert client.http.timeout.read == 10.0
        assert client.http.headers["User-Agent"] == LEADER_ELECTION_USER_AGENT
        assert client.http.base_url.host == "meta.example"
        await client.http.aclose()


class TestMakeLeaderElectionConfig:
    """Tests for make_leader_election_config."""

    def test_builds_config(self, make_client, namespace_file):
        """Identity, discovered namespace, lock name and backend are combined."""
        policy = ElectionPolicy(resource_lock="leases")

        config = make_leader_election_config(
            policy,
            "vc",
            make_client(),
            identity_provider=StaticIdentityProvider("node-a", "1234"),
            namespace_file=namespace_file,
        )

        assert isinstance(config.lock, LeaseLock)
        assert config.lock.identity == "node-a_1234"
        assert config.lock.describe() == "vc-manager/vc-syncer-leaderelection-lock"
        assert config.name == "resource-syncer"
        assert config.lease_duration == timedelta(seconds=15)
        assert config.renew_deadline == timedelta(seconds=10)
        assert config.retry_period == timedelta(seconds=2)
        assert isinstance(config.watchdog, HealthzAdaptor)
        assert config.watchdog.timeout == timedelta(seconds=20)

    def test_explicit_namespace_wins(self, make_client, tmp_path):
        """An explicit namespace skips discovery."""
        policy = ElectionPolicy(lock_namespace="tenant-system")

        config = make_leader_election_config(
            policy,
            "vc",
            make_client(),
            identity_provider=StaticIdentityProvider("node-a"),
            namespace_file=tmp_path / "absent",
        )

        assert config.lock.descriptor.namespace == "tenant-system"

    def test_namespace_undiscoverable(self, make_client, tmp_path):
        """No namespace and not in-cluster raises NamespaceUndiscoverable."""
        with pytest.raises(NamespaceUndiscoverable):
            make_leader_election_config(
                ElectionPolicy(),
                "vc",
                make_client(),
                identity_provider=StaticIdentityProvider("node-a"),
                namespace_file=tmp_path / "absent",
            )

    def test_unknown_lock_kind(self, make_client, namespace_file):
        """An unsupported backend kind raises LockConstructionError."""
        with pytest.raises(LockConstructionError):
            make_leader_election_config(
                ElectionPolicy(resource_lock="secrets"),
                "vc",
                make_client(),
                identity_provider=StaticIdentityProvider("node-a"),
                namespace_file=namespace_file,
            )

    def test_invalid_policy(self, make_client, namespace_file):
        """Inconsistent timings are rejected before anything is built."""
        policy = ElectionPolicy(lease_duration=timedelta(seconds=5), renew_deadline=timedelta(seconds=10))

        with pytest.raises(InvalidElectionPolicy):
            make_leader_election_config(
                policy,
                "vc",
                make_client(),
                identity_provider=StaticIdentityProvider("node-a"),
                namespace_file=namespace_file,
            )

    def test_elector_attaches_watchdog(self, make_client, namespace_file):
        """Creating an elector binds it to the config's watchdog."""
        config = make_leader_election_config(
            ElectionPolicy(),
            "vc",
            make_client(),
            identity_provider=StaticIdentityProvider("node-a"),
            namespace_file=namespace_file,
            callbacks=LeaderCallbacks(on_new_leader=print),
        )

        elector = LeaderElector(config)

        assert config.watchdog._elector is elector
        assert config.watchdog.healthy
        assert config.callbacks.on_new_leader is print
