"""
Leader election for replicated syncers.

- lock: resource lock backends (configmaps, endpoints, leases)
- elector: the acquire/renew/release state machine
- watchdog: health check for a stuck leader
- bootstrap: assembles policy, identity, namespace and lock into a config
"""

from syncer_core.election.bootstrap import (
    leader_election_client,
    lock_object_name,
    make_leader_election_config,
)
from syncer_core.election.elector import (
    ElectionPolicy,
    ElectionState,
    LeaderCallbacks,
    LeaderElectionConfig,
    LeaderElector,
)
from syncer_core.election.lock import (
    LeaderElectionRecord,
    LockBackendKind,
    LockDescriptor,
    ResourceLock,
    new_resource_lock,
)
from syncer_core.election.watchdog import HealthzAdaptor

__all__ = [
    "ElectionPolicy",
    "ElectionState",
    "HealthzAdaptor",
    "LeaderCallbacks",
    "LeaderElectionConfig",
    "LeaderElectionRecord",
    "LeaderElector",
    "LockBackendKind",
    "LockDescriptor",
    "ResourceLock",
    "leader_election_client",
    "lock_object_name",
    "make_leader_election_config",
    "new_resource_lock",
]
