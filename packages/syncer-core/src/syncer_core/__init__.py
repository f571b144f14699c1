"""
Syncer Core Library

Startup resolution and leader election for the virtual cluster resource
syncer. This package provides:

- Endpoint resolution: kubeconfig / address override / in-cluster config
- Topology resolution: super and meta clusters, coordination endpoint
- Identity and namespace discovery for the election lock
- Leader election: resource locks, elector loop, liveness watchdog
- Feature gates: validated, immutable registry
- Settings and CLI: pydantic-settings configuration, Typer commands
"""

__version__ = "0.1.0"

from syncer_core.endpoint import EndpointSpec, ResolvedEndpoint, resolve_endpoint
from syncer_core.exceptions import (
    ApiError,
    ConfigLoadError,
    HostnameUnavailable,
    InvalidDurationFormat,
    InvalidElectionPolicy,
    LockConstructionError,
    NamespaceUndiscoverable,
    NoInClusterEnvironment,
    SyncerConfigError,
    UnknownFeatureGate,
)
from syncer_core.features import FeatureGateSet
from syncer_core.identity import ParticipantIdentity
from syncer_core.options import SyncerConfig, build_config
from syncer_core.settings import SyncerSettings
from syncer_core.topology import Topology, coordination_endpoint, resolve_topology

__all__ = [
    "__version__",
    # Resolution
    "EndpointSpec",
    "ResolvedEndpoint",
    "resolve_endpoint",
    "Topology",
    "coordination_endpoint",
    "resolve_topology",
    "ParticipantIdentity",
    "FeatureGateSet",
    # Configuration
    "SyncerSettings",
    "SyncerConfig",
    "build_config",
    # Errors
    "SyncerConfigError",
    "ConfigLoadError",
    "NoInClusterEnvironment",
    "InvalidDurationFormat",
    "HostnameUnavailable",
    "NamespaceUndiscoverable",
    "LockConstructionError",
    "UnknownFeatureGate",
    "InvalidElectionPolicy",
    "ApiError",
]
