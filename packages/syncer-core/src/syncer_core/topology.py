"""
Topology resolution for the super (primary) and meta (secondary) clusters.

The syncer always talks to the super cluster. It talks to a separate meta
cluster only when it is deployed there or when a meta kubeconfig/address is
given; otherwise the meta cluster is the super cluster, and both names
point at the very same ResolvedEndpoint object.

Leader election always runs against the cluster the syncer is deployed
on, so lock renewals stay on the local network.
"""

from collections.abc import Callable
from dataclasses import dataclass

from syncer_core.endpoint import EndpointSpec, ResolvedEndpoint, resolve_endpoint

Resolver = Callable[[EndpointSpec, bool], ResolvedEndpoint]


@dataclass(frozen=True)
class Topology:
    """
    Physical endpoints backing the two logical clusters.

    Attributes:
        primary: Super cluster endpoint
        secondary: Meta cluster endpoint (may be the primary object itself)
        coordination: Endpoint used for leader election
        deploy_on_secondary: Whether this process runs on the meta cluster
    """

    primary: ResolvedEndpoint
    secondary: ResolvedEndpoint
    coordination: ResolvedEndpoint
    deploy_on_secondary: bool = False

    @property
    def shares_endpoint(self) -> bool:
        """True if both logical clusters are backed by one endpoint."""
        return self.secondary is self.primary


def coordination_endpoint(
    deploy_on_secondary: bool,
    primary: ResolvedEndpoint,
    secondary: ResolvedEndpoint,
) -> ResolvedEndpoint:
    """Pick the endpoint of the cluster this process is deployed on."""
    return secondary if deploy_on_secondary else primary


def resolve_topology(
    primary_spec: EndpointSpec,
    secondary_spec: EndpointSpec | None = None,
    deploy_on_secondary: bool = False,
    resolver: Resolver | None = None,
) -> Topology:
    """
    Resolve both logical clusters and the coordination endpoint.

    In-cluster fallback is only permitted for the cluster the process is
    deployed on.

    Args:
        primary_spec: Super cluster spec (always resolved)
        secondary_spec: Meta cluster spec, if any
        deploy_on_secondary: Whether this process runs on the meta cluster
        resolver: Endpoint resolver (defaults to resolve_endpoint)

    Raises:
        Any error raised by the endpoint resolver.
    """
    if resolver is None:
        resolver = resolve_endpoint
    if secondary_spec is None:
        secondary_spec = EndpointSpec()

    primary = resolver(primary_spec, not deploy_on_secondary)

    if deploy_on_secondary or secondary_spec.is_explicit:
        secondary = resolver(secondary_spec, deploy_on_secondary)
    else:
        secondary = primary

    return Topology(
        primary=primary,
        secondary=secondary,
        coordination=coordination_endpoint(deploy_on_secondary, primary, secondary),
        deploy_on_secondary=deploy_on_secondary,
    )
