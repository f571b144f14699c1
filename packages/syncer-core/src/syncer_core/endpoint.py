"""
Endpoint resolution.

Turns one EndpointSpec (kubeconfig path, address override, timeout text,
client tuning) into a ResolvedEndpoint with every client setting defaulted.

Precedence:
1. No kubeconfig, no override, in-cluster permitted -> in-cluster config
2. Otherwise kubeconfig (if any), then the address override on top
3. Timeout text always wins; else the loaded timeout; else the default
4. Non-zero configured QPS/burst win; else the defaults

Resolution never touches the network.
"""

import logging
from dataclasses import dataclass, replace
from datetime import timedelta

from syncer_core.constants import (
    DEFAULT_CLIENT_BURST,
    DEFAULT_CLIENT_QPS,
    DEFAULT_CONTENT_TYPE,
    DEFAULT_REQUEST_TIMEOUT,
)
from syncer_core.duration import parse_duration
from syncer_core.kubeconfig import CredentialLoader, KubeconfigLoader, RestConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EndpointSpec:
    """
    User-facing description of how to reach one cluster.

    Attributes:
        kubeconfig_path: Explicit kubeconfig file ("" for none)
        address_override: Server address replacing the kubeconfig's
        timeout_text: Request timeout as duration text ("" to keep loaded value)
        content_type: Content type for requests ("" for JSON)
        qps: Client-side requests per second (0 for default)
        burst: Client-side burst (0 for default)
    """

    kubeconfig_path: str = ""
    address_override: str = ""
    timeout_text: str = ""
    content_type: str = ""
    qps: float = 0.0
    burst: int = 0

    @property
    def is_explicit(self) -> bool:
        """True if a kubeconfig or an address was supplied."""
        return bool(self.kubeconfig_path or self.address_override)


@dataclass(frozen=True)
class ResolvedEndpoint:
    """
    A fully defaulted, immutable endpoint configuration.

    Attributes:
        rest: Connection settings (host, credentials, TLS)
        timeout: Effective request timeout
        qps: Effective requests per second (> 0)
        burst: Effective burst (> 0)
        content_type: Effective content type
    """

    rest: RestConfig
    timeout: timedelta
    qps: float
    burst: int
    content_type: str = DEFAULT_CONTENT_TYPE

    @property
    def host(self) -> str:
        return self.rest.host

    def with_timeout(self, timeout: timedelta) -> "ResolvedEndpoint":
        """Return a copy with a different request timeout."""
        return replace(self, timeout=timeout)


def resolve_endpoint(
    spec: EndpointSpec,
    in_cluster_allowed: bool,
    loader: CredentialLoader | None = None,
) -> ResolvedEndpoint:
    """
    Resolve one EndpointSpec into a ResolvedEndpoint.

    Args:
        spec: What the operator configured for this cluster
        in_cluster_allowed: Whether ambient in-cluster config may be used
        loader: Credential loading capability (defaults to KubeconfigLoader)

    Returns:
        A new ResolvedEndpoint

    Raises:
        NoInClusterEnvironment: In-cluster config selected but unavailable
        ConfigLoadError: Kubeconfig missing or malformed
        InvalidDurationFormat: Timeout text cannot be parsed
    """
    if loader is None:
        loader = KubeconfigLoader()

    if not spec.is_explicit and in_cluster_allowed:
        logger.info(
            "Neither kubeconfig file nor control plane URL was specified. "
            "Falling back to in-cluster config."
        )
        rest = loader.in_cluster()
    else:
        rest = loader.from_kubeconfig(spec.kubeconfig_path, spec.address_override)

    if spec.timeout_text:
        timeout = parse_duration(spec.timeout_text)
    elif rest.timeout:
        timeout = rest.timeout
    else:
        timeout = DEFAULT_REQUEST_TIMEOUT

    return ResolvedEndpoint(
        rest=rest,
        timeout=timeout,
        qps=spec.qps or DEFAULT_CLIENT_QPS,
        burst=spec.burst or DEFAULT_CLIENT_BURST,
        content_type=spec.content_type or DEFAULT_CONTENT_TYPE,
    )
