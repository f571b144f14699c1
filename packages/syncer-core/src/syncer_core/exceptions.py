"""
Exception classes for syncer startup resolution.

Every failure that can happen while turning configuration into clients,
topology, identity, locks and feature gates has its own class here. All of
them derive from SyncerConfigError so that startup code can treat them as
fatal with a single except clause, while tests and diagnostics can still
match the precise failure.

Per project patterns:
- Store context data in attributes for error handling
- Include descriptive message with relevant details
"""

from datetime import timedelta


class SyncerConfigError(Exception):
    """Base class for all startup resolution failures."""


class ConfigLoadError(SyncerConfigError):
    """
    Raised when a kubeconfig cannot be loaded.

    Covers missing files, unparseable YAML, dangling context/cluster/user
    references and configurations without any server address.

    Attributes:
        path: The kubeconfig path that was requested ("" if none)
        reason: What went wrong
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        source = f"kubeconfig {path!r}" if path else "client configuration"
        super().__init__(f"Unable to load {source}: {reason}")


class NoInClusterEnvironment(SyncerConfigError):
    """
    Raised when in-cluster configuration is requested outside a cluster.

    Attributes:
        missing: Which piece of the in-cluster environment was absent
    """

    def __init__(self, missing: str) -> None:
        self.missing = missing
        super().__init__(
            f"Unable to load in-cluster configuration: {missing}. "
            f"Specify a kubeconfig or a server address instead."
        )


class InvalidDurationFormat(SyncerConfigError):
    """
    Raised when duration text cannot be parsed.

    Attributes:
        text: The offending input
    """

    def __init__(self, text: str, reason: str = "invalid duration") -> None:
        self.text = text
        super().__init__(
            f"{reason} {text!r}: valid time units are "
            f"'ns', 'us' (or 'µs'), 'ms', 's', 'm', 'h'"
        )


class HostnameUnavailable(SyncerConfigError):
    """Raised when the local host name cannot be determined."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Unable to get hostname: {reason}")


class NamespaceUndiscoverable(SyncerConfigError):
    """
    Raised when the lock namespace is not configured and cannot be discovered.

    Attributes:
        path: Namespace file that was consulted
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(
            f"Unable to find leader election namespace: {reason}. "
            f"Set the lock object namespace explicitly."
        )


class LockConstructionError(SyncerConfigError):
    """
    Raised when a resource lock cannot be built from its descriptor.

    Attributes:
        backend_kind: The requested backend kind text
    """

    def __init__(self, backend_kind: str, reason: str) -> None:
        self.backend_kind = backend_kind
        super().__init__(f"Couldn't create resource lock: {reason}")


class UnknownFeatureGate(SyncerConfigError):
    """
    Raised when a requested feature gate is not in the known set.

    Attributes:
        name: The unrecognized feature name
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unrecognized feature gate: {name}")


class InvalidElectionPolicy(SyncerConfigError):
    """
    Raised when leader election timings cannot guarantee a single leader.

    Attributes:
        lease_duration: Configured lease duration
        renew_deadline: Configured renew deadline
        retry_period: Configured retry period
    """

    def __init__(
        self,
        reason: str,
        lease_duration: timedelta,
        renew_deadline: timedelta,
        retry_period: timedelta,
    ) -> None:
        self.lease_duration = lease_duration
        self.renew_deadline = renew_deadline
        self.retry_period = retry_period
        super().__init__(
            f"Invalid leader election policy: {reason} "
            f"(lease={lease_duration}, renew={renew_deadline}, retry={retry_period})"
        )


class ApiError(Exception):
    """
    Raised by the API client on a non-success response.

    Not a startup error: the election loop treats it as a failed attempt.

    Attributes:
        status_code: HTTP status returned by the API server
        reason: Short reason from the Status object, if any
    """

    def __init__(self, status_code: int, reason: str = "", message: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(
            f"API request failed with {status_code}"
            + (f" {reason}" if reason else "")
            + (f": {message}" if message else "")
        )

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_conflict(self) -> bool:
        return self.status_code == 409
