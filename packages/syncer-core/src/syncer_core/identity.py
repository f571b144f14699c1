"""
Participant identity and coordination namespace discovery.

Identity is "<hostname>_<uuid>": the random part keeps two processes on
the same host from both believing they hold the lock. Identities are made
once per process and never persisted.

The namespace, when not configured, comes from the service account
namespace file that only exists inside a pod. There is no fallback to a
default namespace.
"""

import socket
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from syncer_core.constants import NAMESPACE_FILE
from syncer_core.exceptions import HostnameUnavailable, NamespaceUndiscoverable


@dataclass(frozen=True)
class ParticipantIdentity:
    """
    Lock holder identity for one process.

    Attributes:
        host_label: Local host name
        uniquifier: Random token generated at startup
    """

    host_label: str
    uniquifier: str

    def __str__(self) -> str:
        return f"{self.host_label}_{self.uniquifier}"


@runtime_checkable
class IdentityProvider(Protocol):
    """Source of participant identities (injectable for tests)."""

    def identity(self) -> ParticipantIdentity:
        ...


class HostnameIdentityProvider:
    """Identity from socket.gethostname() plus a fresh UUID4."""

    def identity(self) -> ParticipantIdentity:
        try:
            hostname = socket.gethostname()
        except OSError as e:
            raise HostnameUnavailable(str(e)) from e
        if not hostname:
            raise HostnameUnavailable("empty host name")
        return ParticipantIdentity(host_label=hostname, uniquifier=str(uuid.uuid4()))


@dataclass(frozen=True)
class StaticIdentityProvider:
    """Always returns the same identity."""

    host_label: str
    uniquifier: str = "static"

    def identity(self) -> ParticipantIdentity:
        return ParticipantIdentity(self.host_label, self.uniquifier)


def discover_namespace(path: str | Path = NAMESPACE_FILE) -> str:
    """
    Read the in-cluster namespace from the service account namespace file.

    Args:
        path: Namespace file location

    Returns:
        The namespace with surrounding whitespace removed

    Raises:
        NamespaceUndiscoverable: If the file is absent, unreadable or empty
    """
    path = Path(path)
    if not path.exists():
        raise NamespaceUndiscoverable(str(path), "not running in-cluster")

    try:
        namespace = path.read_text().strip()
    except OSError as e:
        raise NamespaceUndiscoverable(str(path), f"error reading namespace file: {e}") from e

    if not namespace:
        raise NamespaceUndiscoverable(str(path), "namespace file is empty")
    return namespace
