"""
Credential and endpoint loading.

This module turns either the ambient in-cluster environment or a kubeconfig
file into a RestConfig describing how to reach one API server:

- In-cluster: KUBERNETES_SERVICE_HOST / KUBERNETES_SERVICE_PORT plus the
  service account token and CA mounted into every pod.
- Kubeconfig: the current context of an explicit kubeconfig file, with an
  optional server address override that always wins over the file.

Only an explicitly given kubeconfig path is read; there is no fallback to
~/.kube/config or $KUBECONFIG. Nothing here touches the network.

Example:
    ```python
    loader = KubeconfigLoader()
    rest = loader.from_kubeconfig("/etc/syncer/super.kubeconfig", "")
    print(rest.host)
    ```
"""

import base64
import binascii
import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import yaml

from syncer_core.constants import SERVICE_ACCOUNT_DIR
from syncer_core.duration import parse_duration
from syncer_core.exceptions import (
    ConfigLoadError,
    InvalidDurationFormat,
    NoInClusterEnvironment,
)


@dataclass(frozen=True)
class RestConfig:
    """
    Connection settings for a single API server.

    Attributes:
        host: Base URL of the API server (e.g., "https://10.0.0.1:6443")
        bearer_token: Token sent as "Authorization: Bearer ..."
        username: Basic auth user name
        password: Basic auth password
        ca_file: Path to a PEM bundle used to verify the server
        ca_data: PEM bytes used to verify the server
        cert_file: Client certificate path
        key_file: Client key path
        cert_data: Client certificate PEM bytes
        key_data: Client key PEM bytes
        insecure: Skip server certificate verification
        timeout: Request timeout; zero means unset
    """

    host: str
    bearer_token: str | None = None
    username: str | None = None
    password: str | None = None
    ca_file: str | None = None
    ca_data: bytes | None = None
    cert_file: str | None = None
    key_file: str | None = None
    cert_data: bytes | None = None
    key_data: bytes | None = None
    insecure: bool = False
    timeout: timedelta = timedelta(0)


@runtime_checkable
class CredentialLoader(Protocol):
    """Capability used by the endpoint resolver to obtain a RestConfig."""

    def in_cluster(self) -> RestConfig:
        """Load ambient in-cluster credentials and endpoint."""
        ...

    def from_kubeconfig(self, path: str, server_override: str) -> RestConfig:
        """Load from an explicit kubeconfig path, then apply the override."""
        ...


def _join_host_port(host: str, port: str) -> str:
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    return f"{host}:{port}"


def _named(entries: Any, name: str, kind: str, path: str) -> dict[str, Any]:
    """Find a named cluster/user/context entry in a kubeconfig list."""
    for entry in entries or []:
        if isinstance(entry, Mapping) and entry.get("name") == name:
            body = entry.get(kind)
            return dict(body) if isinstance(body, Mapping) else {}
    raise ConfigLoadError(path, f"{kind} {name!r} not found")


def _decode(value: str, field: str, path: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigLoadError(path, f"invalid base64 in {field}: {e}") from e


class KubeconfigLoader:
    """
    Default CredentialLoader backed by the process environment and files.

    Attributes:
        environ: Environment used for in-cluster discovery
        service_account_dir: Directory holding the token and ca.crt files
    """

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        service_account_dir: str | Path = SERVICE_ACCOUNT_DIR,
    ) -> None:
        self.environ = os.environ if environ is None else environ
        self.service_account_dir = Path(service_account_dir)

    def in_cluster(self) -> RestConfig:
        """
        Load the configuration every pod receives from the kubelet.

        Raises:
            NoInClusterEnvironment: If the service environment variables or
                the service account token are missing
        """
        host = self.environ.get("KUBERNETES_SERVICE_HOST", "")
        port = self.environ.get("KUBERNETES_SERVICE_PORT", "")
        if not host or not port:
            raise NoInClusterEnvironment(
                "KUBERNETES_SERVICE_HOST and KUBERNETES_SERVICE_PORT must be defined"
            )

        token_path = self.service_account_dir / "token"
        try:
            token = token_path.read_text().strip()
        except OSError as e:
            raise NoInClusterEnvironment(f"cannot read token file {token_path}: {e}") from e

        ca_path = self.service_account_dir / "ca.crt"
        return RestConfig(
            host=f"https://{_join_host_port(host, port)}",
            bearer_token=token,
            ca_file=str(ca_path) if ca_path.exists() else None,
        )

    def from_kubeconfig(self, path: str, server_override: str) -> RestConfig:
        """
        Load the current context of a kubeconfig file.

        Args:
            path: Kubeconfig path; "" loads nothing and relies on the override
            server_override: Server address replacing the cluster's server

        Raises:
            ConfigLoadError: On a missing or malformed file, dangling
                references, or when no server address results
        """
        data = self._read(path) if path else {}
        base_dir = Path(path).parent if path else Path.cwd()

        context: dict[str, Any] = {}
        cluster: dict[str, Any] = {}
        user: dict[str, Any] = {}

        current = data.get("current-context") or ""
        if current:
            context = _named(data.get("contexts"), current, "context", path)
            if context.get("cluster"):
                cluster = _named(data.get("clusters"), context["cluster"], "cluster", path)
            if context.get("user"):
                user = _named(data.get("users"), context["user"], "user", path)
        elif not server_override:
            raise ConfigLoadError(path, "no configuration has been provided")

        host = server_override or cluster.get("server") or ""
        if not host:
            raise ConfigLoadError(path, "no server found for cluster")

        def _file(key: str, entry: dict[str, Any]) -> str | None:
            value = entry.get(key)
            if not value:
                return None
            resolved = Path(value)
            if not resolved.is_absolute():
                resolved = base_dir / resolved
            return str(resolved)

        token = user.get("token")
        if not token and user.get("tokenFile"):
            try:
                token = Path(_file("tokenFile", user)).read_text().strip()
            except OSError as e:
                raise ConfigLoadError(path, f"cannot read tokenFile: {e}") from e

        timeout = timedelta(0)
        if context.get("request-timeout"):
            try:
                timeout = parse_duration(str(context["request-timeout"]))
            except InvalidDurationFormat as e:
                raise ConfigLoadError(path, str(e)) from e

        return RestConfig(
            host=host,
            bearer_token=token or None,
            username=user.get("username"),
            password=user.get("password"),
            ca_file=_file("certificate-authority", cluster),
            ca_data=(
                _decode(cluster["certificate-authority-data"], "certificate-authority-data", path)
                if cluster.get("certificate-authority-data")
                else None
            ),
            cert_file=_file("client-certificate", user),
            key_file=_file("client-key", user),
            cert_data=(
                _decode(user["client-certificate-data"], "client-certificate-data", path)
                if user.get("client-certificate-data")
                else None
            ),
            key_data=(
                _decode(user["client-key-data"], "client-key-data", path)
                if user.get("client-key-data")
                else None
            ),
            insecure=bool(cluster.get("insecure-skip-tls-verify", False)),
            timeout=timeout,
        )

    def _read(self, path: str) -> dict[str, Any]:
        try:
            text = Path(path).read_text()
        except OSError as e:
            raise ConfigLoadError(path, e.strerror or str(e)) from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigLoadError(path, f"malformed YAML: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, Mapping):
            raise ConfigLoadError(path, "top level must be a mapping")
        return dict(data)
