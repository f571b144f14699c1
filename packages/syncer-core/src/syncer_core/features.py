"""
Feature gate registry.

A FeatureGateSet is built once at startup from the requested gates,
validated against the known set, and then passed to whoever needs it. It
cannot be changed after construction; there is no process-wide global.

Example:
    ```python
    gates = FeatureGateSet.from_requested({"SuperClusterPooling": True})
    if gates.enabled(SUPER_CLUSTER_POOLING):
        ...
    ```
"""

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from syncer_core.exceptions import UnknownFeatureGate

SUPER_CLUSTER_POOLING = "SuperClusterPooling"
"""Schedule tenant namespaces across a pool of super clusters."""

SUPER_CLUSTER_SERVICE_NETWORK = "SuperClusterServiceNetwork"
"""Share the super cluster service network with tenant clusters."""

VNODE_PROVIDER_SERVICE = "VNodeProviderService"
"""Reach vn-agent through a service instead of the node address."""

VNODE_PROVIDER_POD_IP = "VNodeProviderPodIP"
"""Reach vn-agent through its pod IP, selected by label."""

DEFAULT_FEATURE_GATES: Mapping[str, bool] = MappingProxyType(
    {
        SUPER_CLUSTER_POOLING: False,
        SUPER_CLUSTER_SERVICE_NETWORK: False,
        VNODE_PROVIDER_SERVICE: False,
        VNODE_PROVIDER_POD_IP: False,
    }
)

_TRUE = {"true", "1", "t", "yes", "on"}
_FALSE = {"false", "0", "f", "no", "off"}


def parse_feature_gates(text: str) -> dict[str, bool]:
    """
    Parse "Name=true,Other=false" text into a mapping.

    Only the syntax is checked here; names are validated by FeatureGateSet.

    Raises:
        ValueError: On a pair without "=" or a non-boolean value
    """
    gates: dict[str, bool] = {}
    for pair in text.split(","):
        pair = pair.strip()
        if not pair:
            continue
        name, sep, value = pair.partition("=")
        if not sep:
            raise ValueError(f"missing bool value for {name!r}")
        value = value.strip().lower()
        if value in _TRUE:
            gates[name.strip()] = True
        elif value in _FALSE:
            gates[name.strip()] = False
        else:
            raise ValueError(f"invalid value of {name.strip()}={value}, err: not a bool")
    return gates


class FeatureGateSet(Mapping[str, bool]):
    """
    Immutable mapping of feature name to enabled flag.

    Attributes:
        known: Built-in defaults defining the known names
    """

    __slots__ = ("_gates", "known")

    def __init__(
        self,
        requested: Mapping[str, bool] | None = None,
        known: Mapping[str, bool] = DEFAULT_FEATURE_GATES,
    ) -> None:
        requested = requested or {}
        for name in requested:
            if name not in known:
                raise UnknownFeatureGate(name)

        merged = dict(known)
        merged.update({name: bool(value) for name, value in requested.items()})
        object.__setattr__(self, "known", MappingProxyType(dict(known)))
        object.__setattr__(self, "_gates", MappingProxyType(merged))

    @classmethod
    def from_requested(cls, requested: Mapping[str, bool] | str | None) -> "FeatureGateSet":
        """Build from a mapping or from "key=value,..." text."""
        if isinstance(requested, str):
            requested = parse_feature_gates(requested)
        return cls(requested)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("FeatureGateSet is immutable")

    def __getitem__(self, name: str) -> bool:
        return self._gates[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._gates)

    def __len__(self) -> int:
        return len(self._gates)

    def __repr__(self) -> str:
        return f"FeatureGateSet({dict(self._gates)!r})"

    def enabled(self, name: str) -> bool:
        """
        Whether a known feature is on.

        Raises:
            UnknownFeatureGate: If the name is not known
        """
        if name not in self._gates:
            raise UnknownFeatureGate(name)
        return self._gates[name]

    def known_features(self) -> list[str]:
        """Help text lines, one per known feature, sorted by name."""
        return [
            f"{name}=true|false (ALPHA - default={str(default).lower()})"
            for name, default in sorted(self.known.items())
        ]
