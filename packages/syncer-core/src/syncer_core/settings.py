"""Environment-based configuration for the resource syncer."""

import logging
from datetime import timedelta
from typing import Annotated, Any

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from syncer_core.constants import (
    DEFAULT_LEASE_DURATION,
    DEFAULT_RENEW_DEADLINE,
    DEFAULT_RETRY_PERIOD,
    LOCK_NAME_SUFFIX,
)
from syncer_core.duration import parse_duration
from syncer_core.election.elector import ElectionPolicy
from syncer_core.election.lock import LockBackendKind
from syncer_core.endpoint import EndpointSpec
from syncer_core.exceptions import InvalidDurationFormat
from syncer_core.features import FeatureGateSet, parse_feature_gates

logger = logging.getLogger(__name__)


def _duration(value: Any) -> Any:
    """Accept Go-style duration text or plain seconds."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    try:
        return timedelta(seconds=float(text))
    except (ValueError, OverflowError):
        pass
    try:
        return parse_duration(text)
    except InvalidDurationFormat as e:
        raise ValueError(str(e)) from e


class LeaderElectionSettings(BaseModel):
    """
    Leader election options.

    Durations accept "15s" style text or seconds. lock_object_namespace and
    lock_object_name are deprecated: the namespace is still honored, the
    name is always derived from the syncer name.
    """

    leader_elect: bool = True
    lease_duration: timedelta = DEFAULT_LEASE_DURATION
    renew_deadline: timedelta = DEFAULT_RENEW_DEADLINE
    retry_period: timedelta = DEFAULT_RETRY_PERIOD
    resource_lock: str = LockBackendKind.CONFIGMAPS.value
    lock_object_namespace: str = ""
    lock_object_name: str = LOCK_NAME_SUFFIX
    release_on_cancel: bool = True

    @field_validator("lease_duration", "renew_deadline", "retry_period", mode="before")
    @classmethod
    def _parse_duration(cls, value: Any) -> Any:
        return _duration(value)

    def policy(self) -> ElectionPolicy:
        if self.lock_object_name != LOCK_NAME_SUFFIX:
            logger.warning(
                "lock_object_name is deprecated and ignored; the lock name is "
                "derived from the syncer name"
            )
        return ElectionPolicy(
            lease_duration=self.lease_duration,
            renew_deadline=self.renew_deadline,
            retry_period=self.retry_period,
            resource_lock=self.resource_lock,
            lock_namespace=self.lock_object_namespace,
            release_on_cancel=self.release_on_cancel,
        )


class SyncerSettings(BaseSettings):
    """
    Resource syncer configuration.

    All settings can be overridden via environment variables with the
    SYNCER_ prefix; leader election settings are nested with "__".
    For example:
        SYNCER_SUPER_MASTER_KUBECONFIG=/etc/syncer/super.kubeconfig
        SYNCER_DEPLOYMENT_ON_META=true
        SYNCER_FEATURE_GATES=SuperClusterPooling=true
        SYNCER_LEADER_ELECTION__RESOURCE_LOCK=leases
    """

    # Super (primary) cluster
    super_master: str = ""
    super_master_kubeconfig: str = ""
    super_master_timeout: str = ""

    # Meta (secondary) cluster
    meta_cluster_address: str = ""
    meta_cluster_kubeconfig: str = ""
    deployment_on_meta: bool = False

    syncer_name: str = "vc"

    # Super cluster client tuning (0 / "" means defaults)
    qps: float = 0.0
    burst: int = 0
    content_type: str = ""

    feature_gates: Annotated[dict[str, bool], NoDecode] = {}

    # Metrics server passthrough
    address: str = ""
    port: str = "80"
    cert_file: str = ""
    key_file: str = ""

    leader_election: LeaderElectionSettings = LeaderElectionSettings()

    model_config = SettingsConfigDict(env_prefix="SYNCER_", env_nested_delimiter="__")

    @field_validator("feature_gates", mode="before")
    @classmethod
    def _parse_feature_gates(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_feature_gates(value)
        return value

    def primary_spec(self) -> EndpointSpec:
        return EndpointSpec(
            kubeconfig_path=self.super_master_kubeconfig,
            address_override=self.super_master,
            timeout_text=self.super_master_timeout,
            content_type=self.content_type,
            qps=self.qps,
            burst=self.burst,
        )

    def secondary_spec(self) -> EndpointSpec:
        return EndpointSpec(
            kubeconfig_path=self.meta_cluster_kubeconfig,
            address_override=self.meta_cluster_address,
            timeout_text=self.super_master_timeout,
        )

    def feature_gate_set(self) -> FeatureGateSet:
        return FeatureGateSet(self.feature_gates)
