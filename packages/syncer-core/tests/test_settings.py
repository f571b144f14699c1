"""Tests for environment-based settings."""

import logging
from datetime import timedelta

import pytest
from pydantic import ValidationError

from syncer_core.exceptions import UnknownFeatureGate
from syncer_core.features import SUPER_CLUSTER_POOLING
from syncer_core.settings import LeaderElectionSettings, SyncerSettings


class TestSyncerSettings:
    """Tests for SyncerSettings."""

    def test_defaults(self):
        """Defaults match the historical syncer flags."""
        settings = SyncerSettings()

        assert settings.syncer_name == "vc"
        assert settings.deployment_on_meta is False
        assert settings.feature_gates == {}
        assert settings.leader_election.leader_elect is True
        assert settings.leader_election.lease_duration == timedelta(seconds=15)
        assert settings.leader_election.renew_deadline == timedelta(seconds=10)
        assert settings.leader_election.retry_period == timedelta(seconds=2)
        assert settings.leader_election.resource_lock == "configmaps"

    def test_env_prefix(self, monkeypatch):
        """SYNCER_* environment variables populate the settings."""
        monkeypatch.setenv("SYNCER_SUPER_MASTER_KUBECONFIG", "/etc/syncer/super.kubeconfig")
        monkeypatch.setenv("SYNCER_DEPLOYMENT_ON_META", "true")
        monkeypatch.setenv("SYNCER_SYNCER_NAME", "tenant-a")
        monkeypatch.setenv("SYNCER_QPS", "500")

        settings = SyncerSettings()

        assert settings.super_master_kubeconfig == "/etc/syncer/super.kubeconfig"
        assert settings.deployment_on_meta is True
        assert settings.syncer_name == "tenant-a"
        assert settings.qps == 500.0

    def test_nested_leader_election_env(self, monkeypatch):
        """Leader election settings are nested with "__"."""
        monkeypatch.setenv("SYNCER_LEADER_ELECTION__RESOURCE_LOCK", "leases")
        monkeypatch.setenv("SYNCER_LEADER_ELECTION__LEASE_DURATION", "30s")
        monkeypatch.setenv("SYNCER_LEADER_ELECTION__LEADER_ELECT", "false")

        le = SyncerSettings().leader_election

        assert le.resource_lock == "leases"
        assert le.lease_duration == timedelta(seconds=30)
        assert le.leader_elect is False

    def test_feature_gates_text(self, monkeypatch):
        """Feature gates are given as "Name=bool,..." text."""
        monkeypatch.setenv("SYNCER_FEATURE_GATES", "SuperClusterPooling=true")

        settings = SyncerSettings()

        assert settings.feature_gates == {SUPER_CLUSTER_POOLING: True}
        assert settings.feature_gate_set().enabled(SUPER_CLUSTER_POOLING)

    def test_feature_gates_bad_value(self):
        """A non-boolean gate value fails validation."""
        with pytest.raises(ValidationError):
            SyncerSettings(feature_gates="SuperClusterPooling=maybe")

    def test_unknown_feature_gate(self):
        """Unknown names parse but fail when the gate set is built."""
        settings = SyncerSettings(feature_gates="TimeTravel=true")

        with pytest.raises(UnknownFeatureGate):
            settings.feature_gate_set()

    def test_endpoint_specs(self):
        """Super and meta specs share the timeout text; only super gets tuning."""
        settings = SyncerSettings(
            super_master="https://super:6443",
            super_master_timeout="5s",
            meta_cluster_kubeconfig="/etc/meta.kubeconfig",
            qps=50,
            burst=100,
        )

        primary = settings.primary_spec()
        secondary = settings.secondary_spec()

        assert primary.address_override == "https://super:6443"
        assert primary.timeout_text == "5s"
        assert (primary.qps, primary.burst) == (50, 100)
        assert secondary.kubeconfig_path == "/etc/meta.kubeconfig"
        assert secondary.timeout_text == "5s"
        assert (secondary.qps, secondary.burst) == (0, 0)


class TestLeaderElectionSettings:
    """Tests for LeaderElectionSettings."""

    @pytest.mark.parametrize(
        "value,expected",
        [("1m", timedelta(minutes=1)), ("90", timedelta(seconds=90)), (4.5, timedelta(seconds=4.5))],
    )
    def test_duration_forms(self, value, expected):
        """Durations accept Go-style text or seconds."""
        assert LeaderElectionSettings(lease_duration=value).lease_duration == expected

    def test_invalid_duration(self):
        """Unparseable duration text fails validation."""
        with pytest.raises(ValidationError):
            LeaderElectionSettings(renew_deadline="soon")

    @pytest.mark.parametrize("value", ["inf", "-inf", "1e20"])
    def test_out_of_range_duration(self, value):
        """Numbers too large for a timedelta fail validation like bad text."""
        with pytest.raises(ValidationError):
            LeaderElectionSettings(lease_duration=value)

    def test_policy(self):
        """policy() carries timings, lock kind and namespace."""
        policy = LeaderElectionSettings(
            retry_period="1s",
            resource_lock="leases",
            lock_object_namespace="vc-manager",
            release_on_cancel=False,
        ).policy()

        assert policy.retry_period == timedelta(seconds=1)
        assert policy.resource_lock == "leases"
        assert policy.lock_namespace == "vc-manager"
        assert policy.release_on_cancel is False

    def test_deprecated_lock_name_warns(self, caplog):
        """A custom lock object name is ignored with a warning."""
        with caplog.at_level(logging.WARNING, logger="syncer_core.settings"):
            LeaderElectionSettings(lock_object_name="custom").policy()

        assert "deprecated" in caplog.text
