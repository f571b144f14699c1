"""Tests for the syncer CLI."""

from typer.testing import CliRunner

from syncer_core.cli import app

runner = CliRunner()


class TestFeaturesCommand:
    """Tests for `syncer features`."""

    def test_lists_gates(self):
        """Every known gate is listed with its effective value."""
        result = runner.invoke(app, ["features", "--feature-gates", "SuperClusterPooling=true"])

        assert result.exit_code == 0
        assert "SuperClusterPooling" in result.output
        assert "VNodeProviderService" in result.output

    def test_unknown_gate(self):
        """An unknown gate exits with an error."""
        result = runner.invoke(app, ["features", "--feature-gates", "TimeTravel=true"])

        assert result.exit_code == 1
        assert "Unrecognized feature gate: TimeTravel" in result.output


class TestResolveCommand:
    """Tests for `syncer resolve`."""

    def test_super_address_only(self):
        """A super address alone resolves a shared topology."""
        result = runner.invoke(app, ["resolve", "--super-master", "https://super:6443"])

        assert result.exit_code == 0
        assert "Syncer topology" in result.output

    def test_deploy_on_meta_without_super(self):
        """Deployed on meta without super configuration is an error."""
        result = runner.invoke(app, ["resolve", "--deployment-on-meta"])

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_malformed_feature_gates_env(self):
        """A malformed gate in the environment is reported, not raised."""
        result = runner.invoke(
            app,
            ["resolve", "--super-master", "https://super:6443"],
            env={"SYNCER_FEATURE_GATES": "SuperClusterPooling=maybe"},
        )

        assert result.exit_code == 1
        assert "Error" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)


class TestElectCommand:
    """Tests for `syncer elect`."""

    def test_bad_duration_env(self):
        """An unparseable election duration exits with an error before electing."""
        result = runner.invoke(
            app,
            ["elect", "--super-master-kubeconfig", "/nonexistent/kubeconfig"],
            env={"SYNCER_LEADER_ELECTION__LEASE_DURATION": "soon"},
        )

        assert result.exit_code == 1
        assert "Error" in result.output
        assert "Identity" not in result.output

    def test_missing_kubeconfig(self):
        """A kubeconfig that cannot be loaded exits with an error."""
        result = runner.invoke(app, ["elect", "--super-master-kubeconfig", "/nonexistent/kubeconfig"])

        assert result.exit_code == 1
        assert "Error" in result.output
