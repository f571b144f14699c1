"""Syncer CLI - resolve configuration and run leader election.

This module provides CLI commands:
- resolve: Show which endpoint backs each logical cluster
- features: List known feature gates and their effective values
- elect: Run the leader election loop until SIGINT/SIGTERM

Options fall back to SYNCER_* environment variables through SyncerSettings.
"""

import asyncio
import signal
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from syncer_core.duration import format_duration
from syncer_core.election.elector import ElectionState, LeaderCallbacks
from syncer_core.exceptions import SyncerConfigError
from syncer_core.options import build_config
from syncer_core.settings import SyncerSettings

app = typer.Typer(
    name="syncer",
    help="Resource syncer startup resolution and leader election",
    no_args_is_help=True,
)

console = Console()


def _settings(**overrides: Any) -> SyncerSettings:
    """Build settings from env, with CLI options taking precedence."""
    given = {k: v for k, v in overrides.items() if v is not None}
    le = {
        key: given.pop(key)
        for key in ("resource_lock", "lock_object_namespace", "leader_elect")
        if key in given
    }
    settings = SyncerSettings(**given)
    if le:
        settings.leader_election = settings.leader_election.model_copy(update=le)
    return settings


def _fail(e: Exception) -> typer.Exit:
    console.print(f"[red]Error:[/red] {e}")
    return typer.Exit(1)


@app.command("resolve")
def resolve(
    super_master: str = typer.Option(
        None,
        "--super-master",
        help="Super cluster API server address",
    ),
    super_master_kubeconfig: str = typer.Option(
        None,
        "--super-master-kubeconfig",
        help="Super cluster kubeconfig",
    ),
    super_master_timeout: str = typer.Option(
        None,
        "--super-master-timeout",
        help="Request timeout (e.g. 30s)",
    ),
    meta_cluster_address: str = typer.Option(
        None,
        "--meta-cluster-address",
        help="Meta cluster API server address",
    ),
    meta_cluster_kubeconfig: str = typer.Option(
        None,
        "--meta-cluster-kubeconfig",
        help="Meta cluster kubeconfig",
    ),
    deployment_on_meta: bool = typer.Option(
        None,
        "--deployment-on-meta",
        help="Syncer runs on the meta cluster",
    ),
) -> None:
    """Show the resolved topology."""
    try:
        settings = _settings(
            super_master=super_master,
            super_master_kubeconfig=super_master_kubeconfig,
            super_master_timeout=super_master_timeout,
            meta_cluster_address=meta_cluster_address,
            meta_cluster_kubeconfig=meta_cluster_kubeconfig,
            deployment_on_meta=deployment_on_meta,
            leader_elect=False,
        )
        config = build_config(settings)
    except (SyncerConfigError, ValueError) as e:
        raise _fail(e)

    topology = config.topology
    table = Table(title="Syncer topology")
    table.add_column("Cluster", style="cyan")
    table.add_column("Server")
    table.add_column("Timeout", justify="right")
    table.add_column("QPS", justify="right")
    table.add_column("Burst", justify="right")
    table.add_column("Leader election", justify="center")

    rows = [("super", topology.primary), ("meta", topology.secondary)]
    for name, endpoint in rows:
        table.add_row(
            name + (" (shared)" if name == "meta" and topology.shares_endpoint else ""),
            endpoint.host,
            format_duration(endpoint.timeout),
            f"{endpoint.qps:g}",
            str(endpoint.burst),
            "[green]yes[/green]" if endpoint is topology.coordination else "",
        )
    console.print(table)
    asyncio.run(config.aclose())


@app.command("features")
def features(
    feature_gates: str = typer.Option(
        None,
        "--feature-gates",
        help="key=value pairs, e.g. SuperClusterPooling=true",
    ),
) -> None:
    """List known feature gates and their effective values."""
    try:
        gates = _settings(feature_gates=feature_gates).feature_gate_set()
    except (SyncerConfigError, ValueError) as e:
        raise _fail(e)

    table = Table(title="Feature gates")
    table.add_column("Feature", style="cyan")
    table.add_column("Default", justify="center")
    table.add_column("Enabled", justify="center")
    for name in sorted(gates):
        enabled = gates[name]
        table.add_row(
            name,
            str(gates.known[name]).lower(),
            "[green]true[/green]" if enabled else "false",
        )
    console.print(table)


@app.command("elect")
def elect(
    syncer_name: str = typer.Option(None, "--syncer-name", help="Syncer name (lock name prefix)"),
    super_master_kubeconfig: str = typer.Option(
        None,
        "--super-master-kubeconfig",
        help="Super cluster kubeconfig",
    ),
    meta_cluster_kubeconfig: str = typer.Option(
        None,
        "--meta-cluster-kubeconfig",
        help="Meta cluster kubeconfig",
    ),
    deployment_on_meta: bool = typer.Option(
        None,
        "--deployment-on-meta",
        help="Syncer runs on the meta cluster",
    ),
    resource_lock: str = typer.Option(
        None,
        "--leader-elect-resource-lock",
        help="configmaps, leases or endpoints",
    ),
    lock_object_namespace: str = typer.Option(
        None,
        "--lock-object-namespace",
        help="Lock namespace",
    ),
) -> None:
    """
    Run leader election with an idle workload.

    Prints leadership changes until interrupted with Ctrl+C; the lock is
    released on exit.
    """

    async def _lead() -> None:
        console.print("[green]Leading[/green]: syncer work may run")
        await asyncio.Event().wait()

    callbacks = LeaderCallbacks(
        on_started_leading=_lead,
        on_stopped_leading=lambda: console.print("[yellow]Stopped leading[/yellow]"),
        on_new_leader=lambda identity: console.print(f"Current leader: {identity}"),
    )

    try:
        settings = _settings(
            syncer_name=syncer_name,
            super_master_kubeconfig=super_master_kubeconfig,
            meta_cluster_kubeconfig=meta_cluster_kubeconfig,
            deployment_on_meta=deployment_on_meta,
            resource_lock=resource_lock,
            lock_object_namespace=lock_object_namespace,
            leader_elect=True,
        )
        config = build_config(settings, callbacks=callbacks)
    except (SyncerConfigError, ValueError) as e:
        raise _fail(e)

    elector = config.new_elector()
    lock = config.leader_election.lock
    console.print(f"Identity: {lock.identity}")
    console.print(f"Lock: {lock.kind} {lock.describe()}")
    console.print("Press Ctrl+C to stop")

    async def _run() -> None:
        shutdown = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, shutdown.set)
        try:
            await elector.run(shutdown)
        finally:
            await config.aclose()

    asyncio.run(_run())
    if elector.state is ElectionState.STOPPED:
        console.print("Election stopped")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
