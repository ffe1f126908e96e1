from __future__ import annotations

from pathlib import Path

import typer

from . import __version__
from .cli_common import (
    client_context,
    format_cli_invocation_for_log,
    load_config_callback,
    load_declaration,
    make_syncer,
    print_json,
    remote_errors,
    require_force_if_interactive,
)
from .configmanager import ConfigManager
from .listener_diff import ListenerDiff
from .models import Listener, Protocol
from .normalizer import normalize
from .yaml_writer import listener_state_payload, write_yaml_file

logger = ConfigManager.get_logger(__name__)

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
    pretty_exceptions_short=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _main(
    ctx: typer.Context,
    env_file: str | None = typer.Option(
        None,
        "--env-file",
        envvar="SLBCTL_ENV_FILE",
        help="Env file to load before reading configuration (default: .env)",
        is_eager=True,
        callback=load_config_callback,
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Console logging level (DEBUG, INFO, WARNING, ERROR); default from SLBCTL_LOG_LEVEL",
    ),
    log_file: Path | None = typer.Option(None, "--log-file", help="Also log to this file (or directory)"),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True),
) -> None:
    try:
        ConfigManager.configure_logging(log_level or ConfigManager.log_level(), log_file=log_file, file_level="DEBUG")
    except ValueError as e:
        raise typer.BadParameter(str(e)) from None
    logger.debug("Invocation: %s", format_cli_invocation_for_log(ctx))


def _listener_row(x: Listener) -> str:
    extra: list[str] = []
    if x.scheduler is not None:
        extra.append(f"scheduler={x.scheduler.value}")
    if x.sticky_session is not None:
        extra.append(f"sticky={x.sticky_session.value}")
    if x.health_check is not None:
        extra.append(f"health_check={x.health_check.value}")
    if x.ssl_certificate_id:
        extra.append(f"cert={x.ssl_certificate_id}")
    return f"{x.load_balancer_port}\t{x.protocol.value}\t{x.instance_port}\t{x.bandwidth}\t{' '.join(extra)}"


def _print_diff(diff: ListenerDiff) -> None:
    for x in diff.to_remove:
        print(f"- {_listener_row(x)}")
    for x in diff.to_add:
        print(f"+ {_listener_row(x)}")
    for x in diff.drifted:
        if x not in diff.to_add:
            print(f"~ {_listener_row(x)}")
    if diff.empty:
        print("No changes.")


@app.command("list")
def listener_list(
    load_balancer_id: str = typer.Argument(..., help="Load balancer id"),
    json_out: bool = typer.Option(False, "--json", help="Print JSON"),
) -> None:
    """List the listeners of a load balancer."""
    with client_context(readonly=True) as api, remote_errors():
        items = make_syncer(api, load_balancer_id).read_listeners()
    if json_out:
        print_json([x.to_json() for x in items])
        return
    for x in items:
        print(_listener_row(x))


@app.command("show")
def listener_show(
    load_balancer_id: str = typer.Argument(..., help="Load balancer id"),
    port: int = typer.Argument(..., help="Listener port"),
    protocol: str | None = typer.Option(None, "--protocol", help="tcp, udp, http or https (default: as reported)"),
    json_out: bool = typer.Option(False, "--json", help="Print JSON"),
) -> None:
    """Show one listener in canonical form."""
    wanted: Protocol | None = None
    if protocol is not None:
        try:
            wanted = Protocol.parse(protocol)
        except ValueError as e:
            raise typer.BadParameter(str(e)) from None

    with client_context(readonly=True) as api, remote_errors():
        if wanted is None:
            ports = api.listener_ports(load_balancer_id)
            if port not in ports:
                raise typer.BadParameter(f"Unknown listener port: {port}")
            items = [x for x in make_syncer(api, load_balancer_id).read_listeners() if x.load_balancer_port == port]
        else:
            items = [normalize(api.describe_listener(load_balancer_id, port, wanted), wanted)]

    if not items:
        raise typer.BadParameter(f"Unknown listener port: {port}")
    item = items[0]
    if json_out:
        print_json(item.to_json())
        return
    for key, value in item.to_json().items():
        print(f"{key}\t{'' if value is None else value}")


@app.command("plan")
def listener_plan(
    file: Path = typer.Argument(..., help="YAML listener declaration"),
    load_balancer_id: str | None = typer.Option(None, "--load-balancer-id", help="Overrides load_balancer_id from FILE"),
    recreate_changed: bool | None = typer.Option(
        None,
        "--recreate-changed/--no-recreate-changed",
        help="Recreate listeners whose non-identity fields changed (default: SLBCTL_RECREATE_CHANGED)",
    ),
    json_out: bool = typer.Option(False, "--json", help="Print JSON"),
) -> None:
    """Show which listeners a sync would remove and add."""
    lb_id, declared = load_declaration(file, load_balancer_id)
    recreate = ConfigManager.recreate_changed() if recreate_changed is None else recreate_changed
    with client_context(readonly=True) as api, remote_errors():
        diff = make_syncer(api, lb_id).plan(declared.listeners, recreate_changed=recreate)
    if json_out:
        print_json({"load_balancer_id": lb_id, **diff.to_json()})
        return
    _print_diff(diff)


@app.command("sync")
def listener_sync(
    file: Path = typer.Argument(..., help="YAML listener declaration"),
    load_balancer_id: str | None = typer.Option(None, "--load-balancer-id", help="Overrides load_balancer_id from FILE"),
    recreate_changed: bool | None = typer.Option(
        None,
        "--recreate-changed/--no-recreate-changed",
        help="Recreate listeners whose non-identity fields changed (default: SLBCTL_RECREATE_CHANGED)",
    ),
    state_file: Path | None = typer.Option(None, "--state-file", help="Write the resulting listeners as YAML"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only print the plan"),
) -> None:
    """Reconcile the load balancer's listeners with FILE."""
    lb_id, declared = load_declaration(file, load_balancer_id)
    recreate = ConfigManager.recreate_changed() if recreate_changed is None else recreate_changed

    with client_context(readonly=dry_run) as api, remote_errors():
        syncer = make_syncer(api, lb_id)
        if dry_run:
            _print_diff(syncer.plan(declared.listeners, recreate_changed=recreate))
            return
        result = syncer.sync(declared.listeners, recreate_changed=recreate)

    typer.echo(f"Synced {lb_id}: removed {result.removed}, added {result.added}, {len(result.listeners)} listener(s)")
    if state_file is not None:
        wrote = write_yaml_file(state_file, listener_state_payload(lb_id, result.listeners), skip_unchanged=True)
        if wrote:
            logger.info("Wrote %s", state_file)


@app.command("delete")
def listener_delete(
    load_balancer_id: str = typer.Argument(..., help="Load balancer id"),
    port: int = typer.Argument(..., help="Listener port"),
    force: bool = typer.Option(False, "--force"),
    dry_run: bool = typer.Option(False, "--dry-run"),
) -> None:
    """Delete the listener on PORT."""
    require_force_if_interactive(force=force, prompt=f"Delete listener on port {port} of {load_balancer_id}?")
    with client_context(readonly=dry_run) as api, remote_errors():
        if dry_run:
            print_json({"action": "delete", "load_balancer_id": load_balancer_id, "port": port})
            return
        api.delete_listener(load_balancer_id, port)
    typer.echo(f"Deleted listener on port {port}")


def main() -> None:
    app()
