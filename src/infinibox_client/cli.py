"""Command-line interface for interacting with InfiniBox arrays."""
from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from . import InfiniBoxClient
from .auth import BasicAuth, SessionAuth
from .cli_schema import CLI_TABLE_VIEWS, TableView
from .exceptions import InfiniBoxError, PartialDetachmentError, ResolutionError
from .models import Record, Volume

app = typer.Typer(help="InfiniBox storage management CLI.", no_args_is_help=True)

volumes_app = typer.Typer(help="Volume operations.")
hosts_app = typer.Typer(help="Host operations.")
clusters_app = typer.Typer(help="Host cluster operations.")
pools_app = typer.Typer(help="Pool operations.")
app.add_typer(volumes_app, name="volumes")
app.add_typer(hosts_app, name="hosts")
app.add_typer(clusters_app, name="clusters")
app.add_typer(pools_app, name="pools")

FIND_OPERATORS = ("eq", "ne", "lt", "le", "gt", "ge", "like", "in", "between")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_client(
    base_url: str,
    auth: str,
    username: str | None,
    password: str | None,
    verify_ssl: bool,
    cert_path: Path | None,
    timeout: float,
    tenant: str | None = None,
    verbose: bool = False,
) -> InfiniBoxClient:
    _configure_logging(verbose)
    auth = auth.lower()
    if auth not in {"basic", "session"}:
        raise typer.BadParameter("--auth must be either 'basic' or 'session'.")
    if not username or not password:
        raise typer.BadParameter("--username and --password are required.")
    if auth == "session":
        strategy = SessionAuth(username=username, password=password)
    else:
        strategy = BasicAuth(username=username, password=password)

    verify_target: bool | str
    if cert_path:
        expanded_cert = cert_path.expanduser()
        if not expanded_cert.exists():
            raise typer.BadParameter("Certificate file not found for --cert option.")
        if not verify_ssl:
            raise typer.BadParameter("Cannot combine --cert with --no-verify.")
        verify_target = str(expanded_cert)
    else:
        verify_target = verify_ssl

    client = InfiniBoxClient(
        base_url=base_url,
        auth_strategy=strategy,
        verify_ssl=verify_target,
        timeout=timeout,
    )
    if tenant:
        try:
            return client.use_tenant(tenant)
        except InfiniBoxError as exc:
            client.close()
            _handle_request_error(exc)
    return client


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


console = Console(force_terminal=False, color_system=None)


def _render_rich_table(view: TableView, rows: Sequence[Mapping[str, Any]]) -> None:
    table = Table(
        title=view.title,
        box=box.SIMPLE,
        show_lines=False,
        header_style="bold cyan",
    )
    for column in view.columns:
        table.add_column(column.header, justify=column.justify)
    ordered_rows = list(rows)
    if view.sort_key:
        ordered_rows.sort(key=view.sort_key)
    for row in ordered_rows:
        table.add_row(*(column.render(row) for column in view.columns))
    console.print(table)


def _as_payload(value: Any) -> Any:
    if isinstance(value, Record):
        return getattr(value, "raw")
    if isinstance(value, list):
        return [_as_payload(item) for item in value]
    return value


def _present_output(payload: Any, *, view_id: str | None, json_output: bool) -> None:
    payload = _as_payload(payload)
    view = CLI_TABLE_VIEWS.get(view_id) if view_id else None
    if json_output or view is None:
        _echo_json(payload)
        return
    if not isinstance(payload, list):
        _echo_json(payload)
        return
    rows = [item for item in payload if isinstance(item, Mapping)]
    if not rows:
        typer.echo(f"No {view.title.lower()} found.")
        return
    _render_rich_table(view, rows)


def _handle_request_error(exc: InfiniBoxError) -> None:
    if exc.status_code is not None:
        message = f"Request failed (status {exc.status_code}): {exc}"
    else:
        message = f"Request failed: {exc}"
    if exc.details:
        message += f"\nDetails: {exc.details}"
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _shared_options() -> dict[str, Any]:  # pragma: no cover - helper indirection
    # INFINIBOX_VERIFY_SSL accepts 1/0, true/false, yes/no and on/off.
    env_verify = os.getenv("INFINIBOX_VERIFY_SSL")
    if env_verify is None:
        default_verify = True
    else:
        default_verify = env_verify.strip().lower() not in {"0", "false", "no", "off"}

    return {
        "base_url": typer.Option(
            ..., "--url", envvar="INFINIBOX_URL", help="InfiniBox management URL."
        ),
        "username": typer.Option(
            None,
            "--username",
            "-u",
            envvar="INFINIBOX_USERNAME",
            help="Array username.",
        ),
        "password": typer.Option(
            None,
            "--password",
            "-p",
            envvar="INFINIBOX_PASSWORD",
            help="Array password.",
            hide_input=True,
        ),
        "auth": typer.Option(
            "basic",
            "--auth",
            "-a",
            case_sensitive=False,
            help="Authentication strategy to use (basic or session).",
        ),
        "verify_ssl": typer.Option(
            default_verify,
            "--verify/--no-verify",
            envvar="INFINIBOX_VERIFY_SSL",
            help="Enable or disable TLS certificate verification.",
            show_default=True,
        ),
        "cert_path": typer.Option(
            None,
            "--cert",
            envvar="INFINIBOX_CA_CERT",
            help="Path to a custom CA bundle for TLS verification.",
        ),
        "timeout": typer.Option(5.0, help="Request timeout (seconds).", show_default=True),
        "tenant": typer.Option(
            None,
            "--tenant",
            "-t",
            envvar="INFINIBOX_TENANT",
            help="Tenant name to scope requests to.",
        ),
        "output_json": typer.Option(
            False,
            "--json",
            "-j",
            help="Return raw JSON instead of rendering a table.",
        ),
        "verbose": typer.Option(False, "--verbose", "-v", help="Log requests and workflow steps."),
    }


_SHARED_OPTIONS = _shared_options()


def _resolve_volume(client: InfiniBoxClient, ref: str) -> Volume:
    """Accept a numeric volume id or a volume name."""

    ref = ref.strip()
    if not ref:
        raise ResolutionError("A volume name or ID is required.")
    if ref.isdigit():
        return client.volumes.get(int(ref))
    return client.volumes.get_by_name(ref)


def _list_command(
    resource: str,
    *,
    base_url: str,
    username: str | None,
    password: str | None,
    auth: str,
    verify_ssl: bool,
    cert_path: Path | None,
    timeout: float,
    tenant: str | None,
    output_json: bool,
    verbose: bool,
) -> None:
    with _build_client(
        base_url=base_url,
        auth=auth,
        username=username,
        password=password,
        verify_ssl=verify_ssl,
        cert_path=cert_path,
        timeout=timeout,
        tenant=tenant,
        verbose=verbose,
    ) as client:
        try:
            items = getattr(client, resource).list()
        except InfiniBoxError as exc:
            _handle_request_error(exc)
            return
    _present_output(items, view_id=f"{resource}.list", json_output=output_json)


@volumes_app.command("list")
def volumes_list(
    base_url: str = _SHARED_OPTIONS["base_url"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    auth: str = _SHARED_OPTIONS["auth"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    tenant: str | None = _SHARED_OPTIONS["tenant"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
    verbose: bool = _SHARED_OPTIONS["verbose"],
) -> None:
    """List volumes present on the array."""

    _list_command(
        "volumes",
        base_url=base_url,
        username=username,
        password=password,
        auth=auth,
        verify_ssl=verify_ssl,
        cert_path=cert_path,
        timeout=timeout,
        tenant=tenant,
        output_json=output_json,
        verbose=verbose,
    )


@hosts_app.command("list")
def hosts_list(
    base_url: str = _SHARED_OPTIONS["base_url"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    auth: str = _SHARED_OPTIONS["auth"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    tenant: str | None = _SHARED_OPTIONS["tenant"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
    verbose: bool = _SHARED_OPTIONS["verbose"],
) -> None:
    """List hosts with their ports and LUN counts."""

    _list_command(
        "hosts",
        base_url=base_url,
        username=username,
        password=password,
        auth=auth,
        verify_ssl=verify_ssl,
        cert_path=cert_path,
        timeout=timeout,
        tenant=tenant,
        output_json=output_json,
        verbose=verbose,
    )


@clusters_app.command("list")
def clusters_list(
    base_url: str = _SHARED_OPTIONS["base_url"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    auth: str = _SHARED_OPTIONS["auth"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    tenant: str | None = _SHARED_OPTIONS["tenant"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
    verbose: bool = _SHARED_OPTIONS["verbose"],
) -> None:
    """List host clusters."""

    _list_command(
        "clusters",
        base_url=base_url,
        username=username,
        password=password,
        auth=auth,
        verify_ssl=verify_ssl,
        cert_path=cert_path,
        timeout=timeout,
        tenant=tenant,
        output_json=output_json,
        verbose=verbose,
    )


@pools_app.command("list")
def pools_list(
    base_url: str = _SHARED_OPTIONS["base_url"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    auth: str = _SHARED_OPTIONS["auth"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    tenant: str | None = _SHARED_OPTIONS["tenant"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
    verbose: bool = _SHARED_OPTIONS["verbose"],
) -> None:
    """List storage pools."""

    _list_command(
        "pools",
        base_url=base_url,
        username=username,
        password=password,
        auth=auth,
        verify_ssl=verify_ssl,
        cert_path=cert_path,
        timeout=timeout,
        tenant=tenant,
        output_json=output_json,
        verbose=verbose,
    )


@volumes_app.command("get")
def volumes_get(
    volume: str = typer.Argument(..., help="Volume name or numeric ID."),
    base_url: str = _SHARED_OPTIONS["base_url"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    auth: str = _SHARED_OPTIONS["auth"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    tenant: str | None = _SHARED_OPTIONS["tenant"],
    verbose: bool = _SHARED_OPTIONS["verbose"],
) -> None:
    """Show a single volume."""

    with _build_client(
        base_url=base_url,
        auth=auth,
        username=username,
        password=password,
        verify_ssl=verify_ssl,
        cert_path=cert_path,
        timeout=timeout,
        tenant=tenant,
        verbose=verbose,
    ) as client:
        try:
            record = _resolve_volume(client, volume)
        except InfiniBoxError as exc:
            _handle_request_error(exc)
            return
    _present_output(record, view_id=None, json_output=True)


def _report_detachment(client: InfiniBoxClient, volume: Volume, output_json: bool) -> None:
    try:
        report = client.volumes.unmap(volume)
    except PartialDetachmentError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        if exc.removed:
            typer.secho(
                "Removed before failure: " + ", ".join(lun.describe() for lun in exc.removed),
                err=True,
                fg=typer.colors.YELLOW,
            )
        raise typer.Exit(code=1) from exc
    if output_json:
        _echo_json(
            {
                "volume_id": report.volume_id,
                "volume_name": report.volume_name,
                "was_mapped": report.was_mapped,
                "cluster_luns": _as_payload(report.cluster_luns),
                "host_luns": _as_payload(report.host_luns),
            }
        )
        return
    if not report.was_mapped:
        typer.echo(f"Volume {report.volume_name} is not mapped.")
        return
    typer.secho(
        f"Unmapped volume {report.volume_name}: {len(report.cluster_luns)} host cluster LUN(s), "
        f"{len(report.host_luns)} host LUN(s) removed.",
        fg=typer.colors.GREEN,
    )
    if report.removed:
        _render_rich_table(CLI_TABLE_VIEWS["volumes.luns"], _as_payload(report.removed))


@volumes_app.command("unmap")
def volumes_unmap(
    volume: str = typer.Argument(..., help="Volume name or numeric ID."),
    base_url: str = _SHARED_OPTIONS["base_url"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    auth: str = _SHARED_OPTIONS["auth"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    tenant: str | None = _SHARED_OPTIONS["tenant"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
    verbose: bool = _SHARED_OPTIONS["verbose"],
) -> None:
    """Remove every host cluster and host mapping of a volume."""

    with _build_client(
        base_url=base_url,
        auth=auth,
        username=username,
        password=password,
        verify_ssl=verify_ssl,
        cert_path=cert_path,
        timeout=timeout,
        tenant=tenant,
        verbose=verbose,
    ) as client:
        try:
            record = _resolve_volume(client, volume)
            _report_detachment(client, record, output_json)
        except InfiniBoxError as exc:
            _handle_request_error(exc)


@volumes_app.command("delete")
def volumes_delete(
    volume: str = typer.Argument(..., help="Volume name or numeric ID."),
    unmap: bool = typer.Option(
        False,
        "--unmap/--no-unmap",
        help="Detach the volume from all hosts and clusters before deleting it.",
        show_default=True,
    ),
    base_url: str = _SHARED_OPTIONS["base_url"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    auth: str = _SHARED_OPTIONS["auth"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    tenant: str | None = _SHARED_OPTIONS["tenant"],
    verbose: bool = _SHARED_OPTIONS["verbose"],
) -> None:
    """Delete a volume."""

    with _build_client(
        base_url=base_url,
        auth=auth,
        username=username,
        password=password,
        verify_ssl=verify_ssl,
        cert_path=cert_path,
        timeout=timeout,
        tenant=tenant,
        verbose=verbose,
    ) as client:
        try:
            record = _resolve_volume(client, volume)
            if unmap:
                _report_detachment(client, record, False)
            client.volumes.delete(record)
        except InfiniBoxError as exc:
            _handle_request_error(exc)
            return
    typer.secho(f"Deleted volume {record.name or record.id}.", fg=typer.colors.GREEN)


@app.command("find")
def find(
    collection: str = typer.Argument(..., help="Collection to query, e.g. volumes or hosts."),
    field_name: str = typer.Argument(..., metavar="FIELD", help="Field to filter on."),
    op: str = typer.Argument(..., metavar="OP", help=f"Operator: {', '.join(FIND_OPERATORS)}."),
    value: str = typer.Argument(..., help="Value to compare against."),
    base_url: str = _SHARED_OPTIONS["base_url"],
    username: str | None = _SHARED_OPTIONS["username"],
    password: str | None = _SHARED_OPTIONS["password"],
    auth: str = _SHARED_OPTIONS["auth"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    tenant: str | None = _SHARED_OPTIONS["tenant"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
    verbose: bool = _SHARED_OPTIONS["verbose"],
) -> None:
    """Run a filtered query such as ``find volumes name eq vol1``."""

    if op.lower() not in FIND_OPERATORS:
        raise typer.BadParameter(f"OP must be one of: {', '.join(FIND_OPERATORS)}.")

    with _build_client(
        base_url=base_url,
        auth=auth,
        username=username,
        password=password,
        verify_ssl=verify_ssl,
        cert_path=cert_path,
        timeout=timeout,
        tenant=tenant,
        verbose=verbose,
    ) as client:
        try:
            result = client.find(collection, field_name, op.lower(), value)
        except InfiniBoxError as exc:
            _handle_request_error(exc)
            return
    if result is None:
        typer.echo(f"No {collection} matched {field_name}={op.lower()}:{value}.")
        return
    _present_output(result, view_id=f"{collection}.list", json_output=output_json)
