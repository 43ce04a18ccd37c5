"""Punto de entrada de la CLI (Typer).

Por qué aquí:
- Superficie de operador sobre la misma `ConfigFacade` que usa la app de
  escritorio: inspeccionar, editar, validar y restaurar los ficheros de ajustes.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from cli import doctor
from cli.ui_components import build_error_panel, build_records_table
from core.config import AppSettings
from core.domain.domains import DomainName, get_domain
from core.errors import SettingsError, format_error
from core.logging_config import configure_logging
from core.services.config_facade import ConfigFacade, build_config_facade

app = typer.Typer(no_args_is_help=True, help="Inspect and edit local LLM, agent, role and personality settings.")
app.add_typer(doctor.app, name="doctor")

_console = Console()


def _facade() -> ConfigFacade:
    settings = AppSettings()
    configure_logging(settings.log_level)
    return build_config_facade(settings)


@contextmanager
def _reported_errors() -> Iterator[None]:
    try:
        yield
    except SettingsError as exc:
        _console.print(f"[red]{escape(format_error(exc))}[/red]")
        raise typer.Exit(code=1) from exc


def _parse_assignments(assignments: list[str]) -> dict[str, Any]:
    """Pares `clave=valor`; el valor se parsea como JSON si se puede, si no queda como texto."""

    fields: dict[str, Any] = {}
    for assignment in assignments:
        if "=" not in assignment:
            raise typer.BadParameter(f"expected key=value, got {assignment!r}", param_hint="--set")
        key, raw = assignment.split("=", 1)
        try:
            fields[key.strip()] = json.loads(raw)
        except json.JSONDecodeError:
            fields[key.strip()] = raw
    return fields


@app.command("list")
def list_records(domain: DomainName = typer.Argument(..., help="Settings domain.")) -> None:
    """List the records of a domain."""

    with _reported_errors():
        records = _facade().domain(domain).list()
    _console.print(build_records_table(get_domain(domain), records))


@app.command()
def show(
    domain: DomainName = typer.Argument(..., help="Settings domain."),
    record_id: str = typer.Argument(..., help="Record ID."),
) -> None:
    """Print one record as JSON (secrets masked)."""

    with _reported_errors():
        record = _facade().domain(domain).get(record_id)
    if record is None:
        _console.print(f"[red]No {domain.label()} record with id {escape(record_id)}[/red]")
        raise typer.Exit(code=1)

    payload = record.model_dump(mode="json", by_alias=True)
    spec = get_domain(domain).secret
    if spec is not None:
        payload[spec.field] = getattr(record, spec.display_attr)
    _console.print_json(json.dumps(payload, ensure_ascii=False))


@app.command("add-llm-config")
def add_llm_config(
    name: str = typer.Option(..., "--name", help="Display name for the configuration."),
    provider: str = typer.Option(..., "--provider", help="Provider id (openai, anthropic, ...)."),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Custom API endpoint."),
    no_auth_header: bool = typer.Option(False, "--no-auth-header", help="Do not send the key as a header."),
) -> None:
    """Create an LLM provider configuration (API key prompted, stored encrypted)."""

    api_key = typer.prompt("API key", hide_input=True, confirmation_prompt=False).strip()
    fields: dict[str, Any] = {"customName": name, "provider": provider, "useAuthHeader": not no_auth_header}
    if base_url:
        fields["baseUrl"] = base_url

    with _reported_errors():
        record = _facade().llm_configs.create(fields, api_key)
    _console.print(f"[green]Created configuration[/green] {record.id} ({record.masked_api_key})")


@app.command()
def update(
    domain: DomainName = typer.Argument(..., help="Settings domain."),
    record_id: str = typer.Argument(..., help="Record ID."),
    assignments: Optional[List[str]] = typer.Option(None, "--set", "-s", help="Field assignment key=value (repeatable)."),
) -> None:
    """Update fields of a record; unspecified fields keep their values."""

    fields = _parse_assignments(assignments or [])
    if not fields:
        raise typer.BadParameter("nothing to update", param_hint="--set")

    with _reported_errors():
        record = _facade().domain(domain).update(record_id, fields)
    _console.print(f"[green]Updated[/green] {domain.label()} {record.id}")


@app.command("set-api-key")
def set_api_key(record_id: str = typer.Argument(..., help="LLM configuration ID.")) -> None:
    """Replace the API key of an LLM configuration."""

    api_key = typer.prompt("New API key", hide_input=True, confirmation_prompt=True).strip()
    with _reported_errors():
        record = _facade().llm_configs.update(record_id, {}, api_key)
    _console.print(f"[green]API key updated[/green] ({record.masked_api_key})")


@app.command()
def delete(
    domain: DomainName = typer.Argument(..., help="Settings domain."),
    record_id: str = typer.Argument(..., help="Record ID."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Delete a record (and its stored secret)."""

    if not yes:
        typer.confirm(f"Delete {domain.label()} record {record_id}?", abort=True)
    with _reported_errors():
        _facade().domain(domain).delete(record_id)
    _console.print(f"[green]Deleted[/green] {domain.label()} {record_id}")


@app.command()
def reset(
    domain: DomainName = typer.Argument(..., help="Settings domain."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Restore a domain to its bundled defaults (its stored secrets are deleted)."""

    if not yes:
        typer.confirm(f"Replace every {domain.label()} record with the defaults?", abort=True)
    with _reported_errors():
        records = _facade().domain(domain).reset()
    _console.print(f"[green]Reset[/green] {domain.label()} ({len(records)} records)")


@app.command()
def validate(
    domain: Optional[DomainName] = typer.Argument(None, help="Domain to check (all when omitted)."),
) -> None:
    """Load and validate settings files without changing them."""

    facade = _facade()
    targets = [domain] if domain is not None else list(DomainName)
    failed = False
    for name in targets:
        try:
            count = len(facade.domain(name).list())
        except SettingsError as exc:
            failed = True
            _console.print(build_error_panel(get_domain(name).file_name, format_error(exc)))
        else:
            _console.print(f"[green]OK[/green] {get_domain(name).file_name} ({count} records)")
    if failed:
        raise typer.Exit(code=1)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
