"""Doctor command for environment diagnostics."""

from __future__ import annotations

import os
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from adapters.fernet_cipher import KEY_FILE_NAME
from adapters.secret_store import SECRET_FILE_NAME, composite_key
from cli.ui_components import print_banner
from core.config import AppSettings, write_user_env_vars
from core.domain.domains import DomainName, get_domain
from core.errors import SettingsError, format_error
from core.logging_config import configure_logging
from core.services.config_facade import ConfigFacade, build_config_facade

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def _check_data_dir(data_dir: Path) -> tuple[bool, str]:
    if not data_dir.exists():
        return True, "missing (created on first write)"
    if not os.access(data_dir, os.W_OK):
        return False, "not writable"
    return True, str(data_dir)


def _check_secrets(facade: ConfigFacade) -> tuple[bool, str]:
    """Cross-check LLM configurations against stored keys."""

    spec = get_domain(DomainName.LLM_CONFIGS).secret
    llm_configs = facade.llm_configs
    try:
        records = llm_configs.list()
        stored = set(llm_configs.cache.store.secrets.keys())
        keyed = {record.id: composite_key(spec.prefix, record.id) for record in records}
    except SettingsError as exc:
        return False, format_error(exc)

    expected = set(keyed.values())
    missing = [record_id for record_id, key in keyed.items() if key not in stored]
    orphaned = sorted(key for key in stored if key.startswith(f"{spec.prefix}_") and key not in expected)
    if missing:
        return False, f"configurations without key: {', '.join(missing)}"
    if orphaned:
        return True, f"{len(orphaned)} orphaned key(s) (harmless)"
    return True, f"{len(stored)} key(s)"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()
    configure_logging(settings.log_level)
    data_dir = settings.resolved_data_dir()
    print_banner(_console)

    table = Table(title="convo-settings doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    ok_dir, detail_dir = _check_data_dir(data_dir)
    table.add_row("Data dir", "OK" if ok_dir else "FAIL", detail_dir)

    if settings.secret_key:
        table.add_row("Encryption key", "OK", "from CONVO_SETTINGS_SECRET_KEY")
    elif (data_dir / KEY_FILE_NAME).exists():
        table.add_row("Encryption key", "OK", str(data_dir / KEY_FILE_NAME))
    else:
        table.add_row("Encryption key", "PENDING", "generated on first use")

    try:
        facade = build_config_facade(settings)
    except SettingsError as exc:
        table.add_row("Secret store", "FAIL", format_error(exc))
        _console.print(table)
        raise typer.Exit(code=1) from exc

    failed = not ok_dir
    for name in DomainName:
        schema = get_domain(name)
        domain = facade.domain(name)
        try:
            count = len(domain.list())
        except SettingsError as exc:
            failed = True
            table.add_row(schema.file_name, "FAIL", format_error(exc))
            continue
        report = domain.cache.check_coherency()
        status = "OK" if report.is_coherent else "STALE"
        table.add_row(schema.file_name, status, f"{count} records" + "".join(f"; {i}" for i in report.issues))

    ok_keys, detail_keys = _check_secrets(facade)
    failed = failed or not ok_keys
    table.add_row(SECRET_FILE_NAME, "OK" if ok_keys else "FAIL", detail_keys)

    _console.print(table)
    if failed:
        _console.print("\n[yellow]Note:[/yellow] run `convo-settings validate` for the full error of each file.")
        raise typer.Exit(code=1)


@app.command(name="set-data-dir")
def set_data_dir(path: Path = typer.Argument(..., help="Directory for the settings files.")) -> None:
    """Persist the data directory in the user config .env."""

    env_path = write_user_env_vars({"CONVO_SETTINGS_DATA_DIR": str(path.expanduser().resolve())})
    _console.print(f"[green]Saved data dir to:[/green] {env_path}")
