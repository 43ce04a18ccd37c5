"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos (list, validate, doctor).
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.domains import DomainName, DomainSchema
from core.domain.models import SettingsRecord


def print_banner(console: Console) -> None:
    title = Text("convo-settings", style="bold cyan")
    subtitle = Text("LLM providers • Agents • Roles • Personalities", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def _summary(schema: DomainSchema, record: SettingsRecord) -> tuple[str, str]:
    """(nombre visible, detalle en una línea) para un registro de cualquier dominio."""

    data = record.model_dump(by_alias=True)
    if schema.name is DomainName.LLM_CONFIGS:
        masked = getattr(record, "masked_api_key", None)
        masked = escape(masked) if masked else "[red]missing key[/red]"
        return data["customName"], f"{escape(data['provider'])} · {masked}"
    if schema.name is DomainName.LLM_MODELS:
        return data["name"], f"{len(data['models'])} models"
    if schema.name is DomainName.AGENTS:
        return data["name"], escape(f"{data['model']} · role={data['role']} · personality={data['personality']}")
    if schema.name is DomainName.ROLES:
        return data["name"], escape(data["description"])
    if schema.name is DomainName.PERSONALITIES:
        return data["name"], escape(", ".join(f"{k}={v}" for k, v in data["behaviors"].items()))
    return str(data.get("name", "")), ""


def build_records_table(schema: DomainSchema, records: list[SettingsRecord]) -> Table:
    table = Table(title=schema.name.label().title())
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Details", style="dim")
    table.add_column("Updated", style="magenta")
    for record in records:
        name, details = _summary(schema, record)
        table.add_row(escape(record.id), escape(name), details, record.updated_at or "-")
    return table


def build_error_panel(title: str, message: str) -> Panel:
    return Panel(Text(message), title=Text(title, style="bold red"), border_style="red")
