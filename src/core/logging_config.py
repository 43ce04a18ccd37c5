"""Configuración de logging.

Los módulos registran vía `logging.getLogger(__name__)`; este módulo solo
instala una vez el handler raíz, con rich para que la salida de la CLI y los
logs compartan consola.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_configured = False


def configure_logging(level: str | int = "WARNING", *, console: Console | None = None) -> None:
    """Instala un RichHandler en el logger raíz (idempotente)."""

    global _configured

    root = logging.getLogger()
    root.setLevel(level.upper() if isinstance(level, str) else level)
    if _configured:
        return

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    _configured = True
