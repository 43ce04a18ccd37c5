"""Enmascarado de secretos para mostrar.

Reglas:
- 8+ caracteres: 3 primeros + "..." + 3 últimos (p. ej. "sk-...xyz").
- Valores más cortos, o cuya máscara coincidiría con el propio valor: una
  tira fija de viñetas, para no filtrar nada.
"""

from __future__ import annotations

MASK_VISIBLE = 3
MASK_MIN_LENGTH = 8
REDACTED = "•" * 8


def mask_secret(value: str) -> str:
    if len(value) < MASK_MIN_LENGTH:
        return REDACTED
    masked = f"{value[:MASK_VISIBLE]}...{value[-MASK_VISIBLE:]}"
    # "abc...xyz" se enmascararía a sí mismo.
    return REDACTED if masked == value else masked


def is_masked_echo(candidate: str, current: str | None) -> bool:
    """True si `candidate` es la máscara mostrada al usuario, devuelta sin cambios."""

    if candidate == REDACTED:
        return True
    if current is None or candidate == current:
        return False
    return candidate == mask_secret(current)
