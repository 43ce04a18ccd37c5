"""Documentos por defecto empaquetados (seeds).

Este módulo vive en `core/` porque:
- centraliza el *qué* registros por defecto trae la app, sin acoplar los stores
  a rutas del paquete
- los seeds son artefactos de empaquetado (`core/seeds/*.json`): se leen una vez
  al arrancar y llegan a `DomainStore` ya parseados.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from core.domain.domains import DomainSchema
from core.errors import SeedLoadError


def _seeds_dir() -> Path:
    # core/resources_loader.py -> core/seeds
    return Path(__file__).resolve().parent / "seeds"


def get_seed_path(schema: DomainSchema) -> Path | None:
    if schema.seed_file is None:
        return None
    return _seeds_dir() / schema.seed_file


def load_seed(schema: DomainSchema) -> Any | None:
    """Lee el documento seed sin validar de `schema`.

    Devuelve None para dominios sin seed. Lanza `SeedLoadError` si el fichero
    declarado falta o no es JSON; la validación ocurre en el store.
    """

    path = get_seed_path(schema)
    if path is None:
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise SeedLoadError(schema.name.value, f"{path.name}: {exc}") from exc
