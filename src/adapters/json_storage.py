"""Persistencia de ficheros JSON.

Por qué un adaptador propio:
- Todos los ficheros de ajustes (documentos de dominio y mapa de secretos) se
  escriben igual: UTF-8, indentación estable, reemplazo atómico.
- El core solo ve `StorageError`/`ValidationError`, nunca un OSError crudo.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from core.errors import StorageError, ValidationError


def read_json_file(path: Path) -> Any:
    """Lee y parsea un fichero JSON.

    Lanza:
    - FileNotFoundError si el fichero no existe (quien llama decide el defecto).
    - StorageError ante cualquier otro fallo de I/O.
    - ValidationError si el contenido no es JSON (fichero corrupto).
    """

    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except (OSError, UnicodeDecodeError) as exc:
        raise StorageError(path, f"cannot read file: {exc}") from exc

    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError("$", "JSON document", f"File is not valid JSON ({exc.msg} at line {exc.lineno})") from exc


def write_json_atomic(path: Path, payload: Any, *, mode: int | None = None) -> Path:
    """Escribe `payload` como JSON vía fichero temporal + rename: nadie lee un fichero a medias."""

    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            delete=False,
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        ) as tmp:
            tmp_path = Path(tmp.name)
            tmp.write(json.dumps(payload, ensure_ascii=False, indent=2) + "\n")
            tmp.flush()
            os.fsync(tmp.fileno())
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except OSError as exc:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)
        raise StorageError(path, f"cannot write file: {exc}") from exc
    return path
