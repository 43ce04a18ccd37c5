"""Taxonomía de errores del almacén de ajustes.

Por qué aquí:
- Todas las capas (validador, almacén de secretos, stores, CLI) lanzan y
  capturan las mismas clases, así la UI puede mapearlas a mensajes de formulario.
- Los errores llevan campos estructurados (ruta, id, dominio) además del mensaje.
"""

from __future__ import annotations

from pathlib import Path

__all__ = [
    "SettingsError",
    "ValidationError",
    "NotFound",
    "Conflict",
    "DuplicateValue",
    "StorageError",
    "PersistenceRolledBack",
    "SecretStoreError",
    "SeedLoadError",
    "format_error",
]


class SettingsError(Exception):
    """Base de todos los errores del almacén de ajustes."""


class ValidationError(SettingsError):
    """Un documento o registro no cumple el esquema de su dominio."""

    def __init__(self, field_path: str, expected: str, reason: str) -> None:
        self.field_path = field_path
        self.expected = expected
        self.reason = reason
        super().__init__(f"{field_path}: {reason}" if field_path else reason)


class NotFound(SettingsError):
    def __init__(self, domain: str, record_id: str) -> None:
        self.domain = domain
        self.record_id = record_id
        super().__init__(f"{domain} record not found: {record_id}")


class Conflict(SettingsError):
    def __init__(self, domain: str, record_id: str, message: str | None = None) -> None:
        self.domain = domain
        self.record_id = record_id
        super().__init__(message or f"{domain} record already exists: {record_id}")


class DuplicateValue(Conflict):
    """Otro registro vivo ya usa ese valor en un campo que debe ser único."""

    def __init__(self, domain: str, record_id: str, field: str, value: str) -> None:
        self.field = field
        self.value = value
        super().__init__(domain, record_id, f"{domain} record {record_id} already uses {field} {value!r}")


class StorageError(SettingsError):
    """Fallo del sistema de ficheros al leer o escribir un fichero de ajustes."""

    def __init__(self, path: Path | str, detail: str) -> None:
        self.path = Path(path)
        self.detail = detail
        super().__init__(f"{self.path}: {detail}")


class PersistenceRolledBack(StorageError):
    """Falló la escritura del documento y se deshizo el cambio del secreto asociado."""


class SecretStoreError(SettingsError):
    """Fallo al leer, escribir o descifrar el fichero de secretos."""


class SeedLoadError(SettingsError):
    """Los datos por defecto empaquetados no se pudieron leer o validar."""

    def __init__(self, domain: str, detail: str) -> None:
        self.domain = domain
        self.detail = detail
        super().__init__(f"{domain} seed data unusable: {detail}")


def format_error(e: BaseException) -> str:
    """Devuelve un mensaje corto para el operador, p. ej. 'NotFound: detalle'."""
    name = e.__class__.__name__
    msg = str(e).strip()
    return f"{name}: {msg}" if msg else name
