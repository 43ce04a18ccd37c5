"""Mapa cifrado de secretos (`secure_keys.json`).

Forma en disco: un objeto JSON plano `{"<prefijo>_<recordId>": "<cifrado>"}`.

Reglas:
- Las claves compuestas solo las construye `composite_key`; `put` rechaza
  prefijos desconocidos y claves que repiten su prefijo (`llm_api_key_llm_api_key_...`).
- El texto en claro nunca llega a un log: solo se registran claves compuestas.
- Cada escritura es un leer-modificar-escribir con lock y reemplazo atómico.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from adapters.json_storage import read_json_file, write_json_atomic
from core.errors import SecretStoreError, StorageError, ValidationError
from core.interfaces.cipher import SecretCipher

logger = logging.getLogger(__name__)

SECRET_FILE_NAME = "secure_keys.json"


def composite_key(prefix: str, record_id: str) -> str:
    """Construye la dirección del secreto de un registro en el almacén."""

    if not record_id:
        raise ValidationError("id", "string", "Record ID cannot be empty")
    if record_id.startswith(f"{prefix}_"):
        raise ValidationError("id", "prefix-free string", f"Record ID must not carry the '{prefix}_' prefix")
    return f"{prefix}_{record_id}"


class SecretStore:
    def __init__(self, path: Path, cipher: SecretCipher, *, prefixes: tuple[str, ...]) -> None:
        self.path = path
        self._cipher = cipher
        self._prefixes = prefixes
        self._lock = threading.Lock()

    def put(self, key: str, plaintext: str) -> None:
        self._check_key(key)
        token = self._cipher.encrypt(plaintext)
        with self._lock:
            entries = self._read()
            entries[key] = token
            self._write(entries)
        logger.debug("Stored secret %s", key)

    def get(self, key: str) -> str | None:
        token = self._read().get(key)
        if token is None:
            return None
        if not isinstance(token, str):
            raise SecretStoreError(f"Secret entry {key} is not a string")
        return self._cipher.decrypt(token)

    def delete(self, key: str) -> None:
        with self._lock:
            entries = self._read()
            if key not in entries:
                return
            del entries[key]
            self._write(entries)
        logger.debug("Deleted secret %s", key)

    def keys(self) -> list[str]:
        return list(self._read())

    def delete_prefix(self, prefix: str) -> int:
        """Borra todas las entradas `<prefix>_*`; devuelve cuántas había."""

        marker = f"{prefix}_"
        with self._lock:
            entries = self._read()
            kept = {key: value for key, value in entries.items() if not key.startswith(marker)}
            removed = len(entries) - len(kept)
            if removed:
                self._write(kept)
        logger.debug("Deleted %d secret(s) with prefix %s", removed, prefix)
        return removed

    def _check_key(self, key: str) -> None:
        for prefix in self._prefixes:
            marker = f"{prefix}_"
            if key.startswith(marker):
                if len(key) == len(marker):
                    raise ValidationError("key", "composite key", "Secret key is missing its record ID")
                if key[len(marker):].startswith(marker):
                    raise ValidationError("key", "composite key", f"Secret key repeats the '{prefix}' prefix: {key}")
                return
        raise ValidationError("key", "composite key", f"Secret key has no known prefix: {key}")

    def _read(self) -> dict[str, object]:
        try:
            data = read_json_file(self.path)
        except FileNotFoundError:
            return {}
        except (StorageError, ValidationError) as exc:
            raise SecretStoreError(f"Cannot read secret file {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise SecretStoreError(f"Secret file {self.path} must contain a JSON object")
        return data

    def _write(self, entries: dict[str, object]) -> None:
        try:
            write_json_atomic(self.path, entries, mode=0o600)
        except StorageError as exc:
            raise SecretStoreError(f"Cannot write secret file {self.path}: {exc}") from exc
