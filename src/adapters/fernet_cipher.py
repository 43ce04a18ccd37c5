"""Implementación Fernet de `SecretCipher` (cryptography).

El material de clave viene de `AppSettings.secret_key` o, si no está definido,
de un fichero de clave en el data dir que se genera en el primer uso (modo 600).
"""

from __future__ import annotations

import base64
import hashlib
import logging
import os
import secrets
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken

from core.errors import SecretStoreError

logger = logging.getLogger(__name__)

KEY_FILE_NAME = ".secret_key"


def _derive_key(material: str) -> bytes:
    return base64.urlsafe_b64encode(hashlib.sha256(material.encode("utf-8")).digest())


def load_or_create_key_material(key_path: Path) -> str:
    """Devuelve el material de clave guardado en `key_path`; lo genera si falta."""

    try:
        if key_path.exists():
            material = key_path.read_text(encoding="utf-8").strip()
            if material:
                return material
            logger.warning("Key file %s is empty; generating a new key", key_path)
        key_path.parent.mkdir(parents=True, exist_ok=True)
        material = secrets.token_urlsafe(64)
        key_path.write_text(material, encoding="utf-8")
        os.chmod(key_path, 0o600)
    except OSError as exc:
        raise SecretStoreError(f"Unable to read or persist the encryption key at {key_path}: {exc}") from exc
    logger.info("Generated new secret encryption key at %s", key_path)
    return material


class FernetCipher:
    """Cifrado simétrico autenticado para valores secretos."""

    def __init__(self, key_material: str) -> None:
        if not key_material:
            raise SecretStoreError("Encryption key material cannot be empty")
        self._fernet = Fernet(_derive_key(key_material))

    @classmethod
    def from_key_file(cls, key_path: Path) -> "FernetCipher":
        return cls(load_or_create_key_material(key_path))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError) as exc:
            raise SecretStoreError("Stored secret cannot be decrypted with the current key") from exc
