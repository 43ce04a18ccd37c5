"""Contrato de cifrado de secretos.

Por qué Protocol:
- El almacén de secretos solo necesita "opaco en reposo"; el algoritmo es enchufable.
- Tests y plataformas alternativas (keychains del SO) pueden cambiar la
  implementación sin tocar el almacén.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SecretCipher(Protocol):
    """Contrato mínimo para cifrar valores secretos.

    Reglas de diseño:
    - La salida de `encrypt` es un string imprimible (se guarda en JSON).
    - `decrypt` lanza `core.errors.SecretStoreError` con tokens que no puede abrir.
    """

    def encrypt(self, plaintext: str) -> str:
        ...

    def decrypt(self, token: str) -> str:
        ...
