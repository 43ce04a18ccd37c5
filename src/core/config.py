"""Configuración de la aplicación.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que stores, cifrador de secretos y logging lean config de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "convo-settings"


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / APP_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def get_user_data_dir() -> Path:
    """Directorio privado de la aplicación con los ficheros de ajustes.

    En Windows/macOS coincide con el directorio de config (como `userData` de
    Electron). En Linux sigue XDG_DATA_HOME.
    """

    if sys.platform.startswith("win") or sys.platform == "darwin":
        return get_user_config_dir()

    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / APP_NAME
    return Path.home() / ".local" / "share" / APP_NAME


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if key:
            data[key] = value.strip().strip('"').strip("'")
    return data


def write_user_env_vars(values: dict[str, str | None], env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario (None borra la clave)."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    for key, value in values.items():
        if value is None:
            existing.pop(key, None)
        else:
            existing[key] = value

    lines = ["# convo-settings user config (.env)"]
    lines += [f"{key}={existing[key]}" for key in sorted(existing)]
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Settings centrales de la aplicación.

    Por qué pydantic-settings:
    - Config tipada y validada en el borde (variables de entorno, ficheros .env).
    - Un único contrato de config compartido por la CLI y el arranque de los stores.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONVO_SETTINGS_",
        extra="ignore",
        case_sensitive=False,
        # Orden: primero el proyecto (dev), luego la config global del usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    data_dir: Path | None = Field(
        default=None,
        description="Directorio con los ficheros JSON de dominio (por defecto, el data dir del usuario).",
    )
    secret_key: str | None = Field(
        default=None,
        min_length=16,
        description="Material de clave para cifrar secretos; si falta se genera un fichero de clave.",
    )
    include_defaults: bool = Field(
        default=True,
        description="Rellena los ficheros de dominio ausentes con los registros por defecto empaquetados.",
    )
    log_level: str = Field(
        default="WARNING",
        min_length=1,
        description="Nivel de log raíz (DEBUG, INFO, WARNING, ERROR).",
    )

    def resolved_data_dir(self) -> Path:
        return self.data_dir if self.data_dir is not None else get_user_data_dir()
