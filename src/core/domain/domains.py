"""Dominios de ajustes.

Por qué aquí:
- Cada dominio es un fichero JSON versionado de forma independiente.
- Este módulo es la única fuente de verdad de nombres de fichero, campo de
  items, límites y manejo de secretos; lo comparten validador, stores y CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic.alias_generators import to_snake

from core.domain.models import (
    AgentRecord,
    LlmConfigRecord,
    LlmProviderRecord,
    PersonalityRecord,
    RoleRecord,
    SettingsRecord,
)

CURRENT_SCHEMA_VERSION = "1.0.0"


class DomainName(str, Enum):
    """Dominios soportados."""

    LLM_CONFIGS = "llm_configs"
    LLM_MODELS = "llm_models"
    AGENTS = "agents"
    ROLES = "roles"
    PERSONALITIES = "personalities"

    def label(self) -> str:
        """Etiqueta legible para tablas y logs."""

        return self.value.replace("_", " ")


@dataclass(frozen=True)
class SecretSpec:
    """Cómo se separa el campo sensible de los registros de un dominio.

    `prefix` es el prefijo de la clave compuesta en el almacén de secretos,
    `field` la clave JSON con la que llega el valor y `display_attr` el atributo
    del registro que recibe la máscara.
    """

    prefix: str
    field: str
    title: str
    display_attr: str
    max_length: int = 500
    required: bool = True

    @property
    def spellings(self) -> tuple[str, ...]:
        """Nombres aceptados para el campo (camelCase y snake_case)."""

        snake = to_snake(self.field)
        return (self.field,) if snake == self.field else (self.field, snake)


@dataclass(frozen=True)
class DomainSchema:
    name: DomainName
    file_name: str
    items_field: str
    items_title: str
    record_model: type[SettingsRecord]
    current_version: str = CURRENT_SCHEMA_VERSION
    min_items: int = 0
    max_items: int | None = None
    secret: SecretSpec | None = None
    seed_file: str | None = None
    # Atributos que no pueden repetirse entre registros vivos.
    unique_fields: tuple[str, ...] = ()


LLM_CONFIGS = DomainSchema(
    name=DomainName.LLM_CONFIGS,
    file_name="llm_config.json",
    items_field="configurations",
    items_title="Configurations",
    record_model=LlmConfigRecord,
    secret=SecretSpec(
        prefix="llm_api_key",
        field="apiKey",
        title="API key",
        display_attr="masked_api_key",
    ),
    unique_fields=("custom_name",),
)

LLM_MODELS = DomainSchema(
    name=DomainName.LLM_MODELS,
    file_name="llm_models.json",
    items_field="providers",
    items_title="Providers",
    record_model=LlmProviderRecord,
    min_items=1,
    max_items=20,
    seed_file="llm_models.json",
)

AGENTS = DomainSchema(
    name=DomainName.AGENTS,
    file_name="agents.json",
    items_field="agents",
    items_title="Agents",
    record_model=AgentRecord,
    seed_file="agents.json",
)

ROLES = DomainSchema(
    name=DomainName.ROLES,
    file_name="roles.json",
    items_field="roles",
    items_title="Roles",
    record_model=RoleRecord,
    seed_file="roles.json",
)

PERSONALITIES = DomainSchema(
    name=DomainName.PERSONALITIES,
    file_name="personalities.json",
    items_field="personalities",
    items_title="Personalities",
    record_model=PersonalityRecord,
    seed_file="personalities.json",
)

DOMAINS: dict[DomainName, DomainSchema] = {
    schema.name: schema for schema in (LLM_CONFIGS, LLM_MODELS, AGENTS, ROLES, PERSONALITIES)
}

SECRET_PREFIXES: tuple[str, ...] = tuple(
    schema.secret.prefix for schema in DOMAINS.values() if schema.secret is not None
)


def get_domain(name: DomainName | str) -> DomainSchema:
    return DOMAINS[DomainName(name)]
