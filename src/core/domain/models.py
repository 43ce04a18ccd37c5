"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y restricciones autodocumentadas (Field) sin I/O.
- `extra="allow"` conserva las claves desconocidas en `model_extra`: así los
  registros escritos por una versión más nueva sobreviven a una más antigua.

Nota:
- Las claves JSON son camelCase (alias generator); los atributos, snake_case.
- Timestamps y URLs siguen siendo `str` para re-serializar byte a byte.
- `json_schema_extra` lleva lo que el validador necesita para redactar errores
  (`unit`, `messages` por tipo de error).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Annotated, Any, Generic, TypeVar
from urllib.parse import urlsplit

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError


def utc_now() -> str:
    """Timestamp ISO-8601 en UTC con precisión de milisegundos (`...Z`)."""

    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _check_iso_timestamp(value: str) -> str:
    try:
        datetime.fromisoformat(value)
    except ValueError:
        raise PydanticCustomError("iso_datetime", "Input should be an ISO-8601 datetime") from None
    return value


def _check_http_url(value: str) -> str:
    parts = urlsplit(value)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise PydanticCustomError("http_url", "Input should be an http(s) URL")
    return value


IsoTimestamp = Annotated[str, AfterValidator(_check_iso_timestamp)]
HttpUrlString = Annotated[str, AfterValidator(_check_http_url)]


class SettingsRecord(BaseModel):
    """Base de todo registro persistido: identidad, timestamps y passthrough."""

    model_config = ConfigDict(
        extra="allow",
        strict=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(..., min_length=1, max_length=100, title="Record ID")
    created_at: IsoTimestamp | None = Field(default=None, title="Created timestamp")
    updated_at: IsoTimestamp | None = Field(default=None, title="Updated timestamp")


class LlmConfigRecord(SettingsRecord):
    """Una configuración de proveedor LLM. La API key vive en el almacén de secretos."""

    id: str = Field(..., min_length=1, max_length=100, title="Configuration ID")
    custom_name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        title="Custom name",
        description="Etiqueta visible en la tarjeta del proveedor.",
    )
    provider: str = Field(
        ...,
        min_length=1,
        max_length=50,
        title="Provider",
        description="Identificador del proveedor (p.ej. 'openai', 'anthropic').",
    )
    base_url: HttpUrlString | None = Field(
        default=None,
        title="Base URL",
        description="Endpoint alternativo de la API del proveedor.",
    )
    use_auth_header: bool = Field(
        default=True,
        title="Use auth header",
        description="Envía la API key en la cabecera Authorization.",
    )
    masked_api_key: str | None = Field(
        default=None,
        exclude=True,
        description="API key enmascarada solo para mostrar; nunca se persiste.",
    )


class LlmModel(BaseModel):
    model_config = ConfigDict(extra="allow", strict=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., min_length=1, max_length=100, title="Model ID")
    name: str = Field(..., min_length=1, max_length=100, title="Model name")
    context_length: int = Field(
        ...,
        ge=1_000,
        le=10_000_000,
        title="Context length",
        json_schema_extra={"unit": "tokens"},
    )


class LlmProviderRecord(SettingsRecord):
    """Un proveedor del catálogo de modelos."""

    id: str = Field(..., min_length=1, max_length=50, title="Provider ID")
    name: str = Field(..., min_length=1, max_length=100, title="Provider name")
    models: list[LlmModel] = Field(
        ...,
        min_length=1,
        max_length=50,
        title="Models",
        json_schema_extra={
            "messages": {
                "too_short": "Provider must have at least one model",
                "too_long": "Provider cannot have more than 50 models",
            }
        },
    )


class AgentRecord(SettingsRecord):
    id: str = Field(..., min_length=1, max_length=100, title="Agent ID")
    name: str = Field(..., min_length=1, max_length=100, title="Agent name")
    model: str = Field(..., min_length=1, max_length=100, title="Model")
    llm_config_id: str = Field(..., min_length=1, max_length=100, title="LLM configuration ID")
    role: str = Field(..., min_length=1, max_length=100, title="Role")
    personality: str = Field(..., min_length=1, max_length=100, title="Personality")
    system_prompt: str | None = Field(default=None, max_length=5_000, title="System prompt")
    personality_behaviors: dict[str, Annotated[int, Field(ge=-100, le=100)]] | None = Field(
        default=None,
        title="Personality behaviors",
        json_schema_extra={
            "messages": {
                "int_type": "Behavior values must be numbers",
                "greater_than_equal": "Behavior values must be at least -100",
                "less_than_equal": "Behavior values cannot exceed 100",
            }
        },
    )


class RoleRecord(SettingsRecord):
    id: str = Field(..., min_length=1, max_length=100, title="Role ID")
    name: str = Field(..., min_length=1, max_length=100, title="Role name")
    description: str = Field(..., max_length=500, title="Role description")
    system_prompt: str = Field(..., min_length=1, max_length=5_000, title="System prompt")


class PersonalityRecord(SettingsRecord):
    id: str = Field(..., min_length=1, max_length=100, title="Personality ID")
    name: str = Field(..., min_length=1, max_length=50, title="Personality name")
    behaviors: dict[str, Annotated[int, Field(ge=0, le=100)]] = Field(
        ...,
        title="Behaviors",
        json_schema_extra={
            "messages": {
                "int_type": "Behavior values must be numbers",
                "greater_than_equal": "Behavior values must be at least 0",
                "less_than_equal": "Behavior values cannot exceed 100",
            }
        },
    )
    custom_instructions: str = Field(..., max_length=500, title="Custom instructions")


RecordT = TypeVar("RecordT", bound=SettingsRecord)


@dataclass
class SettingsDocument(Generic[RecordT]):
    """Forma persistida de un fichero de dominio.

    `extra` guarda las claves desconocidas de primer nivel; se reescriben tal cual.
    """

    schema_version: str
    items: list[RecordT]
    last_updated: str
    extra: dict[str, Any] = field(default_factory=dict)

    def find(self, record_id: str) -> RecordT | None:
        for item in self.items:
            if item.id == record_id:
                return item
        return None

    def ids(self) -> list[str]:
        return [item.id for item in self.items]
