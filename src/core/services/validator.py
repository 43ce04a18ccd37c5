"""Validación de esquema de los documentos de dominio.

Cómo funciona:
1) El sobre (`schemaVersion`, `lastUpdated`) se valida con valores por defecto.
2) El array de items se valida registro a registro; el primer registro inválido
   aborta todo el documento (sin aceptación parcial).
3) Los errores de Pydantic se traducen a `core.errors.ValidationError` con la
   ruta del campo (`roles[2].name`), el tipo esperado y un motivo legible.

Las claves desconocidas sobreviven en ambos niveles y `serialize` las reinyecta,
excepto el campo secreto del dominio: un registro que lo trae en claro se rechaza.
"""

from __future__ import annotations

import typing
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.fields import FieldInfo

from core.domain.domains import DomainSchema
from core.domain.models import IsoTimestamp, SettingsDocument, SettingsRecord, utc_now
from core.errors import ValidationError

_EXPECTED: dict[str, str] = {
    "missing": "value",
    "string_type": "string",
    "string_too_short": "string",
    "string_too_long": "string",
    "int_type": "integer",
    "int_parsing": "integer",
    "greater_than_equal": "integer",
    "less_than_equal": "integer",
    "bool_type": "boolean",
    "dict_type": "object",
    "model_type": "object",
    "list_type": "array",
    "too_short": "array",
    "too_long": "array",
    "iso_datetime": "ISO-8601 datetime",
    "http_url": "http(s) URL",
}


class _Envelope(BaseModel):
    model_config = ConfigDict(extra="allow", strict=True, populate_by_name=True)

    schema_version: str = Field(..., alias="schemaVersion", min_length=1, title="Schema version")
    last_updated: IsoTimestamp = Field(default_factory=utc_now, alias="lastUpdated", title="Last updated")


def _nested_model(annotation: Any) -> type[BaseModel] | None:
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    for arg in typing.get_args(annotation):
        found = _nested_model(arg)
        if found is not None:
            return found
    return None


def _resolve_field(model: type[BaseModel], loc: tuple[Any, ...]) -> FieldInfo | None:
    """Recorre la ubicación del error por los modelos anidados hasta el campo declarado más interno."""

    found: FieldInfo | None = None
    current: type[BaseModel] | None = model
    for part in loc:
        if isinstance(part, int):
            continue
        if current is None:
            break
        fields = {(info.alias or name): info for name, info in current.model_fields.items()}
        info = fields.get(part) or current.model_fields.get(part)
        if info is None:
            break
        found = info
        current = _nested_model(info.annotation)
    return found


def _format_loc(prefix: str, loc: tuple[Any, ...]) -> str:
    path = prefix
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path = f"{path}.{part}" if path else str(part)
    return path or "$"


def _reason(error: dict[str, Any], info: FieldInfo | None) -> str:
    kind = error["type"]
    ctx = error.get("ctx") or {}
    extra = info.json_schema_extra if info is not None and isinstance(info.json_schema_extra, dict) else {}
    overrides = extra.get("messages") or {}
    if kind in overrides:
        return overrides[kind]

    title = info.title if info is not None and info.title else str(error["loc"][-1] if error["loc"] else "Value")
    unit = f" {extra['unit']}" if extra.get("unit") else ""

    if kind == "missing":
        return f"{title} is required"
    if kind == "string_type":
        return f"{title} must be a string"
    if kind == "string_too_short":
        if ctx.get("min_length") == 1:
            return f"{title} cannot be empty"
        return f"{title} must be at least {ctx['min_length']:,} characters"
    if kind == "string_too_long":
        return f"{title} cannot exceed {ctx['max_length']:,} characters"
    if kind in ("int_type", "int_parsing"):
        if isinstance(error.get("input"), float):
            return f"{title} must be an integer"
        return f"{title} must be a number"
    if kind == "greater_than_equal":
        return f"{title} must be at least {ctx['ge']:,}{unit}"
    if kind == "less_than_equal":
        return f"{title} cannot exceed {ctx['le']:,}{unit}"
    if kind == "bool_type":
        return f"{title} must be true or false"
    if kind in ("dict_type", "model_type"):
        return f"{title} must be an object"
    if kind == "list_type":
        return f"{title} must be an array"
    if kind == "too_short":
        return f"{title} must contain at least {ctx['min_length']:,} items"
    if kind == "too_long":
        return f"{title} cannot contain more than {ctx['max_length']:,} items"
    if kind == "iso_datetime":
        return f"{title} must be a valid ISO datetime"
    if kind == "http_url":
        return f"{title} must be a valid URL"
    return f"{title}: {error['msg']}"


def translate_error(exc: PydanticValidationError, model: type[BaseModel], prefix: str = "") -> ValidationError:
    """Convierte el primer error de pydantic en el `ValidationError` del almacén."""

    error = exc.errors(include_url=False)[0]
    loc = tuple(error["loc"])
    info = _resolve_field(model, loc)
    return ValidationError(
        field_path=_format_loc(prefix, loc),
        expected=_EXPECTED.get(error["type"], "valid value"),
        reason=_reason(error, info),
    )


class SchemaValidator:
    """Valida y serializa los documentos de un dominio."""

    def __init__(self, schema: DomainSchema) -> None:
        self.schema = schema

    def validate(self, raw: Any) -> SettingsDocument:
        schema = self.schema
        if not isinstance(raw, dict):
            raise ValidationError("$", "object", f"{schema.name.label().capitalize()} document must be a JSON object")

        body = dict(raw)
        items_raw = body.pop(schema.items_field, [])
        body.setdefault("schemaVersion", schema.current_version)

        try:
            envelope = _Envelope.model_validate(body)
        except PydanticValidationError as exc:
            raise translate_error(exc, _Envelope) from None

        if not isinstance(items_raw, list):
            raise ValidationError(
                schema.items_field,
                "array",
                f"{schema.items_title} must be an array of {schema.name.label()} records",
            )

        items = [self._validate_item(item, f"{schema.items_field}[{index}]") for index, item in enumerate(items_raw)]
        self._check_bounds(items)
        self._check_unique_ids(items)

        return SettingsDocument(
            schema_version=envelope.schema_version,
            items=items,
            last_updated=envelope.last_updated,
            extra=dict(envelope.model_extra or {}),
        )

    def validate_record(self, fields: Any, path: str = "") -> SettingsRecord:
        return self._validate_item(fields, path)

    def serialize(self, document: SettingsDocument) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "schemaVersion": document.schema_version,
            # exclude_unset: las claves opcionales ausentes en la entrada no se añaden.
            self.schema.items_field: [
                item.model_dump(mode="json", by_alias=True, exclude_unset=True) for item in document.items
            ],
            "lastUpdated": document.last_updated,
        }
        for key, value in document.extra.items():
            payload.setdefault(key, value)
        return payload

    def empty_document(self) -> SettingsDocument:
        return SettingsDocument(schema_version=self.schema.current_version, items=[], last_updated=utc_now())

    def _validate_item(self, raw: Any, path: str) -> SettingsRecord:
        model = self.schema.record_model
        if not isinstance(raw, dict):
            raise ValidationError(path or "$", "object", "Record must be a JSON object")
        self._reject_plain_secret(raw, path)
        try:
            return model.model_validate(raw)
        except PydanticValidationError as exc:
            raise translate_error(exc, model, path) from None

    def _reject_plain_secret(self, raw: dict[str, Any], path: str) -> None:
        spec = self.schema.secret
        if spec is None:
            return
        for name in spec.spellings:
            if name in raw:
                raise ValidationError(
                    f"{path}.{name}" if path else name,
                    "absent",
                    f"{spec.title} must not be stored in the settings file",
                )

    def _check_bounds(self, items: list[SettingsRecord]) -> None:
        schema = self.schema
        if len(items) < schema.min_items:
            raise ValidationError(
                schema.items_field,
                "array",
                f"{schema.items_title} must contain at least {schema.min_items:,} entries",
            )
        if schema.max_items is not None and len(items) > schema.max_items:
            raise ValidationError(
                schema.items_field,
                "array",
                f"{schema.items_title} cannot contain more than {schema.max_items:,} entries",
            )

    def _check_unique_ids(self, items: list[SettingsRecord]) -> None:
        seen: set[str] = set()
        for index, item in enumerate(items):
            if item.id in seen:
                raise ValidationError(
                    f"{self.schema.items_field}[{index}].id",
                    "unique string",
                    f"Duplicate id: {item.id}",
                )
            seen.add(item.id)
