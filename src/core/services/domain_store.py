"""Store en fichero para un dominio de ajustes.

Responsabilidades:
- Cargar (fichero ausente -> documento por defecto, fichero corrupto -> error).
- CRUD de registros con ids y timestamps generados.
- Guardar el campo sensible del dominio en el `SecretStore`, emparejado con el
  documento para que ningún lado apunte a algo que no existe.
- Restaurar los valores por defecto empaquetados (`reset`).

Orden de escritura:
- create/update: primero el secreto, luego el documento; si falla la escritura
  del documento se deshace el cambio del secreto y se lanza `PersistenceRolledBack`.
- delete/reset: primero el documento, luego los secretos (un secreto huérfano
  es inofensivo).

Los ids siempre se generan (uuid4): un id borrado nunca vuelve a existir.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from adapters.json_storage import read_json_file, write_json_atomic
from adapters.secret_store import SecretStore, composite_key
from core.domain.domains import DomainName, DomainSchema
from core.domain.masking import is_masked_echo, mask_secret
from core.domain.models import SettingsDocument, SettingsRecord, utc_now
from core.errors import (
    DuplicateValue,
    NotFound,
    PersistenceRolledBack,
    SecretStoreError,
    SeedLoadError,
    StorageError,
    ValidationError,
)
from core.services.validator import SchemaValidator

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


@dataclass(frozen=True)
class SeedResult:
    """Resultado de validar los datos por defecto; exactamente un campo está definido."""

    document: SettingsDocument | None = None
    error: SeedLoadError | None = None


class DomainStore:
    def __init__(
        self,
        schema: DomainSchema,
        path: Path,
        *,
        secrets: SecretStore | None = None,
        include_defaults: bool = False,
        seed: Any = None,
        validator: SchemaValidator | None = None,
    ) -> None:
        if schema.secret is not None and secrets is None:
            raise ValueError(f"{schema.name.value} stores secrets and needs a SecretStore")
        self.schema = schema
        self.path = path
        self.include_defaults = include_defaults
        self._secrets = secrets
        self._seed = seed
        self._validator = validator or SchemaValidator(schema)
        self._lock = threading.RLock()

    @property
    def domain(self) -> DomainName:
        return self.schema.name

    @property
    def secrets(self) -> SecretStore | None:
        return self._secrets

    # Lecturas

    def load(self) -> SettingsDocument:
        return self._present(self._load_document())

    def list(self) -> list[SettingsRecord]:
        return list(self.load().items)

    def get(self, record_id: str) -> SettingsRecord | None:
        return self.load().find(record_id)

    def read_secret(self, record_id: str) -> str | None:
        """Secreto en claro para consumidores internos (clientes LLM). Nunca para mostrar."""

        spec = self.schema.secret
        if spec is None:
            return None
        if self._load_document().find(record_id) is None:
            raise NotFound(self.domain.value, record_id)
        return self._secrets.get(composite_key(spec.prefix, record_id))

    def seed_document(self) -> SeedResult:
        if self._seed is None:
            return SeedResult(document=self._validator.empty_document())
        try:
            return SeedResult(document=self._validator.validate(self._seed))
        except ValidationError as exc:
            return SeedResult(error=SeedLoadError(self.domain.value, str(exc)))

    # Mutaciones

    def create(self, fields: dict[str, Any], secret: str | None = None) -> SettingsRecord:
        fields = self._to_aliases(fields)
        secret = self._split_secret(fields, secret)
        spec = self.schema.secret
        if spec is not None:
            if not secret:
                if spec.required:
                    raise ValidationError(spec.field, "string", f"{spec.title} is required")
                secret = None
            else:
                self._check_secret(secret)

        with self._lock:
            document = self._load_document()
            new_id = str(uuid.uuid4())

            now = utc_now()
            record = self._validator.validate_record({**fields, "id": new_id, "createdAt": now, "updatedAt": now})
            self._check_unique_values(document, record)
            updated = dataclasses.replace(document, items=[*document.items, record], last_updated=now)
            payload = self._prepare(updated)

            key: str | None = None
            if spec is not None and secret is not None:
                key = composite_key(spec.prefix, new_id)
                self._secrets.put(key, secret)
            try:
                self._write(payload)
            except StorageError as exc:
                if key is None:
                    raise
                self._rollback_secret(key, None, exc)
                raise PersistenceRolledBack(self.path, f"create of {new_id} rolled back: {exc.detail}") from exc

        logger.info("Created %s record %s", self.domain.value, new_id)
        return self._with_mask(record, secret)

    def update(self, record_id: str, fields: dict[str, Any], secret: Any = UNSET) -> SettingsRecord:
        fields = self._to_aliases(fields)
        secret = self._split_secret(fields, secret, default=UNSET)
        spec = self.schema.secret

        with self._lock:
            document = self._load_document()
            index = self._index_of(document, record_id)
            existing = document.items[index]
            self._check_identity(existing, fields)

            now = utc_now()
            merged = existing.model_dump(mode="json", by_alias=True, exclude_unset=True)
            merged.update(fields)
            merged.update({"id": existing.id, "updatedAt": now})
            record = self._validator.validate_record(merged)
            self._check_unique_values(document, record, previous=existing)

            key = composite_key(spec.prefix, record_id) if spec is not None else None
            current = self._secrets.get(key) if key is not None else None
            action = self._secret_action(secret, current)

            items = list(document.items)
            items[index] = record
            payload = self._prepare(dataclasses.replace(document, items=items, last_updated=now))

            if action == "put":
                self._secrets.put(key, secret)
            elif action == "clear":
                self._secrets.delete(key)
            try:
                self._write(payload)
            except StorageError as exc:
                if action is None:
                    raise
                self._rollback_secret(key, current, exc)
                raise PersistenceRolledBack(self.path, f"update of {record_id} rolled back: {exc.detail}") from exc

        logger.info("Updated %s record %s", self.domain.value, record_id)
        if action == "put":
            return self._with_mask(record, secret)
        return self._with_mask(record, None if action == "clear" else current)

    def delete(self, record_id: str) -> None:
        spec = self.schema.secret
        with self._lock:
            document = self._load_document()
            index = self._index_of(document, record_id)
            items = [item for position, item in enumerate(document.items) if position != index]
            self._write(self._prepare(dataclasses.replace(document, items=items, last_updated=utc_now())))
            if spec is not None:
                self._secrets.delete(composite_key(spec.prefix, record_id))
        logger.info("Deleted %s record %s", self.domain.value, record_id)

    def reset(self) -> SettingsDocument:
        """Sobrescribe el fichero con los valores por defecto (o vacío) y borra los secretos del dominio.

        A diferencia de la carga, aquí un seed inválido es un error: el operador
        pidió explícitamente los valores por defecto.
        """

        spec = self.schema.secret
        with self._lock:
            result = self.seed_document()
            if result.error is not None:
                raise result.error
            document = dataclasses.replace(result.document, last_updated=utc_now())
            self._write(self._prepare(document))
            removed = self._secrets.delete_prefix(spec.prefix) if spec is not None else 0
        logger.info(
            "Reset %s to defaults (%d records, %d secrets removed)", self.domain.value, len(document.items), removed
        )
        return self._present(document)

    # Internos

    def _load_document(self) -> SettingsDocument:
        try:
            raw = read_json_file(self.path)
        except FileNotFoundError:
            return self._default_document()
        return self._validator.validate(raw)

    def _default_document(self) -> SettingsDocument:
        if not self.include_defaults:
            return self._validator.empty_document()
        result = self.seed_document()
        if result.error is not None:
            logger.warning("Ignoring bundled defaults: %s", result.error)
            return self._validator.empty_document()
        return result.document

    def _prepare(self, document: SettingsDocument) -> dict[str, Any]:
        payload = self._validator.serialize(document)
        # Lo que se escribe tiene que volver a cargar.
        self._validator.validate(payload)
        return payload

    def _write(self, payload: dict[str, Any]) -> None:
        write_json_atomic(self.path, payload)

    def _present(self, document: SettingsDocument) -> SettingsDocument:
        spec = self.schema.secret
        if spec is None:
            return document
        items = []
        for record in document.items:
            secret = self._secrets.get(composite_key(spec.prefix, record.id))
            if secret is None:
                logger.warning("%s record %s has no stored %s", self.domain.value, record.id, spec.title)
            items.append(self._with_mask(record, secret))
        return dataclasses.replace(document, items=items)

    def _with_mask(self, record: SettingsRecord, secret: str | None) -> SettingsRecord:
        spec = self.schema.secret
        if spec is None:
            return record
        masked = mask_secret(secret) if secret else None
        return record.model_copy(update={spec.display_attr: masked})

    def _to_aliases(self, fields: dict[str, Any]) -> dict[str, Any]:
        aliases = {
            name: info.alias
            for name, info in self.schema.record_model.model_fields.items()
            if info.alias and info.alias != name
        }
        return {aliases.get(key, key): value for key, value in fields.items()}

    def _split_secret(self, fields: dict[str, Any], secret: Any, *, default: Any = None) -> Any:
        spec = self.schema.secret
        if spec is None:
            if secret is not default and secret is not None:
                raise ValidationError("secret", "nothing", f"{self.domain.label().capitalize()} records have no secret field")
            return secret
        given = [(name, fields.pop(name)) for name in spec.spellings if name in fields]
        if not given:
            return secret
        name, value = given[0]
        if any(other != value for _, other in given[1:]):
            raise ValidationError(name, "single value", f"{spec.title} was given twice with different values")
        return value if secret is default else secret

    def _check_secret(self, secret: Any) -> None:
        spec = self.schema.secret
        if not isinstance(secret, str):
            raise ValidationError(spec.field, "string", f"{spec.title} must be a string")
        if len(secret) > spec.max_length:
            raise ValidationError(spec.field, "string", f"{spec.title} cannot exceed {spec.max_length:,} characters")

    def _secret_action(self, secret: Any, current: str | None) -> str | None:
        """Qué hace un update con el secreto guardado: None, "put" o "clear"."""

        spec = self.schema.secret
        if spec is None or secret is UNSET or secret is None:
            return None
        if isinstance(secret, str) and is_masked_echo(secret, current):
            return None
        if secret == "":
            if spec.required:
                raise ValidationError(spec.field, "string", f"{spec.title} is required")
            return "clear" if current is not None else None
        self._check_secret(secret)
        return "put"

    def _check_identity(self, existing: SettingsRecord, fields: dict[str, Any]) -> None:
        if "id" in fields and fields["id"] != existing.id:
            raise ValidationError("id", "unchanged value", "Record ID cannot be changed")
        if "createdAt" in fields and fields["createdAt"] != existing.created_at:
            raise ValidationError("createdAt", "unchanged value", "Created timestamp cannot be changed")

    def _check_unique_values(
        self,
        document: SettingsDocument,
        record: SettingsRecord,
        *,
        previous: SettingsRecord | None = None,
    ) -> None:
        """Rechaza valores repetidos en `unique_fields`; en update solo si el valor cambia."""

        model_fields = self.schema.record_model.model_fields
        for attr in self.schema.unique_fields:
            value = getattr(record, attr)
            if previous is not None and getattr(previous, attr) == value:
                continue
            for other in document.items:
                if other.id != record.id and getattr(other, attr) == value:
                    raise DuplicateValue(self.domain.value, other.id, model_fields[attr].alias or attr, value)

    def _index_of(self, document: SettingsDocument, record_id: str) -> int:
        for index, item in enumerate(document.items):
            if item.id == record_id:
                return index
        raise NotFound(self.domain.value, record_id)

    def _rollback_secret(self, key: str, previous: str | None, cause: Exception) -> None:
        try:
            if previous is None:
                self._secrets.delete(key)
            else:
                self._secrets.put(key, previous)
        except SecretStoreError as exc:
            logger.error("Secret rollback for %s failed after %s: %s", key, cause, exc)
            raise
        logger.warning("Rolled back secret %s after failed write of %s", key, self.path.name)
