"""Caché de lectura sobre un `DomainStore`.

Reglas:
- Una vez caliente, las lecturas se sirven desde memoria.
- Las mutaciones (incluido `reset`) van al store y luego vacían la caché, también
  cuando fallan; el documento cacheado nunca se parchea con el resultado de una
  mutación, porque el fichero puede cambiar a espaldas del proceso.
- `refresh()` vacía la caché a demanda. Una carga que ya estaba en curso cuando
  ocurrió el `refresh()` devuelve su resultado a quien la pidió pero no calienta
  la caché: la primera lectura iniciada tras un refresh siempre ve el disco.
- Una carga fallida deja la caché fría; la siguiente lectura lo reintenta.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from core.domain.domains import DomainName
from core.domain.models import SettingsDocument, SettingsRecord
from core.errors import SettingsError
from core.services.domain_store import UNSET, DomainStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoherencyReport:
    is_coherent: bool
    cached_count: int
    stored_count: int
    issues: list[str] = field(default_factory=list)


class StoreCache:
    def __init__(self, store: DomainStore) -> None:
        self.store = store
        self._document: SettingsDocument | None = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def domain(self) -> DomainName:
        return self.store.domain

    @property
    def is_warm(self) -> bool:
        with self._lock:
            return self._document is not None

    def read(self) -> SettingsDocument:
        with self._lock:
            document = self._document
            generation = self._generation
        if document is not None:
            return document

        document = self.store.load()
        with self._lock:
            if self._generation == generation:
                self._document = document
        logger.debug("Loaded %s into cache (%d records)", self.domain.value, len(document.items))
        return document

    def list(self) -> list[SettingsRecord]:
        return list(self.read().items)

    def get(self, record_id: str) -> SettingsRecord | None:
        return self.read().find(record_id)

    def refresh(self) -> None:
        with self._lock:
            self._document = None
            self._generation += 1
        logger.debug("Invalidated %s cache", self.domain.value)

    def create(self, fields: dict[str, Any], secret: str | None = None) -> SettingsRecord:
        try:
            return self.store.create(fields, secret)
        finally:
            self.refresh()

    def update(self, record_id: str, fields: dict[str, Any], secret: Any = UNSET) -> SettingsRecord:
        try:
            return self.store.update(record_id, fields, secret)
        finally:
            self.refresh()

    def delete(self, record_id: str) -> None:
        try:
            self.store.delete(record_id)
        finally:
            self.refresh()

    def reset(self) -> SettingsDocument:
        try:
            return self.store.reset()
        finally:
            self.refresh()

    def check_coherency(self) -> CoherencyReport:
        """Compara los ids cacheados con una carga fresca, sin tocar la caché."""

        with self._lock:
            cached = self._document
        if cached is None:
            # Una caché fría no puede discrepar del disco.
            return CoherencyReport(is_coherent=True, cached_count=0, stored_count=-1)

        try:
            stored = self.store.load()
        except SettingsError as exc:
            return CoherencyReport(
                is_coherent=False,
                cached_count=len(cached.items),
                stored_count=-1,
                issues=[f"storage load failed: {exc}"],
            )

        cached_ids = cached.ids()
        stored_ids = stored.ids()
        issues = [f"{record_id} is on disk but not in cache" for record_id in stored_ids if record_id not in cached_ids]
        issues += [f"{record_id} is in cache but not on disk" for record_id in cached_ids if record_id not in stored_ids]
        if not issues and cached_ids != stored_ids:
            issues.append("record order differs")
        return CoherencyReport(
            is_coherent=not issues,
            cached_count=len(cached_ids),
            stored_count=len(stored_ids),
            issues=issues,
        )
