"""Superficie CRUD de dominios para el resto de la aplicación.

Por qué una fachada:
- Solo enruta: la validación vive en el validador, la persistencia en los stores
  y la coherencia en las cachés.
- `build_config_facade` es la raíz de composición; se llama una vez por proceso
  y el resultado se pasa por referencia.
"""

from __future__ import annotations

import logging
from typing import Any

from adapters.fernet_cipher import KEY_FILE_NAME, FernetCipher
from adapters.secret_store import SECRET_FILE_NAME, SecretStore
from core.config import AppSettings
from core.domain.domains import DOMAINS, SECRET_PREFIXES, DomainName
from core.domain.models import SettingsRecord
from core.errors import SeedLoadError
from core.interfaces.cipher import SecretCipher
from core.resources_loader import load_seed
from core.services.domain_store import UNSET, DomainStore
from core.services.store_cache import StoreCache

logger = logging.getLogger(__name__)


class DomainFacade:
    """CRUD de un dominio: lee de la caché y escribe a través de ella."""

    def __init__(self, cache: StoreCache) -> None:
        self._cache = cache

    @property
    def domain(self) -> DomainName:
        return self._cache.domain

    @property
    def cache(self) -> StoreCache:
        return self._cache

    def list(self) -> list[SettingsRecord]:
        return self._cache.list()

    def get(self, record_id: str) -> SettingsRecord | None:
        return self._cache.get(record_id)

    def create(self, fields: dict[str, Any], secret: str | None = None) -> SettingsRecord:
        return self._cache.create(fields, secret)

    def update(self, record_id: str, fields: dict[str, Any], secret: Any = UNSET) -> SettingsRecord:
        return self._cache.update(record_id, fields, secret)

    def delete(self, record_id: str) -> None:
        self._cache.delete(record_id)

    def reset(self) -> list[SettingsRecord]:
        """Restaura los registros por defecto empaquetados (vacío si el dominio no tiene)."""

        return list(self._cache.reset().items)

    def read_secret(self, record_id: str) -> str | None:
        return self._cache.store.read_secret(record_id)

    def refresh(self) -> None:
        self._cache.refresh()


class ConfigFacade:
    def __init__(self, caches: dict[DomainName, StoreCache]) -> None:
        self._domains = {name: DomainFacade(cache) for name, cache in caches.items()}

    def domain(self, name: DomainName | str) -> DomainFacade:
        return self._domains[DomainName(name)]

    @property
    def llm_configs(self) -> DomainFacade:
        return self.domain(DomainName.LLM_CONFIGS)

    @property
    def llm_models(self) -> DomainFacade:
        return self.domain(DomainName.LLM_MODELS)

    @property
    def agents(self) -> DomainFacade:
        return self.domain(DomainName.AGENTS)

    @property
    def roles(self) -> DomainFacade:
        return self.domain(DomainName.ROLES)

    @property
    def personalities(self) -> DomainFacade:
        return self.domain(DomainName.PERSONALITIES)

    def domains(self) -> list[DomainFacade]:
        return list(self._domains.values())

    def refresh_all(self) -> None:
        """Vacía todas las cachés; lo usa la automatización tras cambios externos en los ficheros."""

        for facade in self._domains.values():
            facade.refresh()


def build_config_facade(
    settings: AppSettings | None = None,
    *,
    cipher: SecretCipher | None = None,
) -> ConfigFacade:
    """Conecta stores, cachés y almacén de secretos a partir de la configuración.

    Por qué un builder:
    - Un único sitio decide rutas de ficheros, el cifrador y los seeds.
    - Los tests pueden apuntarlo a un directorio temporal e inyectar un cifrador.

    Los seeds se cargan siempre (`reset` los necesita); `include_defaults` solo
    decide si un fichero ausente arranca con ellos.
    """

    settings = settings or AppSettings()
    data_dir = settings.resolved_data_dir()

    if cipher is None:
        if settings.secret_key:
            cipher = FernetCipher(settings.secret_key)
        else:
            cipher = FernetCipher.from_key_file(data_dir / KEY_FILE_NAME)
    secrets = SecretStore(data_dir / SECRET_FILE_NAME, cipher, prefixes=SECRET_PREFIXES)

    caches: dict[DomainName, StoreCache] = {}
    for name, schema in DOMAINS.items():
        seed: Any = None
        try:
            seed = load_seed(schema)
        except SeedLoadError as exc:
            logger.warning("Starting %s without bundled defaults: %s", name.value, exc)
        store = DomainStore(
            schema,
            data_dir / schema.file_name,
            secrets=secrets if schema.secret is not None else None,
            include_defaults=settings.include_defaults,
            seed=seed,
        )
        caches[name] = StoreCache(store)

    logger.debug("Settings store ready in %s", data_dir)
    return ConfigFacade(caches)
