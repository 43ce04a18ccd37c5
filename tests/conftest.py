from __future__ import annotations

import pytest
from cryptography.fernet import Fernet

from adapters.fernet_cipher import FernetCipher
from adapters.secret_store import SECRET_FILE_NAME, SecretStore
from core.config import AppSettings
from core.domain.domains import SECRET_PREFIXES
from core.services.config_facade import build_config_facade


@pytest.fixture
def cipher() -> FernetCipher:
    return FernetCipher(Fernet.generate_key().decode("ascii"))


@pytest.fixture
def secret_store(tmp_path, cipher) -> SecretStore:
    return SecretStore(tmp_path / SECRET_FILE_NAME, cipher, prefixes=SECRET_PREFIXES)


@pytest.fixture
def facade(tmp_path, cipher):
    settings = AppSettings(data_dir=tmp_path, include_defaults=False, _env_file=None)
    return build_config_facade(settings, cipher=cipher)


@pytest.fixture
def seeded_facade(tmp_path, cipher):
    settings = AppSettings(data_dir=tmp_path, include_defaults=True, _env_file=None)
    return build_config_facade(settings, cipher=cipher)
