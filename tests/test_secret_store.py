from __future__ import annotations

import json

import pytest
from cryptography.fernet import Fernet

from adapters.fernet_cipher import KEY_FILE_NAME, FernetCipher, load_or_create_key_material
from adapters.secret_store import SecretStore, composite_key
from core.domain.masking import REDACTED, is_masked_echo, mask_secret
from core.errors import SecretStoreError, ValidationError


def test_put_get_delete(secret_store):
    key = composite_key("llm_api_key", "abc")

    secret_store.put(key, "sk-live-123456")
    assert secret_store.get(key) == "sk-live-123456"
    assert secret_store.keys() == ["llm_api_key_abc"]

    secret_store.delete(key)
    assert secret_store.get(key) is None
    # Deleting again is a no-op.
    secret_store.delete(key)


def test_values_are_opaque_at_rest(secret_store):
    secret_store.put("llm_api_key_abc", "sk-live-123456")

    raw = secret_store.path.read_text(encoding="utf-8")
    assert "sk-live-123456" not in raw
    assert list(json.loads(raw)) == ["llm_api_key_abc"]


def test_doubled_prefix_is_rejected(secret_store):
    with pytest.raises(ValidationError):
        secret_store.put("llm_api_key_llm_api_key_abc", "sk-live-123456")
    with pytest.raises(ValidationError):
        composite_key("llm_api_key", "llm_api_key_abc")


def test_unknown_prefix_and_missing_id_rejected(secret_store):
    with pytest.raises(ValidationError):
        secret_store.put("github_token_abc", "value")
    with pytest.raises(ValidationError):
        secret_store.put("llm_api_key_", "value")
    with pytest.raises(ValidationError):
        composite_key("llm_api_key", "")


def test_wrong_key_cannot_decrypt(tmp_path, secret_store):
    secret_store.put("llm_api_key_abc", "sk-live-123456")
    other = SecretStore(
        secret_store.path,
        FernetCipher(Fernet.generate_key().decode("ascii")),
        prefixes=("llm_api_key",),
    )

    with pytest.raises(SecretStoreError):
        other.get("llm_api_key_abc")


def test_corrupt_secret_file(secret_store):
    secret_store.path.write_text("[1, 2", encoding="utf-8")

    with pytest.raises(SecretStoreError):
        secret_store.get("llm_api_key_abc")


def test_key_file_is_generated_once(tmp_path):
    key_path = tmp_path / KEY_FILE_NAME

    first = load_or_create_key_material(key_path)
    second = load_or_create_key_material(key_path)

    assert first == second
    assert key_path.stat().st_mode & 0o777 == 0o600
    token = FernetCipher(first).encrypt("hello")
    assert FernetCipher.from_key_file(key_path).decrypt(token) == "hello"


def test_mask_secret():
    assert mask_secret("sk-abcdefxyz") == "sk-...xyz"
    assert mask_secret("sk-123") == REDACTED
    assert mask_secret("12345678") == "123...678"


def test_masked_echo():
    assert is_masked_echo("sk-...xyz", "sk-abcdefxyz")
    assert is_masked_echo(REDACTED, None)
    assert not is_masked_echo("sk-newkey-000", "sk-abcdefxyz")


def test_mask_never_reveals_a_value_shaped_like_its_mask():
    assert mask_secret("abc...xyz") == REDACTED
    assert not is_masked_echo("abc...xyz", "abc...xyz")
    assert is_masked_echo(REDACTED, "abc...xyz")


def test_delete_prefix_only_touches_that_prefix(tmp_path, cipher):
    store = SecretStore(tmp_path / "secrets.json", cipher, prefixes=("llm_api_key", "other_token"))
    store.put(composite_key("llm_api_key", "a"), "one")
    store.put(composite_key("llm_api_key", "b"), "two")
    store.put(composite_key("other_token", "a"), "three")

    assert store.delete_prefix("llm_api_key") == 2
    assert store.keys() == ["other_token_a"]
    assert store.delete_prefix("llm_api_key") == 0
