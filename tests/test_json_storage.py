from __future__ import annotations

import json

import pytest

from adapters.json_storage import read_json_file, write_json_atomic
from core.errors import StorageError, ValidationError


def test_write_is_pretty_and_unicode(tmp_path):
    path = tmp_path / "nested" / "doc.json"

    write_json_atomic(path, {"name": "Café", "items": [1]})

    text = path.read_text(encoding="utf-8")
    assert "Café" in text
    assert text.endswith("\n")
    assert json.loads(text) == {"name": "Café", "items": [1]}
    assert [p.name for p in path.parent.iterdir()] == ["doc.json"]


def test_write_mode(tmp_path):
    path = write_json_atomic(tmp_path / "secret.json", {}, mode=0o600)

    assert path.stat().st_mode & 0o777 == 0o600


def test_missing_file_raises_file_not_found(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_json_file(tmp_path / "absent.json")


def test_invalid_json_is_validation_error(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{", encoding="utf-8")

    with pytest.raises(ValidationError) as excinfo:
        read_json_file(path)

    assert excinfo.value.field_path == "$"


def test_directory_path_is_storage_error(tmp_path):
    with pytest.raises(StorageError):
        read_json_file(tmp_path)
