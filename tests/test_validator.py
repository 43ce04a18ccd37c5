from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from core.domain.domains import CURRENT_SCHEMA_VERSION, AGENTS, LLM_CONFIGS, LLM_MODELS, PERSONALITIES, ROLES
from core.errors import ValidationError
from core.services.validator import SchemaValidator


def _role(role_id: str = "r1", **overrides):
    record = {
        "id": role_id,
        "name": "Moderator",
        "description": "Keeps the discussion on track",
        "systemPrompt": "You moderate.",
        "createdAt": "2024-05-01T10:00:00.000Z",
        "updatedAt": "2024-05-01T10:00:00.000Z",
    }
    record.update(overrides)
    return record


def _provider(provider_id: str = "openai", **overrides):
    record = {
        "id": provider_id,
        "name": "OpenAI",
        "models": [{"id": "gpt-4o", "name": "GPT-4o", "contextLength": 128000}],
    }
    record.update(overrides)
    return record


def test_missing_schema_version_defaults_to_current():
    doc = SchemaValidator(ROLES).validate({"roles": [_role()]})

    assert doc.schema_version == CURRENT_SCHEMA_VERSION
    stamp = datetime.fromisoformat(doc.last_updated)
    assert abs(datetime.now(timezone.utc) - stamp) < timedelta(seconds=5)


def test_existing_envelope_is_kept():
    raw = {"schemaVersion": "1.2.0", "roles": [], "lastUpdated": "2024-01-01T00:00:00.000Z"}
    doc = SchemaValidator(ROLES).validate(raw)

    assert doc.schema_version == "1.2.0"
    assert doc.last_updated == "2024-01-01T00:00:00.000Z"


def test_unknown_fields_survive_round_trip():
    validator = SchemaValidator(ROLES)
    raw = {
        "schemaVersion": "1.0.0",
        "roles": [_role(color="teal", tags=["a", "b"])],
        "lastUpdated": "2024-05-01T10:00:00.000Z",
        "syncState": {"remote": "none"},
    }

    doc = validator.validate(raw)
    payload = validator.serialize(doc)

    assert payload == raw
    assert validator.validate(payload) == doc


def test_serialize_orders_envelope_keys():
    validator = SchemaValidator(ROLES)
    payload = validator.serialize(validator.validate({"roles": [], "zeta": 1}))

    assert list(payload) == ["schemaVersion", "roles", "lastUpdated", "zeta"]


def test_first_invalid_record_aborts_with_path():
    raw = {"roles": [_role("r1"), _role("r2"), _role("r3", name="")]}

    with pytest.raises(ValidationError) as excinfo:
        SchemaValidator(ROLES).validate(raw)

    assert excinfo.value.field_path == "roles[2].name"
    assert excinfo.value.reason == "Role name cannot be empty"
    assert str(excinfo.value) == "roles[2].name: Role name cannot be empty"


def test_missing_required_field():
    record = _role()
    del record["systemPrompt"]

    with pytest.raises(ValidationError) as excinfo:
        SchemaValidator(ROLES).validate({"roles": [record]})

    assert excinfo.value.field_path == "roles[0].systemPrompt"
    assert excinfo.value.reason == "System prompt is required"


def test_too_long_string_reports_limit():
    with pytest.raises(ValidationError) as excinfo:
        SchemaValidator(ROLES).validate({"roles": [_role(description="x" * 501)]})

    assert excinfo.value.reason == "Role description cannot exceed 500 characters"


def test_strict_types_do_not_coerce():
    with pytest.raises(ValidationError) as excinfo:
        SchemaValidator(ROLES).validate({"roles": [_role(name=42)]})

    assert excinfo.value.expected == "string"
    assert excinfo.value.reason == "Role name must be a string"


def test_items_must_be_array():
    with pytest.raises(ValidationError) as excinfo:
        SchemaValidator(AGENTS).validate({"agents": {"a": 1}})

    assert excinfo.value.field_path == "agents"
    assert excinfo.value.reason == "Agents must be an array of agents records"


def test_document_must_be_object():
    with pytest.raises(ValidationError) as excinfo:
        SchemaValidator(ROLES).validate(["not", "an", "object"])

    assert excinfo.value.field_path == "$"


def test_duplicate_ids_rejected():
    with pytest.raises(ValidationError) as excinfo:
        SchemaValidator(ROLES).validate({"roles": [_role("same"), _role("same")]})

    assert excinfo.value.field_path == "roles[1].id"
    assert "Duplicate id" in excinfo.value.reason


def test_invalid_timestamp():
    with pytest.raises(ValidationError) as excinfo:
        SchemaValidator(ROLES).validate({"roles": [_role(createdAt="yesterday")]})

    assert excinfo.value.reason == "Created timestamp must be a valid ISO datetime"


def test_invalid_base_url():
    record = {"id": "c1", "customName": "Local", "provider": "ollama", "baseUrl": "localhost:11434"}

    with pytest.raises(ValidationError) as excinfo:
        SchemaValidator(LLM_CONFIGS).validate({"configurations": [record]})

    assert excinfo.value.field_path == "configurations[0].baseUrl"
    assert excinfo.value.reason == "Base URL must be a valid URL"


def test_context_length_bounds_mention_unit():
    provider = _provider(models=[{"id": "tiny", "name": "Tiny", "contextLength": 500}])

    with pytest.raises(ValidationError) as excinfo:
        SchemaValidator(LLM_MODELS).validate({"providers": [provider]})

    assert excinfo.value.field_path == "providers[0].models[0].contextLength"
    assert excinfo.value.reason == "Context length must be at least 1,000 tokens"


def test_provider_needs_a_model():
    with pytest.raises(ValidationError) as excinfo:
        SchemaValidator(LLM_MODELS).validate({"providers": [_provider(models=[])]})

    assert excinfo.value.reason == "Provider must have at least one model"


def test_provider_count_limits():
    validator = SchemaValidator(LLM_MODELS)

    with pytest.raises(ValidationError) as empty:
        validator.validate({"providers": []})
    assert empty.value.reason == "Providers must contain at least 1 entries"

    too_many = [_provider(f"p{index}") for index in range(21)]
    with pytest.raises(ValidationError) as full:
        validator.validate({"providers": too_many})
    assert full.value.reason == "Providers cannot contain more than 20 entries"


def test_behavior_values_use_field_messages():
    record = {
        "id": "p1",
        "name": "Calm",
        "behaviors": {"formality": 120},
        "customInstructions": "",
    }

    with pytest.raises(ValidationError) as excinfo:
        SchemaValidator(PERSONALITIES).validate({"personalities": [record]})

    assert excinfo.value.field_path == "personalities[0].behaviors.formality"
    assert excinfo.value.reason == "Behavior values cannot exceed 100"


def test_validate_record_without_path():
    record = SchemaValidator(ROLES).validate_record(_role())

    assert record.name == "Moderator"
    assert record.system_prompt == "You moderate."


def test_plaintext_api_key_in_record_rejected():
    record = {"id": "c1", "customName": "Local", "provider": "ollama", "apiKey": "sk-plain-777777"}

    with pytest.raises(ValidationError) as excinfo:
        SchemaValidator(LLM_CONFIGS).validate({"configurations": [record]})

    assert excinfo.value.field_path == "configurations[0].apiKey"
    assert excinfo.value.reason == "API key must not be stored in the settings file"

    with pytest.raises(ValidationError) as excinfo:
        SchemaValidator(LLM_CONFIGS).validate_record({"id": "c1", "customName": "Local", "provider": "ollama", "api_key": "x"})

    assert excinfo.value.field_path == "api_key"


def test_serialize_does_not_add_absent_optional_keys():
    record = {"id": "c1", "customName": "Local", "provider": "ollama"}
    validator = SchemaValidator(LLM_CONFIGS)

    payload = validator.serialize(validator.validate({"schemaVersion": "1.0.0", "configurations": [record]}))

    assert payload["configurations"] == [record]
