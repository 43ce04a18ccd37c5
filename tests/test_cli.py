from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from cli.main import app

runner = CliRunner()


@pytest.fixture
def env(tmp_path):
    return {
        "CONVO_SETTINGS_DATA_DIR": str(tmp_path),
        "CONVO_SETTINGS_SECRET_KEY": "test-secret-key-material-0123456789",
        "CONVO_SETTINGS_INCLUDE_DEFAULTS": "true",
    }


def _only_config_id(tmp_path) -> str:
    saved = json.loads((tmp_path / "llm_config.json").read_text(encoding="utf-8"))
    assert len(saved["configurations"]) == 1
    return saved["configurations"][0]["id"]


def test_add_and_show_llm_config(env, tmp_path):
    result = runner.invoke(
        app,
        ["add-llm-config", "--name", "Work", "--provider", "openai"],
        input="sk-live-abcdef123\n",
        env=env,
    )
    assert result.exit_code == 0, result.output
    assert "Created configuration" in result.output

    record_id = _only_config_id(tmp_path)
    shown = runner.invoke(app, ["show", "llm_configs", record_id], env=env)

    assert shown.exit_code == 0, shown.output
    assert "sk-...123" in shown.output
    assert "sk-live-abcdef123" not in shown.output
    assert "sk-live-abcdef123" not in (tmp_path / "llm_config.json").read_text(encoding="utf-8")


def test_update_record_fields(env, tmp_path):
    runner.invoke(
        app,
        ["add-llm-config", "--name", "Work", "--provider", "openai"],
        input="sk-live-abcdef123\n",
        env=env,
    )
    record_id = _only_config_id(tmp_path)

    result = runner.invoke(app, ["update", "llm_configs", record_id, "--set", "customName=Home"], env=env)

    assert result.exit_code == 0, result.output
    saved = json.loads((tmp_path / "llm_config.json").read_text(encoding="utf-8"))
    assert saved["configurations"][0]["customName"] == "Home"


def test_update_reports_validation_error(env):
    result = runner.invoke(app, ["update", "roles", "project-manager", "--set", "name="], env=env)

    assert result.exit_code == 1
    assert "ValidationError" in result.output


def test_list_seeded_models(env):
    result = runner.invoke(app, ["list", "llm_models"], env=env)

    assert result.exit_code == 0, result.output
    assert "OpenAI" in result.output


def test_delete_unknown_record(env):
    result = runner.invoke(app, ["delete", "roles", "no-such-role", "--yes"], env=env)

    assert result.exit_code == 1
    assert "NotFound" in result.output


def test_validate_flags_corrupt_file(env, tmp_path):
    (tmp_path / "roles.json").write_text("{oops", encoding="utf-8")

    result = runner.invoke(app, ["validate"], env=env)

    assert result.exit_code == 1
    assert "roles.json" in result.output
    assert "OK" in result.output


def test_doctor_on_fresh_data_dir(env):
    result = runner.invoke(app, ["doctor", "run"], env=env)

    assert result.exit_code == 0, result.output
    assert "Data dir" in result.output


def test_reset_roles(env, tmp_path):
    runner.invoke(app, ["delete", "roles", "project-manager", "--yes"], env=env)

    result = runner.invoke(app, ["reset", "roles", "--yes"], env=env)

    assert result.exit_code == 0, result.output
    assert "Reset" in result.output
    saved = json.loads((tmp_path / "roles.json").read_text(encoding="utf-8"))
    assert "project-manager" in [item["id"] for item in saved["roles"]]


def test_reset_aborts_without_confirmation(env, tmp_path):
    runner.invoke(app, ["delete", "roles", "project-manager", "--yes"], env=env)

    result = runner.invoke(app, ["reset", "roles"], input="n\n", env=env)

    assert result.exit_code == 1
    saved = json.loads((tmp_path / "roles.json").read_text(encoding="utf-8"))
    assert "project-manager" not in [item["id"] for item in saved["roles"]]


def test_duplicate_config_name_reported(env):
    args = ["add-llm-config", "--name", "Work", "--provider", "openai"]
    runner.invoke(app, args, input="sk-live-abcdef123\n", env=env)

    result = runner.invoke(app, args, input="sk-live-abcdef456\n", env=env)

    assert result.exit_code == 1
    assert "DuplicateValue" in result.output


def test_set_api_key_replaces_secret(env, tmp_path):
    runner.invoke(
        app,
        ["add-llm-config", "--name", "Work", "--provider", "openai"],
        input="sk-live-abcdef123\n",
        env=env,
    )
    record_id = _only_config_id(tmp_path)

    result = runner.invoke(app, ["set-api-key", record_id], input="sk-next-key-999\nsk-next-key-999\n", env=env)

    assert result.exit_code == 0, result.output
    assert "sk-...999" in result.output
    assert "sk-next-key-999" not in (tmp_path / "llm_config.json").read_text(encoding="utf-8")
