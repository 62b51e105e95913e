from __future__ import annotations

from pathlib import Path

import allure
import pytest

from vault_clipper.config import (
    OBSIDIAN_API_HTTP_PORT,
    OBSIDIAN_API_HTTPS_PORT,
    LlmProviderSettings,
    LlmSettings,
    Settings,
)

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("Environment Settings"),
]


def test_defaults_without_environment(clean_env: pytest.MonkeyPatch) -> None:
    settings = Settings.from_env()

    assert settings.db_path == Path(".vault_clipper.db")
    assert settings.templates_path is None
    assert settings.vault.vault_name == ""
    assert settings.vault.rest_enabled is True
    assert settings.vault.port == OBSIDIAN_API_HTTPS_PORT
    assert settings.vault.base_url == f"https://127.0.0.1:{OBSIDIAN_API_HTTPS_PORT}"
    assert settings.history.max_tasks == 10
    assert settings.history.stale_after_seconds == 1800
    assert settings.connection.max_retries == 5
    assert settings.connection.retry_delay_seconds == 2.0
    assert settings.llm.provider == "openai"
    settings.validate()


def test_insecure_mode_switches_scheme_and_default_port(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("VAULT_CLIPPER_INSECURE", "yes")

    settings = Settings.from_env()

    assert settings.vault.port == OBSIDIAN_API_HTTP_PORT
    assert settings.vault.base_url == f"http://127.0.0.1:{OBSIDIAN_API_HTTP_PORT}"


def test_environment_overrides(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    clean_env.setenv("VAULT_CLIPPER_VAULT_NAME", " Notes ")
    clean_env.setenv("VAULT_CLIPPER_API_KEY", "secret")
    clean_env.setenv("VAULT_CLIPPER_REST_ENABLED", "off")
    clean_env.setenv("VAULT_CLIPPER_MAX_TASKS", "3")
    clean_env.setenv("VAULT_CLIPPER_TEMPLATES_PATH", str(tmp_path / "templates.json"))
    clean_env.setenv("VAULT_CLIPPER_LLM_PROVIDER", "claude")
    clean_env.setenv("VAULT_CLIPPER_CLAUDE_API_KEY", "ck")
    clean_env.setenv("VAULT_CLIPPER_AZURE_OPENAI_BASE_URL", "https://azure.test/")

    settings = Settings.from_env(db_path=tmp_path / "clipper.db")

    assert settings.db_path == tmp_path / "clipper.db"
    assert settings.templates_path == tmp_path / "templates.json"
    assert settings.vault.vault_name == "Notes"
    assert settings.vault.api_key == "secret"
    assert settings.vault.rest_enabled is False
    assert settings.history.max_tasks == 3
    claude = settings.llm.resolve()
    assert claude is not None
    assert claude.name == "claude"
    assert claude.api_key == "ck"
    assert claude.api_version == "2023-06-01"
    azure = settings.llm.resolve("azure-openai")
    assert azure is not None
    assert azure.base_url == "https://azure.test"


def test_invalid_boolean_is_rejected(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("VAULT_CLIPPER_REST_ENABLED", "maybe")

    with pytest.raises(ValueError, match="VAULT_CLIPPER_REST_ENABLED"):
        Settings.from_env()


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("VAULT_CLIPPER_MAX_TASKS", "0", "MAX_TASKS"),
        ("VAULT_CLIPPER_CONNECT_RETRIES", "0", "CONNECT_RETRIES"),
        ("VAULT_CLIPPER_STALE_TASK_SECONDS", "-1", "STALE_TASK_SECONDS"),
        ("VAULT_CLIPPER_PORT", "70000", "VAULT_CLIPPER_PORT"),
        ("VAULT_CLIPPER_LLM_PROVIDER", "mistral", "LLM_PROVIDER"),
    ],
)
def test_validate_rejects_unusable_values(
    clean_env: pytest.MonkeyPatch,
    name: str,
    value: str,
    message: str,
) -> None:
    clean_env.setenv(name, value)

    with pytest.raises(ValueError, match=message):
        Settings.from_env().validate()


def test_provider_resolution_and_configuration_state() -> None:
    llm = LlmSettings(providers={"openai": LlmProviderSettings(name="openai", api_key="k")})

    assert llm.resolve("openai").is_configured is True
    assert llm.resolve("ollama").is_configured is True
    assert llm.resolve("gemini").is_configured is False
    assert llm.resolve("azure-openai").is_configured is False
    assert llm.resolve("unknown") is None
