"""Runtime configuration for the clipper, vault target and LLM providers."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

OBSIDIAN_API_HTTPS_PORT = 27124
OBSIDIAN_API_HTTP_PORT = 27123

SUPPORTED_PROVIDERS: tuple[str, ...] = ("openai", "azure-openai", "claude", "gemini", "ollama")
KEYLESS_PROVIDERS: frozenset[str] = frozenset({"ollama"})

_PROVIDER_DEFAULTS: dict[str, tuple[str, str, str]] = {
    # name -> (base_url, default_model, api_version)
    "openai": ("https://api.openai.com/v1", "gpt-4.1", ""),
    "azure-openai": ("", "", "2024-02-15-preview"),
    "claude": ("https://api.anthropic.com/v1", "claude-sonnet-4-20250514", "2023-06-01"),
    "gemini": ("https://generativelanguage.googleapis.com/v1beta", "gemini-2.0-flash", ""),
    "ollama": ("http://localhost:11434", "llama3.1", ""),
}


@dataclass(slots=True)
class VaultSettings:
    """Vault target and Local REST API access."""

    vault_name: str = ""
    rest_enabled: bool = True
    api_key: str = ""
    port: int = OBSIDIAN_API_HTTPS_PORT
    insecure_mode: bool = False
    host: str = "127.0.0.1"
    request_timeout_seconds: float = 30.0

    @property
    def base_url(self) -> str:
        scheme = "http" if self.insecure_mode else "https"
        return f"{scheme}://{self.host}:{self.port}"


@dataclass(slots=True)
class LlmProviderSettings:
    """Credentials and endpoint of one LLM provider."""

    name: str
    api_key: str = ""
    base_url: str = ""
    default_model: str = ""
    api_version: str = ""

    @property
    def is_configured(self) -> bool:
        if self.name == "azure-openai" and not self.base_url:
            return False
        return bool(self.api_key) or self.name in KEYLESS_PROVIDERS


@dataclass(slots=True)
class LlmSettings:
    """Language-model provider settings."""

    provider: str = "openai"
    providers: dict[str, LlmProviderSettings] = field(default_factory=dict)
    request_timeout_seconds: float = 120.0

    def resolve(self, name: str | None = None) -> LlmProviderSettings | None:
        """Provider settings by name (default provider when omitted)."""

        key = name or self.provider
        if key in self.providers:
            return self.providers[key]
        if key in _PROVIDER_DEFAULTS:
            return _default_provider(key)
        return None


@dataclass(slots=True)
class HistorySettings:
    max_tasks: int = 10
    stale_after_seconds: int = 1_800


@dataclass(slots=True)
class ConnectionSettings:
    """Vault readiness gate: fixed retry count, fixed delay."""

    max_retries: int = 5
    retry_delay_seconds: float = 2.0


@dataclass(slots=True)
class NotificationSettings:
    dismiss_after_seconds: float = 5.0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_path: Path = Path(".vault_clipper.db")
    sqlite_busy_timeout_ms: int = 5_000
    templates_path: Path | None = None
    vault: VaultSettings = field(default_factory=VaultSettings)
    llm: LlmSettings = field(default_factory=LlmSettings)
    history: HistorySettings = field(default_factory=HistorySettings)
    connection: ConnectionSettings = field(default_factory=ConnectionSettings)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local use."""

        insecure_mode = _env_bool("VAULT_CLIPPER_INSECURE", default=False)
        default_port = OBSIDIAN_API_HTTP_PORT if insecure_mode else OBSIDIAN_API_HTTPS_PORT
        templates_raw = os.getenv("VAULT_CLIPPER_TEMPLATES_PATH", "").strip()
        return cls(
            db_path=db_path or Path(os.getenv("VAULT_CLIPPER_DB_PATH", ".vault_clipper.db")),
            sqlite_busy_timeout_ms=int(os.getenv("VAULT_CLIPPER_SQLITE_BUSY_TIMEOUT_MS", "5000")),
            templates_path=Path(templates_raw) if templates_raw else None,
            vault=VaultSettings(
                vault_name=os.getenv("VAULT_CLIPPER_VAULT_NAME", "").strip(),
                rest_enabled=_env_bool("VAULT_CLIPPER_REST_ENABLED", default=True),
                api_key=os.getenv("VAULT_CLIPPER_API_KEY", "").strip(),
                port=int(os.getenv("VAULT_CLIPPER_PORT", str(default_port))),
                insecure_mode=insecure_mode,
                host=os.getenv("VAULT_CLIPPER_HOST", "127.0.0.1"),
                request_timeout_seconds=float(
                    os.getenv("VAULT_CLIPPER_REQUEST_TIMEOUT_SECONDS", "30.0"),
                ),
            ),
            llm=LlmSettings(
                provider=os.getenv("VAULT_CLIPPER_LLM_PROVIDER", "openai").strip(),
                providers={name: _provider_from_env(name) for name in SUPPORTED_PROVIDERS},
                request_timeout_seconds=float(
                    os.getenv("VAULT_CLIPPER_LLM_TIMEOUT_SECONDS", "120.0"),
                ),
            ),
            history=HistorySettings(
                max_tasks=int(os.getenv("VAULT_CLIPPER_MAX_TASKS", "10")),
                stale_after_seconds=int(os.getenv("VAULT_CLIPPER_STALE_TASK_SECONDS", "1800")),
            ),
            connection=ConnectionSettings(
                max_retries=int(os.getenv("VAULT_CLIPPER_CONNECT_RETRIES", "5")),
                retry_delay_seconds=float(
                    os.getenv("VAULT_CLIPPER_CONNECT_RETRY_DELAY_SECONDS", "2.0"),
                ),
            ),
            notifications=NotificationSettings(
                dismiss_after_seconds=float(
                    os.getenv("VAULT_CLIPPER_NOTIFICATION_DISMISS_SECONDS", "5.0"),
                ),
            ),
        )

    def validate(self) -> None:
        """Raise ValueError for settings no clip can run with."""

        if self.history.max_tasks <= 0:
            raise ValueError("VAULT_CLIPPER_MAX_TASKS must be a positive integer.")
        if self.history.stale_after_seconds < 0:
            raise ValueError("VAULT_CLIPPER_STALE_TASK_SECONDS must be >= 0.")
        if self.connection.max_retries <= 0:
            raise ValueError("VAULT_CLIPPER_CONNECT_RETRIES must be a positive integer.")
        if self.connection.retry_delay_seconds < 0:
            raise ValueError("VAULT_CLIPPER_CONNECT_RETRY_DELAY_SECONDS must be >= 0.")
        if not 0 < self.vault.port < 65536:
            raise ValueError(f"Invalid VAULT_CLIPPER_PORT: {self.vault.port!r}")
        if self.llm.provider not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Unsupported VAULT_CLIPPER_LLM_PROVIDER: {self.llm.provider!r}. "
                f"Expected one of: {', '.join(SUPPORTED_PROVIDERS)}.",
            )


def _provider_from_env(name: str) -> LlmProviderSettings:
    prefix = "VAULT_CLIPPER_" + name.upper().replace("-", "_")
    defaults = _default_provider(name)
    return LlmProviderSettings(
        name=name,
        api_key=os.getenv(f"{prefix}_API_KEY", "").strip(),
        base_url=os.getenv(f"{prefix}_BASE_URL", defaults.base_url).strip().rstrip("/"),
        default_model=os.getenv(f"{prefix}_MODEL", defaults.default_model).strip(),
        api_version=os.getenv(f"{prefix}_API_VERSION", defaults.api_version).strip(),
    )


def _default_provider(name: str) -> LlmProviderSettings:
    base_url, model, api_version = _PROVIDER_DEFAULTS[name]
    return LlmProviderSettings(
        name=name,
        base_url=base_url,
        default_model=model,
        api_version=api_version,
    )


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
