"""toolpilot configuration schema — YAML + Pydantic + env override."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ════════════════════════════════════════════════════════════
# SUB-CONFIGS (nested BaseModel)
# ════════════════════════════════════════════════════════════


class ProviderConfig(BaseModel):
    """Single LLM provider."""

    api_key: str = ""
    api_base: str | None = None


class ProvidersConfig(BaseModel):
    """LLM providers (LiteLLM multi-provider)."""

    anthropic: ProviderConfig = Field(default_factory=ProviderConfig)
    openai: ProviderConfig = Field(default_factory=ProviderConfig)
    openrouter: ProviderConfig = Field(default_factory=ProviderConfig)
    deepseek: ProviderConfig = Field(default_factory=ProviderConfig)
    groq: ProviderConfig = Field(default_factory=ProviderConfig)
    gemini: ProviderConfig = Field(default_factory=ProviderConfig)
    ollama: ProviderConfig = Field(default_factory=ProviderConfig)


class AgentConfig(BaseModel):
    """Agent loop (agent.*)."""

    name: str = "toolpilot"
    model: str = "anthropic/claude-sonnet-4-5-20250929"
    system_prompt: str | None = None
    max_turns: int = Field(default=50, ge=1)
    temperature: float = 0.7
    max_tokens: int = 4096
    # "module:attr" references resolved by make_tools()
    tools: list[str] = Field(default_factory=list)


# Security
class DangerLevel(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SecurityRule(BaseModel):
    """Danger classification for one tool name."""

    tool_name: str
    danger_level: DangerLevel = DangerLevel.MEDIUM
    description: str = ""
    requires_confirmation: bool = True


def default_rules() -> list[SecurityRule]:
    return [
        SecurityRule(tool_name="delete_file", danger_level=DangerLevel.CRITICAL,
                     description="Delete files or directories"),
        SecurityRule(tool_name="move_file", danger_level=DangerLevel.CRITICAL,
                     description="Move or rename files"),
        SecurityRule(tool_name="browser_navigate", danger_level=DangerLevel.HIGH,
                     description="Navigate to a URL"),
        SecurityRule(tool_name="write_file", description="Write content to a file"),
        SecurityRule(tool_name="browser_fill", description="Fill form inputs"),
        SecurityRule(tool_name="browser_click", description="Click elements in the page"),
        SecurityRule(tool_name="create_spreadsheet", description="Create a spreadsheet file"),
        SecurityRule(tool_name="create_document", description="Create a Word document"),
        SecurityRule(tool_name="create_presentation", description="Create a PowerPoint presentation"),
        SecurityRule(tool_name="create_csv", description="Create a CSV file"),
        SecurityRule(tool_name="web_search", danger_level=DangerLevel.LOW,
                     description="Search the web for information", requires_confirmation=False),
        SecurityRule(tool_name="fetch_web_page", danger_level=DangerLevel.LOW,
                     description="Fetch content from a web page", requires_confirmation=False),
    ]


class SecurityConfig(BaseModel):
    """Confirmation gate settings."""

    confirmation_timeout_s: float = Field(default=60.0, gt=0)
    rules: list[SecurityRule] = Field(default_factory=default_rules)


class RateLimitConfig(BaseModel):
    """Sliding window on agent runs per caller."""

    enabled: bool = True
    max_calls: int = Field(default=10, ge=1)
    window_s: float = Field(default=60.0, gt=0)


# ════════════════════════════════════════════════════════════
# ROOT CONFIG (BaseSettings, env + .env support)
# ════════════════════════════════════════════════════════════


class Config(BaseSettings):
    """
    Root configuration.

    Priority: env vars > .env > YAML (init kwargs) > defaults

    Env override examples:
        TOOLPILOT_AGENT__MODEL=openai/gpt-4o
        TOOLPILOT_AGENT__MAX_TURNS=20
        TOOLPILOT_PROVIDERS__ANTHROPIC__API_KEY=sk-...
    """

    model_config = SettingsConfigDict(
        env_prefix="TOOLPILOT_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    agent: AgentConfig = Field(default_factory=AgentConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # YAML arrives as init kwargs; env must win over it
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    # ── Provider helpers ────────────────────────────────────

    def get_api_key(self, model: str | None = None) -> str | None:
        """Get API key for model name. Falls back to first available."""
        model_name = (model or self.agent.model).lower()

        keyword_map: dict[str, ProviderConfig] = {
            "anthropic": self.providers.anthropic,
            "claude": self.providers.anthropic,
            "openai": self.providers.openai,
            "gpt": self.providers.openai,
            "openrouter": self.providers.openrouter,
            "deepseek": self.providers.deepseek,
            "groq": self.providers.groq,
            "gemini": self.providers.gemini,
        }
        for keyword, provider in keyword_map.items():
            if keyword in model_name and provider.api_key:
                return provider.api_key

        # Fallback: first key found
        for name in ProvidersConfig.model_fields:
            p = getattr(self.providers, name)
            if isinstance(p, ProviderConfig) and p.api_key:
                return p.api_key
        return None

    def get_api_base(self, model: str | None = None) -> str | None:
        """Get API base URL for model name."""
        model_name = (model or self.agent.model).lower()
        if "openrouter" in model_name:
            return self.providers.openrouter.api_base or "https://openrouter.ai/api/v1"
        for name in ProvidersConfig.model_fields:
            p = getattr(self.providers, name)
            if isinstance(p, ProviderConfig) and name in model_name and p.api_base:
                return p.api_base
        return None
