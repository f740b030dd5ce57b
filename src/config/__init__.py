"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="infra-triage-service", description="Application name")
    app_version: str = Field(default="1.2.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=10000, description="Server port", ge=1, le=65535)

    # ========== LLM (OpenAI-compatible) ==========
    openai_api_key: Optional[str] = Field(
        default=None,
        description="API key for the OpenAI-compatible chat completions endpoint"
    )
    llm_base_url: Optional[str] = Field(
        default=None,
        description="Override base URL for OpenAI-compatible providers"
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Model used for classification and responders"
    )
    llm_temperature: float = Field(
        default=0.7,
        description="Sampling temperature for responders",
        ge=0.0,
        le=2.0
    )
    llm_top_p: float = Field(
        default=0.95,
        description="Nucleus sampling for responders",
        gt=0.0,
        le=1.0
    )
    llm_max_tokens: int = Field(
        default=3000,
        description="Max tokens for responder generation",
        ge=1,
        le=16000
    )
    llm_timeout_seconds: float = Field(
        default=60.0,
        description="Timeout for a single LLM call",
        ge=1.0,
        le=600.0
    )
    mock_llm: bool = Field(
        default=False,
        description="Use mock LLM responses (no API calls)"
    )

    # ========== Triage Rules ==========
    triage_rules_path: Path = Field(
        default=Path("triage_rules.yaml"),
        description="Optional YAML override for the keyword rule table"
    )
    triage_match_mode: str = Field(
        default="substring",
        description="Keyword matching strategy: substring or word"
    )
    triage_topic_gap_policy: str = Field(
        default="report",
        description="What to do when a gated category lacks topic evidence: report or raise"
    )
    history_max_turns: int = Field(
        default=12,
        description="Caller-supplied history turns kept per request",
        ge=0,
        le=100
    )

    # ========== Approval Gate ==========
    triage_approval_mode: str = Field(
        default="auto",
        description="Approval gate implementation: auto, message_marker or webhook"
    )
    approval_webhook_url: Optional[str] = Field(
        default=None,
        description="Endpoint answering approval requests with {\"approved\": bool}"
    )
    approval_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for approval webhook calls",
        ge=0.1,
        le=600
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:5500"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("triage_match_mode")
    @classmethod
    def validate_match_mode(cls, v: str) -> str:
        allowed = {"substring", "word"}
        v = v.lower()
        if v not in allowed:
            raise ValueError(f"triage_match_mode must be one of {allowed}")
        return v

    @field_validator("triage_topic_gap_policy")
    @classmethod
    def validate_topic_gap_policy(cls, v: str) -> str:
        allowed = {"report", "raise"}
        v = v.lower()
        if v not in allowed:
            raise ValueError(f"triage_topic_gap_policy must be one of {allowed}")
        return v

    @field_validator("triage_approval_mode")
    @classmethod
    def validate_approval_mode(cls, v: str) -> str:
        allowed = {"auto", "message_marker", "webhook"}
        v = v.lower()
        if v not in allowed:
            raise ValueError(f"triage_approval_mode must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Category(str, Enum):
    """Support request categories produced by the classifier."""
    NETWORKING = "Networking"
    SERVER_OS = "ServerOS"
    SCRIPT_AUTOMATION = "ScriptAutomation"
    HARDWARE_COMPONENTS = "HardwareComponents"
    UNKNOWN = "Unknown"


class MatchMode(str, Enum):
    """Keyword matching strategies."""
    SUBSTRING = "substring"
    WORD = "word"


class TopicGapPolicy(str, Enum):
    """Handling for gated categories without topic evidence."""
    REPORT = "report"
    RAISE = "raise"


class ApprovalMode(str, Enum):
    """Approval gate implementations."""
    AUTO = "auto"
    MESSAGE_MARKER = "message_marker"
    WEBHOOK = "webhook"


# ========== Lists for validation ==========

VALID_CATEGORIES = [
    Category.NETWORKING, Category.SERVER_OS, Category.SCRIPT_AUTOMATION,
    Category.HARDWARE_COMPONENTS, Category.UNKNOWN
]

# Preset names offered by the support console's category selector
CATEGORY_PRESETS = {
    "network": Category.NETWORKING,
    "server": Category.SERVER_OS,
    "script": Category.SCRIPT_AUTOMATION,
    "hardware": Category.HARDWARE_COMPONENTS,
}
