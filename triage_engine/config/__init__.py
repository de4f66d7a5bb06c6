"""
Configuration Module
====================

Application settings and configuration management using Pydantic.

`Settings` is read from the environment once. The triage engine itself
never reads it directly: `TriageConfig.from_settings()` turns it into an
immutable struct that is handed to the coordinator at construction.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="triage-engine", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/triage",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== OpenAI ==========
    openai_api_key: Optional[str] = Field(
        default=None,
        description="OpenAI API key for classification, embeddings and summaries"
    )
    mock_llm: bool = Field(
        default=False,
        description="Use mock LLM responses for local runs (no API calls)"
    )

    # ========== LLM Settings ==========
    classify_model: str = Field(
        default="gpt-4o-mini",
        description="Chat model used to classify incoming messages"
    )
    summary_model: str = Field(
        default="gpt-4o-mini",
        description="Chat model used to write date-range digests"
    )
    embedding_model: str = Field(
        default="text-embedding-3-large",
        description="OpenAI embedding model"
    )
    embedding_dimension: int = Field(
        default=3072,
        description="Embedding vector dimension (must match stored vectors)",
        ge=1
    )
    llm_temperature: float = Field(
        default=0.3,
        description="Default temperature for LLM",
        ge=0.0,
        le=1.0
    )
    classify_max_tokens: int = Field(default=500, ge=1, le=8000)
    summary_max_tokens: int = Field(default=1000, ge=1, le=8000)

    # ========== Review ==========
    review_default_days: int = Field(default=3, ge=1)
    review_top_k: int = Field(default=10, description="Items returned by a review", ge=1)
    review_candidate_limit: int = Field(
        default=300,
        description="Max messages scored per review",
        ge=1
    )
    review_snippet_chars: int = Field(default=120, ge=10)
    hide_snoozed: bool = Field(
        default=True,
        description="Leave follow-ups snoozed past now out of the review"
    )

    # ========== Score Weights ==========
    weight_question: float = Field(default=3.0)
    weight_followup: float = Field(default=2.0)
    weight_urgency: float = Field(default=1.5)
    weight_unreplied: float = Field(default=2.0)
    weight_recency: float = Field(default=1.0)

    # ========== Summary ==========
    summary_default_days: int = Field(default=7, ge=1)
    summary_message_limit: int = Field(
        default=1000,
        description="Max messages fed to one digest",
        ge=1
    )
    summary_snippet_chars: int = Field(
        default=300,
        description="Per-message truncation before batching into the digest prompt",
        ge=10
    )

    # ========== Follow-ups ==========
    default_snooze_hours: float = Field(default=24, gt=0)
    max_snooze_hours: float = Field(default=720, gt=0)

    # ========== Search ==========
    search_top_k: int = Field(default=3, ge=1, le=20)
    search_candidate_limit: int = Field(default=2000, ge=1)

    max_window_days: int = Field(default=30, ge=1)

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
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
        allowed = {"development", "test", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class FollowupStatus(str):
    """Follow-up lifecycle statuses."""
    OPEN = "open"
    DONE = "done"


class SortOrder(str):
    """Ordering of a message window by created_at."""
    ASC = "asc"
    DESC = "desc"


VALID_SORT_ORDERS = [SortOrder.ASC, SortOrder.DESC]


# ========== Engine configuration ==========

@dataclass(frozen=True)
class ScoreWeights:
    """Weights of the review priority score."""
    question: float = 3.0
    followup: float = 2.0
    urgency: float = 1.5
    unreplied: float = 2.0
    recency: float = 1.0


@dataclass(frozen=True)
class TriageConfig:
    """
    Immutable configuration handed to the triage coordinator.

    Built once from `Settings`; services read only this struct.
    """
    embedding_dimension: int = 3072
    weights: ScoreWeights = field(default_factory=ScoreWeights)
    review_default_days: int = 3
    review_top_k: int = 10
    review_candidate_limit: int = 300
    review_snippet_chars: int = 120
    hide_snoozed: bool = True
    summary_default_days: int = 7
    summary_message_limit: int = 1000
    summary_snippet_chars: int = 300
    default_snooze_hours: float = 24
    max_snooze_hours: float = 720
    search_top_k: int = 3
    search_candidate_limit: int = 2000
    max_window_days: int = 30

    @classmethod
    def from_settings(cls, s: Settings) -> "TriageConfig":
        return cls(
            embedding_dimension=s.embedding_dimension,
            weights=ScoreWeights(
                question=s.weight_question,
                followup=s.weight_followup,
                urgency=s.weight_urgency,
                unreplied=s.weight_unreplied,
                recency=s.weight_recency,
            ),
            review_default_days=s.review_default_days,
            review_top_k=s.review_top_k,
            review_candidate_limit=s.review_candidate_limit,
            review_snippet_chars=s.review_snippet_chars,
            hide_snoozed=s.hide_snoozed,
            summary_default_days=s.summary_default_days,
            summary_message_limit=s.summary_message_limit,
            summary_snippet_chars=s.summary_snippet_chars,
            default_snooze_hours=s.default_snooze_hours,
            max_snooze_hours=s.max_snooze_hours,
            search_top_k=s.search_top_k,
            search_candidate_limit=s.search_candidate_limit,
            max_window_days=s.max_window_days,
        )
