"""
Configuration settings for the neuro-review scheduler.

Uses Pydantic Settings for environment variable management with .env file support.
Every variable may be prefixed with NEURO_REVIEW_ (e.g. NEURO_REVIEW_SESSION_SIZE=5).
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="NEURO_REVIEW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///neuro_review.db",
        description="SQLAlchemy connection string for the concept store",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: str = Field(
        default="INFO",
        description="Loguru level for the CLI sink",
    )

    # ========================================
    # Priority Formula
    # ========================================
    # priority = flag_weight * flagged + min(hours_overdue, cap) + (ceiling - strength)
    priority_explicit_flag_weight: float = Field(
        default=200.0,
        description="Bonus for concepts the learner explicitly flagged",
    )
    priority_overdue_cap_hours: float = Field(
        default=200.0,
        description="Cap on the overdue-hours term so stale items cannot run away",
    )
    priority_strength_ceiling: float = Field(
        default=100.0,
        description="Strength deficit is measured against this ceiling",
    )

    decay_before_update: bool = Field(
        default=True,
        description="Apply elapsed decay to strength before adding an evaluation delta",
    )

    # ========================================
    # Review Sessions
    # ========================================
    session_size: int = Field(
        default=10,
        ge=1,
        description="Maximum concepts queued per review session",
    )
    mode_weight_probe: float = Field(default=0.4, description="Weight of probe interactions")
    mode_weight_explain: float = Field(default=0.3, description="Weight of explain interactions")
    mode_weight_implement: float = Field(default=0.2, description="Weight of implement interactions")
    mode_weight_connect: float = Field(default=0.1, description="Weight of connect interactions")

    # ========================================
    # Lifecycle
    # ========================================
    installed_initial_strength: float = Field(
        default=100.0,
        ge=0.0,
        le=100.0,
        description="Strength seeded on concepts when their module finishes installing",
    )

    # ========================================
    # Evaluator (external LLM scoring service)
    # ========================================
    evaluator_api_url: str | None = Field(
        default=None,
        description="Base URL of the response evaluation service",
    )
    evaluator_api_key: str | None = Field(
        default=None,
        description="API key sent as X-API-Key to the evaluation service",
    )
    evaluator_timeout_ms: int = Field(
        default=30000,
        description="Evaluation request timeout in milliseconds",
    )
    evaluator_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per evaluation before giving up",
    )
    pass_threshold: float = Field(
        default=80.0,
        description="Minimum self-graded score that counts as a pass",
    )

    @field_validator(
        "mode_weight_probe",
        "mode_weight_explain",
        "mode_weight_implement",
        "mode_weight_connect",
    )
    @classmethod
    def _non_negative_weight(cls, value: float) -> float:
        if value < 0:
            raise ValueError("interaction mode weights must be non-negative")
        return value

    def has_evaluator_configured(self) -> bool:
        """Check whether a remote evaluator endpoint is set."""
        return bool(self.evaluator_api_url)

    def get_priority_weights(self) -> dict[str, float]:
        """Get priority formula constants."""
        return {
            "explicit_flag": self.priority_explicit_flag_weight,
            "overdue_cap_hours": self.priority_overdue_cap_hours,
            "strength_ceiling": self.priority_strength_ceiling,
        }

    def get_mode_weights(self) -> dict[str, float]:
        """Get interaction mode weights keyed by mode value."""
        return {
            "probe": self.mode_weight_probe,
            "explain": self.mode_weight_explain,
            "implement": self.mode_weight_implement,
            "connect": self.mode_weight_connect,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
