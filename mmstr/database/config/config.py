"""
Configuration — Pydantic v2 Settings (env / .env)
=================================================

Purpose
-------
Every tunable of the service in one typed object:
- judge: OpenAI key and model, temperature, overall deadline, retry count and backoff
- storage: SQLAlchemy URL (SQLite file by default)
- protocol defaults: attempts per message and participants per conversation
- ops: CORS origin, log level, optional LangSmith tracing passthrough

Load Order & Behavior
---------------------
- Environment variables win; `.env` fills the gaps.
- `API_KEY` is the only required value; importing this module without it fails.
- Unknown variables are ignored.

Usage
-----
from mmstr.database.config.config import settings

policy_timeout = settings.AI_TIMEOUT_SECONDS

Security
--------
- Keep the API key in the environment or an uncommitted `.env`.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration settings loaded from environment variables
    or a `.env` file. Provides strongly typed access to environment values.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    API_KEY: str = Field(..., description="OpenAI API key used by the judge.")
    OPEN_AI_MODEL: str = Field("gpt-4o", description="OpenAI chat model name (e.g., `gpt-4o`).")
    AI_TEMPERATURE: float = Field(0.3, description="Sampling temperature; kept low for consistent judgments.")
    AI_TIMEOUT_SECONDS: float = Field(60.0, gt=0, description="Overall deadline for one judge call, retries included.")
    AI_MAX_RETRIES: int = Field(3, ge=0, description="Retries after the first attempt on transient failures.")
    AI_INITIAL_BACKOFF_SECONDS: float = Field(1.0, ge=0, description="First backoff delay; doubles on every retry.")

    DATABASE_URL: str = Field("sqlite:///./data/mmstr.db", description="SQLAlchemy database URL.")
    FRONTEND_URL: str = Field("http://localhost:3000", description="Base URL of the frontend client application.")

    DEFAULT_MAX_ATTEMPTS: int = Field(3, ge=1, description="Interpretation attempts allowed per message by default.")
    DEFAULT_PARTICIPANT_LIMIT: int = Field(20, ge=2, description="Participants allowed per conversation by default.")

    LOG_LEVEL: str = Field("INFO", description="Root log level (e.g., `DEBUG`, `INFO`).")

    LANGSMITH_TRACING: Optional[str] = Field(None, description="Enable LangChain tracing (`true`/`false`).")
    LANGSMITH_API_KEY: Optional[str] = Field(None, description="LangSmith API key.")
    LANGSMITH_PROJECT: Optional[str] = Field(None, description="LangSmith project name.")
    LANGSMITH_ENDPOINT: Optional[str] = Field(None, description="LangSmith endpoint override.")


# Singleton instance of Settings, ready to be imported across the app
settings = Settings()
"""Process-wide settings, read once at import."""
