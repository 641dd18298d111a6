"""Application configuration loaded from environment variables."""

from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    backend_url: str = "http://localhost:8000"
    backend_token: Optional[str] = Field(
        default=None, description="Response token of a counterparty session."
    )
    request_timeout: float = 20.0

    signature_scope: str = Field(
        default="own",
        description="Which signature fields this viewer signs: 'own' or 'counterparty'.",
    )
    party_marker: str = "lawfirm"
    anchor_timeout: float = 5.0
    render_zoom: float = 1.25

    reset_prompt: str = "Do you want to reset the document?"
    submit_prompt: str = "Do you want to submit the document?"
    allow_reedit_after_submit: bool = False

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="FORMSIGN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
