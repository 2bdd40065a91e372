"""
Configuration Models for Judgementals

System-wide settings, loaded from the environment (and a ``.env`` file when
present).
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

MIB = 1024 * 1024


class SystemConfig(BaseModel):
    """Overall system configuration"""

    # AI completion service
    gemini_api_key: Optional[str] = Field(default=None, description="Gemini API key")
    gemini_model: str = Field(default="gemini-2.0-flash-exp", description="Gemini model name")
    gemini_rate_limit: int = Field(default=15, description="Gemini requests per minute")
    judge_seed: int = Field(default=12345, description="Fixed seed sent with every completion call")
    judge_timeout_seconds: float = Field(default=120.0, gt=0, description="Deadline for a single completion call")

    # Size limits
    max_project_bytes: int = Field(default=7 * MIB, gt=0, description="Ceiling for a formatted project")
    max_file_chars: int = Field(default=50000, gt=0, description="Per-file body ceiling before truncation")
    max_prompt_bytes: int = Field(default=int(7.5 * MIB), gt=0, description="Total prompt budget per call")

    # Sessions and auto-save
    session_ttl_days: int = Field(default=7, gt=0, description="Session lifetime in days")
    autosave_debounce_seconds: float = Field(default=2.0, ge=0, description="Debounce delay for soft changes")
    autosave_interval_seconds: float = Field(default=30.0, gt=0, description="Periodic auto-save interval")
    store_directory: Optional[str] = Field(default=None, description="Disk store path; in-memory when unset")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_directory: str = Field(default="logs", description="Directory for rotating log files")

    @property
    def session_ttl_ms(self) -> int:
        return self.session_ttl_days * 24 * 60 * 60 * 1000

    @classmethod
    def from_env(cls) -> "SystemConfig":
        """Build configuration from environment variables."""
        load_dotenv()
        defaults = cls()
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY"),
            gemini_model=os.getenv("GEMINI_MODEL", defaults.gemini_model),
            gemini_rate_limit=int(os.getenv("GEMINI_RATE_LIMIT", defaults.gemini_rate_limit)),
            judge_seed=int(os.getenv("JUDGE_SEED", defaults.judge_seed)),
            judge_timeout_seconds=float(os.getenv("JUDGE_TIMEOUT_SECONDS", defaults.judge_timeout_seconds)),
            max_project_bytes=int(os.getenv("MAX_PROJECT_BYTES", defaults.max_project_bytes)),
            max_file_chars=int(os.getenv("MAX_FILE_CHARS", defaults.max_file_chars)),
            max_prompt_bytes=int(os.getenv("MAX_PROMPT_BYTES", defaults.max_prompt_bytes)),
            session_ttl_days=int(os.getenv("SESSION_TTL_DAYS", defaults.session_ttl_days)),
            autosave_debounce_seconds=float(
                os.getenv("AUTOSAVE_DEBOUNCE_SECONDS", defaults.autosave_debounce_seconds)
            ),
            autosave_interval_seconds=float(
                os.getenv("AUTOSAVE_INTERVAL_SECONDS", defaults.autosave_interval_seconds)
            ),
            store_directory=os.getenv("STORE_DIR") or None,
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
            log_directory=os.getenv("LOG_DIR", defaults.log_directory),
        )
