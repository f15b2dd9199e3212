"""Engine settings and configuration."""

from typing import Literal

from pydantic import Field, field_validator, model_validator  # type: ignore
from pydantic_settings import BaseSettings, SettingsConfigDict  # type: ignore


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ENV: Literal["dev", "staging", "prod", "test"] = Field(default="dev")
    PROJECT_NAME: str = Field(default="Abacus Curriculum Engine")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_JSON: bool = Field(default=True)

    # Session planning
    DEFAULT_SESSION_MINUTES: int = Field(default=10, ge=1, le=120)
    GAME_BREAK_ENABLED: bool = Field(default=True)
    GAME_BREAK_MAX_MINUTES: int = Field(default=5, ge=1, le=30)

    # Raw JSON override for term-count scaling (parsed leniently, see term_count.scaling)
    TERM_COUNT_SCALING_JSON: str | None = Field(default=None)

    # Probability bands used when designing synthetic answer sequences
    SIMULATION_WEAK_BAND: float = Field(default=0.5, gt=0.0, lt=1.0)
    SIMULATION_STRONG_BAND: float = Field(default=0.8, gt=0.0, lt=1.0)

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate log level."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid LOG_LEVEL: {v}")
        return level

    @model_validator(mode="after")
    def validate_simulation_bands(self) -> "Settings":
        """Weak band must sit strictly below the strong band."""
        if self.SIMULATION_WEAK_BAND >= self.SIMULATION_STRONG_BAND:
            raise ValueError(
                "SIMULATION_WEAK_BAND must be < SIMULATION_STRONG_BAND "
                f"(got {self.SIMULATION_WEAK_BAND} >= {self.SIMULATION_STRONG_BAND})"
            )
        return self


settings = Settings()
