"""Settings for the log structure finder front ends."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FinderSettings(BaseSettings):
    """Read from ``LOG_STRUCTURE_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="LOG_STRUCTURE_")

    lines_to_sample: int = Field(
        default=1000,
        description="Maximum number of lines read from a file for analysis",
        gt=0,
    )
    timeout_seconds: float = Field(
        default=25.0,
        description="Deadline for analyzing one sample",
        gt=0,
    )
    log_level: str = Field(default="INFO", description="Root logging level")
