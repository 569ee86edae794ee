"""Registry settings and configuration."""

from decimal import Decimal
from functools import lru_cache
from typing import Dict, List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Registry settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CWR_",
        case_sensitive=False,
        extra="forbid",
    )

    # Environment
    environment: str = "development"
    log_level: str = "INFO"

    # Transmission
    cwr_version: str = "2.1"
    cwr_revision: int = 0
    edi_version: str = "01.10"
    sender_type: str = "PB"
    submitter_code: str = ""
    submitter_ipi: str = ""
    receiver_society: int = 0
    file_sequence: int = 1
    character_set: str = ""
    contact_name: str = ""
    contact_id: str = ""
    software_package: str = "cwr-registry"
    software_package_version: str = "1.0"

    # Territory rewriting (target society -> ISO country codes)
    tis_rewrite_enabled: bool = False
    tis_rewrite_rules: Dict[int, List[str]] = {88: ["CA"]}

    # Cross-reference organisations that count as the receiver society
    revision_society_aliases: Dict[int, List[int]] = {707: [10, 21, 101]}

    # Share tolerances (percent)
    ownership_tolerance: Decimal = Decimal("0.06")
    collection_ceiling: Decimal = Decimal("100.06")
    publisher_pr_collection_ceiling: Decimal = Decimal("50")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_environments = ["development", "staging", "production", "test"]
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("cwr_version")
    @classmethod
    def validate_cwr_version(cls, v: str) -> str:
        """Validate the target CWR version."""
        valid_versions = ["2.0", "2.1", "2.2"]
        if v not in valid_versions:
            raise ValueError(f"CWR version must be one of: {valid_versions}")
        return v

    @field_validator("sender_type")
    @classmethod
    def validate_sender_type(cls, v: str) -> str:
        """Validate sender type (publisher, society, writer or administrator agency)."""
        valid_types = ["PB", "SO", "AA", "WR"]
        if v.upper() not in valid_types:
            raise ValueError(f"Sender type must be one of: {valid_types}")
        return v.upper()

    @field_validator("receiver_society", "file_sequence", "cwr_revision")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Reject negative counters and society codes."""
        if v < 0:
            raise ValueError("Value cannot be negative")
        return v

    @field_validator("tis_rewrite_rules")
    @classmethod
    def validate_tis_rewrite_rules(cls, v: Dict[int, List[str]]) -> Dict[int, List[str]]:
        """Normalize rewrite targets to upper-case ISO codes."""
        return {society: [code.strip().upper() for code in codes] for society, codes in v.items()}

    @property
    def version_digits(self) -> str:
        """CWR version without the dot, as used in file names."""
        return self.cwr_version.replace(".", "")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in test environment."""
        return self.environment == "test"


@lru_cache()
def get_settings() -> Settings:
    """Get cached registry settings."""
    return Settings()
