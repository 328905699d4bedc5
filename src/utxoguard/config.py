"""
Configuration for UTXO classification and wallet analysis.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utxoguard import constants


class ClassificationConfig(BaseModel):
    """
    Thresholds used by the classifier, scorer and selector.

    Every entry point takes one of these explicitly; the defaults match the
    eCash network dust limit and the detector thresholds in constants.
    """

    dust_threshold: int = Field(default=constants.DUST_THRESHOLD, ge=1)
    change_multiplier: int = Field(default=constants.CHANGE_MULTIPLIER, ge=1)
    large_threshold: int = Field(default=constants.LARGE_THRESHOLD, ge=1)
    security_min_value: int = Field(default=constants.SECURITY_MIN_VALUE, ge=0)

    dust_attack_count: int = Field(default=constants.DUST_ATTACK_COUNT, ge=1)
    dust_pattern_count: int = Field(default=constants.DUST_PATTERN_COUNT, ge=2)
    systematic_dust_count: int = Field(default=constants.SYSTEMATIC_DUST_COUNT, ge=2)

    default_privacy_score: int = Field(default=constants.DEFAULT_PRIVACY_SCORE, ge=0, le=100)
    low_privacy_threshold: int = Field(default=constants.LOW_PRIVACY_THRESHOLD, ge=0, le=100)
    privacy_recommendation_threshold: int = Field(
        default=constants.PRIVACY_RECOMMENDATION_THRESHOLD, ge=0, le=100
    )
    poor_utxo_privacy_score: int = Field(
        default=constants.POOR_UTXO_PRIVACY_SCORE, ge=0, le=100
    )
    round_number_count: int = Field(default=constants.ROUND_NUMBER_COUNT, ge=1)
    round_number_units: tuple[int, ...] = constants.ROUND_NUMBER_UNITS

    suspicious_high_count: int = Field(default=constants.SUSPICIOUS_HIGH_COUNT, ge=1)
    unconfirmed_accumulation_count: int = Field(
        default=constants.UNCONFIRMED_ACCUMULATION_COUNT, ge=1
    )
    address_concentration_count: int = Field(
        default=constants.ADDRESS_CONCENTRATION_COUNT, ge=1
    )

    token_concentration_count: int = Field(default=constants.TOKEN_CONCENTRATION_COUNT, ge=1)
    token_fragmentation_average: float = Field(
        default=constants.TOKEN_FRAGMENTATION_AVERAGE, gt=0
    )
    general_recommendation_score: int = Field(
        default=constants.GENERAL_RECOMMENDATION_SCORE, ge=0, le=100
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_thresholds(self) -> ClassificationConfig:
        if self.large_threshold <= self.change_threshold:
            raise ValueError(
                f"large_threshold ({self.large_threshold}) must exceed the change "
                f"threshold ({self.change_threshold})"
            )
        if self.systematic_dust_count < self.dust_pattern_count:
            raise ValueError("systematic_dust_count must be >= dust_pattern_count")
        if any(unit <= 0 for unit in self.round_number_units):
            raise ValueError("round_number_units must be positive")
        return self

    @property
    def change_threshold(self) -> int:
        return self.change_multiplier * self.dust_threshold

    @property
    def privacy_min_value(self) -> int:
        # Change-sized outputs are the easiest to link back to a previous spend
        return self.change_threshold


DEFAULT_CONFIG = ClassificationConfig()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="UTXOGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    log_level: str = "INFO"
    default_strategy: str | None = None
    analytics_enabled: bool = True
    metadata_concurrency: int = Field(default=constants.DEFAULT_METADATA_CONCURRENCY, ge=1)

    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)


def get_settings() -> Settings:
    return Settings()
