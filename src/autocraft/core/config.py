"""
Core configuration.
"""
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings (env prefix ``AUTOCRAFT_``)."""

    model_config = SettingsConfigDict(
        env_prefix="AUTOCRAFT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_path: str = Field(default="")  # empty disables file sinks
    log_retention_days: int = Field(default=3)
    log_rotation: str = Field(default="00:00")
    log_console_enabled: bool = Field(default=True)

    # Attempt loop
    max_attempts: int = Field(default=1000)
    start_delay_ms: int = Field(default=0)
    stop_signal_file: str = Field(default="")

    # Cancellable delay
    delay_poll_ms: int = Field(default=30)
    delay_abort_after_ms: int = Field(default=5000)

    # Click steps
    left_click_post_delay_ms: int = Field(default=50)
    right_click_post_delay_ms: int = Field(default=100)
    modifier_key_settle_ms: int = Field(default=50)

    # Capability failures
    capability_failure_limit: int = Field(default=5)

    # OCR aggregation
    ocr_min_line_length: int = Field(default=4)
    ocr_min_alnum_density: float = Field(default=0.45)

    # Exclusion guard of the modifier matcher
    exclusion_trigger_word: str = Field(default="all")
    exclusion_context_word: str = Field(default="spell")
    exclusion_words: List[str] = Field(
        default=[
            "fire",
            "cold",
            "lightning",
            "chaos",
            "physical",
            "minion",
            "melee",
            "bow",
            "wand",
        ]
    )

    # Known-mod catalog
    mods_catalog_url: str = Field(
        default="https://www.pathofexile.com/api/trade2/data/stats"
    )
    mods_catalog_group: str = Field(default="explicit")
    mods_catalog_timeout_sec: float = Field(default=10.0)
    mods_catalog_cache: str = Field(default="")

    # Capture
    debug_capture_dir: str = Field(default="")
    capture_left_trim_ratio: float = Field(default=0.12)
    capture_scale: int = Field(default=2)
    capture_threshold: int = Field(default=200)

    # Thread pools (<= 0 means auto)
    io_thread_pool_size: int = Field(default=0)
    compute_thread_pool_size: int = Field(default=0)


# Global settings instance
settings = Settings()
