"""
Candlescope - Configuration Management

Pydantic Settings: loads from .env, validates all configuration at startup.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from candlescope.models import (
    DEFAULT_ENABLED_PATTERNS,
    DetectionParams,
    IndicatorParams,
    PatternConfig,
)


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Core ──
    app_env: str = "development"
    app_debug: bool = True

    # ── Pattern Detection ──
    pattern_detection_enabled: bool = True
    pattern_min_confidence: float = 0.6
    pattern_enabled_patterns: str = ",".join(sorted(DEFAULT_ENABLED_PATTERNS))
    pattern_show_bullish: bool = True
    pattern_show_bearish: bool = True
    pattern_show_neutral: bool = True
    pattern_max_patterns: int = 100
    pattern_alert_on_high_confidence: bool = True
    pattern_high_confidence_threshold: float = 0.85
    pattern_dedup_window_ms: int = 60_000

    detection_window: int = 50       # bars handed to the classifier per scan
    detection_min_candles: int = 10  # scans with fewer bars are skipped

    # ── Indicator Defaults ──
    sma_period: int = 20
    ema_period: int = 20
    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    bollinger_period: int = 20
    bollinger_std_dev: float = 2.0

    # ── Notifications ──
    discord_webhook_url: str = ""
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    # ── CORS ──
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def enabled_pattern_set(self) -> frozenset[str]:
        return frozenset(
            p.strip().lower() for p in self.pattern_enabled_patterns.split(",") if p.strip()
        )

    def pattern_config(self) -> PatternConfig:
        """Validated aggregator config; raises ConfigurationInvalid on bad values."""
        return PatternConfig.load(
            min_confidence=self.pattern_min_confidence,
            enabled_patterns=self.enabled_pattern_set,
            show_bullish=self.pattern_show_bullish,
            show_bearish=self.pattern_show_bearish,
            show_neutral=self.pattern_show_neutral,
            max_patterns=self.pattern_max_patterns,
            alert_on_high_confidence=self.pattern_alert_on_high_confidence,
            high_confidence_threshold=self.pattern_high_confidence_threshold,
            dedup_window_ms=self.pattern_dedup_window_ms,
        )

    def detection_params(self) -> DetectionParams:
        """Validated scan sizing; raises ConfigurationInvalid on non-positive values."""
        return DetectionParams.load(
            window=self.detection_window,
            min_candles=self.detection_min_candles,
        )

    def indicator_params(self) -> IndicatorParams:
        return IndicatorParams.load(
            sma_period=self.sma_period,
            ema_period=self.ema_period,
            rsi_period=self.rsi_period,
            macd_fast=self.macd_fast,
            macd_slow=self.macd_slow,
            macd_signal=self.macd_signal,
            bollinger_period=self.bollinger_period,
            bollinger_std_dev=self.bollinger_std_dev,
        )


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance: created once, reused everywhere."""
    return Settings()
