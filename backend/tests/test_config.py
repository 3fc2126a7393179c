"""Settings loading and validation of the derived pattern/indicator config."""

from __future__ import annotations

import pytest

from candlescope.config import Settings, get_settings
from candlescope.models import DEFAULT_ENABLED_PATTERNS, ConfigurationInvalid, IndicatorParams


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.pattern_min_confidence == 0.6
        assert settings.pattern_max_patterns == 100
        assert settings.detection_window == 50
        assert settings.detection_min_candles == 10
        assert settings.enabled_pattern_set == DEFAULT_ENABLED_PATTERNS

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PATTERN_MIN_CONFIDENCE", "0.75")
        monkeypatch.setenv("PATTERN_ENABLED_PATTERNS", "Doji, hammer ,")
        settings = Settings(_env_file=None)
        assert settings.pattern_min_confidence == 0.75
        assert settings.enabled_pattern_set == frozenset({"doji", "hammer"})

    def test_pattern_config(self):
        config = Settings(_env_file=None, pattern_high_confidence_threshold=0.9).pattern_config()
        assert config.high_confidence_threshold == 0.9
        assert config.dedup_window_ms == 60_000

    def test_invalid_pattern_config_rejected(self):
        settings = Settings(_env_file=None, pattern_min_confidence=1.2)
        with pytest.raises(ConfigurationInvalid):
            settings.pattern_config()

    def test_invalid_indicator_params_rejected(self):
        with pytest.raises(ConfigurationInvalid):
            Settings(_env_file=None, rsi_period=0).indicator_params()

    def test_detection_params(self):
        params = Settings(_env_file=None, detection_window=30).detection_params()
        assert params.window == 30
        assert params.min_candles == 10

    @pytest.mark.parametrize("field", ["detection_window", "detection_min_candles"])
    def test_non_positive_detection_sizing_rejected(self, field):
        with pytest.raises(ConfigurationInvalid):
            Settings(_env_file=None, **{field: 0}).detection_params()

    def test_app_factory_rejects_bad_detection_window(self):
        from candlescope.main import create_app

        with pytest.raises(ConfigurationInvalid):
            create_app(Settings(_env_file=None, detection_window=0))

    def test_indicator_params(self):
        params = Settings(_env_file=None, bollinger_std_dev=2.5).indicator_params()
        assert isinstance(params, IndicatorParams)
        assert params.bollinger_std_dev == 2.5

    def test_cors_origin_list(self):
        settings = Settings(_env_file=None, cors_origins="http://a.test, http://b.test,")
        assert settings.cors_origin_list == ["http://a.test", "http://b.test"]

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()
