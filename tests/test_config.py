"""Tests for config.py"""

import os

from log_analyzer.config import DEFAULT_NOISE_MARKERS, AnalyzerConfig, load_config


def test_defaults(monkeypatch):
    for key in list(os.environ):
        if key.startswith("LOG_ANALYZER_"):
            monkeypatch.delenv(key)

    config = load_config()
    assert config == AnalyzerConfig()
    assert config.retention_days == 7
    assert config.max_log_files == 10
    assert config.max_traces == 100
    assert config.merge_window_seconds == 30.0
    assert config.noise_markers == DEFAULT_NOISE_MARKERS
    assert config.log_timezone == "UTC"


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.delenv("LOG_ANALYZER_HOST", raising=False)
    monkeypatch.setenv("LOG_ANALYZER_LOG_DIR", str(tmp_path))
    monkeypatch.setenv("LOG_ANALYZER_RETENTION_DAYS", "3")
    monkeypatch.setenv("LOG_ANALYZER_MAX_LOG_FILES", "2")
    monkeypatch.setenv("LOG_ANALYZER_MAX_TRACES", "25")
    monkeypatch.setenv("LOG_ANALYZER_MERGE_WINDOW_SECONDS", "12.5")
    monkeypatch.setenv("LOG_ANALYZER_MAP_SUBFOLDER", "Raw/Index")
    monkeypatch.setenv("LOG_ANALYZER_NOISE_MARKERS", " HealthCheck, favicon ,,")
    monkeypatch.setenv("LOG_ANALYZER_LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_ANALYZER_PORT", "9100")
    monkeypatch.setenv("LOG_ANALYZER_LOG_TIMEZONE", "Europe/Berlin")

    config = load_config()
    assert config.log_directory == str(tmp_path)
    assert config.retention_days == 3
    assert config.max_log_files == 2
    assert config.max_traces == 25
    assert config.merge_window_seconds == 12.5
    assert config.map_subfolder == "Raw/Index"
    assert config.noise_markers == ("healthcheck", "favicon")
    assert config.log_level == "DEBUG"
    assert config.port == 9100
    assert config.log_timezone == "Europe/Berlin"
    assert config.host == "127.0.0.1"
