"""
Tests for SystemConfig environment loading.
"""

from judgementals.models.config_models import MIB, SystemConfig


def test_defaults():
    config = SystemConfig()
    assert config.judge_seed == 12345
    assert config.max_project_bytes == 7 * MIB
    assert config.max_file_chars == 50000
    assert config.max_prompt_bytes == int(7.5 * MIB)
    assert config.session_ttl_ms == 7 * 24 * 60 * 60 * 1000


def test_from_env(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "key-123")
    monkeypatch.setenv("JUDGE_SEED", "42")
    monkeypatch.setenv("MAX_FILE_CHARS", "1000")
    monkeypatch.setenv("AUTOSAVE_DEBOUNCE_SECONDS", "0.5")
    monkeypatch.setenv("SESSION_TTL_DAYS", "1")
    monkeypatch.setenv("STORE_DIR", "/tmp/judgementals-store")

    config = SystemConfig.from_env()

    assert config.gemini_api_key == "key-123"
    assert config.judge_seed == 42
    assert config.max_file_chars == 1000
    assert config.autosave_debounce_seconds == 0.5
    assert config.session_ttl_ms == 24 * 60 * 60 * 1000
    assert config.store_directory == "/tmp/judgementals-store"
