# Tests for Settings.
# Created: 2026-10-14

from pathlib import Path

import pytest

from devflow.config import DEFAULT_SYSTEM_PROMPT, Settings
from devflow.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "GROQ_API_KEY",
        "DEVFLOW_GROQ_API_KEY",
        "PORT",
        "DEVFLOW_PORT",
        "DEVFLOW_ALLOWED_ORIGINS",
        "DEVFLOW_EXTENSION_IDS",
        "DEVFLOW_RATE_LIMIT_MAX",
    ):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.groq_api_key is None
        assert s.groq_model == "llama-3.1-8b-instant"
        assert s.groq_base_url == "https://api.groq.com/openai/v1"
        assert s.system_prompt == DEFAULT_SYSTEM_PROMPT
        assert s.rate_limit_max == 100
        assert s.rate_limit_window == 900
        assert s.max_body_bytes == 1024 * 1024
        assert s.port == 3000
        assert s.allowed_origins == []

    def test_fields_exist(self):
        for field in ("groq_api_key", "allowed_origins", "rate_limit_max", "upstream_timeout"):
            assert field in Settings.model_fields


class TestEnvironment:
    def test_plain_groq_api_key(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "gsk-plain")
        assert Settings(_env_file=None).groq_api_key == "gsk-plain"

    def test_prefixed_api_key(self, monkeypatch):
        monkeypatch.setenv("DEVFLOW_GROQ_API_KEY", "gsk-prefixed")
        assert Settings(_env_file=None).groq_api_key == "gsk-prefixed"

    def test_port_from_platform(self, monkeypatch):
        monkeypatch.setenv("PORT", "10000")
        assert Settings(_env_file=None).port == 10000

    def test_csv_origins(self, monkeypatch):
        monkeypatch.setenv("DEVFLOW_ALLOWED_ORIGINS", "https://a.example, https://b.example,")
        s = Settings(_env_file=None)
        assert s.allowed_origins == ["https://a.example", "https://b.example"]

    def test_prefixed_int(self, monkeypatch):
        monkeypatch.setenv("DEVFLOW_RATE_LIMIT_MAX", "5")
        assert Settings(_env_file=None).rate_limit_max == 5

    def test_env_file(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text("GROQ_API_KEY=from-file\nDEVFLOW_GROQ_MODEL=llama-3.3-70b-versatile\n")
        s = Settings(_env_file=env)
        assert s.groq_api_key == "from-file"
        assert s.groq_model == "llama-3.3-70b-versatile"


class TestRequireApiKey:
    def test_missing_key_raises(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(_env_file=None).require_api_key()
        assert "GROQ_API_KEY" in exc_info.value.message

    def test_present_key(self):
        assert Settings(groq_api_key="k", _env_file=None).require_api_key() == "k"


class TestHistoryPath:
    def test_explicit(self, tmp_path):
        s = Settings(history_path=tmp_path / "h.json", _env_file=None)
        assert s.resolved_history_path() == tmp_path / "h.json"

    def test_default_under_home(self, monkeypatch, tmp_path):
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        s = Settings(_env_file=None)
        assert s.resolved_history_path() == tmp_path / ".devflow" / "history.json"
