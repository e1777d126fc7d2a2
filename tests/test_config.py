"""Unit tests for environment settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from mono_mcp.config import (
    DEFAULT_API_URL,
    DEFAULT_FANOUT_CONCURRENCY,
    DEFAULT_RETRY_CONFIG,
    Settings,
)

MONO_VARS = [
    "MONO_API_KEY",
    "MONO_API_URL",
    "MONO_MAX_RETRIES",
    "MONO_BASE_DELAY_MS",
    "MONO_MAX_DELAY_MS",
    "MONO_TIMEOUT_MS",
    "MONO_FANOUT_CONCURRENCY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove MONO_* variables inherited from the shell."""
    for name in MONO_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.mark.unit
class TestSettings:
    """Test MONO_* environment settings."""

    def test_defaults(self) -> None:
        """Test defaults match the built-in retry policy."""
        settings = Settings(_env_file=None)

        assert settings.api_key is None
        assert settings.api_url == DEFAULT_API_URL
        assert settings.fanout_concurrency == DEFAULT_FANOUT_CONCURRENCY
        assert settings.retry_config() == DEFAULT_RETRY_CONFIG

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test values come from MONO_* variables."""
        monkeypatch.setenv("MONO_API_KEY", "sk-abc")
        monkeypatch.setenv("MONO_API_URL", "http://localhost:8000/api")
        monkeypatch.setenv("MONO_MAX_RETRIES", "5")
        monkeypatch.setenv("MONO_BASE_DELAY_MS", "250")
        monkeypatch.setenv("MONO_MAX_DELAY_MS", "2000")
        monkeypatch.setenv("MONO_TIMEOUT_MS", "3000")
        monkeypatch.setenv("MONO_FANOUT_CONCURRENCY", "4")

        settings = Settings(_env_file=None)
        retry = settings.retry_config()

        assert settings.api_key == "sk-abc"
        assert settings.api_url == "http://localhost:8000/api"
        assert settings.fanout_concurrency == 4
        assert retry.max_retries == 5
        assert retry.base_delay == 0.25
        assert retry.max_delay == 2.0
        assert retry.timeout == 3.0

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("MONO_MAX_RETRIES", "-1"),
            ("MONO_TIMEOUT_MS", "0"),
            ("MONO_FANOUT_CONCURRENCY", "0"),
            ("MONO_BASE_DELAY_MS", "soon"),
        ],
    )
    def test_rejects_invalid_values(
        self, monkeypatch: pytest.MonkeyPatch, name: str, value: str
    ) -> None:
        """Test out-of-range values fail validation."""
        monkeypatch.setenv(name, value)

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_reads_dotenv_file(self, tmp_path: Path) -> None:
        """Test a .env file is honoured."""
        env_file = tmp_path / ".env"
        env_file.write_text("MONO_API_KEY=sk-from-file\n")

        settings = Settings(_env_file=env_file)

        assert settings.api_key == "sk-from-file"
