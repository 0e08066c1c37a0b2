"""Tests for configuration management."""

import pytest

from .lib import (
    ClientConfig,
    EnvConfig,
    EnvVar,
    get_environment,
    get_environment_info,
    list_environment_variables,
    load_environment,
    validate_environment,
)

# =============================================================================
# Tests for get_environment (main interface)
# =============================================================================


class TestGetEnvironment:
    """Tests for the unified get_environment interface."""

    @pytest.mark.unit
    def test_returns_default_when_not_set(self, monkeypatch):
        """Returns default value when env var is not set."""
        monkeypatch.delenv("PAPERKIT_TIMEOUT_MS", raising=False)
        assert get_environment(EnvVar.TIMEOUT_MS) == 60000

    @pytest.mark.unit
    def test_override_takes_priority(self, monkeypatch):
        """Override parameter takes highest priority."""
        monkeypatch.setenv("PAPERKIT_MAX_RETRIES", "9")
        assert get_environment(EnvVar.MAX_RETRIES, override=2) == 2

    @pytest.mark.unit
    def test_env_var_overrides_default(self, monkeypatch):
        """Environment variable overrides default value."""
        monkeypatch.setenv("PAPERKIT_RATE_LIMIT_DELAY_MS", "250")
        result = get_environment(EnvVar.RATE_LIMIT_DELAY_MS)
        assert result == 250
        assert isinstance(result, int)

    @pytest.mark.unit
    def test_float_type_conversion(self, monkeypatch):
        """Float conversion for temperature."""
        monkeypatch.setenv("GEMINI_TEMPERATURE", "0.7")
        assert get_environment(EnvVar.GEMINI_TEMPERATURE) == pytest.approx(0.7)

    @pytest.mark.unit
    def test_invalid_number_uses_default(self, monkeypatch):
        """Unparseable numbers fall back to the default."""
        monkeypatch.setenv("PAPERKIT_MAX_RETRIES", "lots")
        assert get_environment(EnvVar.MAX_RETRIES) == 3

    @pytest.mark.unit
    def test_bool_type_conversion(self, monkeypatch):
        """Boolean conversion for true and false spellings."""
        for value in ("true", "1", "yes", "TRUE"):
            monkeypatch.setenv("PAPERKIT_ENABLE_FALLBACK", value)
            assert get_environment(EnvVar.ENABLE_FALLBACK) is True
        for value in ("false", "0", "no", "No"):
            monkeypatch.setenv("PAPERKIT_ENABLE_FALLBACK", value)
            assert get_environment(EnvVar.ENABLE_FALLBACK) is False

    @pytest.mark.unit
    def test_bool_unrecognized_uses_default(self, monkeypatch):
        """Unrecognized boolean values fall back to the default."""
        monkeypatch.setenv("PAPERKIT_ENABLE_FALLBACK", "maybe")
        assert get_environment(EnvVar.ENABLE_FALLBACK) is True


class TestIntrospection:
    """Tests for metadata helpers."""

    @pytest.mark.unit
    def test_get_environment_info(self):
        """Returns the EnvConfig for a variable."""
        info = get_environment_info(EnvVar.GEMINI_MODEL)
        assert isinstance(info, EnvConfig)
        assert info.name == "GEMINI_MODEL"
        assert info.default == "gemini-2.0-flash"

    @pytest.mark.unit
    def test_list_by_category(self):
        """Category filter returns only matching variables."""
        layout_vars = list_environment_variables("layout")
        assert set(layout_vars) == {EnvVar.PAGE_SIZE, EnvVar.PAGE_MARGIN}
        assert len(list_environment_variables()) == len(EnvVar)

    @pytest.mark.unit
    def test_load_environment_reads_dotenv(self, tmp_path, monkeypatch):
        """Values from a .env file become visible to get_environment."""
        monkeypatch.delenv("PAPERKIT_TIMEOUT_MS", raising=False)
        dotenv = tmp_path / ".env"
        dotenv.write_text("PAPERKIT_TIMEOUT_MS=1234\n")

        assert load_environment(dotenv) is True
        assert get_environment(EnvVar.TIMEOUT_MS) == 1234
        monkeypatch.delenv("PAPERKIT_TIMEOUT_MS", raising=False)


# =============================================================================
# Tests for ClientConfig
# =============================================================================


class TestClientConfig:
    """Tests for ClientConfig construction and validation."""

    @pytest.mark.unit
    def test_defaults(self):
        """Dataclass defaults match the documented configuration surface."""
        config = ClientConfig()
        assert config.max_retries == 3
        assert config.retry_delay_ms == 1000
        assert config.timeout_ms == 60000
        assert config.rate_limit_delay_ms == 1000
        assert config.enable_fallback is True
        assert config.max_upload_bytes == 20 * 1024 * 1024

    @pytest.mark.unit
    def test_from_environment(self, monkeypatch):
        """Environment values and overrides are both applied."""
        monkeypatch.setenv("GEMINI_API_KEY", "AIza-test")
        monkeypatch.setenv("PAPERKIT_MAX_UPLOAD_MB", "5")
        monkeypatch.setenv("PAPERKIT_ENABLE_FALLBACK", "no")

        config = ClientConfig.from_environment(max_retries=7)

        assert config.api_key == "AIza-test"
        assert config.max_upload_bytes == 5 * 1024 * 1024
        assert config.enable_fallback is False
        assert config.max_retries == 7

    @pytest.mark.unit
    @pytest.mark.parametrize("retries", [0, -1])
    def test_rejects_fewer_than_one_attempt(self, retries):
        """At least one attempt is required."""
        with pytest.raises(ValueError, match="max_retries"):
            ClientConfig(max_retries=retries)

    @pytest.mark.unit
    def test_from_environment_rejects_zero_retries(self, monkeypatch):
        monkeypatch.setenv("PAPERKIT_MAX_RETRIES", "0")
        with pytest.raises(ValueError):
            ClientConfig.from_environment()

    @pytest.mark.unit
    def test_validate_valid_config(self):
        """A complete config reports no problems."""
        config = ClientConfig(api_key="AIza-valid")
        assert validate_environment(config) == []

    @pytest.mark.unit
    def test_validate_reports_problems(self):
        """Each invalid setting produces a message."""
        config = ClientConfig(
            api_key="sk-wrong",
            model="gpt-4",
            max_tokens=0,
            temperature=3.0,
        )
        problems = validate_environment(config)

        assert len(problems) == 4
        assert any("should start with 'AI'" in p for p in problems)
        assert any("Unsupported model" in p for p in problems)

    @pytest.mark.unit
    def test_validate_missing_key(self):
        """Missing API key is reported."""
        problems = validate_environment(ClientConfig(api_key=None))
        assert "GEMINI_API_KEY is required" in problems
