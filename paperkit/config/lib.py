"""Environment-backed settings for the API client, layout and pipeline.

Every setting is an EnvVar member carrying its variable name, default and
type. Values resolve as explicit override, then the process environment
(optionally seeded from a .env file), then the default.

Example:
    >>> from paperkit.config import EnvVar, get_environment
    >>>
    >>> retries = get_environment(EnvVar.MAX_RETRIES)  # Returns int
    >>> api_key = get_environment(EnvVar.GEMINI_API_KEY)  # Returns str | None
    >>>
    >>> # Override at runtime
    >>> retries = get_environment(EnvVar.MAX_RETRIES, override=5)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, overload

from dotenv import load_dotenv

# =============================================================================
# Environment Variable Configuration
# =============================================================================

SUPPORTED_MODELS = ("gemini-2.0-flash", "gemini-1.5-flash", "gemini-1.5-pro")


@dataclass(frozen=True)
class EnvConfig:
    """Metadata for an environment variable.

    Attributes:
        name: Environment variable name (e.g., "GEMINI_MODEL").
        default: Default value if not set in environment.
        var_type: Python type for value conversion (str, int, float, bool).
        description: Human-readable description.
        category: Grouping category for documentation.
    """

    name: str
    default: Any
    var_type: type
    description: str = ""
    category: str = "general"


class EnvVar(Enum):
    """All environment variables used by paperkit.

    Categories:
        - inference: Inference service credentials and generation settings
        - client: Retry, timeout and rate-limit behaviour of the API client
        - layout: Page geometry for template synthesis
    """

    # -------------------------------------------------------------------------
    # Inference Service
    # -------------------------------------------------------------------------
    GEMINI_API_KEY = EnvConfig(
        name="GEMINI_API_KEY",
        default=None,
        var_type=str,
        description="Google Gemini API key",
        category="inference",
    )
    GEMINI_MODEL = EnvConfig(
        name="GEMINI_MODEL",
        default="gemini-2.0-flash",
        var_type=str,
        description="Model used for document analysis",
        category="inference",
    )
    GEMINI_MAX_TOKENS = EnvConfig(
        name="GEMINI_MAX_TOKENS",
        default=8192,
        var_type=int,
        description="maxOutputTokens sent with each request",
        category="inference",
    )
    GEMINI_TEMPERATURE = EnvConfig(
        name="GEMINI_TEMPERATURE",
        default=0.1,
        var_type=float,
        description="Sampling temperature (0-2)",
        category="inference",
    )
    GEMINI_BASE_URL = EnvConfig(
        name="GEMINI_BASE_URL",
        default="https://generativelanguage.googleapis.com/v1beta",
        var_type=str,
        description="Inference service root URL",
        category="inference",
    )

    # -------------------------------------------------------------------------
    # API Client Behaviour
    # -------------------------------------------------------------------------
    MAX_RETRIES = EnvConfig(
        name="PAPERKIT_MAX_RETRIES",
        default=3,
        var_type=int,
        description="Maximum attempts per analysis request",
        category="client",
    )
    RETRY_DELAY_MS = EnvConfig(
        name="PAPERKIT_RETRY_DELAY_MS",
        default=1000,
        var_type=int,
        description="Base delay for exponential backoff",
        category="client",
    )
    TIMEOUT_MS = EnvConfig(
        name="PAPERKIT_TIMEOUT_MS",
        default=60000,
        var_type=int,
        description="Timeout for a single inference call",
        category="client",
    )
    RATE_LIMIT_DELAY_MS = EnvConfig(
        name="PAPERKIT_RATE_LIMIT_DELAY_MS",
        default=1000,
        var_type=int,
        description="Minimum delay between consecutive requests",
        category="client",
    )
    ENABLE_FALLBACK = EnvConfig(
        name="PAPERKIT_ENABLE_FALLBACK",
        default=True,
        var_type=bool,
        description="Return a degraded analysis instead of raising",
        category="client",
    )
    MAX_UPLOAD_MB = EnvConfig(
        name="PAPERKIT_MAX_UPLOAD_MB",
        default=20,
        var_type=int,
        description="Maximum decoded payload size in megabytes",
        category="client",
    )

    # -------------------------------------------------------------------------
    # Layout
    # -------------------------------------------------------------------------
    PAGE_SIZE = EnvConfig(
        name="PAPERKIT_PAGE_SIZE",
        default="A4",
        var_type=str,
        description="Page size preset (A4, LETTER)",
        category="layout",
    )
    PAGE_MARGIN = EnvConfig(
        name="PAPERKIT_PAGE_MARGIN",
        default=20.0,
        var_type=float,
        description="Page margin in page units",
        category="layout",
    )


# =============================================================================
# Type Conversion Helpers
# =============================================================================


def _parse_bool(value: str) -> bool | None:
    """Parse string to boolean.

    Recognizes: true/false, 1/0, yes/no (case-insensitive).
    Returns None for unrecognized values.
    """
    normalized = value.lower().strip()
    if normalized in ("true", "1", "yes"):
        return True
    if normalized in ("false", "0", "no"):
        return False
    return None


def _convert_value(value: str | None, var_type: type, default: Any) -> Any:
    """Convert string value to target type, falling back to default."""
    if value is None:
        return default

    if var_type is str:
        return value

    if var_type in (int, float):
        try:
            return var_type(value)
        except ValueError:
            return default

    if var_type is bool:
        result = _parse_bool(value)
        return result if result is not None else default

    return value


# =============================================================================
# Main Interface
# =============================================================================


@overload
def get_environment(env_var: EnvVar, override: int) -> int: ...
@overload
def get_environment(env_var: EnvVar, override: float) -> float: ...
@overload
def get_environment(env_var: EnvVar, override: str) -> str: ...
@overload
def get_environment(env_var: EnvVar, override: bool) -> bool: ...
@overload
def get_environment(env_var: EnvVar, override: None = None) -> Any: ...


def get_environment(env_var: EnvVar, override: Any = None) -> Any:
    """Get environment variable value with type conversion.

    Resolution priority:
        1. Explicit override parameter (highest)
        2. Environment variable value
        3. Default from EnvConfig (lowest)

    Args:
        env_var: Environment variable enum member.
        override: Optional override value (bypasses env lookup).

    Returns:
        Value converted to the appropriate type.

    Example:
        >>> get_environment(EnvVar.TIMEOUT_MS)
        60000
        >>> get_environment(EnvVar.TIMEOUT_MS, override=5000)
        5000
    """
    config: EnvConfig = env_var.value

    if override is not None:
        return override

    raw_value = os.environ.get(config.name)
    return _convert_value(raw_value, config.var_type, config.default)


def get_environment_info(env_var: EnvVar) -> EnvConfig:
    """Get metadata for an environment variable."""
    return env_var.value


def list_environment_variables(category: str | None = None) -> list[EnvVar]:
    """List environment variables, optionally filtered by category."""
    if category is None:
        return list(EnvVar)
    return [var for var in EnvVar if var.value.category == category]


def load_environment(dotenv_path: str | Path | None = None) -> bool:
    """Load variables from a .env file into the process environment.

    Existing environment variables are not overwritten.

    Returns:
        True if a .env file was found and loaded.
    """
    return load_dotenv(dotenv_path=dotenv_path, override=False)


# =============================================================================
# Client Configuration
# =============================================================================


@dataclass
class ClientConfig:
    """Settings consumed by the API client.

    Attributes:
        api_key: Inference service API key.
        model: Model name.
        max_tokens: maxOutputTokens for generation.
        temperature: Sampling temperature.
        base_url: Inference service root URL.
        max_retries: Attempt cap (3 means exactly 3 attempts).
        retry_delay_ms: Backoff base delay.
        timeout_ms: Timeout for one inference call.
        rate_limit_delay_ms: Minimum gap between consecutive requests.
        enable_fallback: Return a degraded analysis after exhausted retries.
        max_upload_bytes: Maximum decoded payload size.
    """

    api_key: str | None = None
    model: str = "gemini-2.0-flash"
    max_tokens: int = 8192
    temperature: float = 0.1
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    max_retries: int = 3
    retry_delay_ms: int = 1000
    timeout_ms: int = 60000
    rate_limit_delay_ms: int = 1000
    enable_fallback: bool = True
    max_upload_bytes: int = 20 * 1024 * 1024

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")

    @classmethod
    def from_environment(cls, **overrides: Any) -> ClientConfig:
        """Build a config from environment variables.

        Keyword overrides take priority over the environment.
        """
        values = {
            "api_key": get_environment(EnvVar.GEMINI_API_KEY),
            "model": get_environment(EnvVar.GEMINI_MODEL),
            "max_tokens": get_environment(EnvVar.GEMINI_MAX_TOKENS),
            "temperature": get_environment(EnvVar.GEMINI_TEMPERATURE),
            "base_url": get_environment(EnvVar.GEMINI_BASE_URL),
            "max_retries": get_environment(EnvVar.MAX_RETRIES),
            "retry_delay_ms": get_environment(EnvVar.RETRY_DELAY_MS),
            "timeout_ms": get_environment(EnvVar.TIMEOUT_MS),
            "rate_limit_delay_ms": get_environment(EnvVar.RATE_LIMIT_DELAY_MS),
            "enable_fallback": get_environment(EnvVar.ENABLE_FALLBACK),
            "max_upload_bytes": get_environment(EnvVar.MAX_UPLOAD_MB) * 1024 * 1024,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def validate_environment(config: ClientConfig | None = None) -> list[str]:
    """Check inference settings and return human-readable problems.

    Args:
        config: Config to check. Built from the environment when None.

    Returns:
        List of problems. Empty when the configuration is usable.
    """
    config = config or ClientConfig.from_environment()
    problems: list[str] = []

    if not config.api_key:
        problems.append("GEMINI_API_KEY is required")
    elif not config.api_key.startswith("AI"):
        problems.append("GEMINI_API_KEY appears to be invalid (should start with 'AI')")

    if config.model not in SUPPORTED_MODELS:
        problems.append(
            f"Unsupported model '{config.model}'. "
            f"Supported: {', '.join(SUPPORTED_MODELS)}"
        )

    if config.max_tokens <= 0:
        problems.append("GEMINI_MAX_TOKENS must be positive")

    if not 0 <= config.temperature <= 2:
        problems.append("GEMINI_TEMPERATURE must be between 0 and 2")

    return problems
