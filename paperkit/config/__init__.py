"""Centralized configuration management for paperkit.

Example:
    >>> from paperkit.config import ClientConfig, EnvVar, get_environment
    >>>
    >>> timeout = get_environment(EnvVar.TIMEOUT_MS)  # Returns int: 60000
    >>> config = ClientConfig.from_environment(max_retries=5)

Environment Variable Categories:
    inference: Gemini API key, model, tokens, temperature, base URL
    client: Retry, timeout, rate-limit, fallback and upload limits
    layout: Page size preset and margin
"""

from .lib import (
    # Core types
    SUPPORTED_MODELS,
    ClientConfig,
    EnvConfig,
    EnvVar,
    # Main interface
    get_environment,
    get_environment_info,
    # Introspection
    list_environment_variables,
    load_environment,
    validate_environment,
)

__all__ = [
    # Core types
    "ClientConfig",
    "EnvConfig",
    "EnvVar",
    "SUPPORTED_MODELS",
    # Main interface
    "get_environment",
    "get_environment_info",
    "load_environment",
    "validate_environment",
    # Introspection
    "list_environment_variables",
]
