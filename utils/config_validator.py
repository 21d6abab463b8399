"""
Configuration Validation Module

Validates critical configuration values at startup to fail-fast
with clear error messages instead of runtime failures.
"""

import sys
from typing import Optional
from urllib.parse import urlparse


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


def validate_api_base_url(api_base_url: Optional[str]) -> None:
    """
    Validate the remote commerce API base URL.

    Args:
        api_base_url: The API_BASE_URL value from config

    Raises:
        ConfigValidationError: If URL is missing or not http(s)
    """
    if not api_base_url or len(api_base_url.strip()) == 0:
        raise ConfigValidationError(
            "API_BASE_URL is required and must not be empty!\n"
            "Add to .env: API_BASE_URL=https://your-backend.example.com/api"
        )

    parsed = urlparse(api_base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigValidationError(
            f"API_BASE_URL must be an absolute http(s) URL (got: {api_base_url})\n"
            "Example: API_BASE_URL=http://localhost:5001/api"
        )


def validate_timeout(timeout_seconds: float) -> None:
    """
    Validate the HTTP timeout.

    Raises:
        ConfigValidationError: If timeout is not positive or unreasonably large
    """
    if timeout_seconds <= 0:
        raise ConfigValidationError(
            f"HTTP_TIMEOUT_SECONDS must be positive (got: {timeout_seconds})"
        )
    if timeout_seconds > 300:
        raise ConfigValidationError(
            f"HTTP_TIMEOUT_SECONDS is too large (got: {timeout_seconds}, maximum: 300)"
        )


def validate_pricing(tax_rate_percent: float, shipping_fee: float, free_shipping_threshold: float) -> None:
    """
    Validate checkout pricing settings.

    Raises:
        ConfigValidationError: If a value is out of range
    """
    if not 0 <= tax_rate_percent <= 100:
        raise ConfigValidationError(
            f"TAX_RATE_PERCENT must be between 0 and 100 (got: {tax_rate_percent})"
        )
    if shipping_fee < 0:
        raise ConfigValidationError(
            f"STANDARD_SHIPPING_FEE must not be negative (got: {shipping_fee})"
        )
    if free_shipping_threshold < 0:
        raise ConfigValidationError(
            f"FREE_SHIPPING_THRESHOLD must not be negative (got: {free_shipping_threshold})"
        )


def validate_startup_config(config_module) -> None:
    """
    Validate all critical configuration at startup.

    Args:
        config_module: The config module to validate

    Raises:
        ConfigValidationError: If any validation fails
    """
    validate_api_base_url(getattr(config_module, 'API_BASE_URL', None))
    validate_timeout(config_module.HTTP_TIMEOUT_SECONDS)
    validate_pricing(
        config_module.TAX_RATE_PERCENT,
        config_module.STANDARD_SHIPPING_FEE,
        config_module.FREE_SHIPPING_THRESHOLD
    )


def validate_or_exit(config_module) -> None:
    """
    Validate configuration and exit with error code 1 if validation fails.

    This is the main entry point for startup validation.

    Args:
        config_module: The config module to validate
    """
    try:
        validate_startup_config(config_module)
    except ConfigValidationError as e:
        print(f"\n ERROR: Configuration Validation Failed\n", file=sys.stderr)
        print(str(e), file=sys.stderr)
        print("\nStartup aborted. Please fix configuration and try again.\n", file=sys.stderr)
        sys.exit(1)
