import os
import sys

from dotenv import load_dotenv

from enums.runtime_environment import RuntimeEnvironment

# Load .env but don't override existing environment variables
# This allows test scripts to set RUNTIME_ENVIRONMENT=TEST before import
load_dotenv(".env", override=False)


def _exit_with_config_error(name: str, reason, expected: str) -> None:
    print(f"\n ERROR: Invalid {name} configuration\n", file=sys.stderr)
    print(f"Reason: {reason}", file=sys.stderr)
    print(f"Expected: {expected}", file=sys.stderr)
    print(f"Current value: {os.environ.get(name, '(not set)')}\n", file=sys.stderr)
    sys.exit(1)


def _parse_non_negative_float(name: str, default: str) -> float:
    try:
        value = float(os.environ.get(name, default))
        if value < 0:
            raise ValueError(f"{name} must not be negative (got: {value})")
        return value
    except ValueError as e:
        _exit_with_config_error(name, e, "Non-negative number (e.g., 0, 18, 49.5)")


# Parse RUNTIME_ENVIRONMENT with clear error message on misconfiguration
try:
    RUNTIME_ENVIRONMENT = RuntimeEnvironment(os.environ.get("RUNTIME_ENVIRONMENT", RuntimeEnvironment.DEV.value))
except ValueError as e:
    valid_values = [env.value for env in RuntimeEnvironment]
    _exit_with_config_error("RUNTIME_ENVIRONMENT", e, f"One of: {', '.join(valid_values)}")

# Remote commerce API
API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:5001/api").rstrip("/")

# Parse HTTP_TIMEOUT_SECONDS with error handling
try:
    HTTP_TIMEOUT_SECONDS = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "15"))
    if HTTP_TIMEOUT_SECONDS <= 0:
        raise ValueError(f"HTTP_TIMEOUT_SECONDS must be positive (got: {HTTP_TIMEOUT_SECONDS})")
except ValueError as e:
    _exit_with_config_error("HTTP_TIMEOUT_SECONDS", e, "Positive number of seconds (e.g., 10, 15, 30)")

# Durable client storage (SQLite file holding the key-value records)
DATA_DIR = os.environ.get("DATA_DIR", "data")
DB_NAME = os.environ.get("DB_NAME", "storefront.db")

# Checkout pricing (mirrors the admin store settings of the web shop)
TAX_RATE_PERCENT = _parse_non_negative_float("TAX_RATE_PERCENT", "18")
STANDARD_SHIPPING_FEE = _parse_non_negative_float("STANDARD_SHIPPING_FEE", "50")
FREE_SHIPPING_THRESHOLD = _parse_non_negative_float("FREE_SHIPPING_THRESHOLD", "500")
CURRENCY = os.environ.get("CURRENCY", "INR")

# Contact form
CONTACT_SOURCE = os.environ.get("CONTACT_SOURCE", "contact-page")

# Logging Configuration
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_MASK_SECRETS = os.environ.get("LOG_MASK_SECRETS", "true") == "true"  # Mask tokens/PII in logs
LOG_DIR = os.environ.get("LOG_DIR", "logs")

# Log Retention: Environment-specific defaults
# Dev: 30 days for debugging
# Prod/Test: 5 days to save disk space
if RUNTIME_ENVIRONMENT == RuntimeEnvironment.DEV:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "30"))
else:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "5"))
