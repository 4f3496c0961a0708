"""Configuration loading for the ledger.

Loads settings from .env file and environment variables with sensible defaults.
Validates values and provides clear error messages.
"""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path

from dotenv import load_dotenv


@dataclass
class LedgerConfig:
    """Runtime configuration for services and the CLI."""

    database_url: str = "sqlite:///./hoa_ledger.db"
    """SQLAlchemy database URL (default: local SQLite)"""

    log_file: str = "logs/hoa_ledger.log"
    """Path to log file"""

    default_common_area_percentage: Decimal = Decimal("45")
    """Common-area share used when a budget does not set one"""

    assessment_tolerance: Decimal = Decimal("0.01")
    """Accepted drift between a budget and the sum of its unit assessments"""


def _read_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, default)
    try:
        return Decimal(raw.strip())
    except (InvalidOperation, AttributeError) as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def load_config() -> LedgerConfig:
    """
    Load configuration from .env file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (DATABASE_URL, LOG_FILE, ...)
    2. .env file in the working directory
    3. Default values

    Returns:
        LedgerConfig with validated settings

    Raises:
        ValueError: If a numeric setting is malformed or out of range
    """
    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    common_area = _read_decimal("DEFAULT_COMMON_AREA_PERCENTAGE", "45")
    if not Decimal("0") <= common_area <= Decimal("100"):
        raise ValueError(
            f"DEFAULT_COMMON_AREA_PERCENTAGE must be between 0 and 100, got {common_area}"
        )

    tolerance = _read_decimal("ASSESSMENT_TOLERANCE", "0.01")
    if tolerance < 0:
        raise ValueError(f"ASSESSMENT_TOLERANCE must not be negative, got {tolerance}")

    return LedgerConfig(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./hoa_ledger.db"),
        log_file=os.getenv("LOG_FILE", "logs/hoa_ledger.log"),
        default_common_area_percentage=common_area,
        assessment_tolerance=tolerance,
    )
