"""
Configuration for the invoice/PO matching engine.
"""

# Load environment variables FIRST
from dotenv import load_dotenv
load_dotenv()

import os
from typing import Optional, List, Dict


# Fixed rules, not tunable through the environment
HIGH_CONFIDENCE_SCORE: int = 80
MEDIUM_CONFIDENCE_SCORE: int = 50

DATE_INPUT_FORMATS = (
    "%Y-%m-%d",
    "%d %b %Y",
    "%d %B %Y",
    "%d-%b-%Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%Y/%m/%d",
)

# Deterministic per-kind confidence attached to every non-missing comparison
KIND_CONFIDENCE: Dict[str, float] = {
    "identifier": 0.99,
    "currency_amount": 0.99,
    "date": 0.95,
    "text": 0.90,
}
# Dates that failed to parse and were compared as text
DATE_FALLBACK_CONFIDENCE: float = 0.60

DEFAULT_FIELDS: List[Dict[str, str]] = [
    {"name": "PO Number", "kind": "identifier", "path": "poNumber"},
    {"name": "Vendor Name", "kind": "text", "path": "vendorName"},
    {"name": "Date", "kind": "date", "path": "date"},
    {"name": "Total Amount", "kind": "currency_amount", "path": "totalAmount"},
    {"name": "Currency", "kind": "identifier", "path": "currency"},
    {"name": "Description of Items", "kind": "text", "path": "descriptionOfItems"},
    {"name": "Quantity", "kind": "currency_amount", "path": "quantity"},
]


class Config:
    """Base configuration."""

    # Matching
    MATCH_THRESHOLD: int = int(os.getenv("MATCH_THRESHOLD", "70"))
    AMOUNT_TOLERANCE: float = float(os.getenv("AMOUNT_TOLERANCE", "0.01"))
    FIELDS_CONFIG_PATH: Optional[str] = os.getenv("FIELDS_CONFIG_PATH", None)

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE: str = os.getenv("LOG_FILE", "invoice_matcher.log")

    # Data Paths
    DOCUMENTS_DIR: str = os.getenv(
        "DOCUMENTS_DIR",
        os.path.join(os.path.dirname(__file__), "data", "documents"),
    )

    # API Configuration
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))
    API_DEBUG: bool = os.getenv("API_DEBUG", "false").lower() == "true"

    @classmethod
    def validate(cls) -> None:
        """Validate configuration."""
        if not 0 <= cls.MATCH_THRESHOLD <= 100:
            raise ValueError(f"MATCH_THRESHOLD must be between 0 and 100, got {cls.MATCH_THRESHOLD}")

        if cls.AMOUNT_TOLERANCE <= 0:
            raise ValueError(f"AMOUNT_TOLERANCE must be positive, got {cls.AMOUNT_TOLERANCE}")

        if cls.LOG_LEVEL.upper() not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError(f"Invalid LOG_LEVEL: {cls.LOG_LEVEL}")


class DevelopmentConfig(Config):
    """Development configuration."""
    LOG_LEVEL = "DEBUG"
    API_DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    LOG_LEVEL = "INFO"
    API_DEBUG = False


class TestConfig(Config):
    """Test configuration."""
    LOG_LEVEL = "DEBUG"
    MATCH_THRESHOLD = 70
    AMOUNT_TOLERANCE = 0.01


def get_config(env: str = None) -> Config:
    """Get configuration based on environment."""
    if env is None:
        env = os.getenv("ENV", "development").lower()

    if env == "production":
        config = ProductionConfig()
    elif env == "test":
        config = TestConfig()
    else:
        config = DevelopmentConfig()

    # Validate configuration on creation
    config.validate()
    return config
