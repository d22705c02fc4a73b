"""
Structured logging for the matching engine.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional
from invoice_matcher.config import get_config


config = get_config()


class StructuredFormatter(logging.Formatter):
    """Formats log records as structured JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "extra"):
            log_obj.update(record.extra)

        return json.dumps(log_obj, default=str)


def setup_logging(name: str = __name__) -> logging.Logger:
    """Setup and return a configured logger."""
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, config.LOG_LEVEL.upper()))

    # Module-level loggers are requested once per import; attach handlers once
    if logger.handlers:
        return logger

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, config.LOG_LEVEL.upper()))
    console_formatter = logging.Formatter(config.LOG_FORMAT)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    # File handler with structured JSON
    file_handler = logging.FileHandler(config.LOG_FILE)
    file_handler.setLevel(getattr(logging, config.LOG_LEVEL.upper()))
    file_handler.setFormatter(StructuredFormatter())
    logger.addHandler(file_handler)

    return logger


def log_pipeline_action(
    logger: logging.Logger,
    component: str,
    action: str,
    details: Optional[dict] = None,
    score: Optional[int] = None,
) -> None:
    """Log a pipeline action with context."""
    extra = {
        "component": component,
        "action": action,
    }
    if score is not None:
        extra["match_score"] = score
    if details:
        extra.update(details)

    logger.info(
        f"[{component}] {action}",
        extra={"extra": extra}
    )


def log_comparison_failure(
    logger: logging.Logger,
    invoice_id: str,
    po_id: str,
    error: str,
) -> None:
    """Log a pairwise comparison that raised and was recorded as a zero-score result."""
    extra = {
        "type": "comparison_failure",
        "invoice_id": invoice_id,
        "po_id": po_id,
        "error": error,
    }
    logger.warning(
        f"Comparison failed: {invoice_id} x {po_id} ({error})",
        extra={"extra": extra}
    )
