"""
logging.py — Application-Wide Logging Configuration

Purpose:
- Configure a standardized logging format for sheet builds and CLI scripts.
- Keep builder logs (visible years, column counts, skipped data points)
  readable during development.
- One line per record: timestamp | level | module | message
"""

import logging

# -----------------------------------------------------------------------------
# Log Format
# -----------------------------------------------------------------------------

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
)

# -----------------------------------------------------------------------------
# Root Logger Initialization
# -----------------------------------------------------------------------------

def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging settings.

    Parameters:
        level (str): "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"

    Behavior:
    - Sets logging format globally.
    - Should be called ONCE, typically at the top of a CLI script.

    Example Call:
        configure_logging("DEBUG")
    """

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT
    )

    logging.getLogger(__name__).info("Logging initialized with level %s", level)

# -----------------------------------------------------------------------------
# Logger Access Helper
# -----------------------------------------------------------------------------

def get_logger(name: str) -> logging.Logger:
    """
    Return a logger instance to be used in any module.

    In any module:
        from stocksheet.core.logging import get_logger
        logger = get_logger(__name__)
        logger.info("something happened")
    """
    return logging.getLogger(name)
