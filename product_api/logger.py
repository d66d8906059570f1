"""
Logging configuration for the product API.

All modules log through children of the ``product_api`` logger so a single
handler and level apply to the whole service.
"""
import logging
import sys

logger = logging.getLogger("product_api")

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

# Avoid duplicate lines through uvicorn's root handlers
logger.propagate = False


def configure_logging(level: str = "INFO") -> None:
    """Apply the configured level to the package logger."""
    logger.setLevel(level.upper())


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Optional name for the logger (will be appended to 'product_api')
    """
    if name:
        return logging.getLogger(f"product_api.{name}")
    return logger
