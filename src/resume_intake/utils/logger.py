"""Logging helpers shared by the extraction services."""

import logging
import re
import sys
from typing import Optional

_SENSITIVE_PATTERNS = (
    (re.compile(r"\b\d{3}-\d{2}-\d{4}\b"), "[SSN]"),
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[EMAIL]"),
    (re.compile(r"\b\d{16}\b"), "[CARD]"),
    (re.compile(r"\b\d{3}-\d{3}-\d{4}\b"), "[PHONE]"),
    (re.compile(r"\+\d[\d\s().-]{7,}\d"), "[PHONE]"),
)


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """Get a configured logger instance."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(handler)
    if level is not None:
        logger.setLevel(level)
    return logger


def sanitize_for_log(text: str, max_length: int = 200) -> str:
    """Mask contact and identity numbers in resume text before it reaches a log line."""
    sanitized = text or ""
    for pattern, replacement in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    sanitized = re.sub(r"\s+", " ", sanitized).strip()
    if len(sanitized) > max_length:
        return sanitized[:max_length] + "..."
    return sanitized
