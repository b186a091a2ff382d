"""
Input validation and sanitization for loks.

This module validates the user inputs and configuration values accepted by
the loks command line before any Kubernetes connection is attempted.

Key Functions:
- validate_selector: Parses a label selector expression
- validate_patterns: Normalizes name filter lists
- validate_port: Validates the status server port (0 disables it)
- validate_host: Validates host strings
- validate_timeout: Validates the optional run deadline
- validate_output_dir: Validates and creates the log output directory
- validate_log_level: Validates logging level names

All validation functions raise ConfigurationError (or InvalidSelectorError for
selectors) with descriptive error messages when validation fails.

Example:
    ```python
    try:
        selector = validate_selector("app=web,tier in (frontend)")
        port = validate_port(8080)
    except (InvalidSelectorError, ConfigurationError) as e:
        print(f"Validation failed: {e}")
    ```
"""

import logging
import os
from pathlib import Path
from typing import Iterable, Optional, Tuple

from .exceptions import ConfigurationError
from .selector import LabelSelector


def validate_selector(expression: Optional[str]) -> Optional[LabelSelector]:
    """
    Parse a label selector given on the command line.

    Args:
        expression: Selector text such as ``app=web,env!=prod`` (optional)

    Returns:
        Optional[LabelSelector]: Parsed selector, or None when no selector
        was given (which matches every pod)

    Raises:
        InvalidSelectorError: If the expression is not a valid selector
    """
    if expression is None or not expression.strip():
        return None
    return LabelSelector.parse(expression)


def validate_patterns(patterns: Optional[Iterable[str]], what: str) -> Tuple[str, ...]:
    """
    Normalize a list of name patterns.

    Comma separated values are split, surrounding whitespace is removed and
    duplicates are dropped while keeping the original order.

    Raises:
        ConfigurationError: If a pattern is empty after trimming
    """
    result = []
    for raw in patterns or []:
        for part in raw.split(","):
            pattern = part.strip()
            if not pattern:
                raise ConfigurationError(f"Empty {what} pattern in {raw!r}")
            if pattern not in result:
                result.append(pattern)
    return tuple(result)


def validate_port(port: int) -> int:
    """
    Validate port number for the status server.

    Zero is accepted and means the status server is disabled.

    Raises:
        ConfigurationError: If port is not an integer or outside valid range
    """
    if not isinstance(port, int) or port < 0 or port > 65535:
        raise ConfigurationError(f"Port must be an integer between 0 and 65535, got: {port}")
    return port


def validate_host(host: str) -> str:
    """Validate host string for server binding."""
    if not host or not host.strip():
        raise ConfigurationError("Host cannot be empty")

    host = host.strip()

    if len(host) > 253:  # DNS name length limit
        raise ConfigurationError("Host name too long")

    return host


def validate_timeout(timeout: Optional[float]) -> Optional[float]:
    """
    Validate the optional deadline after which collection is stopped.

    Raises:
        ConfigurationError: If timeout is not a positive number
    """
    if timeout is None:
        return None
    if not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigurationError(f"Timeout must be a positive number of seconds, got: {timeout}")
    return float(timeout)


def validate_output_dir(path: Optional[str]) -> Optional[Path]:
    """
    Validate the directory logs are written to, creating it if needed.

    Raises:
        ConfigurationError: If the path exists but is not a writable directory
    """
    if not path:
        return None

    directory = Path(path).expanduser()
    if directory.exists() and not directory.is_dir():
        raise ConfigurationError(f"Output path is not a directory: {directory}")

    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"Cannot create output directory {directory}: {e}")

    if not os.access(directory, os.W_OK):
        raise ConfigurationError(f"Output directory is not writable: {directory}")

    return directory


def validate_log_level(level: str) -> str:
    """Validate a logging level name and return it upper-cased."""
    name = (level or "").strip().upper()
    if name not in ("DEBUG", "INFO", "WARNING", "ERROR"):
        raise ConfigurationError(f"Invalid log level: {level}")
    return name


def log_level_number(level: str) -> int:
    return getattr(logging, validate_log_level(level))
