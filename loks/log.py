"""
Logging setup for loks.

loks logs through the standard library. ``setup_logging`` configures the root
handler once; ``get_logger`` returns a ``FieldLogger`` that carries key/value
context (namespace, pod, container, ...) and appends it to every message:

    [2024-05-01 10:00:00,000] INFO Starting to collect logs... namespace=default pod=web-1 container=app
"""

import logging
import os
from typing import Any, Dict, MutableMapping, Optional, Tuple

from .constants import DEFAULT_LOG_LEVEL, ENV_LOG_LEVEL, LOG_FORMAT
from .validation import log_level_number


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging; ``level`` falls back to LOKS_LOG_LEVEL or INFO."""
    name = level or os.getenv(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL)
    logging.basicConfig(level=log_level_number(name), format=LOG_FORMAT, force=True)
    # the kubernetes client logs every request body at debug level
    logging.getLogger('kubernetes').setLevel(max(logging.INFO, logging.getLogger().level))


class FieldLogger(logging.LoggerAdapter):
    """LoggerAdapter with chainable key/value fields."""

    def __init__(self, logger: logging.Logger, fields: Optional[Dict[str, Any]] = None):
        super().__init__(logger, dict(fields or {}))

    @property
    def fields(self) -> Dict[str, Any]:
        return dict(self.extra)

    def with_fields(self, **fields: Any) -> "FieldLogger":
        merged = dict(self.extra)
        merged.update(fields)
        return FieldLogger(self.logger, merged)

    def with_error(self, error: BaseException) -> "FieldLogger":
        return self.with_fields(error=f"{error.__class__.__name__}: {error}")

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        if self.extra:
            suffix = " ".join(f"{k}={v}" for k, v in self.extra.items())
            msg = f"{msg} {suffix}"
        extra = kwargs.setdefault('extra', {})
        extra.setdefault('fields', dict(self.extra))
        return msg, kwargs


def get_logger(name: str = 'loks', **fields: Any) -> FieldLogger:
    return FieldLogger(logging.getLogger(name), fields)
