"""Observability - logging and addon origin health probing."""

from addonsync.infrastructure.observability.health import OriginHealthProbe
from addonsync.infrastructure.observability.logging import (
    configure_logging,
    configure_logging_from_settings,
    get_correlation_id,
    set_correlation_id,
)

__all__ = [
    "OriginHealthProbe",
    "configure_logging",
    "configure_logging_from_settings",
    "get_correlation_id",
    "set_correlation_id",
]
