"""Observability module for gopro-mcp.

Structured logging and link exchange statistics.

Example:
    from gopro_mcp.observability import LogContext, get_logger

    logger = get_logger(__name__)

    with LogContext(address="10.5.5.9"):
        logger.info("Status polled", battery=80, mode="Video")

Statistics Example:
    from gopro_mcp.observability import LinkStats

    stats = LinkStats()
    client = CameraClient(transport, stats=stats)
    ...
    print(stats.get_summary("status").success_rate)
"""

from gopro_mcp.observability.logging import (
    JSONFormatter,
    LogContext,
    StructuredFormatter,
    StructuredLogger,
    configure_logging,
    get_logger,
    reset_logging,
)
from gopro_mcp.observability.stats import (
    LinkStats,
    StatsSummary,
)

__all__ = [
    # Logging
    "JSONFormatter",
    "LogContext",
    "StructuredFormatter",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "reset_logging",
    # Statistics
    "LinkStats",
    "StatsSummary",
]
