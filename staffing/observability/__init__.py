"""
Observability: structured logging and request ids.

Usage:
    from staffing.observability import configure_logging, RequestContext

    configure_logging("INFO")
    with RequestContext():
        logger.info("Processing")
"""

from .context import RequestContext, generate_request_id, get_request_id
from .logging import CorrelationIdMiddleware, HumanFormatter, JSONFormatter, configure_logging

__all__ = [
    "configure_logging",
    "JSONFormatter",
    "HumanFormatter",
    "CorrelationIdMiddleware",
    "RequestContext",
    "generate_request_id",
    "get_request_id",
]
