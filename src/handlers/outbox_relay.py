"""
Outbox relay.

Scheduled Lambda that republishes change notifications left behind by admin
writes whose publish failed or never ran.
"""

from typing import Any, Dict

# Handle both Lambda (absolute) and unit test (relative) imports
try:  # pragma: no cover
    from utils.logging import get_correlation_id, get_logger
    from utils.outbox import relay_pending
    from utils.resources import Resources, get_resources
except ModuleNotFoundError:  # pragma: no cover
    from ..utils.logging import get_correlation_id, get_logger
    from ..utils.outbox import relay_pending
    from ..utils.resources import Resources, get_resources


def relay(resources: Resources, event: Dict[str, Any]) -> Dict[str, int]:
    """
    Drain the outbox once.

    Args:
        resources: Resource handle
        event: Scheduled event (unused beyond its correlation id)

    Returns:
        ``{"relayed": n, "failed": m}``
    """
    logger = get_logger(__name__, get_correlation_id(event))
    counts = relay_pending(resources.outbox(), resources.sns_client, resources.settings.outbox_grace_seconds)
    if counts["relayed"] or counts["failed"]:
        logger.info("Relayed outbox records", **counts)
    return counts


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, int]:
    return relay(get_resources(), event)
