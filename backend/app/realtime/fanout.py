"""Concurrent delivery of one event to many handles."""
import asyncio
import logging
from typing import Any, Iterable, List

from .transport import Transport

logger = logging.getLogger(__name__)


async def fan_out(transport: Transport, handles: Iterable[str], event: str, payload: Any) -> List[str]:
    """Emit ``event`` to every handle concurrently.

    Returns:
        Handles whose delivery failed. Failures are logged, never raised.
    """
    targets = list(handles)
    if not targets:
        return []

    results = await asyncio.gather(
        *[_safe_emit(transport, handle, event, payload) for handle in targets],
        return_exceptions=True,
    )
    return [handle for handle, ok in zip(targets, results) if ok is not True]


async def _safe_emit(transport: Transport, handle: str, event: str, payload: Any) -> bool:
    try:
        await transport.emit(event, payload, to=handle)
        return True
    except Exception as e:
        logger.debug(f"Failed to send {event} to {handle}: {e}")
        return False
