"""Outcome type for side effects that must never fail the caller."""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BestEffortResult:
    """Outcome of a best-effort write.

    Attributes:
        ok: True when the write completed.
        error: Failure description when ``ok`` is False.
    """
    ok: bool
    error: Optional[str] = None


def best_effort(action: str, fn: Callable[..., Any], *args, **kwargs) -> BestEffortResult:
    """Run ``fn`` and report its outcome instead of raising.

    Failures are logged here and nowhere else; they are not retried.
    """
    try:
        fn(*args, **kwargs)
    except Exception as exc:
        logger.warning("[realtime] %s failed: %s", action, exc)
        return BestEffortResult(ok=False, error=str(exc))
    return BestEffortResult(ok=True)
