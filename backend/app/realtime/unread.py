"""Per-conversation unread counts, computed from stored message state."""
from typing import Dict, List, Protocol, Tuple


class UnreadSource(Protocol):
    def unread_counts(self, receiver_id: str) -> List[Tuple[str, int]]:
        """(connection_id, count) pairs of unread messages addressed to the user."""
        ...


class UnreadCounter:
    """Answers "how many unread messages do I have, and where?".

    Every call scans the message store; nothing is cached.
    """

    def __init__(self, source: UnreadSource) -> None:
        self._source = source

    def unread_summary(self, principal_id: str) -> Dict[str, object]:
        counts = [
            {"connectionId": connection_id, "count": int(count)}
            for connection_id, count in self._source.unread_counts(principal_id)
            if count > 0
        ]
        return {"counts": counts, "total": sum(c["count"] for c in counts)}
