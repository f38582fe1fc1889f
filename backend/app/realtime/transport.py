"""Outbound delivery seam between the realtime layer and Socket.IO.

The registry, presence broadcaster and room relay only ever talk to a
:class:`Transport`. Production wires in :class:`SocketIOTransport`; tests
substitute a recorder.
"""
from typing import Any, Protocol

import socketio


class Transport(Protocol):
    """Anything that can push one event to one connection handle."""

    async def emit(self, event: str, data: Any, to: str) -> None:
        ...


class SocketIOTransport:
    """Transport backed by a python-socketio ``AsyncServer``."""

    def __init__(self, sio: socketio.AsyncServer) -> None:
        self._sio = sio

    async def emit(self, event: str, data: Any, to: str) -> None:
        await self._sio.emit(event, data, to=to)
