"""Realtime presence and conversation relay over Socket.IO.

Components (composed by :class:`app.realtime.hub.RealtimeHub`):
    - SessionRegistry: principal id -> live connection handle.
    - PresenceBroadcaster: global online/offline/profile/location events.
    - RoomRelay: per-conversation membership and fan-out.
    - UnreadCounter: unread message counts per conversation.

State is process-local. Running more than one worker process would need an
external pub/sub broker behind the transport.
"""
