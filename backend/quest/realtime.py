"""Realtime broadcaster: presence tracking and fan-out to game rooms.

Presence is in-memory only and is never consulted by the game services;
a restart forgets who is connected, which is fine because it is not game
state. Every emit is best-effort: failures are logged and swallowed so a
committed mutation is never undone by a broken socket.
"""

from typing import Any, Dict, Optional, Set

from flask import current_app, has_request_context, request

from quest import socketio
from quest.events import GameDeleted, RealtimeEvent

NAMESPACE = '/ws'
ORIGIN_HEADER = 'X-Socket-ID'

_game_rooms: Dict[int, Set[str]] = {}
_sid_to_ctx: Dict[str, Dict[str, Any]] = {}


def room_name(game_id: int) -> str:
    return f"game:{game_id}"


# ---- Presence lifecycle ----

def add_member(sid: str, game_id: int, user_id: Optional[int], username: str) -> Optional[Dict[str, Any]]:
    """Track ``sid`` as a member of ``game_id``; returns its previous context, if any."""
    previous = remove_member(sid)
    _sid_to_ctx[sid] = {'user_id': user_id, 'game_id': game_id, 'username': username}
    _game_rooms.setdefault(game_id, set()).add(sid)
    return previous


def remove_member(sid: str) -> Optional[Dict[str, Any]]:
    ctx = _sid_to_ctx.pop(sid, None)
    if not ctx:
        return None
    members = _game_rooms.get(ctx['game_id'])
    if members is not None:
        members.discard(sid)
        if not members:
            _game_rooms.pop(ctx['game_id'], None)
    return ctx


def drop_game(game_id: int) -> Set[str]:
    sids = _game_rooms.pop(game_id, set())
    for sid in sids:
        _sid_to_ctx.pop(sid, None)
    return sids


def member_context(sid: str) -> Optional[Dict[str, Any]]:
    return _sid_to_ctx.get(sid)


def member_count(game_id: int) -> int:
    return len(_game_rooms.get(game_id, ()))


def reset_presence() -> None:
    _game_rooms.clear()
    _sid_to_ctx.clear()


# ---- Fan-out ----

def _origin_sid() -> Optional[str]:
    """The connection that caused the current event, when known.

    Inside a Socket.IO handler that is ``request.sid``; over HTTP the client
    may name its socket in the ``X-Socket-ID`` header.
    """
    if not has_request_context():
        return None
    sid = getattr(request, 'sid', None)
    if sid:
        return sid
    return request.headers.get(ORIGIN_HEADER) or None


def _emit(event: RealtimeEvent, skip_sid: Optional[str] = None) -> None:
    try:
        socketio.emit(
            event.name,
            event.to_payload(),
            to=room_name(event.game_id),
            namespace=NAMESPACE,
            skip_sid=skip_sid,
        )
        current_app.logger.info(f"[broadcast] event={event.name} game={event.game_id} user={event.user_id}")
        if isinstance(event, GameDeleted):
            socketio.close_room(room_name(event.game_id), namespace=NAMESPACE)
    except Exception:
        current_app.logger.exception(f"[broadcast-failed] event={event.name} game={event.game_id}")
    if isinstance(event, GameDeleted):
        drop_game(event.game_id)


def notify_all(event: RealtimeEvent) -> None:
    """Send to every connection in the game's room, the originator included."""
    _emit(event)


def notify_others(event: RealtimeEvent) -> None:
    """Send to every connection in the game's room except the originator."""
    _emit(event, skip_sid=_origin_sid())
