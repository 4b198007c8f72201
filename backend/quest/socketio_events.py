from flask import current_app, request
from flask_login import current_user
from flask_socketio import join_room, leave_room, emit

from quest import socketio
from quest import realtime
from quest.events import (
    PlayerDisconnected,
    PlayerListChanged,
    ReturnedToDashboard,
    RoomInfo,
    WinnerStatsRequested,
)


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _parse_game_id(data):
    if not isinstance(data, dict):
        return None
    try:
        return int(data.get('gameId'))
    except (TypeError, ValueError):
        return None


def _identity(data):
    """Prefer the logged-in session user; fall back to what the client declared."""
    if current_user and current_user.is_authenticated:
        return current_user.id, current_user.username
    data = data if isinstance(data, dict) else {}
    return data.get('userId'), data.get('username') or 'Unknown Player'


def _actor(sid, game_id, data):
    ctx = realtime.member_context(sid)
    if ctx and ctx['game_id'] == game_id:
        return ctx['user_id'], ctx['username']
    return _identity(data)


def handle_connect(auth=None):
    # Clients echo the sid back in X-Socket-ID so HTTP actions can skip them
    emit('connected', {'message': 'Connected to /ws', 'sid': _get_sid()})


def handle_disconnect(reason=None):
    ctx = realtime.remove_member(_get_sid())
    if not ctx:
        return
    game_id = ctx['game_id']
    current_app.logger.info(f"[presence] disconnect game={game_id} user={ctx['user_id']}")
    realtime.notify_others(PlayerDisconnected(
        game_id=game_id,
        user_id=ctx['user_id'],
        username=ctx['username'],
    ))
    realtime.notify_others(PlayerListChanged(
        game_id=game_id,
        user_id=ctx['user_id'],
        player_count=realtime.member_count(game_id),
    ))


def handle_join_game(data):
    """Follow a game's room. Seat changes are announced by the HTTP join."""
    game_id = _parse_game_id(data)
    if game_id is None:
        emit('error', {'message': 'gameId is required'})
        return
    user_id, username = _identity(data)
    sid = _get_sid()

    # A connection follows one game at a time
    previous = realtime.add_member(sid, game_id, user_id, username)
    if previous and previous['game_id'] != game_id:
        leave_room(realtime.room_name(previous['game_id']))
        realtime.notify_others(PlayerListChanged(
            game_id=previous['game_id'],
            user_id=user_id,
            player_count=realtime.member_count(previous['game_id']),
        ))
    join_room(realtime.room_name(game_id))
    current_app.logger.info(f"[presence] join game={game_id} user={user_id}")

    emit('room-info', RoomInfo(
        game_id=game_id,
        user_id=user_id,
        player_count=realtime.member_count(game_id),
    ).to_payload())
    realtime.notify_all(PlayerListChanged(
        game_id=game_id,
        user_id=user_id,
        player_count=realtime.member_count(game_id),
    ))


def handle_leave_game(data):
    game_id = _parse_game_id(data)
    if game_id is None:
        emit('error', {'message': 'gameId is required'})
        return
    sid = _get_sid()
    ctx = realtime.member_context(sid)
    if not ctx or ctx['game_id'] != game_id:
        emit('error', {'message': 'Not in this game'})
        return
    realtime.remove_member(sid)
    leave_room(realtime.room_name(game_id))
    current_app.logger.info(f"[presence] leave game={game_id} user={ctx['user_id']}")
    realtime.notify_others(PlayerListChanged(
        game_id=game_id,
        user_id=ctx['user_id'],
        player_count=realtime.member_count(game_id),
    ))
    emit('left', {'gameId': game_id})


def handle_request_winner_stats(data):
    game_id = _parse_game_id(data)
    if game_id is None:
        emit('error', {'message': 'gameId is required'})
        return
    user_id, _ = _actor(_get_sid(), game_id, data)
    current_app.logger.info(f"[winner-stats] game={game_id} user={user_id}")
    realtime.notify_all(WinnerStatsRequested(game_id=game_id, user_id=user_id))


def handle_return_to_dashboard(data):
    game_id = _parse_game_id(data)
    if game_id is None:
        emit('error', {'message': 'gameId is required'})
        return
    user_id, username = _actor(_get_sid(), game_id, data)
    current_app.logger.info(f"[dashboard] game={game_id} user={user_id}")
    realtime.notify_others(ReturnedToDashboard(
        game_id=game_id,
        user_id=user_id,
        username=username,
    ))


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the '/ws' namespace."""
    namespace = realtime.NAMESPACE
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('join-game', handle_join_game, namespace=namespace)
    socketio.on_event('leave-game', handle_leave_game, namespace=namespace)
    socketio.on_event('request-winner-stats', handle_request_winner_stats, namespace=namespace)
    socketio.on_event('return-to-dashboard', handle_return_to_dashboard, namespace=namespace)
    socketio.on_event('ping', handle_ping, namespace=namespace)
