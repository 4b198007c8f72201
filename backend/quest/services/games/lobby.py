"""Lobby lifecycle: create, join, start, leave and delete games."""

import re
from typing import Optional, Tuple

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from quest import db, realtime
from quest.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from quest.events import GameDeleted, GameStarted, PlayerJoined, PlayerLeft
from quest.models import Game, GameEvent, GameMove, GamePlayer, generate_game_code, utcnow
from .store import current_rules, get_game, get_membership, get_user, ordered_players, record_event

NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 50
JOIN_CODE_PATTERN = re.compile(r'[A-Z0-9]+')


def _validate_max_players(max_players, rules) -> int:
    if max_players is None:
        return int(current_app.config.get('DEFAULT_MAX_PLAYERS', rules.max_players_limit))
    if isinstance(max_players, bool):
        raise ValidationError('Max players must be a number')
    try:
        value = int(max_players)
    except (TypeError, ValueError):
        raise ValidationError('Max players must be a number')
    if not rules.min_players <= value <= rules.max_players_limit:
        raise ValidationError(f'Max players must be between {rules.min_players}-{rules.max_players_limit}')
    return value


def create_game(creator_id: int, name: Optional[str], max_players=None) -> Game:
    """Open a new game in the waiting room with its creator seated first."""
    rules = current_rules()
    name = (name or '').strip()
    if not name:
        raise ValidationError('Game name is required')
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        raise ValidationError(f'Game name must be {NAME_MIN_LENGTH}-{NAME_MAX_LENGTH} characters')
    max_players = _validate_max_players(max_players, rules)
    creator = get_user(creator_id)

    game = Game(
        game_code=generate_game_code(int(current_app.config.get('JOIN_CODE_LENGTH', 6))),
        name=name,
        created_by=creator.id,
        max_players=max_players,
        status='waiting',
    )
    db.session.add(game)
    db.session.flush()
    db.session.add(GamePlayer(game_id=game.id, user_id=creator.id, turn_order=1))
    record_event(game.id, 'player_joined', {
        'player_id': creator.id,
        'username': creator.username,
        'player_order': 1,
    })
    db.session.commit()
    current_app.logger.info(f"[create] game={game.id} code={game.game_code} creator={creator.id} max_players={max_players}")
    return game


def join_game(user_id: int, code: Optional[str]) -> Tuple[Game, GamePlayer]:
    code = (code or '').strip().upper()
    length = int(current_app.config.get('JOIN_CODE_LENGTH', 6))
    if len(code) != length or not JOIN_CODE_PATTERN.fullmatch(code):
        raise ValidationError(f'Game code must be {length} alphanumeric characters')
    user = get_user(user_id)

    game = Game.query.filter_by(game_code=code, status='waiting').first()
    if not game:
        raise NotFoundError('Game not found or already started')
    if GamePlayer.query.filter_by(game_id=game.id, user_id=user.id).first():
        raise ConflictError('You are already in this game')
    player_count = GamePlayer.query.filter_by(game_id=game.id).count()
    if player_count >= game.max_players:
        raise ConflictError('Game is full')

    highest = db.session.query(func.max(GamePlayer.turn_order)).filter_by(game_id=game.id).scalar() or 0
    player = GamePlayer(game_id=game.id, user_id=user.id, turn_order=highest + 1)
    db.session.add(player)
    record_event(game.id, 'player_joined', {
        'player_id': user.id,
        'username': user.username,
        'player_order': player.turn_order,
    })
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race for the seat or double-submitted join
        db.session.rollback()
        raise ConflictError('Could not join the game, please try again')
    current_app.logger.info(f"[join] game={game.id} user={user.id} order={player.turn_order}")

    realtime.notify_others(PlayerJoined(
        game_id=game.id,
        user_id=user.id,
        username=user.username,
        turn_order=player.turn_order,
    ))
    return game, player


def start_game(requester_id: int, game_id: int) -> Game:
    game = get_game(game_id)
    if game.created_by != requester_id or game.status != 'waiting':
        raise AuthorizationError('Not authorized to start this game or game already started')
    rules = current_rules()
    players = ordered_players(game.id)
    if len(players) < rules.min_players:
        raise ValidationError(f'Need at least {rules.min_players} players to start game')

    first = players[0]
    started = Game.query.filter_by(id=game.id, status='waiting').update({
        'status': 'active',
        'current_turn_user_id': first.user_id,
        'turn_phase': 'roll',
        'started_at': utcnow(),
    }, synchronize_session=False)
    if not started:
        db.session.rollback()
        raise ConflictError('Game already started')
    record_event(game.id, 'game_started', {
        'started_by': requester_id,
        'current_turn': first.user_id,
        'total_players': len(players),
    })
    db.session.commit()
    current_app.logger.info(f"[start] game={game.id} players={len(players)} first={first.user_id}")

    realtime.notify_all(GameStarted(
        game_id=game.id,
        user_id=requester_id,
        current_turn_user_id=first.user_id,
        total_players=len(players),
    ))
    return game


def leave_game(game_id: int, user_id: int) -> None:
    """Leave a game that has not started yet.

    Seats behind the leaver move up one, so turn orders stay 1..N while the
    game is waiting. Orders are frozen once the game starts, and leaving an
    active game is refused.
    """
    game = get_game(game_id)
    try:
        player = get_membership(game.id, user_id)
    except NotFoundError:
        raise NotFoundError('You are not in this game')
    if game.created_by == user_id:
        raise ConflictError('Game creators cannot leave. Delete the game instead.')
    if game.status != 'waiting':
        raise ConflictError('You can only leave a game that has not started')

    username = player.user.username
    vacated = player.turn_order
    db.session.delete(player)
    db.session.flush()
    # Close the gap so seats stay 1..N until the game starts
    for later in GamePlayer.query.filter(
        GamePlayer.game_id == game.id, GamePlayer.turn_order > vacated
    ).order_by(GamePlayer.turn_order.asc()).all():
        later.turn_order -= 1
        db.session.flush()
    record_event(game.id, 'player_left', {'player_id': user_id, 'username': username})
    db.session.commit()
    current_app.logger.info(f"[leave] game={game.id} user={user_id}")

    realtime.notify_others(PlayerLeft(game_id=game.id, user_id=user_id, username=username))


def delete_game(game_id: int, user_id: int) -> None:
    game = get_game(game_id)
    if game.created_by != user_id or game.status != 'waiting':
        raise AuthorizationError('Not authorized to delete this game or game already started')

    GameEvent.query.filter_by(game_id=game.id).delete()
    GameMove.query.filter_by(game_id=game.id).delete()
    GamePlayer.query.filter_by(game_id=game.id).delete()
    Game.query.filter_by(id=game.id).delete()
    db.session.commit()
    current_app.logger.info(f"[delete] game={game_id} by={user_id}")

    realtime.notify_all(GameDeleted(game_id=game_id, user_id=user_id))
