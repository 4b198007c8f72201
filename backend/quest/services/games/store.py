import json

from flask import current_app

from quest import db
from quest.errors import NotFoundError
from quest.models import Game, GameEvent, GamePlayer, User
from .rules import Rules


def current_rules() -> Rules:
    return Rules.from_config(current_app.config)


def get_game(game_id: int) -> Game:
    game = db.session.get(Game, game_id)
    if not game:
        raise NotFoundError('Game not found')
    return game


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError('User not found')
    return user


def get_membership(game_id: int, user_id: int) -> GamePlayer:
    player = GamePlayer.query.filter_by(game_id=game_id, user_id=user_id).first()
    if not player:
        raise NotFoundError('Player not found in game')
    return player


def ordered_players(game_id: int):
    return GamePlayer.query.filter_by(game_id=game_id).order_by(GamePlayer.turn_order.asc()).all()


def record_event(game_id: int, event_type: str, data: dict) -> GameEvent:
    """Append an audit row to the current transaction; committed by the caller."""
    event = GameEvent(game_id=game_id, event_type=event_type, event_data=json.dumps(data))
    db.session.add(event)
    return event
