"""Read-only projections of a game for the UI. Nothing here mutates the store."""

from flask import current_app
from sqlalchemy import and_, case, func, or_

from quest import db
from quest.models import Game, GameMove, GamePlayer, utcnow
from .store import get_game, ordered_players


def get_game_status(game_id: int) -> dict:
    """Lobby view: the game and its active players in seat order."""
    game = get_game(game_id)
    players = [p.to_dict() for p in ordered_players(game.id) if p.is_active]
    return {'game': game.to_dict(), 'players': players}


def get_game_state(game_id: int) -> dict:
    game = get_game(game_id)
    limit = int(current_app.config.get('RECENT_MOVES_LIMIT', 10))
    moves = (
        GameMove.query.filter_by(game_id=game.id)
        .order_by(GameMove.created_at.desc(), GameMove.id.desc())
        .limit(limit)
        .all()
    )
    return {
        'game': game.to_dict(),
        'players': [p.to_dict() for p in ordered_players(game.id)],
        'recentMoves': [m.to_dict() for m in moves],
    }


def get_game_stats(game_id: int, user_id: int) -> dict:
    game = get_game(game_id)

    answered = case((GameMove.question_answered.is_(True), 1), else_=0)
    correct = case((GameMove.answer_correct.is_(True), 1), else_=0)
    per_player = {
        row.user_id: row
        for row in db.session.query(
            GameMove.user_id,
            func.count(GameMove.id).label('total_moves'),
            func.sum(answered).label('questions_answered'),
            func.sum(correct).label('correct_answers'),
        ).filter(GameMove.game_id == game.id).group_by(GameMove.user_id).all()
    }

    players = []
    for p in sorted(ordered_players(game.id), key=lambda p: (-p.score, -p.position, p.turn_order)):
        stats = per_player.get(p.user_id)
        pd = p.to_dict()
        pd['total_moves'] = int(stats.total_moves) if stats else 0
        pd['questions_answered'] = int(stats.questions_answered or 0) if stats else 0
        pd['correct_answers'] = int(stats.correct_answers or 0) if stats else 0
        players.append(pd)

    ended = game.completed_at or utcnow()
    payload = game.to_dict()
    payload['duration_minutes'] = max(0, int((ended - game.created_at).total_seconds() // 60))
    payload['total_moves'] = sum(p['total_moves'] for p in players)
    payload['total_questions'] = sum(p['questions_answered'] for p in players)
    return {
        'game': payload,
        'players': players,
        'currentPlayer': next((p for p in players if p['user_id'] == user_id), None),
    }


def list_user_games(user_id: int) -> list:
    """Games the user created or joined, newest first."""
    rows = (
        db.session.query(Game, GamePlayer)
        .outerjoin(GamePlayer, and_(GamePlayer.game_id == Game.id, GamePlayer.user_id == user_id))
        .filter(or_(Game.created_by == user_id, GamePlayer.user_id == user_id))
        .order_by(Game.created_at.desc(), Game.id.desc())
        .all()
    )
    games = []
    for game, membership in rows:
        games.append({
            'id': game.id,
            'game_code': game.game_code,
            'name': game.name,
            'status': game.status,
            'created_at': game.created_at.isoformat() if game.created_at else None,
            'creator_name': game.creator.username if game.creator else None,
            'score': membership.score if membership else None,
            'position': membership.position if membership else None,
        })
    return games
