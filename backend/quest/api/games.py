from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError

from quest import db
from quest.errors import GameError, InternalError, error_response
from quest.services.games import lobby, reports, turns


games = Blueprint('games', __name__)


@games.errorhandler(GameError)
def handle_game_error(exc):
    if exc.status_code >= 500:
        current_app.logger.error(f"[error] {exc.code}: {exc.message}")
    return error_response(exc)


@games.errorhandler(SQLAlchemyError)
def handle_store_error(exc):
    db.session.rollback()
    current_app.logger.exception(f"[store-error] {request.method} {request.path}")
    return error_response(InternalError('Something went wrong, please try again'))


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ---- Lobby ----

@games.route('', methods=['GET'])
@login_required
def list_games():
    return jsonify({'success': True, 'games': reports.list_user_games(current_user.id)})


@games.route('/create', methods=['POST'])
@login_required
def create_game():
    data = _payload()
    game = lobby.create_game(
        current_user.id,
        data.get('name', data.get('game_name')),
        data.get('maxPlayers', data.get('max_players')),
    )
    return jsonify({
        'success': True,
        'message': 'Game created successfully',
        'gameId': game.id,
        'joinCode': game.game_code,
        'status': game.status,
        'game': game.to_dict(),
    }), 201


@games.route('/join', methods=['POST'])
@login_required
def join_game():
    data = _payload()
    game, player = lobby.join_game(current_user.id, data.get('joinCode', data.get('game_code')))
    return jsonify({
        'success': True,
        'message': 'Joined game successfully',
        'gameId': game.id,
        'gameName': game.name,
        'turnOrder': player.turn_order,
    })


@games.route('/<int:game_id>', methods=['GET'])
@login_required
def get_game_status(game_id):
    return jsonify({'success': True, **reports.get_game_status(game_id)})


@games.route('/<int:game_id>/start', methods=['POST'])
@login_required
def start_game(game_id):
    game = lobby.start_game(current_user.id, game_id)
    return jsonify({
        'success': True,
        'message': 'Game started successfully',
        'currentTurnPlayerId': game.current_turn_user_id,
    })


@games.route('/<int:game_id>/leave', methods=['POST'])
@login_required
def leave_game(game_id):
    lobby.leave_game(game_id, current_user.id)
    return jsonify({'success': True, 'message': 'Left game successfully'})


@games.route('/<int:game_id>', methods=['DELETE'])
@login_required
def delete_game(game_id):
    lobby.delete_game(game_id, current_user.id)
    return jsonify({'success': True, 'message': 'Game deleted successfully'})


# ---- Gameplay ----

@games.route('/<int:game_id>/roll-dice', methods=['POST'])
@login_required
def roll_dice(game_id):
    return jsonify({'success': True, **turns.roll_dice(game_id, current_user.id)})


@games.route('/<int:game_id>/scan-qr', methods=['POST'])
@login_required
def scan_qr(game_id):
    data = _payload()
    question = turns.scan_qr(game_id, current_user.id, data.get('qrText', data.get('qrData')))
    return jsonify({'success': True, 'question': question.to_dict()})


@games.route('/<int:game_id>/answer', methods=['POST'])
@login_required
def submit_answer(game_id):
    data = _payload()
    result = turns.submit_answer(
        game_id,
        current_user.id,
        data.get('questionId'),
        data.get('answer'),
        data.get('roomPosition'),
    )
    return jsonify({'success': True, **result})


@games.route('/<int:game_id>/state', methods=['GET'])
@login_required
def get_game_state(game_id):
    return jsonify({'success': True, **reports.get_game_state(game_id)})


@games.route('/<int:game_id>/stats', methods=['GET'])
@login_required
def get_game_stats(game_id):
    return jsonify({'success': True, **reports.get_game_stats(game_id, current_user.id)})
