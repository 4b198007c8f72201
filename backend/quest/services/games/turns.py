"""Turn engine: dice roll -> QR scan -> answer -> next player.

A turn is one ``GameMove`` row. The roll creates it in ``pending_answer``
(or already ``resolved`` when the roll wins the game) and the answer
resolves it. The game row carries ``turn_phase`` so both transitions are
claimed with a single conditional UPDATE; whoever loses the race gets a
``ConflictError`` instead of a second write.
"""

from typing import Any, Dict, Optional

from flask import current_app
from sqlalchemy import func

from quest import db, realtime
from quest.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from quest.events import AnswerSubmitted, GameWinner, PlayerMoved, QRScanned, TurnChanged
from quest.models import Game, GameMove, Question, utcnow
from .rules import advance_position, is_correct_answer, next_turn_order, parse_qr, roll_die, score_answer
from .store import current_rules, get_game, get_membership, ordered_players, record_event


def _require_turn(game: Game, user_id: int) -> None:
    if game.status != 'active':
        raise AuthorizationError('Game is not active')
    if game.current_turn_user_id != user_id:
        raise AuthorizationError('Not your turn')


def _pending_move(game_id: int, user_id: int) -> Optional[GameMove]:
    return (
        GameMove.query.filter_by(game_id=game_id, user_id=user_id, phase='pending_answer')
        .order_by(GameMove.id.desc())
        .first()
    )


def roll_dice(game_id: int, user_id: int) -> Dict[str, Any]:
    game = get_game(game_id)
    _require_turn(game, user_id)
    if game.turn_phase != 'roll':
        raise ConflictError('Answer the question for your current room before rolling again')
    rules = current_rules()
    player = get_membership(game.id, user_id)

    dice = roll_die()
    old_position = player.position
    new_position = advance_position(old_position, dice, rules.terminal_room)
    winner = new_position >= rules.terminal_room

    if winner:
        changes = {
            'status': 'completed',
            'winner_id': user_id,
            'completed_at': utcnow(),
            'current_turn_user_id': None,
            'turn_phase': None,
        }
    else:
        changes = {'turn_phase': 'answer'}
    claimed = Game.query.filter_by(
        id=game.id, status='active', current_turn_user_id=user_id, turn_phase='roll'
    ).update(changes, synchronize_session=False)
    if not claimed:
        db.session.rollback()
        raise ConflictError('This turn has already been played')

    player.position = new_position
    move = GameMove(
        game_id=game.id,
        user_id=user_id,
        dice_roll=dice,
        from_position=old_position,
        to_position=new_position,
        phase='resolved' if winner else 'pending_answer',
        resolved_at=utcnow() if winner else None,
    )
    db.session.add(move)
    record_event(game.id, 'dice_rolled', {
        'player_id': user_id,
        'dice_roll': dice,
        'from_position': old_position,
        'to_position': new_position,
    })
    if winner:
        record_event(game.id, 'game_completed', {'winner_id': user_id, 'final_position': new_position})
    db.session.commit()
    current_app.logger.info(f"[roll] game={game.id} user={user_id} roll={dice} {old_position}->{new_position} winner={winner}")

    username = player.user.username
    realtime.notify_others(PlayerMoved(
        game_id=game.id,
        user_id=user_id,
        username=username,
        dice_roll=dice,
        from_position=old_position,
        to_position=new_position,
    ))
    if winner:
        realtime.notify_all(GameWinner(
            game_id=game.id,
            user_id=user_id,
            winner_name=username,
            final_position=new_position,
        ))

    return {
        'diceRoll': dice,
        'oldPosition': old_position,
        'newPosition': new_position,
        'winner': winner,
        'message': 'Congratulations! You reached the final room!' if winner
        else f'Rolled {dice}! Move to room {new_position}.',
    }


def scan_qr(game_id: int, user_id: int, qr_text: Optional[str]) -> Question:
    """Hand out the question for the room the player is standing in.

    Scanning is only possible while the player's turn record is pending;
    scanning again during the same turn returns the question already issued.
    """
    rules = current_rules()
    room = parse_qr(qr_text)
    if room is None:
        raise ValidationError('Invalid QR code format. Expected ROOM_X (e.g., ROOM_15)')
    if not 1 <= room <= rules.terminal_room:
        raise ValidationError(f'Invalid room number. Must be between 1 and {rules.terminal_room}')

    game = get_game(game_id)
    player = get_membership(game.id, user_id)
    if player.position != room:
        raise ConflictError(
            f'You must be in room {room} to scan this QR code. You are currently in room {player.position}.'
        )
    _require_turn(game, user_id)
    move = _pending_move(game.id, user_id)
    if not move:
        raise ConflictError('Roll the dice before scanning a room')

    if move.question_id:
        question = db.session.get(Question, move.question_id)
        if question:
            return question

    question = Question.query.filter_by(room_position=room).order_by(func.random()).first()
    if not question:
        raise NotFoundError('No question found for this room')
    move.question_id = question.id
    db.session.commit()
    current_app.logger.info(f"[scan] game={game.id} user={user_id} room={room} question={question.id}")

    realtime.notify_others(QRScanned(
        game_id=game.id,
        user_id=user_id,
        qr_code=f'ROOM_{room}',
        question_id=question.id,
    ))
    return question


def _parse_int(value, message: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(message)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(message)


def submit_answer(game_id: int, user_id: int, question_id, answer: Optional[str], room_position) -> Dict[str, Any]:
    rules = current_rules()
    question = db.session.get(Question, _parse_int(question_id, 'Valid question ID required'))
    if not question:
        raise NotFoundError('Question not found')
    answer = '' if answer is None else str(answer)
    if not answer.strip():
        raise ValidationError('Answer is required')
    room_position = _parse_int(room_position, 'Valid room position required')
    if not 1 <= room_position <= rules.terminal_room:
        raise ValidationError('Valid room position required')

    game = get_game(game_id)
    _require_turn(game, user_id)
    player = get_membership(game.id, user_id)
    move = _pending_move(game.id, user_id)
    if not move:
        raise ConflictError('Roll the dice and scan your room before answering')
    if move.question_id != question.id:
        raise ConflictError('This question was not issued for your current room')
    if move.to_position != room_position:
        raise ConflictError(f'You are in room {move.to_position}, not room {room_position}')

    correct = is_correct_answer(answer, question.correct_answer)
    old_position = player.position
    score_change, new_score, new_position = score_answer(old_position, player.score, correct, rules)

    players = ordered_players(game.id)
    next_order = next_turn_order([p.turn_order for p in players], player.turn_order)
    next_player = next(p for p in players if p.turn_order == next_order)

    passed = Game.query.filter_by(
        id=game.id, status='active', current_turn_user_id=user_id, turn_phase='answer'
    ).update({'current_turn_user_id': next_player.user_id, 'turn_phase': 'roll'}, synchronize_session=False)
    resolved = GameMove.query.filter_by(id=move.id, phase='pending_answer').update({
        'phase': 'resolved',
        'question_answered': True,
        'answer_correct': correct,
        'score_change': score_change,
        'resolved_at': utcnow(),
    }, synchronize_session=False)
    if not (passed and resolved):
        db.session.rollback()
        raise ConflictError('An answer was already submitted for this turn')

    player.position = new_position
    player.score = new_score
    player.questions_answered = (player.questions_answered or 0) + 1
    player.correct_answers = (player.correct_answers or 0) + (1 if correct else 0)
    record_event(game.id, 'answer_submitted', {
        'player_id': user_id,
        'question_id': question.id,
        'correct': correct,
        'score_change': score_change,
        'new_score': new_score,
        'new_position': new_position,
    })
    record_event(game.id, 'turn_changed', {'from': user_id, 'to': next_player.user_id})
    db.session.commit()
    current_app.logger.info(
        f"[answer] game={game.id} user={user_id} question={question.id} correct={correct} "
        f"score={new_score} position={old_position}->{new_position} next={next_player.user_id}"
    )

    if correct:
        message = f'Correct! You earned {rules.correct_points} points and stay in this room.'
    else:
        message = (
            f'Wrong answer. Move back to room {new_position} and lose {rules.wrong_penalty} points. '
            f'Correct answer: {question.correct_answer}'
        )

    username = player.user.username
    realtime.notify_others(AnswerSubmitted(
        game_id=game.id,
        user_id=user_id,
        username=username,
        question_id=question.id,
        is_correct=correct,
        score_change=score_change,
        new_score=new_score,
        new_position=new_position,
    ))
    realtime.notify_all(TurnChanged(
        game_id=game.id,
        user_id=user_id,
        current_turn_user_id=next_player.user_id,
        current_turn_username=next_player.user.username,
    ))

    return {
        'correct': correct,
        'scoreChange': score_change,
        'newScore': new_score,
        'newPosition': new_position,
        'correctAnswer': question.correct_answer,
        'explanation': question.explanation,
        'message': message,
        'nextTurnPlayerId': next_player.user_id,
    }
