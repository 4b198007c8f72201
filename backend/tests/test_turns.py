import pytest

from quest import db
from quest.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from quest.models import Game, GameMove, GamePlayer
from quest.services.games import lobby, reports, turns

pytestmark = pytest.mark.usefixtures('app_ctx')


@pytest.fixture()
def dice(monkeypatch):
    """Queue the next dice values: ``dice(5, 3)``."""
    values = []
    monkeypatch.setattr(turns, 'roll_die', lambda: values.pop(0))

    def _load(*rolls):
        values.extend(rolls)

    return _load


@pytest.fixture()
def active_game(app_ctx, make_user):
    alice = make_user('alice')
    bob = make_user('bob')
    game = lobby.create_game(alice, 'Quest A', 4)
    lobby.join_game(bob, game.game_code)
    lobby.start_game(alice, game.id)
    return game.id, alice, bob


def _player(game_id, user_id):
    return GamePlayer.query.filter_by(game_id=game_id, user_id=user_id).one()


def test_roll_scan_wrong_answer_scenario(active_game, dice, place_player, add_question):
    game_id, alice, bob = active_game
    question_id = add_question(15, answer='def')
    place_player(game_id, alice, 10)
    dice(5)

    result = turns.roll_dice(game_id, alice)
    assert result['diceRoll'] == 5
    assert (result['oldPosition'], result['newPosition'], result['winner']) == (10, 15, False)
    # Rolling does not pass the turn
    assert db.session.get(Game, game_id).current_turn_user_id == alice

    question = turns.scan_qr(game_id, alice, 'ROOM_15')
    assert question.id == question_id
    assert 'correctAnswer' not in question.to_dict()
    assert question.to_dict()['roomPosition'] == 15

    answer = turns.submit_answer(game_id, alice, question_id, 'lambda', 15)
    assert answer['correct'] is False
    assert answer['scoreChange'] == -100
    assert answer['newScore'] == 0
    assert answer['newPosition'] == 13
    assert answer['correctAnswer'] == 'def'
    assert answer['nextTurnPlayerId'] == bob

    player = _player(game_id, alice)
    assert (player.position, player.score, player.questions_answered, player.correct_answers) == (13, 0, 1, 0)
    game = db.session.get(Game, game_id)
    assert game.current_turn_user_id == bob
    assert game.turn_phase == 'roll'
    move = GameMove.query.filter_by(game_id=game_id).one()
    assert move.phase == 'resolved'
    assert move.question_answered is True
    assert move.answer_correct is False
    assert move.score_change == -100


def test_correct_answer_keeps_room_and_scores(active_game, dice, add_question):
    game_id, alice, bob = active_game
    question_id = add_question(4, answer='Tuple')
    dice(3)
    turns.roll_dice(game_id, alice)
    turns.scan_qr(game_id, alice, 'ROOM_4')
    answer = turns.submit_answer(game_id, alice, question_id, '  tuple ', 4)
    assert answer['correct'] is True
    assert (answer['scoreChange'], answer['newScore'], answer['newPosition']) == (100, 100, 4)
    assert _player(game_id, alice).correct_answers == 1


def test_turn_rotates_and_wraps(make_user, dice, add_question):
    alice, bob, cara = make_user('alice'), make_user('bob'), make_user('cara')
    game = lobby.create_game(alice, 'Quest A', 4)
    lobby.join_game(bob, game.game_code)
    lobby.join_game(cara, game.game_code)
    lobby.start_game(alice, game.id)
    question_id = add_question(2, answer='x')

    seen = []
    for user in (alice, bob, cara):
        dice(1)
        turns.roll_dice(game.id, user)
        turns.scan_qr(game.id, user, 'ROOM_2')
        seen.append(turns.submit_answer(game.id, user, question_id, 'x', 2)['nextTurnPlayerId'])
    assert seen == [bob, cara, alice]


def test_win_on_terminal_room_ends_game(active_game, dice, place_player):
    game_id, alice, bob = active_game
    place_player(game_id, alice, 45)
    dice(6)

    result = turns.roll_dice(game_id, alice)
    assert (result['newPosition'], result['winner']) == (49, True)
    game = db.session.get(Game, game_id)
    assert game.status == 'completed'
    assert game.winner_id == alice
    assert game.completed_at is not None
    assert game.current_turn_user_id is None
    assert GameMove.query.filter_by(game_id=game_id).one().phase == 'resolved'

    for user in (alice, bob):
        with pytest.raises(AuthorizationError, match='not active'):
            turns.roll_dice(game_id, user)
        with pytest.raises(AuthorizationError, match='not active'):
            turns.scan_qr(game_id, user, 'ROOM_49' if user == alice else 'ROOM_1')


def test_answer_after_win_is_rejected(active_game, dice, place_player, add_question):
    game_id, alice, _ = active_game
    question_id = add_question(49)
    place_player(game_id, alice, 48)
    dice(1)
    turns.roll_dice(game_id, alice)
    with pytest.raises(AuthorizationError):
        turns.submit_answer(game_id, alice, question_id, 'def', 49)


def test_roll_requires_turn_and_active_game(make_user, dice):
    alice, bob = make_user('alice'), make_user('bob')
    game = lobby.create_game(alice, 'Quest A', 4)
    lobby.join_game(bob, game.game_code)
    dice(1, 1)
    with pytest.raises(AuthorizationError, match='not active'):
        turns.roll_dice(game.id, alice)
    lobby.start_game(alice, game.id)
    with pytest.raises(AuthorizationError, match='Not your turn'):
        turns.roll_dice(game.id, bob)
    with pytest.raises(NotFoundError):
        turns.roll_dice(9999, alice)


def test_cannot_roll_twice_in_one_turn(active_game, dice):
    game_id, alice, _ = active_game
    dice(2, 2)
    turns.roll_dice(game_id, alice)
    with pytest.raises(ConflictError):
        turns.roll_dice(game_id, alice)
    assert _player(game_id, alice).position == 3


def _change_behind(game_id, **changes):
    """Load the game into the session, then rewrite its row without refreshing it."""
    game = db.session.get(Game, game_id)
    db.session.refresh(game)
    Game.query.filter_by(id=game_id).update(changes, synchronize_session=False)
    return game


def test_roll_losing_the_turn_race_writes_nothing(active_game, dice):
    game_id, alice, _ = active_game
    dice(4)
    stale = _change_behind(game_id, turn_phase='answer')
    assert stale.turn_phase == 'roll'
    with pytest.raises(ConflictError, match='already been played'):
        turns.roll_dice(game_id, alice)

    assert _player(game_id, alice).position == 1
    assert GameMove.query.filter_by(game_id=game_id).count() == 0
    game = db.session.get(Game, game_id)
    assert (game.current_turn_user_id, game.turn_phase) == (alice, 'roll')


def test_answer_losing_the_turn_race_writes_nothing(active_game, dice, add_question):
    game_id, alice, bob = active_game
    question_id = add_question(3, answer='ok')
    dice(2)
    turns.roll_dice(game_id, alice)
    turns.scan_qr(game_id, alice, 'ROOM_3')
    stale = _change_behind(game_id, current_turn_user_id=bob, turn_phase='roll')
    assert stale.turn_phase == 'answer'
    with pytest.raises(ConflictError, match='already submitted'):
        turns.submit_answer(game_id, alice, question_id, 'ok', 3)

    player = _player(game_id, alice)
    assert (player.position, player.score, player.questions_answered) == (3, 0, 0)
    assert GameMove.query.filter_by(game_id=game_id).one().phase == 'pending_answer'
    game = db.session.get(Game, game_id)
    assert (game.current_turn_user_id, game.turn_phase) == (alice, 'answer')


@pytest.mark.parametrize('qr_text', ['', 'HELLO', 'ROOM_0', 'ROOM_50', None])
def test_scan_rejects_bad_tokens(active_game, qr_text):
    game_id, alice, _ = active_game
    with pytest.raises(ValidationError):
        turns.scan_qr(game_id, alice, qr_text)


def test_scan_wrong_room_is_a_conflict(active_game, dice, add_question):
    game_id, alice, _ = active_game
    add_question(7)
    dice(5)
    turns.roll_dice(game_id, alice)
    with pytest.raises(ConflictError, match='currently in room 6'):
        turns.scan_qr(game_id, alice, 'ROOM_7')


def test_scan_before_rolling_is_a_conflict(active_game, add_question):
    game_id, alice, _ = active_game
    add_question(1)
    with pytest.raises(ConflictError, match='Roll the dice'):
        turns.scan_qr(game_id, alice, 'ROOM_1')


def test_scan_room_without_questions_is_not_found(active_game, dice):
    game_id, alice, _ = active_game
    dice(4)
    turns.roll_dice(game_id, alice)
    with pytest.raises(NotFoundError):
        turns.scan_qr(game_id, alice, 'ROOM_5')


def test_rescan_returns_same_question(active_game, dice, add_question):
    game_id, alice, _ = active_game
    for _ in range(5):
        add_question(3)
    dice(2)
    turns.roll_dice(game_id, alice)
    first = turns.scan_qr(game_id, alice, 'ROOM_3').id
    assert all(turns.scan_qr(game_id, alice, 'ROOM_3').id == first for _ in range(5))


def test_resolved_room_cannot_be_rescanned(active_game, dice, add_question):
    game_id, alice, bob = active_game
    question_id = add_question(3, answer='ok')
    dice(2)
    turns.roll_dice(game_id, alice)
    turns.scan_qr(game_id, alice, 'ROOM_3')
    turns.submit_answer(game_id, alice, question_id, 'ok', 3)
    with pytest.raises(AuthorizationError, match='Not your turn'):
        turns.scan_qr(game_id, alice, 'ROOM_3')


def test_answer_validation(active_game, dice, add_question):
    game_id, alice, _ = active_game
    question_id = add_question(3, answer='ok')
    other_id = add_question(3, answer='other')
    with pytest.raises(NotFoundError):
        turns.submit_answer(game_id, alice, 4242, 'ok', 3)
    with pytest.raises(ValidationError):
        turns.submit_answer(game_id, alice, 'abc', 'ok', 3)
    with pytest.raises(ValidationError):
        turns.submit_answer(game_id, alice, question_id, '   ', 3)
    with pytest.raises(ValidationError):
        turns.submit_answer(game_id, alice, question_id, 'ok', 50)
    with pytest.raises(ConflictError, match='Roll the dice'):
        turns.submit_answer(game_id, alice, question_id, 'ok', 1)

    dice(2)
    turns.roll_dice(game_id, alice)
    issued = turns.scan_qr(game_id, alice, 'ROOM_3').id
    not_issued = other_id if issued == question_id else question_id
    with pytest.raises(ConflictError):
        turns.submit_answer(game_id, alice, not_issued, 'ok', 3)
    with pytest.raises(ConflictError):
        turns.submit_answer(game_id, alice, issued, 'ok', 4)


def test_answer_is_accepted_once(active_game, dice, add_question):
    game_id, alice, bob = active_game
    question_id = add_question(2, answer='ok')
    dice(1)
    turns.roll_dice(game_id, alice)
    turns.scan_qr(game_id, alice, 'ROOM_2')
    turns.submit_answer(game_id, alice, question_id, 'ok', 2)
    with pytest.raises(AuthorizationError):
        turns.submit_answer(game_id, alice, question_id, 'ok', 2)
    assert _player(game_id, alice).score == 100


def test_game_state_and_stats(active_game, dice, add_question):
    game_id, alice, bob = active_game
    question_id = add_question(3, answer='ok')
    dice(2, 2)
    turns.roll_dice(game_id, alice)
    turns.scan_qr(game_id, alice, 'ROOM_3')
    turns.submit_answer(game_id, alice, question_id, 'ok', 3)
    turns.roll_dice(game_id, bob)

    state = reports.get_game_state(game_id)
    assert state['game']['current_player_name'] == 'bob'
    assert [p['username'] for p in state['players']] == ['alice', 'bob']
    assert [m['username'] for m in state['recentMoves']] == ['bob', 'alice']
    assert state['recentMoves'][0]['phase'] == 'pending_answer'

    stats = reports.get_game_stats(game_id, bob)
    assert stats['game']['total_moves'] == 2
    assert stats['game']['total_questions'] == 1
    assert stats['game']['duration_minutes'] >= 0
    assert stats['players'][0]['username'] == 'alice'
    assert stats['players'][0]['correct_answers'] == 1
    assert stats['currentPlayer']['user_id'] == bob
    assert stats['currentPlayer']['total_moves'] == 1
