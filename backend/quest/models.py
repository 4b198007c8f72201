from quest import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone
import json
import string
import random


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
        }


def generate_game_code(length=6):
    """Generate a unique, short game code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not Game.query.filter_by(game_code=code).first():
            return code


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    game_code = db.Column(db.String(6), unique=True, nullable=False, index=True)
    name = db.Column(db.String(50), nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    max_players = db.Column(db.Integer, nullable=False, default=4)
    status = db.Column(db.String(16), nullable=False, default='waiting')  # waiting, active, completed
    current_turn_user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    turn_phase = db.Column(db.String(16), nullable=True)  # roll, answer (only while active)
    winner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    creator = db.relationship('User', foreign_keys=[created_by])
    current_turn_user = db.relationship('User', foreign_keys=[current_turn_user_id])
    winner = db.relationship('User', foreign_keys=[winner_id])
    players = db.relationship('GamePlayer', back_populates='game', order_by='GamePlayer.turn_order')

    def __init__(self, **kwargs):
        super(Game, self).__init__(**kwargs)
        if not self.game_code:
            self.game_code = generate_game_code()

    def to_dict(self):
        return {
            'id': self.id,
            'game_code': self.game_code,
            'name': self.name,
            'created_by': self.created_by,
            'creator_name': self.creator.username if self.creator else None,
            'max_players': self.max_players,
            'status': self.status,
            'current_turn_user_id': self.current_turn_user_id,
            'current_player_name': self.current_turn_user.username if self.current_turn_user else None,
            'turn_phase': self.turn_phase,
            'winner_id': self.winner_id,
            'winner_name': self.winner.username if self.winner else None,
            'created_at': _iso(self.created_at),
            'started_at': _iso(self.started_at),
            'completed_at': _iso(self.completed_at),
        }


class GamePlayer(db.Model):
    __tablename__ = 'game_player'
    __table_args__ = (
        db.UniqueConstraint('game_id', 'user_id', name='uq_game_player_user'),
        db.UniqueConstraint('game_id', 'turn_order', name='uq_game_player_turn_order'),
    )
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    turn_order = db.Column(db.Integer, nullable=False)
    position = db.Column(db.Integer, nullable=False, default=1)
    score = db.Column(db.Integer, nullable=False, default=0)
    questions_answered = db.Column(db.Integer, nullable=False, default=0)
    correct_answers = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    joined_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    game = db.relationship('Game', back_populates='players')
    user = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'user_id': self.user_id,
            'username': self.user.username if self.user else None,
            'turn_order': self.turn_order,
            'position': self.position,
            'score': self.score,
            'questions_answered': self.questions_answered,
            'correct_answers': self.correct_answers,
            'is_active': self.is_active,
        }


class GameMove(db.Model):
    """One turn: written by the dice roll, resolved by the answer to the room's question."""
    __tablename__ = 'game_move'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    dice_roll = db.Column(db.Integer, nullable=False)
    from_position = db.Column(db.Integer, nullable=False)
    to_position = db.Column(db.Integer, nullable=False)
    phase = db.Column(db.String(16), nullable=False, default='pending_answer')  # pending_answer, resolved
    question_id = db.Column(db.Integer, db.ForeignKey('question.id'), nullable=True)
    question_answered = db.Column(db.Boolean, nullable=False, default=False)
    answer_correct = db.Column(db.Boolean, nullable=True)
    score_change = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    resolved_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'user_id': self.user_id,
            'username': self.user.username if self.user else None,
            'dice_roll': self.dice_roll,
            'from_position': self.from_position,
            'to_position': self.to_position,
            'phase': self.phase,
            'question_answered': self.question_answered,
            'answer_correct': self.answer_correct,
            'score_change': self.score_change,
            'created_at': _iso(self.created_at),
        }


class GameEvent(db.Model):
    __tablename__ = 'game_event'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    event_type = db.Column(db.String(32), nullable=False)
    event_data = db.Column(db.Text, nullable=True)  # JSON-encoded payload
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'event_type': self.event_type,
            'event_data': json.loads(self.event_data) if self.event_data else None,
            'created_at': _iso(self.created_at),
        }


class Question(db.Model):
    __tablename__ = 'question'
    id = db.Column(db.Integer, primary_key=True)
    question_text = db.Column(db.Text, nullable=False)
    correct_answer = db.Column(db.String(255), nullable=False)
    explanation = db.Column(db.Text, nullable=True)
    difficulty = db.Column(db.String(16), nullable=False, default='easy')
    topic = db.Column(db.String(64), nullable=True)
    room_position = db.Column(db.Integer, nullable=False, index=True)

    def to_dict(self):
        # Public view: never includes the answer
        return {
            'id': self.id,
            'text': self.question_text,
            'difficulty': self.difficulty,
            'topic': self.topic,
            'roomPosition': self.room_position,
        }
