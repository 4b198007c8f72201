"""create users, games, players, moves, events and questions

Revision ID: 5c2e9a17b3d0
Revises:
Create Date: 2025-09-14 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2e9a17b3d0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('email', sa.String(length=120), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('last_login', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)
        op.create_index('ix_user_email', 'user', ['email'], unique=True)

    if 'question' not in existing_tables:
        op.create_table(
            'question',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('question_text', sa.Text(), nullable=False),
            sa.Column('correct_answer', sa.String(length=255), nullable=False),
            sa.Column('explanation', sa.Text(), nullable=True),
            sa.Column('difficulty', sa.String(length=16), nullable=False),
            sa.Column('topic', sa.String(length=64), nullable=True),
            sa.Column('room_position', sa.Integer(), nullable=False),
        )
        op.create_index('ix_question_room_position', 'question', ['room_position'])

    if 'game' not in existing_tables:
        op.create_table(
            'game',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('game_code', sa.String(length=6), nullable=False),
            sa.Column('name', sa.String(length=50), nullable=False),
            sa.Column('created_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('max_players', sa.Integer(), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False),
            sa.Column('current_turn_user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
            sa.Column('turn_phase', sa.String(length=16), nullable=True),
            sa.Column('winner_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('started_at', sa.DateTime(), nullable=True),
            sa.Column('completed_at', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_game_game_code', 'game', ['game_code'], unique=True)

    if 'game_player' not in existing_tables:
        op.create_table(
            'game_player',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id'), nullable=False),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('turn_order', sa.Integer(), nullable=False),
            sa.Column('position', sa.Integer(), nullable=False),
            sa.Column('score', sa.Integer(), nullable=False),
            sa.Column('questions_answered', sa.Integer(), nullable=False),
            sa.Column('correct_answers', sa.Integer(), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('joined_at', sa.DateTime(), nullable=False),
            sa.UniqueConstraint('game_id', 'user_id', name='uq_game_player_user'),
            sa.UniqueConstraint('game_id', 'turn_order', name='uq_game_player_turn_order'),
        )
        op.create_index('ix_game_player_game_id', 'game_player', ['game_id'])
        op.create_index('ix_game_player_user_id', 'game_player', ['user_id'])

    if 'game_move' not in existing_tables:
        op.create_table(
            'game_move',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id'), nullable=False),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('dice_roll', sa.Integer(), nullable=False),
            sa.Column('from_position', sa.Integer(), nullable=False),
            sa.Column('to_position', sa.Integer(), nullable=False),
            sa.Column('phase', sa.String(length=16), nullable=False),
            sa.Column('question_id', sa.Integer(), sa.ForeignKey('question.id'), nullable=True),
            sa.Column('question_answered', sa.Boolean(), nullable=False),
            sa.Column('answer_correct', sa.Boolean(), nullable=True),
            sa.Column('score_change', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('resolved_at', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_game_move_game_id', 'game_move', ['game_id'])

    if 'game_event' not in existing_tables:
        op.create_table(
            'game_event',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id'), nullable=False),
            sa.Column('event_type', sa.String(length=32), nullable=False),
            sa.Column('event_data', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
        )
        op.create_index('ix_game_event_game_id', 'game_event', ['game_id'])


def downgrade():
    op.drop_table('game_event')
    op.drop_table('game_move')
    op.drop_table('game_player')
    op.drop_table('game')
    op.drop_table('question')
    op.drop_table('user')
