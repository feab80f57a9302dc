"""initial schema: user, room, room_participant, game, message

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True, unique=True),
        sa.Column('first_name', sa.String(length=64), nullable=True),
        sa.Column('last_name', sa.String(length=64), nullable=True),
        sa.Column('profile_image_url', sa.String(length=512), nullable=True),
        sa.Column('games_played', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('wins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('losses', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('best_time', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_user_username', 'user', ['username'], unique=True)

    op.create_table(
        'room',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('creator_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('is_private', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('max_players', sa.Integer(), nullable=False, server_default='2'),
        sa.Column('current_players', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='waiting'),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
    )
    op.create_index('ix_room_created_at', 'room', ['created_at'])

    op.create_table(
        'room_participant',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('room_id', sa.Integer(), sa.ForeignKey('room.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('room_id', 'user_id', name='uq_room_participant_room_user'),
    )
    op.create_index('ix_room_participant_room_id', 'room_participant', ['room_id'])

    op.create_table(
        'game',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('room_id', sa.Integer(), sa.ForeignKey('room.id'), nullable=False),
        sa.Column('player1_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('player2_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('player1_symbol', sa.String(length=1), nullable=False, server_default='X'),
        sa.Column('player2_symbol', sa.String(length=1), nullable=False, server_default='O'),
        sa.Column('current_player_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('board', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='waiting'),
        sa.Column('winner_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('finished_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
    )
    op.create_index('ix_game_room_id', 'game', ['room_id'])
    op.create_index('ix_game_created_at', 'game', ['created_at'])

    op.create_table(
        'message',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('room_id', sa.Integer(), sa.ForeignKey('room.id'), nullable=False),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id'), nullable=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False, server_default='message'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_message_room_id', 'message', ['room_id'])


def downgrade():
    op.drop_index('ix_message_room_id', table_name='message')
    op.drop_table('message')
    op.drop_index('ix_game_created_at', table_name='game')
    op.drop_index('ix_game_room_id', table_name='game')
    op.drop_table('game')
    op.drop_index('ix_room_participant_room_id', table_name='room_participant')
    op.drop_table('room_participant')
    op.drop_index('ix_room_created_at', table_name='room')
    op.drop_table('room')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
