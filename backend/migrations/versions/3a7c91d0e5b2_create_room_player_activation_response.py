"""create room, player, activation and response tables

Revision ID: 3a7c91d0e5b2
Revises:
Create Date: 2026-10-18 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3a7c91d0e5b2'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa.inspect(bind).get_table_names())

    if 'room' not in existing_tables:
        op.create_table(
            'room',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('room_code', sa.String(length=4), nullable=True),
            sa.Column('name', sa.String(length=128), nullable=True),
            sa.Column('created_at', sa.Float(), nullable=True),
        )
        op.create_index('ix_room_room_code', 'room', ['room_code'], unique=True)

    if 'player' not in existing_tables:
        op.create_table(
            'player',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(length=64), nullable=False),
            sa.Column('room_id', sa.Integer(), sa.ForeignKey('room.id'), nullable=False),
            sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('total_points', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('correct_answers', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('total_answers', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('average_response_time_ms', sa.Float(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.Float(), nullable=True),
        )
        op.create_index('ix_player_room_id', 'player', ['room_id'])

    if 'activation' not in existing_tables:
        op.create_table(
            'activation',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('room_id', sa.Integer(), sa.ForeignKey('room.id'), nullable=False),
            sa.Column('type', sa.String(length=32), nullable=False),
            sa.Column('question', sa.Text(), nullable=True),
            sa.Column('correct_answer', sa.Text(), nullable=True),
            sa.Column('exact_answer', sa.Text(), nullable=True),
            sa.Column('options', sa.Text(), nullable=True),
            sa.Column('poll_state', sa.String(length=16), nullable=False, server_default='pending'),
            sa.Column('time_limit', sa.Integer(), nullable=True),
            sa.Column('timer_started_at', sa.Float(), nullable=True),
            sa.Column('created_at', sa.Float(), nullable=True),
            sa.CheckConstraint("poll_state IN ('pending', 'voting', 'closed')", name='valid_poll_state'),
        )
        op.create_index('ix_activation_room_id', 'activation', ['room_id'])

    if 'response' not in existing_tables:
        op.create_table(
            'response',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('activation_id', sa.Integer(), sa.ForeignKey('activation.id'), nullable=False),
            sa.Column('player_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=False),
            sa.Column('option_id', sa.String(length=64), nullable=True),
            sa.Column('option_text', sa.Text(), nullable=True),
            sa.Column('answer', sa.Text(), nullable=True),
            sa.Column('is_correct', sa.Boolean(), nullable=True),
            sa.Column('points_awarded', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('time_taken_ms', sa.Float(), nullable=True),
            sa.Column('submitted_at', sa.Float(), nullable=True),
            sa.UniqueConstraint('activation_id', 'player_id', name='uq_response_activation_player'),
        )
        op.create_index('ix_response_activation_id', 'response', ['activation_id'])
        op.create_index('ix_response_player_id', 'response', ['player_id'])


def downgrade():
    op.drop_table('response')
    op.drop_table('activation')
    op.drop_table('player')
    op.drop_table('room')
