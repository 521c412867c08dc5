"""Initial indexer schema

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    # Raw event log
    op.create_table(
        'raw_event',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('contract_address', sa.String(length=42), nullable=False),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('transaction_hash', sa.String(length=66), nullable=False),
        sa.Column('log_index', sa.Integer(), nullable=False),
        sa.Column(
            'scope', sa.String(length=64),
            nullable=False, server_default=''
        ),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'transaction_hash', 'block_number', 'log_index', 'scope',
            name='uq_raw_event_dedup_key'
        ),
    )
    op.create_index('ix_raw_event_chain_id', 'raw_event', ['chain_id'])
    op.create_index('ix_raw_event_event_type', 'raw_event', ['event_type'])
    op.create_index('ix_raw_event_block_number', 'raw_event', ['block_number'])
    op.create_index('ix_raw_event_timestamp', 'raw_event', ['timestamp'])

    op.create_table(
        'market_transaction',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('raw_event_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('collateral', sa.String(length=78), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['raw_event_id'], ['raw_event.id'], ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('raw_event_id'),
    )

    # Derived aggregates
    op.create_table(
        'position',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('market_address', sa.String(length=42), nullable=False),
        sa.Column('predictor', sa.String(length=42), nullable=False),
        sa.Column('counterparty', sa.String(length=42), nullable=False),
        sa.Column('predictor_token_id', sa.String(length=78), nullable=False),
        sa.Column('counterparty_token_id', sa.String(length=78), nullable=False),
        sa.Column('total_collateral', sa.String(length=78), nullable=False),
        sa.Column('predictor_collateral', sa.String(length=78), nullable=True),
        sa.Column('counterparty_collateral', sa.String(length=78), nullable=True),
        sa.Column('ref_code', sa.String(length=66), nullable=True),
        sa.Column(
            'status', sa.String(length=20),
            nullable=False, server_default='active'
        ),
        sa.Column('predictor_won', sa.Boolean(), nullable=True),
        sa.Column('minted_at', sa.BigInteger(), nullable=False),
        sa.Column('settled_at', sa.BigInteger(), nullable=True),
        sa.Column('ends_at', sa.BigInteger(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'chain_id', 'market_address',
            'predictor_token_id', 'counterparty_token_id',
            name='uq_position_token_pair'
        ),
    )
    op.create_index(
        'ix_position_chain_market', 'position', ['chain_id', 'market_address']
    )
    op.create_index('ix_position_predictor', 'position', ['predictor'])
    op.create_index('ix_position_counterparty', 'position', ['counterparty'])
    op.create_index('ix_position_status', 'position', ['status'])

    op.create_table(
        'limit_order',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('market_address', sa.String(length=42), nullable=False),
        sa.Column('order_id', sa.String(length=78), nullable=False),
        sa.Column('predictor', sa.String(length=42), nullable=False),
        sa.Column('resolver', sa.String(length=42), nullable=False),
        sa.Column('predictor_collateral', sa.String(length=78), nullable=False),
        sa.Column('counterparty_collateral', sa.String(length=78), nullable=False),
        sa.Column('ref_code', sa.String(length=66), nullable=True),
        sa.Column(
            'status', sa.String(length=20),
            nullable=False, server_default='pending'
        ),
        sa.Column('counterparty', sa.String(length=42), nullable=True),
        sa.Column('placed_at', sa.BigInteger(), nullable=False),
        sa.Column('filled_at', sa.BigInteger(), nullable=True),
        sa.Column('cancelled_at', sa.BigInteger(), nullable=True),
        sa.Column('placed_tx_hash', sa.String(length=66), nullable=False),
        sa.Column('filled_tx_hash', sa.String(length=66), nullable=True),
        sa.Column('cancelled_tx_hash', sa.String(length=66), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'chain_id', 'market_address', 'order_id',
            name='uq_limit_order_chain_market_id'
        ),
    )
    op.create_index(
        'ix_limit_order_chain_status', 'limit_order', ['chain_id', 'status']
    )
    op.create_index('ix_limit_order_predictor', 'limit_order', ['predictor'])
    op.create_index('ix_limit_order_status', 'limit_order', ['status'])

    op.create_table(
        'prediction',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('condition_id', sa.String(length=66), nullable=False),
        sa.Column('outcome_yes', sa.Boolean(), nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=True),
        sa.Column('position_id', sa.Integer(), nullable=True),
        sa.Column('limit_order_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(
            ['position_id'], ['position.id'], ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['limit_order_id'], ['limit_order.id'], ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'position_id', 'condition_id',
            name='uq_prediction_position_condition'
        ),
        sa.UniqueConstraint(
            'limit_order_id', 'condition_id',
            name='uq_prediction_limit_order_condition'
        ),
    )
    op.create_index('ix_prediction_condition_id', 'prediction', ['condition_id'])
    op.create_index('ix_prediction_position_id', 'prediction', ['position_id'])
    op.create_index(
        'ix_prediction_limit_order_id', 'prediction', ['limit_order_id']
    )

    op.create_table(
        'condition',
        sa.Column('id', sa.String(length=66), nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('question', sa.Text(), nullable=False, server_default=''),
        sa.Column('short_name', sa.String(length=255), nullable=True),
        sa.Column('end_time', sa.BigInteger(), nullable=False),
        sa.Column(
            'settled', sa.Boolean(),
            nullable=False, server_default=sa.false()
        ),
        sa.Column(
            'resolved_to_yes', sa.Boolean(),
            nullable=False, server_default=sa.false()
        ),
        sa.Column('settled_at', sa.BigInteger(), nullable=True),
        sa.Column('assertion_id', sa.String(length=66), nullable=True),
        sa.Column('assertion_timestamp', sa.BigInteger(), nullable=True),
        sa.Column(
            'open_interest', sa.NUMERIC(precision=78, scale=0),
            nullable=False, server_default='0'
        ),
        sa.Column('resolver', sa.String(length=42), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_condition_end_time', 'condition', ['end_time'])
    op.create_index('ix_condition_resolver', 'condition', ['resolver'])

    op.create_table(
        'attestation',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('uid', sa.String(length=66), nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('attester', sa.String(length=42), nullable=False),
        sa.Column('recipient', sa.String(length=42), nullable=False),
        sa.Column('time', sa.BigInteger(), nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('transaction_hash', sa.String(length=66), nullable=False),
        sa.Column('schema_id', sa.String(length=66), nullable=False),
        sa.Column('data', sa.Text(), nullable=False),
        sa.Column(
            'decoded_data_json', sa.Text(),
            nullable=False, server_default=''
        ),
        sa.Column('market_address', sa.String(length=42), nullable=True),
        sa.Column('market_id', sa.String(length=78), nullable=True),
        sa.Column('question_id', sa.String(length=66), nullable=True),
        sa.Column('prediction', sa.String(length=78), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uid'),
    )
    op.create_index(
        'ix_attestation_market', 'attestation', ['market_address', 'market_id']
    )
    op.create_index('ix_attestation_attester', 'attestation', ['attester'])
    op.create_index('ix_attestation_recipient', 'attestation', ['recipient'])
    op.create_index('ix_attestation_time', 'attestation', ['time'])
    op.create_index(
        'ix_attestation_block_number', 'attestation', ['block_number']
    )
    op.create_index('ix_attestation_question_id', 'attestation', ['question_id'])

    # Indexer bookkeeping
    op.create_table(
        'indexer_cursor',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('contract_address', sa.String(length=42), nullable=False),
        sa.Column('indexer', sa.String(length=32), nullable=False),
        sa.Column(
            'last_processed_block', sa.BigInteger(),
            nullable=False, server_default='0'
        ),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column(
            'error_count', sa.Integer(),
            nullable=False, server_default='0'
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'chain_id', 'contract_address', 'indexer',
            name='uq_indexer_cursor_instance'
        ),
    )

    op.create_table(
        'key_value_store',
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('key'),
    )


def downgrade() -> None:
    op.drop_table('key_value_store')
    op.drop_table('indexer_cursor')
    op.drop_table('attestation')
    op.drop_table('condition')
    op.drop_table('prediction')
    op.drop_table('limit_order')
    op.drop_table('position')
    op.drop_table('market_transaction')
    op.drop_table('raw_event')
