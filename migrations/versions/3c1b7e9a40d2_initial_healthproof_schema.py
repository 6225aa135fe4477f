"""Initial schema: users, sessions, coin ledger, claims, markets, votes, evidence, dossier jobs

Revision ID: 3c1b7e9a40d2
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c1b7e9a40d2'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=True),
        sa.Column('coin_balance', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_login_date', sa.Date(), nullable=True),
        sa.Column('is_admin', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('newsletter_opt_in', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.CheckConstraint('coin_balance >= 0', name='ck_users_coin_balance_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'user_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token_hash'),
    )
    op.create_index('ix_user_sessions_user', 'user_sessions', ['user_id'], unique=False)

    op.create_table(
        'coin_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        sa.Column('note', sa.String(length=256), nullable=True),
        sa.Column('ref_type', sa.String(length=32), nullable=True),
        sa.Column('ref_id', sa.String(length=64), nullable=True),
        sa.Column('idempotency_key', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key'),
    )
    op.create_index('ix_coin_tx_user_created', 'coin_transactions', ['user_id', 'created_at'], unique=False)
    op.create_index('ix_coin_tx_user_type_ref', 'coin_transactions', ['user_id', 'type', 'ref_id'], unique=False)

    op.create_table(
        'claims',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('normalized_title', sa.String(length=500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('difficulty', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('normalized_title'),
    )
    op.create_index('ix_claims_created', 'claims', ['created_at'], unique=False)
    op.create_index('ix_claims_difficulty', 'claims', ['difficulty'], unique=False)

    op.create_table(
        'markets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('claim_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('yes_votes', sa.Integer(), server_default='0', nullable=False),
        sa.Column('no_votes', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_votes', sa.Integer(), server_default='0', nullable=False),
        sa.Column('ai_verdict', sa.String(length=8), nullable=True),
        sa.Column('ai_confidence', sa.Float(), nullable=True),
        sa.Column('consensus_summary', sa.Text(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_dossier_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('total_votes = yes_votes + no_votes', name='ck_markets_vote_totals'),
        sa.ForeignKeyConstraint(['claim_id'], ['claims.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('claim_id'),
    )
    op.create_index('ix_markets_status', 'markets', ['status'], unique=False)

    op.create_table(
        'claim_votes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('claim_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('side', sa.String(length=8), nullable=False),
        sa.Column('voted_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reveal_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revealed', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.ForeignKeyConstraint(['claim_id'], ['claims.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('claim_id', 'user_id', name='uq_claim_votes_claim_user'),
    )
    op.create_index('ix_claim_votes_reveal', 'claim_votes', ['revealed', 'reveal_at'], unique=False)

    op.create_table(
        'papers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('doi', sa.String(length=256), nullable=True),
        sa.Column('pmid', sa.String(length=32), nullable=True),
        sa.Column('arxiv_id', sa.String(length=64), nullable=True),
        sa.Column('journal', sa.String(length=512), nullable=True),
        sa.Column('published_year', sa.Integer(), nullable=True),
        sa.Column('authors', sa.JSON(), nullable=True),
        sa.Column('full_text_url', sa.String(length=2048), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('doi'),
        sa.UniqueConstraint('pmid'),
        sa.UniqueConstraint('arxiv_id'),
    )

    op.create_table(
        'claim_papers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('claim_id', sa.Integer(), nullable=False),
        sa.Column('paper_id', sa.Integer(), nullable=False),
        sa.Column('stance', sa.String(length=16), nullable=True),
        sa.Column('study_type', sa.String(length=64), nullable=True),
        sa.Column('ai_summary', sa.Text(), nullable=True),
        sa.Column('abstract_snippet', sa.Text(), nullable=True),
        sa.Column('sample_size', sa.Integer(), nullable=True),
        sa.Column('confidence_score', sa.Float(), nullable=True),
        sa.Column('extraction_version', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['claim_id'], ['claims.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['paper_id'], ['papers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('claim_id', 'paper_id', name='uq_claim_papers_claim_paper'),
    )
    op.create_index('ix_claim_papers_claim_stance', 'claim_papers', ['claim_id', 'stance'], unique=False)
    op.create_index('ix_claim_papers_claim_confidence', 'claim_papers', ['claim_id', 'confidence_score'], unique=False)

    op.create_table(
        'dossier_jobs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('claim_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('progress', sa.Integer(), nullable=False),
        sa.Column('error', sa.String(length=1024), nullable=True),
        sa.Column('triggered_by', sa.Integer(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['claim_id'], ['claims.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['triggered_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_dossier_jobs_claim_status', 'dossier_jobs', ['claim_id', 'status'], unique=False)


def downgrade():
    op.drop_index('ix_dossier_jobs_claim_status', table_name='dossier_jobs')
    op.drop_table('dossier_jobs')
    op.drop_index('ix_claim_papers_claim_confidence', table_name='claim_papers')
    op.drop_index('ix_claim_papers_claim_stance', table_name='claim_papers')
    op.drop_table('claim_papers')
    op.drop_table('papers')
    op.drop_index('ix_claim_votes_reveal', table_name='claim_votes')
    op.drop_table('claim_votes')
    op.drop_index('ix_markets_status', table_name='markets')
    op.drop_table('markets')
    op.drop_index('ix_claims_difficulty', table_name='claims')
    op.drop_index('ix_claims_created', table_name='claims')
    op.drop_table('claims')
    op.drop_index('ix_coin_tx_user_type_ref', table_name='coin_transactions')
    op.drop_index('ix_coin_tx_user_created', table_name='coin_transactions')
    op.drop_table('coin_transactions')
    op.drop_index('ix_user_sessions_user', table_name='user_sessions')
    op.drop_table('user_sessions')
    op.drop_table('users')
