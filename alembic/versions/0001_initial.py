"""initial

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


state_enum = sa.Enum(
    "CREATED",
    "FUNDED",
    "RELEASED",
    "REFUNDED",
    "CANCELLED",
    name="escrowstate",
)


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("address", sa.String(length=128), primary_key=True),
        sa.Column("balance", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("data_len", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_custody", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
    )

    op.create_table(
        "escrows",
        sa.Column("address", sa.String(length=128), primary_key=True),
        sa.Column("buyer", sa.String(length=128), nullable=False),
        sa.Column("seller", sa.String(length=128), nullable=False),
        sa.Column("arbiter", sa.String(length=128), nullable=True),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("timeout_period", sa.BigInteger(), nullable=False),
        sa.Column("state", state_enum, nullable=False),
        sa.Column("addressing_proof", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.BigInteger(), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_escrows_amount_positive"),
        sa.CheckConstraint("timeout_period > 0", name="ck_escrows_timeout_positive"),
    )
    op.create_index("ix_escrows_buyer", "escrows", ["buyer"])
    op.create_index("ix_escrows_seller", "escrows", ["seller"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("escrow_address", sa.String(length=128), nullable=True),
        sa.Column("actor", sa.String(length=128), nullable=True),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("metadata_json", sa.JSON(), nullable=False, server_default=sa.text("'{}'::json")),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
    )
    op.create_index("ix_audit_log_escrow_address", "audit_log", ["escrow_address"])


def downgrade() -> None:
    op.drop_index("ix_audit_log_escrow_address", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_index("ix_escrows_seller", table_name="escrows")
    op.drop_index("ix_escrows_buyer", table_name="escrows")
    op.drop_table("escrows")
    op.drop_table("accounts")
    state_enum.drop(op.get_bind())
