from __future__ import annotations

from sqlalchemy import JSON, BigInteger, Boolean, CheckConstraint, Enum, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from guardescrow.enums import EscrowState


class Base(DeclarativeBase):
    pass


class Account(Base):
    __tablename__ = "accounts"

    address: Mapped[str] = mapped_column(String(128), primary_key=True)
    balance: Mapped[int] = mapped_column(BigInteger, default=0)
    data_len: Mapped[int] = mapped_column(Integer, default=0)
    is_custody: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),)


class Escrow(Base):
    __tablename__ = "escrows"

    address: Mapped[str] = mapped_column(String(128), primary_key=True)
    buyer: Mapped[str] = mapped_column(String(128), index=True)
    seller: Mapped[str] = mapped_column(String(128), index=True)
    arbiter: Mapped[str | None] = mapped_column(String(128), nullable=True)
    amount: Mapped[int] = mapped_column(BigInteger)
    created_at: Mapped[int] = mapped_column(BigInteger)
    timeout_period: Mapped[int] = mapped_column(BigInteger)
    state: Mapped[EscrowState] = mapped_column(Enum(EscrowState, name="escrowstate"))
    addressing_proof: Mapped[int] = mapped_column(Integer)
    updated_at: Mapped[int] = mapped_column(BigInteger)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_escrows_amount_positive"),
        CheckConstraint("timeout_period > 0", name="ck_escrows_timeout_positive"),
    )


class AuditLog(Base):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    escrow_address: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    actor: Mapped[str | None] = mapped_column(String(128), nullable=True)
    action: Mapped[str] = mapped_column(String(255))
    metadata_json: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[int] = mapped_column(BigInteger)
