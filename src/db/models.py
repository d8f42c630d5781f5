"""SQLAlchemy ORM models for the transaction history read by the agents.

The tables are owned and populated outside this service; the models exist so
the history queries are typed.
"""

from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    Boolean,
    Computed,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, TSVECTOR
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

EMBEDDING_DIMENSION = 768


class Base(DeclarativeBase):
    pass


class TransactionRecord(Base):
    __tablename__ = "transactions"

    transaction_id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    amount: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False))
    merchant: Mapped[str] = mapped_column(String, index=True)
    merchant_category: Mapped[str] = mapped_column(String)
    location: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
    payment_method: Mapped[str | None] = mapped_column(String, nullable=True)
    device_fingerprint: Mapped[str | None] = mapped_column(String, nullable=True)

    fraud_label: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    risk_score: Mapped[float | None] = mapped_column(Numeric(3, 2, asdecimal=False), nullable=True)
    decision: Mapped[str | None] = mapped_column(String, nullable=True)

    transaction_embedding = mapped_column(Vector(EMBEDDING_DIMENSION), nullable=True)
    description_tsv = mapped_column(
        TSVECTOR,
        Computed("to_tsvector('english', merchant || ' ' || merchant_category)", persisted=True),
    )

    __table_args__ = (
        Index("idx_transactions_tsv", "description_tsv", postgresql_using="gin"),
    )


class MerchantRecord(Base):
    __tablename__ = "merchants"

    merchant_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    merchant_name: Mapped[str] = mapped_column(String, unique=True)
    category: Mapped[str | None] = mapped_column(String, nullable=True)
    fraud_rate: Mapped[float] = mapped_column(Numeric(5, 4, asdecimal=False), default=0)
    total_transactions: Mapped[int] = mapped_column(Integer, default=0)
    fraud_transactions: Mapped[int] = mapped_column(Integer, default=0)
    merchant_embedding = mapped_column(Vector(EMBEDDING_DIMENSION), nullable=True)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
