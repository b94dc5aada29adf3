"""SQLAlchemy ORM models for the Tradepost database.

Tables: goods, hunters, merchants, transactions, transaction_lines.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime stored as naive UTC.

    SQLite keeps datetimes as text without an offset, so values are converted
    to UTC before they are written or compared, and come back tagged as UTC.
    Naive values are taken to be UTC already.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: object) -> datetime | None:
        if value is None or value.tzinfo is None:
            return value
        return value.astimezone(UTC).replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect: object) -> datetime | None:
        if value is None:
            return None
        return value.replace(tzinfo=UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class GoodRow(Base):
    __tablename__ = "goods"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, default="")
    material: Mapped[str] = mapped_column(String(50), nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_now)

    __table_args__ = (CheckConstraint("stock >= 0", name="ck_goods_stock_non_negative"),)


class HunterRow(Base):
    __tablename__ = "hunters"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    race: Mapped[str] = mapped_column(String(50), nullable=False)
    location: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_now)


class MerchantRow(Base):
    __tablename__ = "merchants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    location: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_now)


class TransactionRow(Base):
    """A completed exchange. involved_id points into hunters or merchants per involved_type."""

    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    involved_id: Mapped[str] = mapped_column(String(36), nullable=False)
    involved_type: Mapped[str] = mapped_column(String(10), nullable=False)
    direction: Mapped[str] = mapped_column(String(4), nullable=False)
    date: Mapped[datetime] = mapped_column(UTCDateTime, default=_now)
    total_value: Mapped[float] = mapped_column(Float, default=0.0)

    lines: Mapped[list[TransactionLineRow]] = relationship(
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionLineRow.position",
    )

    __table_args__ = (
        Index("ix_transactions_involved", "involved_type", "involved_id"),
        Index("ix_transactions_date", "date"),
    )


class TransactionLineRow(Base):
    __tablename__ = "transaction_lines"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    transaction_id: Mapped[str] = mapped_column(
        ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    good_id: Mapped[str] = mapped_column(ForeignKey("goods.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    transaction: Mapped[TransactionRow] = relationship(back_populates="lines")
    good: Mapped[GoodRow] = relationship()

    __table_args__ = (
        Index("ix_transaction_lines_transaction_id", "transaction_id"),
        Index("ix_transaction_lines_good_id", "good_id"),
    )
