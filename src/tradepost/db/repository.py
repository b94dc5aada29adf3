"""Repository pattern for database access.

Wraps SQLAlchemy async sessions. This is the storage collaborator of the
catalog and the ledger: lookups by id and by name, inserts, stock writes,
deletes and filtered listings.

Two write policies are configured per repository:

- ``atomic``: when True (default) writes are only flushed and the caller's
  unit of work decides whether they commit. When False every write is
  committed immediately, so a later failure leaves earlier writes in place.
- ``compare_and_swap``: when True, stock writes are conditional on the stock
  value the caller read, and a lost race raises ``StockConflict``.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from tradepost.core.errors import StockConflict
from tradepost.db.models import (
    Base,
    GoodRow,
    HunterRow,
    MerchantRow,
    TransactionLineRow,
    TransactionRow,
)

RowT = TypeVar("RowT", bound=Base)


class Repository:
    """Async repository for all database operations."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        atomic: bool = True,
        compare_and_swap: bool = False,
    ) -> None:
        self.session = session
        self.atomic = atomic
        self.compare_and_swap = compare_and_swap

    async def _persist(self) -> None:
        await self.session.flush()
        if not self.atomic:
            await self.session.commit()

    # --- Generic helpers ---

    async def _list(self, row_cls: type[RowT], filters: dict[str, Any]) -> list[RowT]:
        criteria = {k: v for k, v in filters.items() if v is not None}
        stmt = select(row_cls).filter_by(**criteria).order_by(row_cls.name)  # type: ignore[attr-defined]
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def _by_name(self, row_cls: type[RowT], name: str) -> RowT | None:
        stmt = select(row_cls).where(row_cls.name == name)  # type: ignore[attr-defined]
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def update_row(self, row: RowT, changes: dict[str, Any]) -> RowT:
        """Apply already-validated field changes to a row."""
        for field, value in changes.items():
            setattr(row, field, value)
        await self._persist()
        return row

    async def delete_row(self, row: Base) -> None:
        await self.session.delete(row)
        await self._persist()

    # --- Goods ---

    async def create_good(
        self,
        name: str,
        description: str,
        material: str,
        weight: float,
        value: float,
        stock: int = 0,
    ) -> GoodRow:
        row = GoodRow(
            name=name,
            description=description,
            material=material,
            weight=weight,
            value=value,
            stock=stock,
        )
        self.session.add(row)
        await self._persist()
        return row

    async def get_good(self, good_id: str) -> GoodRow | None:
        return await self.session.get(GoodRow, good_id)

    async def get_good_by_name(self, name: str) -> GoodRow | None:
        return await self._by_name(GoodRow, name)

    async def list_goods(self, **filters: Any) -> list[GoodRow]:
        """Goods whose columns equal every non-None filter, ordered by name."""
        return await self._list(GoodRow, filters)

    async def set_stock(self, good: GoodRow, new_stock: int, read_stock: int) -> None:
        """Write a good's stock.

        ``read_stock`` is the value the caller based ``new_stock`` on. It is
        only consulted in compare-and-swap mode.
        """
        if not self.compare_and_swap:
            good.stock = new_stock
            await self._persist()
            return

        stmt = (
            update(GoodRow)
            .where(GoodRow.id == good.id, GoodRow.stock == read_stock)
            .values(stock=new_stock)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:  # type: ignore[attr-defined]
            raise StockConflict(good.id, read_stock)
        set_committed_value(good, "stock", new_stock)
        await self._persist()

    async def good_is_referenced(self, good_id: str) -> bool:
        stmt = select(func.count()).where(TransactionLineRow.good_id == good_id)
        result = await self.session.execute(stmt)
        return result.scalar_one() > 0

    # --- Hunters / Merchants ---

    async def create_hunter(self, name: str, race: str, location: str) -> HunterRow:
        row = HunterRow(name=name, race=race, location=location)
        self.session.add(row)
        await self._persist()
        return row

    async def get_hunter(self, hunter_id: str) -> HunterRow | None:
        return await self.session.get(HunterRow, hunter_id)

    async def get_hunter_by_name(self, name: str) -> HunterRow | None:
        return await self._by_name(HunterRow, name)

    async def list_hunters(self, **filters: Any) -> list[HunterRow]:
        return await self._list(HunterRow, filters)

    async def create_merchant(self, name: str, type: str, location: str) -> MerchantRow:
        row = MerchantRow(name=name, type=type, location=location)
        self.session.add(row)
        await self._persist()
        return row

    async def get_merchant(self, merchant_id: str) -> MerchantRow | None:
        return await self.session.get(MerchantRow, merchant_id)

    async def get_merchant_by_name(self, name: str) -> MerchantRow | None:
        return await self._by_name(MerchantRow, name)

    async def list_merchants(self, **filters: Any) -> list[MerchantRow]:
        return await self._list(MerchantRow, filters)

    async def counterparty_has_transactions(self, involved_type: str, involved_id: str) -> bool:
        stmt = select(func.count()).where(
            TransactionRow.involved_type == involved_type,
            TransactionRow.involved_id == involved_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one() > 0

    # --- Transactions ---

    async def create_transaction(
        self,
        involved_type: str,
        involved_id: str,
        direction: str,
        lines: Sequence[tuple[GoodRow, int]],
        total_value: float,
    ) -> TransactionRow:
        row = TransactionRow(
            involved_type=involved_type,
            involved_id=involved_id,
            direction=direction,
            total_value=total_value,
            lines=[
                TransactionLineRow(position=i, good=good, quantity=quantity)
                for i, (good, quantity) in enumerate(lines)
            ],
        )
        self.session.add(row)
        await self._persist()
        return row

    async def get_transaction(self, transaction_id: str) -> TransactionRow | None:
        """Get a transaction with its lines and their goods loaded."""
        stmt = (
            select(TransactionRow)
            .where(TransactionRow.id == transaction_id)
            .options(selectinload(TransactionRow.lines).selectinload(TransactionLineRow.good))
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_transactions(
        self,
        direction: str | None = None,
        involved: Sequence[tuple[str, str]] | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[TransactionRow]:
        """Filtered transactions, newest first.

        ``involved`` is a list of ``(involved_type, involved_id)`` pairs; a
        transaction matches if it belongs to any of them. An empty list
        matches nothing.
        """
        stmt = select(TransactionRow).options(
            selectinload(TransactionRow.lines).selectinload(TransactionLineRow.good)
        )
        if direction is not None:
            stmt = stmt.where(TransactionRow.direction == direction)
        if involved is not None:
            if not involved:
                return []
            stmt = stmt.where(
                or_(
                    *(
                        and_(
                            TransactionRow.involved_type == kind,
                            TransactionRow.involved_id == ref_id,
                        )
                        for kind, ref_id in involved
                    )
                )
            )
        if start_date is not None:
            stmt = stmt.where(TransactionRow.date >= start_date)
        if end_date is not None:
            stmt = stmt.where(TransactionRow.date <= end_date)
        stmt = stmt.order_by(TransactionRow.date.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def save_transaction(
        self, row: TransactionRow, total_value: float, date: datetime
    ) -> TransactionRow:
        """Store a recomputed total and refreshed date on an existing transaction."""
        row.total_value = total_value
        row.date = date
        await self._persist()
        return row

    async def save_line_quantity(self, line: TransactionLineRow, quantity: int) -> None:
        line.quantity = quantity
        await self._persist()

    async def delete_transaction(self, row: TransactionRow) -> None:
        await self.session.delete(row)
        await self._persist()
