"""Transaction ledger: create, update, delete and query transactions.

The ledger keeps good stock consistent with the transactions on record:

- create resolves the counterparty, applies the goods lines to stock and
  stores the transaction with the total computed from unit values.
- update only changes quantities of goods already in the transaction. The
  stock moves by the difference between the new and old quantity, line by
  line; a line whose stock change is impossible is rejected on its own.
- delete reverses every line's stock effect. All reversals are computed
  before any is written, and if one would leave negative stock nothing is
  touched and the transaction stays.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from tradepost.core.counterparty import resolve_or_create
from tradepost.core.errors import (
    InsufficientStock,
    IrreversibleDelete,
    LineRejection,
    NoProcessableGoods,
    NotFound,
    NoUpdateApplied,
)
from tradepost.core.goods import process_lines
from tradepost.models.transaction import (
    GoodsLine,
    Transaction,
    TransactionLine,
    counterparty_ref,
)

if TYPE_CHECKING:
    from tradepost.db.models import GoodRow, TransactionLineRow, TransactionRow
    from tradepost.db.repository import Repository

logger = logging.getLogger(__name__)


def to_model(row: TransactionRow) -> Transaction:
    """Convert a stored transaction (lines and goods loaded) to its domain model."""
    return Transaction(
        id=row.id,
        counterparty=counterparty_ref(row.involved_type, row.involved_id),
        direction=row.direction,  # type: ignore[arg-type]
        lines=[
            TransactionLine(good_id=line.good.id, good_name=line.good.name, quantity=line.quantity)
            for line in row.lines
        ],
        date=row.date,
        total_value=row.total_value,
    )


async def _load(repo: Repository, transaction_id: str) -> TransactionRow:
    row = await repo.get_transaction(transaction_id)
    if row is None:
        raise NotFound("Transaction", transaction_id)
    return row


# --- Create ---


async def create_transaction(
    repo: Repository,
    lines: Sequence[GoodsLine],
    counterparty_name: str,
    role: str,
    direction: str,
    *,
    enforce_enums: bool = True,
) -> Transaction:
    """Record a new exchange and apply it to stock.

    Raises InvalidRoleDirection for a selling hunter or buying merchant, and
    NoProcessableGoods when none of the lines could be applied.
    """
    counterparty = await resolve_or_create(
        repo, counterparty_name, role, direction, enforce_enums=enforce_enums
    )
    resolution = await process_lines(repo, lines, direction, enforce_enums=enforce_enums)
    if not resolution.resolved_lines:
        raise NoProcessableGoods([line.name for line in lines])

    goods: list[tuple[GoodRow, int]] = []
    for resolved in resolution.resolved_lines:
        good = await repo.get_good(resolved.good_id)
        if good is None:
            raise NotFound("Good", resolved.good_id)
        goods.append((good, resolved.quantity))

    row = await repo.create_transaction(
        involved_type=counterparty.ref.kind,
        involved_id=counterparty.ref.id,
        direction=direction,
        lines=goods,
        total_value=resolution.total_value,
    )
    logger.info(
        "transaction_created id=%s direction=%s counterparty=%s lines=%d skipped=%d total=%.2f",
        row.id,
        direction,
        counterparty.name,
        len(resolution.resolved_lines),
        len(resolution.skipped_lines),
        resolution.total_value,
    )
    return to_model(row)


# --- Update ---


async def _apply_quantity_change(
    repo: Repository, direction: str, line: TransactionLineRow, new_quantity: int
) -> None:
    """Move stock by the quantity difference and store the new quantity.

    Raises InsufficientStock if the good cannot absorb the change.
    """
    good = line.good
    diff = new_quantity - line.quantity
    read = good.stock
    if direction == "Buy":
        if read < diff:
            raise InsufficientStock(good.name, read, diff)
        new_stock = read - diff
    else:
        new_stock = read + diff
        if new_stock < 0:
            raise InsufficientStock(good.name, read, -diff)
    await repo.set_stock(good, new_stock, read)
    await repo.save_line_quantity(line, new_quantity)


async def update_transaction(
    repo: Repository,
    transaction_id: str,
    new_lines: Sequence[GoodsLine],
) -> Transaction:
    """Change quantities of goods already in a transaction.

    Goods named in ``new_lines`` that are not part of the transaction are
    ignored, and lines not named keep their quantity. The total is recomputed
    from every line with the goods' current unit values and the date is
    refreshed. Raises NoUpdateApplied when no line changed.
    """
    row = await _load(repo, transaction_id)
    requested = {line.name: line.quantity for line in new_lines}

    applied = 0
    rejections: list[LineRejection] = []
    seen: set[str] = set()
    for line in row.lines:
        name = line.good.name
        if name not in requested:
            continue
        seen.add(name)
        if requested[name] == line.quantity:
            rejections.append(LineRejection(name, "quantity unchanged"))
            continue
        try:
            await _apply_quantity_change(repo, row.direction, line, requested[name])
        except InsufficientStock as exc:
            rejections.append(LineRejection(name, str(exc)))
            logger.info("transaction_line_rejected id=%s good=%s reason=%s", row.id, name, exc.code)
            continue
        applied += 1

    for name in requested:
        if name not in seen:
            rejections.append(LineRejection(name, "not part of this transaction"))

    if not applied:
        raise NoUpdateApplied(row.id, rejections)

    total = sum(line.quantity * line.good.value for line in row.lines)
    await repo.save_transaction(row, total_value=total, date=datetime.now(UTC))
    logger.info(
        "transaction_updated id=%s applied=%d rejected=%d total=%.2f",
        row.id,
        applied,
        len(rejections),
        total,
    )
    return to_model(row)


# --- Delete ---


async def delete_transaction(repo: Repository, transaction_id: str) -> Transaction:
    """Reverse a transaction's stock effect and remove it.

    Returns the deleted transaction. Raises IrreversibleDelete, without
    changing anything, if a reversal would leave a good with negative stock.
    """
    row = await _load(repo, transaction_id)

    planned: dict[str, int] = {}
    goods: dict[str, GoodRow] = {}
    for line in row.lines:
        good = line.good
        current = planned.get(good.id, good.stock)
        if row.direction == "Buy":
            after = current + line.quantity
        else:
            after = current - line.quantity
            if after < 0:
                raise IrreversibleDelete(row.id, good.name, current, line.quantity)
        planned[good.id] = after
        goods[good.id] = good

    deleted = to_model(row)
    for good_id, new_stock in planned.items():
        good = goods[good_id]
        await repo.set_stock(good, new_stock, good.stock)
    await repo.delete_transaction(row)
    logger.info("transaction_deleted id=%s direction=%s goods=%d", row.id, row.direction, len(goods))
    return deleted


# --- Queries ---


async def get_transaction(repo: Repository, transaction_id: str) -> Transaction:
    return to_model(await _load(repo, transaction_id))


async def _involved_refs(repo: Repository, name: str) -> list[tuple[str, str]]:
    refs: list[tuple[str, str]] = []
    hunter = await repo.get_hunter_by_name(name)
    if hunter is not None:
        refs.append(("Hunter", hunter.id))
    merchant = await repo.get_merchant_by_name(name)
    if merchant is not None:
        refs.append(("Merchant", merchant.id))
    return refs


async def list_transactions(
    repo: Repository,
    direction: str | None = None,
    involved_name: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> list[Transaction]:
    """Transactions matching every given filter, newest first.

    ``involved_name`` matches the hunter and the merchant of that name; the
    date range is inclusive on both ends.
    """
    involved = await _involved_refs(repo, involved_name) if involved_name is not None else None
    rows = await repo.list_transactions(
        direction=direction,
        involved=involved,
        start_date=start_date,
        end_date=end_date,
    )
    return [to_model(row) for row in rows]


async def transactions_for_counterparty(repo: Repository, name: str) -> list[Transaction]:
    """All transactions of the hunter and/or merchant called *name*."""
    involved = await _involved_refs(repo, name)
    if not involved:
        raise NotFound("Counterparty", name)
    rows = await repo.list_transactions(involved=involved)
    return [to_model(row) for row in rows]
