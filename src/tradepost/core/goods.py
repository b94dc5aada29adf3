"""Goods line resolution: match requested lines to goods and move their stock.

Lines are processed one after another. Each stock change is written as soon
as its line is processed; whether those writes commit together is decided by
the repository's write policy.

- Buy: the hunter takes goods out of stock. Unknown goods and lines asking
  for more than the stock holds are skipped.
- Sell: the merchant brings goods in. Unknown goods are registered with
  placeholder attributes and the sold quantity as their stock.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from tradepost.core.validation import validate
from tradepost.models.constants import PLACEHOLDER_GOOD
from tradepost.models.transaction import GoodsLine, GoodsResolution, ResolvedLine, SkippedLine

if TYPE_CHECKING:
    from tradepost.db.models import GoodRow
    from tradepost.db.repository import Repository

logger = logging.getLogger(__name__)


async def register_placeholder_good(
    repo: Repository,
    name: str,
    stock: int,
    *,
    enforce_enums: bool = True,
) -> GoodRow:
    """Create a good nobody registered yet, using placeholder attributes."""
    data = {"name": name, "stock": stock, **PLACEHOLDER_GOOD}
    validate("good", data, enforce_enums=enforce_enums)
    good = await repo.create_good(**data)
    logger.info("good_registered id=%s name=%s stock=%d", good.id, name, stock)
    return good


async def process_lines(
    repo: Repository,
    lines: Sequence[GoodsLine],
    direction: str,
    *,
    enforce_enums: bool = True,
) -> GoodsResolution:
    """Apply each requested line to stock and total up the value moved.

    The total uses each good's unit value at the moment its line is
    processed. An empty ``resolved_lines`` means nothing could be processed;
    the caller decides what that means.
    """
    if direction not in ("Buy", "Sell"):
        msg = f"Unknown direction: {direction!r}"
        raise ValueError(msg)

    resolution = GoodsResolution()
    for line in lines:
        good = await repo.get_good_by_name(line.name)

        if direction == "Buy":
            if good is None:
                _skip(resolution, line, "unknown_good")
                continue
            if good.stock < line.quantity:
                _skip(resolution, line, "insufficient_stock")
                continue
            read = good.stock
            await repo.set_stock(good, read - line.quantity, read)
        elif good is None:
            good = await register_placeholder_good(
                repo, line.name, line.quantity, enforce_enums=enforce_enums
            )
        else:
            read = good.stock
            await repo.set_stock(good, read + line.quantity, read)

        resolution.resolved_lines.append(
            ResolvedLine(
                good_id=good.id,
                name=good.name,
                quantity=line.quantity,
                unit_value=good.value,
            )
        )
        resolution.total_value += line.quantity * good.value

    return resolution


def _skip(resolution: GoodsResolution, line: GoodsLine, reason: str) -> None:
    resolution.skipped_lines.append(
        SkippedLine(name=line.name, quantity=line.quantity, reason=reason)  # type: ignore[arg-type]
    )
    logger.info("goods_line_skipped name=%s quantity=%d reason=%s", line.name, line.quantity, reason)
