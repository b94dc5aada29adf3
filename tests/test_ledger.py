"""Tests for the transaction ledger: stock stays consistent with transactions."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tradepost.core import ledger
from tradepost.core.errors import (
    EntityValidationError,
    InvalidRoleDirection,
    IrreversibleDelete,
    NoProcessableGoods,
    NotFound,
    NoUpdateApplied,
)
from tradepost.db.engine import unit_of_work
from tradepost.db.repository import Repository
from tradepost.models.transaction import GoodsLine

Sessions = async_sessionmaker[AsyncSession]


def _lines(**quantities: int) -> list[GoodsLine]:
    """Build goods lines from keyword arguments, underscores standing for spaces."""
    return [GoodsLine(name=name.replace("_", " "), quantity=q) for name, q in quantities.items()]


async def _stock(repo: Repository, name: str) -> int:
    good = await repo.get_good_by_name(name)
    return good.stock


class TestCreate:
    async def test_hunter_buys(self, repo: Repository, add_good):
        await add_good(stock=10, value=500.0)
        tx = await ledger.create_transaction(repo, _lines(Silver_Sword=1), "Geralt", "Hunter", "Buy")
        assert tx.total_value == 500.0
        assert tx.direction == "Buy"
        assert tx.counterparty.kind == "Hunter"
        assert [(line.good_name, line.quantity) for line in tx.lines] == [("Silver Sword", 1)]
        assert await _stock(repo, "Silver Sword") == 9

    async def test_merchant_sells_unknown_good(self, repo: Repository):
        tx = await ledger.create_transaction(repo, _lines(New_Item=5), "Hattori", "Merchant", "Sell")
        assert tx.total_value == 500.0
        assert await _stock(repo, "New Item") == 5
        merchant = await repo.get_merchant_by_name("Hattori")
        assert tx.involved_id == merchant.id
        assert merchant.type == "Unknown"

    async def test_skipped_lines_not_recorded(self, repo: Repository, add_good):
        await add_good("Silver Sword", stock=10, value=500.0)
        await add_good("Iron Helm", stock=1, value=80.0, material="Iron")
        tx = await ledger.create_transaction(
            repo, _lines(Silver_Sword=2, Iron_Helm=3, Ghost_Blade=1), "Geralt", "Hunter", "Buy"
        )
        assert [line.good_name for line in tx.lines] == ["Silver Sword"]
        assert tx.total_value == 1000.0
        assert await _stock(repo, "Iron Helm") == 1

    async def test_nothing_processable(self, repo: Repository, add_good):
        await add_good(stock=1)
        with pytest.raises(NoProcessableGoods) as exc_info:
            await ledger.create_transaction(
                repo, _lines(Silver_Sword=5, Ghost_Blade=1), "Geralt", "Hunter", "Buy"
            )
        assert exc_info.value.requested == ["Silver Sword", "Ghost Blade"]
        assert await repo.list_transactions() == []
        assert await _stock(repo, "Silver Sword") == 1

    async def test_role_direction_mismatch(self, repo: Repository, add_good):
        await add_good(stock=10)
        with pytest.raises(InvalidRoleDirection):
            await ledger.create_transaction(repo, _lines(Silver_Sword=1), "Geralt", "Hunter", "Sell")
        assert await _stock(repo, "Silver Sword") == 10

    async def test_invalid_placeholder_name(self, repo: Repository):
        with pytest.raises(EntityValidationError):
            await ledger.create_transaction(repo, _lines(item_42=1), "Hattori", "Merchant", "Sell")

    async def test_counterparty_reused(self, repo: Repository, add_good):
        await add_good(stock=10)
        first = await ledger.create_transaction(repo, _lines(Silver_Sword=1), "Geralt", "Hunter", "Buy")
        second = await ledger.create_transaction(repo, _lines(Silver_Sword=1), "Geralt", "Hunter", "Buy")
        assert first.involved_id == second.involved_id
        assert len(await repo.list_hunters()) == 1


class TestUpdate:
    async def test_buy_quantity_decreased(self, repo: Repository, add_good):
        await add_good(stock=10, value=500.0)
        tx = await ledger.create_transaction(repo, _lines(Silver_Sword=2), "Geralt", "Hunter", "Buy")
        assert await _stock(repo, "Silver Sword") == 8

        updated = await ledger.update_transaction(repo, tx.id, _lines(Silver_Sword=1))
        assert updated.lines[0].quantity == 1
        assert updated.total_value == 500.0
        assert await _stock(repo, "Silver Sword") == 9

    async def test_buy_quantity_increased(self, repo: Repository, add_good):
        await add_good(stock=10)
        tx = await ledger.create_transaction(repo, _lines(Silver_Sword=2), "Geralt", "Hunter", "Buy")
        await ledger.update_transaction(repo, tx.id, _lines(Silver_Sword=6))
        assert await _stock(repo, "Silver Sword") == 4

    async def test_buy_increase_beyond_stock(self, repo: Repository, add_good):
        await add_good(stock=3)
        tx = await ledger.create_transaction(repo, _lines(Silver_Sword=2), "Geralt", "Hunter", "Buy")
        with pytest.raises(NoUpdateApplied) as exc_info:
            await ledger.update_transaction(repo, tx.id, _lines(Silver_Sword=4))
        assert "Insufficient stock" in exc_info.value.rejections[0].reason
        assert await _stock(repo, "Silver Sword") == 1

    async def test_sell_decrease_beyond_stock(self, repo: Repository, add_good):
        await add_good(stock=0)
        tx = await ledger.create_transaction(repo, _lines(Silver_Sword=5), "Hattori", "Merchant", "Sell")
        await ledger.create_transaction(repo, _lines(Silver_Sword=4), "Geralt", "Hunter", "Buy")
        with pytest.raises(NoUpdateApplied):
            await ledger.update_transaction(repo, tx.id, _lines(Silver_Sword=1))
        assert await _stock(repo, "Silver Sword") == 1

    async def test_unchanged_quantity_not_applied(self, repo: Repository, add_good):
        await add_good(stock=10)
        tx = await ledger.create_transaction(repo, _lines(Silver_Sword=2), "Geralt", "Hunter", "Buy")
        with pytest.raises(NoUpdateApplied) as exc_info:
            await ledger.update_transaction(repo, tx.id, _lines(Silver_Sword=2))
        assert exc_info.value.rejections[0].reason == "quantity unchanged"

    async def test_goods_outside_transaction_ignored(self, repo: Repository, add_good):
        await add_good("Silver Sword", stock=10, value=500.0)
        await add_good("Iron Helm", stock=10, value=80.0, material="Iron")
        tx = await ledger.create_transaction(repo, _lines(Silver_Sword=2), "Geralt", "Hunter", "Buy")

        updated = await ledger.update_transaction(repo, tx.id, _lines(Silver_Sword=3, Iron_Helm=1))
        assert [line.good_name for line in updated.lines] == ["Silver Sword"]
        assert await _stock(repo, "Iron Helm") == 10

        with pytest.raises(NoUpdateApplied) as exc_info:
            await ledger.update_transaction(repo, tx.id, _lines(Iron_Helm=1))
        assert exc_info.value.rejections[0].reason == "not part of this transaction"

    async def test_partial_application(self, repo: Repository, add_good):
        """A line that cannot move stock is rejected while the others apply."""
        await add_good("Silver Sword", stock=10, value=500.0)
        await add_good("Iron Helm", stock=3, value=80.0, material="Iron")
        tx = await ledger.create_transaction(
            repo, _lines(Silver_Sword=1, Iron_Helm=3), "Geralt", "Hunter", "Buy"
        )
        updated = await ledger.update_transaction(repo, tx.id, _lines(Silver_Sword=2, Iron_Helm=5))
        quantities = {line.good_name: line.quantity for line in updated.lines}
        assert quantities == {"Silver Sword": 2, "Iron Helm": 3}
        assert updated.total_value == 2 * 500.0 + 3 * 80.0

    async def test_total_uses_current_values(self, repo: Repository, add_good):
        good = await add_good(stock=10, value=500.0)
        tx = await ledger.create_transaction(repo, _lines(Silver_Sword=2), "Geralt", "Hunter", "Buy")
        await repo.update_row(good, {"value": 600.0})
        updated = await ledger.update_transaction(repo, tx.id, _lines(Silver_Sword=1))
        assert updated.total_value == 600.0

    async def test_date_refreshed(self, repo: Repository, add_good):
        await add_good(stock=10)
        tx = await ledger.create_transaction(repo, _lines(Silver_Sword=2), "Geralt", "Hunter", "Buy")
        updated = await ledger.update_transaction(repo, tx.id, _lines(Silver_Sword=1))
        assert updated.date >= tx.date

    async def test_missing_transaction(self, repo: Repository):
        with pytest.raises(NotFound):
            await ledger.update_transaction(repo, "nope", _lines(Silver_Sword=1))


class TestDelete:
    async def test_buy_reversal_restores_stock(self, repo: Repository, add_good):
        await add_good(stock=10)
        tx = await ledger.create_transaction(repo, _lines(Silver_Sword=3), "Geralt", "Hunter", "Buy")
        deleted = await ledger.delete_transaction(repo, tx.id)
        assert deleted.id == tx.id
        assert await _stock(repo, "Silver Sword") == 10
        with pytest.raises(NotFound):
            await ledger.get_transaction(repo, tx.id)

    async def test_sell_reversal_removes_stock(self, repo: Repository):
        tx = await ledger.create_transaction(repo, _lines(New_Item=5), "Hattori", "Merchant", "Sell")
        await ledger.delete_transaction(repo, tx.id)
        assert await _stock(repo, "New Item") == 0

    async def test_irreversible_sell(self, repo: Repository):
        tx = await ledger.create_transaction(repo, _lines(New_Item=5), "Hattori", "Merchant", "Sell")
        await ledger.create_transaction(repo, _lines(New_Item=2), "Geralt", "Hunter", "Buy")
        assert await _stock(repo, "New Item") == 3

        with pytest.raises(IrreversibleDelete) as exc_info:
            await ledger.delete_transaction(repo, tx.id)
        assert exc_info.value.stock == 3
        assert exc_info.value.quantity == 5
        assert await _stock(repo, "New Item") == 3
        assert (await ledger.get_transaction(repo, tx.id)).id == tx.id

    async def test_nothing_reversed_when_one_line_fails(self, repo: Repository, add_good):
        await add_good("Silver Sword", stock=0)
        await add_good("Iron Helm", stock=0, material="Iron")
        tx = await ledger.create_transaction(
            repo, _lines(Silver_Sword=2, Iron_Helm=2), "Hattori", "Merchant", "Sell"
        )
        await ledger.create_transaction(repo, _lines(Iron_Helm=1), "Geralt", "Hunter", "Buy")

        with pytest.raises(IrreversibleDelete):
            await ledger.delete_transaction(repo, tx.id)
        assert await _stock(repo, "Silver Sword") == 2
        assert await _stock(repo, "Iron Helm") == 1

    async def test_repeated_good_reversed_once_per_line(self, repo: Repository, add_good):
        await add_good(stock=0)
        tx = await ledger.create_transaction(
            repo,
            [GoodsLine(name="Silver Sword", quantity=2), GoodsLine(name="Silver Sword", quantity=3)],
            "Hattori",
            "Merchant",
            "Sell",
        )
        assert await _stock(repo, "Silver Sword") == 5
        await ledger.delete_transaction(repo, tx.id)
        assert await _stock(repo, "Silver Sword") == 0

    async def test_round_trip_buy(self, repo: Repository, add_good):
        """Creating then deleting a transaction leaves stock where it started."""
        await add_good("Silver Sword", stock=7)
        await add_good("Iron Helm", stock=4, material="Iron")
        tx = await ledger.create_transaction(
            repo, _lines(Silver_Sword=7, Iron_Helm=1), "Geralt", "Hunter", "Buy"
        )
        await ledger.delete_transaction(repo, tx.id)
        assert await _stock(repo, "Silver Sword") == 7
        assert await _stock(repo, "Iron Helm") == 4


class TestQueries:
    async def _seed(self, repo: Repository, add_good) -> None:
        await add_good(stock=10)
        await ledger.create_transaction(repo, _lines(Silver_Sword=1), "Geralt", "Hunter", "Buy")
        await ledger.create_transaction(repo, _lines(Silver_Sword=2), "Hattori", "Merchant", "Sell")
        await ledger.create_transaction(repo, _lines(Silver_Sword=3), "Ciri", "Hunter", "Buy")

    async def test_list_newest_first(self, repo: Repository, add_good):
        await self._seed(repo, add_good)
        transactions = await ledger.list_transactions(repo)
        assert [t.lines[0].quantity for t in transactions] == [3, 2, 1]

    async def test_filter_by_direction(self, repo: Repository, add_good):
        await self._seed(repo, add_good)
        sells = await ledger.list_transactions(repo, direction="Sell")
        assert [t.counterparty.kind for t in sells] == ["Merchant"]

    async def test_filter_by_involved_name(self, repo: Repository, add_good):
        await self._seed(repo, add_good)
        geralt = await ledger.list_transactions(repo, involved_name="Geralt")
        assert [t.lines[0].quantity for t in geralt] == [1]
        assert await ledger.list_transactions(repo, involved_name="Dandelion") == []

    async def test_filter_by_date_range(self, repo: Repository, add_good):
        await self._seed(repo, add_good)
        now = datetime.now(UTC)
        assert len(await ledger.list_transactions(repo, start_date=now + timedelta(days=1))) == 0
        assert len(await ledger.list_transactions(repo, end_date=now - timedelta(days=1))) == 0

    async def test_date_bounds_in_other_timezone(self, repo: Repository, add_good):
        """Bounds carrying an offset select the same instants as their UTC equivalents."""
        await add_good(stock=10)
        tx = await ledger.create_transaction(repo, _lines(Silver_Sword=1), "Geralt", "Hunter", "Buy")
        cest = timezone(timedelta(hours=2))

        found = await ledger.list_transactions(
            repo,
            start_date=(tx.date - timedelta(minutes=1)).astimezone(cest),
            end_date=(tx.date + timedelta(minutes=1)).astimezone(cest),
        )
        assert [t.id for t in found] == [tx.id]

        before = (tx.date - timedelta(seconds=1)).astimezone(cest)
        assert await ledger.list_transactions(repo, end_date=before) == []

    async def test_naive_bounds_taken_as_utc(self, repo: Repository, add_good):
        await add_good(stock=10)
        tx = await ledger.create_transaction(repo, _lines(Silver_Sword=1), "Geralt", "Hunter", "Buy")
        start = (tx.date - timedelta(minutes=1)).replace(tzinfo=None)
        found = await ledger.list_transactions(repo, start_date=start)
        assert [t.id for t in found] == [tx.id]

    async def test_dates_reload_as_utc(self, sessions: Sessions):
        async with unit_of_work(sessions) as session:
            repo = Repository(session)
            await repo.create_good("Silver Sword", "A sword made of silver.", "Silver", 3.5, 500.0, 10)
            tx = await ledger.create_transaction(repo, _lines(Silver_Sword=1), "Geralt", "Hunter", "Buy")

        async with unit_of_work(sessions) as session:
            reloaded = await ledger.get_transaction(Repository(session), tx.id)
        assert reloaded.date.tzinfo is UTC
        assert reloaded.date == tx.date

    async def test_name_used_by_hunter_and_merchant(self, repo: Repository, add_good):
        await add_good(stock=10)
        await ledger.create_transaction(repo, _lines(Silver_Sword=1), "Vesemir", "Hunter", "Buy")
        await ledger.create_transaction(repo, _lines(Silver_Sword=1), "Vesemir", "Merchant", "Sell")
        transactions = await ledger.transactions_for_counterparty(repo, "Vesemir")
        assert {t.counterparty.kind for t in transactions} == {"Hunter", "Merchant"}

    async def test_unknown_counterparty(self, repo: Repository):
        with pytest.raises(NotFound) as exc_info:
            await ledger.transactions_for_counterparty(repo, "Dandelion")
        assert exc_info.value.entity == "Counterparty"


class TestAtomicity:
    async def _seed(self, sessions: Sessions) -> str:
        async with unit_of_work(sessions) as session:
            repo = Repository(session)
            await repo.create_good("Silver Sword", "A sword made of silver.", "Silver", 3.5, 500.0, 10)
            tx = await ledger.create_transaction(repo, _lines(Silver_Sword=2), "Geralt", "Hunter", "Buy")
        return tx.id

    async def _stock_after(self, sessions: Sessions) -> int:
        async with unit_of_work(sessions) as session:
            return await _stock(Repository(session), "Silver Sword")

    async def test_atomic_unit_of_work_rolls_back(self, sessions: Sessions):
        tx_id = await self._seed(sessions)
        with pytest.raises(RuntimeError):
            async with unit_of_work(sessions) as session:
                await ledger.update_transaction(Repository(session), tx_id, _lines(Silver_Sword=5))
                raise RuntimeError("request failed")
        assert await self._stock_after(sessions) == 8

    async def test_non_atomic_keeps_earlier_writes(self, sessions: Sessions):
        tx_id = await self._seed(sessions)
        with pytest.raises(RuntimeError):
            async with unit_of_work(sessions) as session:
                repo = Repository(session, atomic=False)
                await ledger.update_transaction(repo, tx_id, _lines(Silver_Sword=5))
                raise RuntimeError("request failed")
        assert await self._stock_after(sessions) == 5

    async def test_failed_create_leaves_no_counterparty(self, sessions: Sessions):
        with pytest.raises(NoProcessableGoods):
            async with unit_of_work(sessions) as session:
                await ledger.create_transaction(
                    Repository(session), _lines(Ghost_Blade=1), "Geralt", "Hunter", "Buy"
                )
        async with unit_of_work(sessions) as session:
            assert await Repository(session).get_hunter_by_name("Geralt") is None
