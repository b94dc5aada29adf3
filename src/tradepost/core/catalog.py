"""Entity store operations for goods, hunters and merchants.

Every write goes through the entity's validation rule table first. Names are
unique per entity kind. Good stock can only be set on creation; afterwards it
belongs to the ledger.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from tradepost.core.errors import DuplicateName, EntityInUse, InvalidUpdate, NotFound
from tradepost.core.validation import normalize, validate
from tradepost.db.repository import Repository
from tradepost.models.constants import GOOD_UPDATABLE, HUNTER_UPDATABLE, MERCHANT_UPDATABLE

if TYPE_CHECKING:
    from tradepost.db.models import GoodRow, HunterRow, MerchantRow

    EntityRow = GoodRow | HunterRow | MerchantRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntityKind:
    """An entity table and the repository calls that serve it.

    The callables are unbound ``Repository`` methods and take the repository
    as their first argument.
    """

    entity: str
    label: str
    fields: tuple[str, ...]
    updatable: frozenset[str]
    create: Callable[..., Awaitable[Any]]
    get: Callable[[Repository, str], Awaitable[Any]]
    get_by_name: Callable[[Repository, str], Awaitable[Any]]
    find: Callable[..., Awaitable[list[Any]]]
    is_referenced: Callable[[Repository, str], Awaitable[bool]]


async def _hunter_has_transactions(repo: Repository, hunter_id: str) -> bool:
    return await repo.counterparty_has_transactions("Hunter", hunter_id)


async def _merchant_has_transactions(repo: Repository, merchant_id: str) -> bool:
    return await repo.counterparty_has_transactions("Merchant", merchant_id)


GOOD = EntityKind(
    "good",
    "Good",
    ("name", "description", "material", "weight", "stock", "value"),
    GOOD_UPDATABLE,
    create=Repository.create_good,
    get=Repository.get_good,
    get_by_name=Repository.get_good_by_name,
    find=Repository.list_goods,
    is_referenced=Repository.good_is_referenced,
)
HUNTER = EntityKind(
    "hunter",
    "Hunter",
    ("name", "race", "location"),
    HUNTER_UPDATABLE,
    create=Repository.create_hunter,
    get=Repository.get_hunter,
    get_by_name=Repository.get_hunter_by_name,
    find=Repository.list_hunters,
    is_referenced=_hunter_has_transactions,
)
MERCHANT = EntityKind(
    "merchant",
    "Merchant",
    ("name", "type", "location"),
    MERCHANT_UPDATABLE,
    create=Repository.create_merchant,
    get=Repository.get_merchant,
    get_by_name=Repository.get_merchant_by_name,
    find=Repository.list_merchants,
    is_referenced=_merchant_has_transactions,
)

KINDS: dict[str, EntityKind] = {k.entity: k for k in (GOOD, HUNTER, MERCHANT)}


async def create_entity(
    repo: Repository,
    kind: EntityKind,
    data: dict[str, Any],
    *,
    enforce_enums: bool = True,
) -> EntityRow:
    """Validate and insert a new good, hunter or merchant."""
    data = normalize({k: v for k, v in data.items() if k in kind.fields})
    if kind is GOOD:
        data.setdefault("stock", 0)
    validate(kind.entity, data, enforce_enums=enforce_enums)
    if await kind.get_by_name(repo, data["name"]) is not None:
        raise DuplicateName(kind.entity, data["name"])

    row = await kind.create(repo, **data)
    logger.info("%s_created id=%s name=%s", kind.entity, row.id, row.name)
    return row


async def get_entity(repo: Repository, kind: EntityKind, row_id: str) -> EntityRow:
    row = await kind.get(repo, row_id)
    if row is None:
        raise NotFound(kind.label, row_id)
    return row


async def list_entities(repo: Repository, kind: EntityKind, **filters: Any) -> list[EntityRow]:
    return await kind.find(repo, **filters)


async def update_entity(
    repo: Repository,
    kind: EntityKind,
    row_id: str,
    changes: dict[str, Any],
    *,
    enforce_enums: bool = True,
) -> EntityRow:
    """Apply a partial update restricted to the kind's updatable fields."""
    if not changes:
        raise InvalidUpdate(kind.entity, [])
    forbidden = sorted(set(changes) - kind.updatable)
    if forbidden:
        raise InvalidUpdate(kind.entity, forbidden)

    changes = normalize(changes)
    validate(kind.entity, changes, enforce_enums=enforce_enums, partial=True)
    row = await get_entity(repo, kind, row_id)

    new_name = changes.get("name")
    if new_name is not None and new_name != row.name:
        existing = await kind.get_by_name(repo, new_name)
        if existing is not None:
            raise DuplicateName(kind.entity, new_name)

    await repo.update_row(row, changes)
    logger.info("%s_updated id=%s fields=%s", kind.entity, row.id, ",".join(sorted(changes)))
    return row


async def delete_entity(repo: Repository, kind: EntityKind, row_id: str) -> EntityRow:
    """Delete one record; refused while any transaction refers to it."""
    row = await get_entity(repo, kind, row_id)
    if await kind.is_referenced(repo, row.id):
        raise EntityInUse(kind.label, row.id)
    await repo.delete_row(row)
    logger.info("%s_deleted id=%s name=%s", kind.entity, row.id, row.name)
    return row


async def delete_matching(repo: Repository, kind: EntityKind, **filters: Any) -> list[EntityRow]:
    """Delete every record matching the filters.

    Raises NotFound when nothing matches and EntityInUse, before deleting
    anything, when any match is still referenced.
    """
    rows = await list_entities(repo, kind, **filters)
    if not rows:
        criteria = ", ".join(f"{k}={v}" for k, v in filters.items() if v is not None)
        raise NotFound(kind.label, criteria or "*")
    for row in rows:
        if await kind.is_referenced(repo, row.id):
            raise EntityInUse(kind.label, row.id)
    for row in rows:
        await repo.delete_row(row)
    logger.info("%s_bulk_deleted count=%d", kind.entity, len(rows))
    return rows
