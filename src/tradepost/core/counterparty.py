"""Counterparty resolution: find or create the hunter or merchant of a transaction."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tradepost.core.errors import InvalidRoleDirection
from tradepost.core.validation import validate
from tradepost.models.constants import PLACEHOLDER_HUNTER, PLACEHOLDER_MERCHANT
from tradepost.models.transaction import ROLE_FOR_DIRECTION, HunterRef, MerchantRef

if TYPE_CHECKING:
    from tradepost.db.repository import Repository

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """The resolved counterparty and whether this call created it."""

    ref: HunterRef | MerchantRef
    name: str
    created: bool


def check_role(role: str, direction: str) -> None:
    """Raise InvalidRoleDirection unless a hunter buys or a merchant sells."""
    if ROLE_FOR_DIRECTION.get(direction) != role:
        raise InvalidRoleDirection(role, direction)


async def resolve_or_create(
    repo: Repository,
    name: str,
    role: str,
    direction: str,
    *,
    enforce_enums: bool = True,
) -> Resolution:
    """Look up the counterparty by exact name, creating it with placeholders if absent.

    Repeated calls with the same name return the same record.
    """
    check_role(role, direction)

    if role == "Hunter":
        hunter = await repo.get_hunter_by_name(name)
        if hunter is not None:
            return Resolution(ref=HunterRef(id=hunter.id), name=hunter.name, created=False)
        data = {"name": name, **PLACEHOLDER_HUNTER}
        validate("hunter", data, enforce_enums=enforce_enums)
        hunter = await repo.create_hunter(**data)
        logger.info("counterparty_created kind=Hunter id=%s name=%s", hunter.id, name)
        return Resolution(ref=HunterRef(id=hunter.id), name=hunter.name, created=True)

    merchant = await repo.get_merchant_by_name(name)
    if merchant is not None:
        return Resolution(ref=MerchantRef(id=merchant.id), name=merchant.name, created=False)
    data = {"name": name, **PLACEHOLDER_MERCHANT}
    validate("merchant", data, enforce_enums=enforce_enums)
    merchant = await repo.create_merchant(**data)
    logger.info("counterparty_created kind=Merchant id=%s name=%s", merchant.id, name)
    return Resolution(ref=MerchantRef(id=merchant.id), name=merchant.name, created=True)
