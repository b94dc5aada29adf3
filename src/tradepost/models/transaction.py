"""Transaction ledger models.

A transaction is always between the trading post and exactly one
counterparty. Hunters only buy and merchants only sell, so the counterparty
is a tagged union whose tag has to agree with the direction.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import AliasChoices, BaseModel, Field, model_validator

Direction = Literal["Buy", "Sell"]
Role = Literal["Hunter", "Merchant"]

ROLE_FOR_DIRECTION: dict[str, str] = {"Buy": "Hunter", "Sell": "Merchant"}


class HunterRef(BaseModel):
    kind: Literal["Hunter"] = "Hunter"
    id: str


class MerchantRef(BaseModel):
    kind: Literal["Merchant"] = "Merchant"
    id: str


Counterparty = Annotated[HunterRef | MerchantRef, Field(discriminator="kind")]


def counterparty_ref(kind: str, ref_id: str) -> HunterRef | MerchantRef:
    """Build the reference variant for a stored ``involved_type`` tag."""
    if kind == "Hunter":
        return HunterRef(id=ref_id)
    if kind == "Merchant":
        return MerchantRef(id=ref_id)
    msg = f"Unknown counterparty kind: {kind!r}"
    raise ValueError(msg)


class GoodsLine(BaseModel):
    """One requested line: a good by name and how many units move.

    Accepts ``amount`` as well as ``quantity`` on input.
    """

    name: str
    quantity: int = Field(ge=1, validation_alias=AliasChoices("quantity", "amount"))


class ResolvedLine(BaseModel):
    """A requested line matched to a Good and applied to its stock."""

    good_id: str
    name: str
    quantity: int = Field(ge=1)
    unit_value: float


class SkippedLine(BaseModel):
    name: str
    quantity: int
    reason: Literal["unknown_good", "insufficient_stock"]


class GoodsResolution(BaseModel):
    """Outcome of one pass of the goods line resolver."""

    resolved_lines: list[ResolvedLine] = Field(default_factory=list)
    skipped_lines: list[SkippedLine] = Field(default_factory=list)
    total_value: float = 0.0


class TransactionLine(BaseModel):
    good_id: str
    good_name: str
    quantity: int = Field(ge=1)


class Transaction(BaseModel):
    """A completed exchange as returned by the ledger."""

    id: str
    counterparty: Counterparty
    direction: Direction
    lines: list[TransactionLine]
    date: datetime
    total_value: float = Field(ge=0)

    @model_validator(mode="after")
    def _role_matches_direction(self) -> Transaction:
        expected = ROLE_FOR_DIRECTION[self.direction]
        if self.counterparty.kind != expected:
            msg = f"A {self.direction} transaction must involve a {expected}"
            raise ValueError(msg)
        return self

    @property
    def involved_type(self) -> str:
        return self.counterparty.kind

    @property
    def involved_id(self) -> str:
        return self.counterparty.id
