"""Good, Hunter and Merchant models.

Field-level rules (capitalisation, lengths, enumerations) live in
``tradepost.core.validation``; these models only carry shapes and the
basic numeric bounds.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Good(BaseModel):
    """A tradeable item with a unit value and a stock count."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    material: str
    weight: float
    stock: int = Field(ge=0)
    value: float


class Hunter(BaseModel):
    """A buying counterparty."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    race: str
    location: str


class Merchant(BaseModel):
    """A selling counterparty."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    type: str
    location: str


# --- Request Models ---


class GoodCreate(BaseModel):
    name: str
    description: str
    material: str
    weight: float
    stock: int = 0
    value: float


class HunterCreate(BaseModel):
    name: str
    race: str
    location: str


class MerchantCreate(BaseModel):
    name: str
    type: str
    location: str
