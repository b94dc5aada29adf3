"""Transaction API endpoints: create, query, update quantities and delete."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field

from tradepost.api.deps import RepoDep, SettingsDep
from tradepost.api.errors import http_error
from tradepost.core import ledger
from tradepost.core.errors import TradepostError
from tradepost.models.transaction import Direction, GoodsLine, Role

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


# --- Request Models ---


class CreateTransactionRequest(BaseModel):
    goods: list[GoodsLine] = Field(min_length=1)
    involved_name: str
    involved_type: Role
    direction: Direction


class UpdateTransactionRequest(BaseModel):
    goods: list[GoodsLine] = Field(min_length=1)


# --- Endpoints ---


@router.post("", status_code=201)
async def create_transaction(
    body: CreateTransactionRequest,
    repo: RepoDep,
    settings: SettingsDep,
) -> dict:
    """Record a purchase by a hunter or a sale by a merchant."""
    try:
        transaction = await ledger.create_transaction(
            repo,
            body.goods,
            body.involved_name,
            body.involved_type,
            body.direction,
            enforce_enums=settings.tradepost_enforce_enums,
        )
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": transaction.model_dump(mode="json")}


@router.get("")
async def list_transactions(
    repo: RepoDep,
    direction: Direction | None = None,
    involved_name: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> dict:
    """List transactions filtered by direction, counterparty name and date range."""
    transactions = await ledger.list_transactions(
        repo,
        direction=direction,
        involved_name=involved_name,
        start_date=start_date,
        end_date=end_date,
    )
    return {"data": [t.model_dump(mode="json") for t in transactions]}


@router.get("/involved/{name}")
async def list_transactions_for_counterparty(name: str, repo: RepoDep) -> dict:
    try:
        transactions = await ledger.transactions_for_counterparty(repo, name)
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": [t.model_dump(mode="json") for t in transactions]}


@router.get("/{transaction_id}")
async def get_transaction(transaction_id: str, repo: RepoDep) -> dict:
    try:
        transaction = await ledger.get_transaction(repo, transaction_id)
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": transaction.model_dump(mode="json")}


@router.patch("/{transaction_id}")
async def update_transaction(
    transaction_id: str,
    body: UpdateTransactionRequest,
    repo: RepoDep,
) -> dict:
    """Change the quantities of goods already in the transaction."""
    try:
        transaction = await ledger.update_transaction(repo, transaction_id, body.goods)
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": transaction.model_dump(mode="json")}


@router.delete("/{transaction_id}")
async def delete_transaction(transaction_id: str, repo: RepoDep) -> dict:
    """Reverse the transaction's stock effect and delete it."""
    try:
        transaction = await ledger.delete_transaction(repo, transaction_id)
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": transaction.model_dump(mode="json")}
