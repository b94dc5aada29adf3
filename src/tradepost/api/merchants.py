"""Merchant API endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body

from tradepost.api.deps import RepoDep, SettingsDep
from tradepost.api.errors import http_error
from tradepost.core import catalog
from tradepost.core.errors import TradepostError
from tradepost.models.entities import Merchant, MerchantCreate

router = APIRouter(prefix="/api/merchants", tags=["merchants"])


def _dump(row: object) -> dict:
    return Merchant.model_validate(row).model_dump(mode="json")


@router.post("", status_code=201)
async def create_merchant(body: MerchantCreate, repo: RepoDep, settings: SettingsDep) -> dict:
    try:
        merchant = await catalog.create_entity(
            repo,
            catalog.MERCHANT,
            body.model_dump(),
            enforce_enums=settings.tradepost_enforce_enums,
        )
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": _dump(merchant)}


@router.get("")
async def list_merchants(
    repo: RepoDep,
    name: str | None = None,
    type: str | None = None,
    location: str | None = None,
) -> dict:
    merchants = await catalog.list_entities(
        repo, catalog.MERCHANT, name=name, type=type, location=location
    )
    return {"data": [_dump(m) for m in merchants]}


@router.get("/{merchant_id}")
async def get_merchant(merchant_id: str, repo: RepoDep) -> dict:
    try:
        merchant = await catalog.get_entity(repo, catalog.MERCHANT, merchant_id)
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": _dump(merchant)}


@router.patch("/{merchant_id}")
async def update_merchant(
    merchant_id: str,
    repo: RepoDep,
    settings: SettingsDep,
    changes: dict[str, Any] = Body(...),
) -> dict:
    try:
        merchant = await catalog.update_entity(
            repo,
            catalog.MERCHANT,
            merchant_id,
            changes,
            enforce_enums=settings.tradepost_enforce_enums,
        )
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": _dump(merchant)}


@router.delete("/{merchant_id}")
async def delete_merchant(merchant_id: str, repo: RepoDep) -> dict:
    try:
        merchant = await catalog.delete_entity(repo, catalog.MERCHANT, merchant_id)
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": _dump(merchant)}


@router.delete("")
async def delete_merchants(
    repo: RepoDep,
    name: str | None = None,
    type: str | None = None,
    location: str | None = None,
) -> dict:
    """Delete every merchant matching the filters."""
    try:
        merchants = await catalog.delete_matching(
            repo, catalog.MERCHANT, name=name, type=type, location=location
        )
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": {"deleted_count": len(merchants), "deleted": [_dump(m) for m in merchants]}}
