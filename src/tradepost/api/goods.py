"""Goods API endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body

from tradepost.api.deps import RepoDep, SettingsDep
from tradepost.api.errors import http_error
from tradepost.core import catalog
from tradepost.core.errors import TradepostError
from tradepost.models.entities import Good, GoodCreate

router = APIRouter(prefix="/api/goods", tags=["goods"])


def _dump(row: object) -> dict:
    return Good.model_validate(row).model_dump(mode="json")


@router.post("", status_code=201)
async def create_good(body: GoodCreate, repo: RepoDep, settings: SettingsDep) -> dict:
    """Register a new good."""
    try:
        good = await catalog.create_entity(
            repo, catalog.GOOD, body.model_dump(), enforce_enums=settings.tradepost_enforce_enums
        )
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": _dump(good)}


@router.get("")
async def list_goods(
    repo: RepoDep,
    name: str | None = None,
    description: str | None = None,
    material: str | None = None,
) -> dict:
    """List goods, optionally filtered by exact name, description or material."""
    goods = await catalog.list_entities(
        repo, catalog.GOOD, name=name, description=description, material=material
    )
    return {"data": [_dump(g) for g in goods]}


@router.get("/{good_id}")
async def get_good(good_id: str, repo: RepoDep) -> dict:
    try:
        good = await catalog.get_entity(repo, catalog.GOOD, good_id)
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": _dump(good)}


@router.patch("/{good_id}")
async def update_good(
    good_id: str,
    repo: RepoDep,
    settings: SettingsDep,
    changes: dict[str, Any] = Body(...),
) -> dict:
    """Update descriptive fields of a good. Stock is not editable here."""
    try:
        good = await catalog.update_entity(
            repo, catalog.GOOD, good_id, changes, enforce_enums=settings.tradepost_enforce_enums
        )
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": _dump(good)}


@router.delete("/{good_id}")
async def delete_good(good_id: str, repo: RepoDep) -> dict:
    try:
        good = await catalog.delete_entity(repo, catalog.GOOD, good_id)
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": _dump(good)}


@router.delete("")
async def delete_goods(
    repo: RepoDep,
    name: str | None = None,
    description: str | None = None,
    material: str | None = None,
) -> dict:
    """Delete every good matching the filters."""
    try:
        goods = await catalog.delete_matching(
            repo, catalog.GOOD, name=name, description=description, material=material
        )
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": {"deleted_count": len(goods), "deleted": [_dump(g) for g in goods]}}
