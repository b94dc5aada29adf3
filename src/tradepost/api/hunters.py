"""Hunter API endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body

from tradepost.api.deps import RepoDep, SettingsDep
from tradepost.api.errors import http_error
from tradepost.core import catalog
from tradepost.core.errors import TradepostError
from tradepost.models.entities import Hunter, HunterCreate

router = APIRouter(prefix="/api/hunters", tags=["hunters"])


def _dump(row: object) -> dict:
    return Hunter.model_validate(row).model_dump(mode="json")


@router.post("", status_code=201)
async def create_hunter(body: HunterCreate, repo: RepoDep, settings: SettingsDep) -> dict:
    try:
        hunter = await catalog.create_entity(
            repo, catalog.HUNTER, body.model_dump(), enforce_enums=settings.tradepost_enforce_enums
        )
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": _dump(hunter)}


@router.get("")
async def list_hunters(
    repo: RepoDep,
    name: str | None = None,
    race: str | None = None,
    location: str | None = None,
) -> dict:
    """List hunters, optionally filtered by exact name, race or location."""
    hunters = await catalog.list_entities(
        repo, catalog.HUNTER, name=name, race=race, location=location
    )
    return {"data": [_dump(h) for h in hunters]}


@router.get("/{hunter_id}")
async def get_hunter(hunter_id: str, repo: RepoDep) -> dict:
    try:
        hunter = await catalog.get_entity(repo, catalog.HUNTER, hunter_id)
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": _dump(hunter)}


@router.patch("/{hunter_id}")
async def update_hunter(
    hunter_id: str,
    repo: RepoDep,
    settings: SettingsDep,
    changes: dict[str, Any] = Body(...),
) -> dict:
    try:
        hunter = await catalog.update_entity(
            repo, catalog.HUNTER, hunter_id, changes, enforce_enums=settings.tradepost_enforce_enums
        )
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": _dump(hunter)}


@router.delete("/{hunter_id}")
async def delete_hunter(hunter_id: str, repo: RepoDep) -> dict:
    """Delete a hunter that has no transactions on record."""
    try:
        hunter = await catalog.delete_entity(repo, catalog.HUNTER, hunter_id)
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": _dump(hunter)}


@router.delete("")
async def delete_hunters(
    repo: RepoDep,
    name: str | None = None,
    race: str | None = None,
    location: str | None = None,
) -> dict:
    try:
        hunters = await catalog.delete_matching(
            repo, catalog.HUNTER, name=name, race=race, location=location
        )
    except TradepostError as exc:
        raise http_error(exc) from exc
    return {"data": {"deleted_count": len(hunters), "deleted": [_dump(h) for h in hunters]}}
