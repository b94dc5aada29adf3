"""Translate domain errors into HTTP errors for the routers."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import HTTPException

from tradepost.core.errors import (
    DuplicateName,
    EntityInUse,
    EntityValidationError,
    InsufficientStock,
    InvalidRoleDirection,
    InvalidUpdate,
    IrreversibleDelete,
    NoProcessableGoods,
    NotFound,
    NoUpdateApplied,
    StockConflict,
    TradepostError,
)

STATUS_CODES: dict[type[TradepostError], int] = {
    NotFound: 404,
    NoProcessableGoods: 404,
    EntityValidationError: 400,
    InvalidUpdate: 400,
    InvalidRoleDirection: 400,
    DuplicateName: 409,
    EntityInUse: 409,
    InsufficientStock: 409,
    IrreversibleDelete: 409,
    NoUpdateApplied: 409,
    StockConflict: 409,
}


def http_error(exc: TradepostError) -> HTTPException:
    """Build the HTTPException for a domain error, keeping its structured data."""
    status = STATUS_CODES.get(type(exc), 400)
    detail: dict[str, object] = {"error": exc.code, "message": str(exc)}
    if isinstance(exc, EntityValidationError):
        detail["fields"] = [asdict(e) for e in exc.errors]
    elif isinstance(exc, NoUpdateApplied):
        detail["rejections"] = [asdict(r) for r in exc.rejections]
    elif isinstance(exc, NoProcessableGoods):
        detail["requested"] = exc.requested
    return HTTPException(status_code=status, detail=detail)
