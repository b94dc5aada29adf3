"""Typed errors raised by the catalog and ledger.

Every error carries a class-level ``code`` and the structured values that
caused it. The core only raises; mapping to HTTP status codes lives in
``tradepost.api.errors``.
"""

from __future__ import annotations

from dataclasses import dataclass


class TradepostError(Exception):
    """Base class for all domain errors."""

    code: str = "TRADEPOST_ERROR"


class NotFound(TradepostError):
    code: str = "NOT_FOUND"

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class InvalidRoleDirection(TradepostError):
    """A hunter can only buy and a merchant can only sell."""

    code: str = "INVALID_ROLE_DIRECTION"

    def __init__(self, role: str, direction: str):
        self.role = role
        self.direction = direction
        super().__init__(f"A {role} cannot take part in a {direction} transaction")


class NoProcessableGoods(TradepostError):
    code: str = "NO_PROCESSABLE_GOODS"

    def __init__(self, requested: list[str]):
        self.requested = requested
        super().__init__(
            "None of the requested goods could be processed "
            f"(unknown or insufficient stock): {', '.join(requested) or '-'}"
        )


class InsufficientStock(TradepostError):
    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, good_name: str, stock: int, requested: int):
        self.good_name = good_name
        self.stock = stock
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {good_name}: have {stock}, need {requested}"
        )


class IrreversibleDelete(TradepostError):
    """Reversing the transaction would leave a good with negative stock."""

    code: str = "IRREVERSIBLE_DELETE"

    def __init__(self, transaction_id: str, good_name: str, stock: int, quantity: int):
        self.transaction_id = transaction_id
        self.good_name = good_name
        self.stock = stock
        self.quantity = quantity
        super().__init__(
            f"Cannot delete transaction {transaction_id}: reversing it would "
            f"take {good_name} from {stock} to {stock - quantity}"
        )


@dataclass(frozen=True)
class LineRejection:
    """Why a single line of an update request was not applied."""

    name: str
    reason: str


class NoUpdateApplied(TradepostError):
    code: str = "NO_UPDATE_APPLIED"

    def __init__(self, transaction_id: str, rejections: list[LineRejection]):
        self.transaction_id = transaction_id
        self.rejections = rejections
        detail = "; ".join(f"{r.name}: {r.reason}" for r in rejections) or "no matching goods"
        super().__init__(f"Transaction {transaction_id} was not updated ({detail})")


@dataclass(frozen=True)
class FieldError:
    field: str
    kind: str
    message: str


class EntityValidationError(TradepostError):
    code: str = "VALIDATION_FAILED"

    def __init__(self, entity: str, errors: list[FieldError]):
        self.entity = entity
        self.errors = errors
        super().__init__(f"Invalid {entity}: " + "; ".join(e.message for e in errors))


class DuplicateName(TradepostError):
    code: str = "DUPLICATE_NAME"

    def __init__(self, entity: str, name: str):
        self.entity = entity
        self.name = name
        super().__init__(f"A {entity} named {name!r} already exists")


class InvalidUpdate(TradepostError):
    code: str = "INVALID_UPDATE"

    def __init__(self, entity: str, fields: list[str]):
        self.entity = entity
        self.fields = fields
        if fields:
            super().__init__(f"Update of {entity} field(s) not permitted: {', '.join(fields)}")
        else:
            super().__init__(f"No {entity} fields to update")


class EntityInUse(TradepostError):
    code: str = "ENTITY_IN_USE"

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key} is referenced by existing transactions")


class StockConflict(TradepostError):
    """A compare-and-swap stock write lost a race with another writer."""

    code: str = "STOCK_CONFLICT"

    def __init__(self, good_id: str, expected: int):
        self.good_id = good_id
        self.expected = expected
        super().__init__(
            f"Stock of good {good_id} changed concurrently (expected {expected})"
        )
