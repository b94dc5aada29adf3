"""Application settings via pydantic-settings. Loads from environment and .env file."""

from __future__ import annotations

from pydantic import model_validator
from pydantic_settings import BaseSettings

# Stock write strategies. "unguarded" is plain read-modify-write (last write
# wins); "compare_and_swap" makes every stock write conditional on the value
# that was read and raises StockConflict when another writer got there first.
STOCK_GUARDS = frozenset({"unguarded", "compare_and_swap"})


class Settings(BaseSettings):
    """Tradepost application configuration.

    All values can be overridden via environment variables or .env file.
    """

    # Database
    database_url: str = "sqlite+aiosqlite:///tradepost.db"

    # Environment
    tradepost_env: str = "development"

    # Ledger behaviour
    tradepost_stock_guard: str = "unguarded"
    tradepost_ledger_atomic: bool = True  # False commits every write as it happens
    tradepost_enforce_enums: bool = True  # False accepts free text for material/race/type

    # Logging
    tradepost_log_level: str = "INFO"

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_stock_guard(self) -> Settings:
        """Reject unknown stock guard names early, at startup."""
        if self.tradepost_stock_guard not in STOCK_GUARDS:
            msg = (
                f"TRADEPOST_STOCK_GUARD must be one of {sorted(STOCK_GUARDS)}, "
                f"got {self.tradepost_stock_guard!r}"
            )
            raise ValueError(msg)
        return self

    @property
    def compare_and_swap(self) -> bool:
        return self.tradepost_stock_guard == "compare_and_swap"
