"""PortfolioLedger — available/reserved balances and the fill history."""

from __future__ import annotations

from typing import Literal

import structlog

from candle_core.errors import InsufficientFunds, LedgerInvariantError
from candle_core.models.order import Balances, FilledTrade

log = structlog.get_logger("portfolio_ledger")

Resource = Literal["asset", "currency"]

# float dust tolerated below zero, relative to the size of the balance
# and of the change applied to it
EPSILON = 1e-9


def tolerance(*values: float) -> float:
    return EPSILON * max([1.0, *(abs(v) for v in values)])


class PortfolioLedger:
    """Balances of one asset/currency pair, owned by a MatchingEngine."""

    def __init__(self, asset: float = 0.0, currency: float = 0.0) -> None:
        if asset < 0 or currency < 0:
            raise ValueError("starting balances must not be negative")
        self._available: dict[str, float] = {"asset": float(asset), "currency": float(currency)}
        self._reserved: dict[str, float] = {"asset": 0.0, "currency": 0.0}
        self._trades: list[FilledTrade] = []

    def available(self, resource: Resource) -> float:
        return self._available[resource]

    def reserved(self, resource: Resource) -> float:
        return self._reserved[resource]

    # ── Mutations (MatchingEngine only) ───────────────────────

    def reserve(self, resource: Resource, amount: float) -> None:
        """Move *amount* from available to reserved."""
        available = self._available[resource]
        if available + tolerance(available, amount) < amount:
            raise InsufficientFunds(resource, amount, available)
        self.settle(resource, -amount, amount)

    def release(self, resource: Resource, amount: float) -> None:
        """Move *amount* from reserved back to available."""
        self.settle(resource, amount, -amount)

    def settle(self, resource: Resource, available_delta: float, reserved_delta: float) -> None:
        """Apply both deltas together, or neither if a balance would go negative."""
        old_available = self._available[resource]
        old_reserved = self._reserved[resource]
        available = _non_negative(
            old_available + available_delta,
            tolerance(old_available, available_delta),
            resource,
            "available",
        )
        reserved = _non_negative(
            old_reserved + reserved_delta,
            tolerance(old_reserved, reserved_delta),
            resource,
            "reserved",
        )
        self._available[resource] = available
        self._reserved[resource] = reserved

    def record(self, trade: FilledTrade) -> None:
        self._trades.append(trade)

    # ── Read-only views ───────────────────────────────────────

    def balances(self) -> Balances:
        return Balances(
            asset_available=self._available["asset"],
            asset_reserved=self._reserved["asset"],
            currency_available=self._available["currency"],
            currency_reserved=self._reserved["currency"],
        )

    def trade_history(self) -> tuple[FilledTrade, ...]:
        return tuple(self._trades)


def _non_negative(value: float, tol: float, resource: str, bucket: str) -> float:
    if value >= 0:
        return value
    if value >= -tol:
        return 0.0
    log.error("ledger_invariant_violated", resource=resource, bucket=bucket, value=value)
    raise LedgerInvariantError(f"{resource} {bucket} balance would become {value}")
