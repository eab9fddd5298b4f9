"""Exception hierarchy for the candle pipeline and the backtest exchange."""

from __future__ import annotations


class CandleCoreError(Exception):
    """Base class for all candle_core errors."""


class ConfigurationError(CandleCoreError, ValueError):
    """A component was constructed with invalid settings."""


class InsufficientFunds(CandleCoreError):
    """Not enough available balance to reserve for an order."""

    def __init__(self, resource: str, requested: float, available: float) -> None:
        super().__init__(
            f"insufficient {resource}: requested {requested}, available {available}"
        )
        self.resource = resource
        self.requested = requested
        self.available = available


class OrderNotFound(CandleCoreError, LookupError):
    """No open or partially filled order with the given id."""

    def __init__(self, order_id: int) -> None:
        super().__init__(f"no open order with id {order_id}")
        self.order_id = order_id


class LedgerInvariantError(CandleCoreError):
    """A settlement would drive a balance below zero."""
