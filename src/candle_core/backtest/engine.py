"""MatchingEngine — candle-driven order matching for backtests.

Each candle is treated as a small pool of liquidity. A v2 candle's
``buy_volume`` is what aggressive buyers traded, so it is the size short
(sell) orders can fill against; the rest of the volume is available to
long (buy) orders. v1 candles have no buy-side split and use
``volume * buy_volume_ratio`` instead. This is a modeling assumption,
not an order book: fills only say an order *could* have traded inside
the candle's range.

Open orders are matched in the order they were placed and share the
candle's liquidity, so an older order can leave a younger one with a
smaller fill or none at all.
"""

from __future__ import annotations

import itertools
from datetime import datetime

import structlog

from candle_core.backtest.ledger import EPSILON, PortfolioLedger
from candle_core.errors import InsufficientFunds, OrderNotFound
from candle_core.models.candle import CandleV1, CandleV2
from candle_core.models.order import Balances, FilledTrade, Order, OrderKind, OrderStatus, Side

log = structlog.get_logger("matching_engine")


def calculate_fee(fee_rate: float, price: float, amount: float) -> float:
    return price * amount * fee_rate


class MatchingEngine:
    """Simulated exchange for a single asset/currency pair."""

    def __init__(
        self,
        ledger: PortfolioLedger,
        fee_rate: float = 0.0,
        buy_volume_ratio: float = 0.5,
    ) -> None:
        if fee_rate < 0:
            raise ValueError(f"fee_rate must not be negative, got {fee_rate}")
        if not 0 <= buy_volume_ratio <= 1:
            raise ValueError(f"buy_volume_ratio must be within [0, 1], got {buy_volume_ratio}")
        self.ledger = ledger
        self.fee_rate = fee_rate
        self.buy_volume_ratio = buy_volume_ratio
        self.last_candle: CandleV1 | CandleV2 | None = None
        self._orders: list[Order] = []
        self._ids = itertools.count(1)

    # ── Orders ────────────────────────────────────────────────

    def place_order(
        self,
        side: Side,
        kind: OrderKind,
        amount: float,
        price: float | None = None,
    ) -> int:
        """Reserve funds for a new order and return its id.

        A long order that costs more than the available currency is
        shrunk to the largest affordable amount instead of rejected.
        """
        if price is None:
            if kind != "market" or self.last_candle is None:
                raise ValueError("price is required unless a market order follows a candle")
            price = self.last_candle.close

        # validates side, kind, price and amount before anything is reserved
        order = Order(
            id=next(self._ids),
            created_at=self.last_candle.start if self.last_candle else None,
            side=side,
            kind=kind,
            price=price,
            amount=amount,
        )

        if order.side == "short":
            self.ledger.reserve("asset", order.amount)
            order.reserved = order.amount
        else:
            cost = order.price * order.amount * (1 + self.fee_rate)
            available = self.ledger.available("currency")
            if available < cost:
                clamped = available / (order.price * (1 + self.fee_rate))
                if clamped <= 0:
                    raise InsufficientFunds("currency", cost, available)
                log.info(
                    "order_amount_clamped",
                    order_id=order.id,
                    requested=order.amount,
                    clamped=clamped,
                )
                order.amount = clamped
                cost = available
            self.ledger.reserve("currency", cost)
            order.reserved = cost

        order.fee = calculate_fee(self.fee_rate, order.price, order.amount)
        self._orders.append(order)
        log.info(
            "order_placed",
            order_id=order.id,
            side=order.side,
            kind=order.kind,
            price=order.price,
            amount=order.amount,
        )
        return order.id

    def cancel_order(self, order_id: int) -> None:
        """Cancel a resting order and give back what it still had reserved."""
        order = self._find_active(order_id)
        order.status = "canceled"

        resource = "asset" if order.side == "short" else "currency"
        self.ledger.release(resource, order.reserved)
        order.reserved = 0.0

        log.info("order_canceled", order_id=order.id, remaining=order.amount)

    def order_status(self, order_id: int) -> OrderStatus:
        return self.get_order(order_id).status

    def get_order(self, order_id: int) -> Order:
        """Return a copy of any order, whatever its status."""
        for order in self._orders:
            if order.id == order_id:
                return order.model_copy()
        raise OrderNotFound(order_id)

    def open_orders(self) -> list[Order]:
        return [o.model_copy() for o in self._orders if o.is_active]

    def _find_active(self, order_id: int) -> Order:
        for order in self._orders:
            if order.id == order_id and order.is_active:
                return order
        raise OrderNotFound(order_id)

    # ── Matching ──────────────────────────────────────────────

    def on_candle(self, candle: CandleV1 | CandleV2) -> list[FilledTrade]:
        """Match every resting order against *candle*; return the new fills."""
        self.last_candle = candle

        if isinstance(candle, CandleV2):
            buy_side = candle.buy_volume
        else:
            buy_side = candle.volume * self.buy_volume_ratio
        # liquidity left for each side, drained as orders fill
        liquidity = {
            "short": buy_side,
            "long": max(candle.volume - buy_side, 0.0),
        }

        fills: list[FilledTrade] = []
        for order in [o for o in self._orders if o.is_active]:
            if not self._crosses(order, candle):
                continue

            filled = min(order.amount, liquidity[order.side])
            if filled <= 0:
                continue

            if order.amount - filled > EPSILON * order.amount:
                order.amount -= filled
                order.status = "partial"
            else:
                # a float remainder this small counts as a full fill
                filled = order.amount
                order.amount = 0.0
                order.status = "closed"
            order.filled += filled

            left = liquidity[order.side] - filled
            liquidity[order.side] = left if left > EPSILON * candle.volume else 0.0

            fills.append(self._settle(order, filled, candle.start))

        return fills

    @staticmethod
    def _crosses(order: Order, candle: CandleV1 | CandleV2) -> bool:
        if order.kind == "market":
            return True
        if order.side == "short":
            return order.price <= candle.high
        return order.price >= candle.low

    def _settle(self, order: Order, filled: float, time: datetime) -> FilledTrade:
        fee = calculate_fee(self.fee_rate, order.price, filled)
        notional = filled * order.price

        # The reserved side is debited first; a failure there leaves the
        # ledger untouched. The closing fill takes whatever the order still
        # holds, so rounding between the reservation and the per-fill costs
        # never leaves dust behind or overdraws the reservation.
        closed = order.status == "closed"
        if order.side == "short":
            debit = order.reserved if closed else min(filled, order.reserved)
            self.ledger.settle("asset", 0.0, -debit)
            self.ledger.settle("currency", notional - fee, 0.0)
        else:
            cost = notional + fee
            debit = order.reserved if closed else min(cost, order.reserved)
            refund = max(debit - cost, 0.0)
            self.ledger.settle("currency", refund, -debit)
            self.ledger.settle("asset", filled, 0.0)
        order.reserved -= debit

        trade = FilledTrade(
            time=time,
            side=order.side,
            kind=order.kind,
            fee=fee,
            amount=filled,
            price=order.price,
            status=order.status,
            order_id=order.id,
        )
        self.ledger.record(trade)
        log.info(
            "order_filled",
            order_id=order.id,
            side=order.side,
            amount=filled,
            price=order.price,
            fee=fee,
            status=order.status,
        )
        return trade

    # ── Portfolio ─────────────────────────────────────────────

    def balances(self) -> Balances:
        return self.ledger.balances()

    def trade_history(self) -> tuple[FilledTrade, ...]:
        return self.ledger.trade_history()
