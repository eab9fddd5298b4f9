"""Tests for merging one-minute candles into larger candles."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from candle_core.candles.batcher import CandleAggregator, merge_candles
from candle_core.errors import ConfigurationError
from candle_core.models import CandleV1, CandleV2, Trade

T0 = datetime(2015, 2, 14, 23, 57, tzinfo=timezone.utc)

# (open, high, low, close, vwp, volume, trades)
ROWS = [
    (257.19, 257.19, 257.18, 257.18, 257.18559990418294, 0.97206065, 2),
    (257.02, 257.02, 256.98, 256.98, 257.0175849772836, 4.1407478, 2),
    (256.85, 256.99, 256.85, 256.99, 256.9376998467, 6, 6),
    (256.81, 256.82, 256.81, 256.82, 256.815, 4, 2),
    (256.81, 257.02, 256.81, 257.01, 256.94666666666666, 6, 3),
    (257.03, 257.03, 256.33, 256.33, 256.74257263558013, 6.7551178, 6),
    (257.02, 257.47, 257.02, 257.47, 257.26466004728906, 3.7384995300000003, 3),
    (257.47, 257.48, 257.37, 257.38, 257.4277429116875, 8, 6),
    (257.38, 257.45, 257.38, 257.45, 257.3975644932184, 7.97062564, 4),
    (257.46, 257.48, 257.46, 257.48, 257.47333333333336, 7.5, 4),
]


def _candles():
    out = []
    for i, (o, h, l, c, vwp, vol, n) in enumerate(ROWS):
        start = T0 + timedelta(minutes=i)
        out.append(CandleV1(
            start=start, end=start + timedelta(minutes=1),
            open=o, high=h, low=l, close=c, vwp=vwp, volume=vol, trades=n,
        ))
    return out


def _v2_candles():
    first, second = _candles()[:2]
    return [
        CandleV2(
            **first.model_dump(exclude={"version"}),
            buy_volume=0.97206065, buy_trades=2, lag=100,
            raw=[Trade(timestamp=first.start, price=257.19, amount=0.97206065, id="a")],
        ),
        CandleV2(
            **second.model_dump(exclude={"version"}),
            buy_volume=2.0, buy_trades=1, lag=200,
            raw=[Trade(timestamp=second.start, price=257.02, amount=2.0, id="b")],
        ),
    ]


class TestConstruction:
    @pytest.mark.parametrize("size", [0, -1, 2.5, "2", None, True])
    def test_rejects_bad_candle_size(self, size):
        with pytest.raises(ConfigurationError):
            CandleAggregator(size)

    def test_rejects_bad_version(self):
        with pytest.raises(ConfigurationError):
            CandleAggregator(2, version=3)

    def test_defaults_to_version_1(self):
        assert CandleAggregator(2).version == 1

    def test_version_2(self):
        assert CandleAggregator(2, version=2).version == 2


class TestWrite:
    def test_rejects_a_list(self):
        with pytest.raises(TypeError):
            CandleAggregator(2).write(_candles())

    def test_rejects_a_dict(self):
        with pytest.raises(TypeError):
            CandleAggregator(2).write({"open": 1})

    def test_not_enough_candles(self):
        seen = []
        cb = CandleAggregator(2, on_candle=seen.append)
        assert cb.write(_candles()[0]) is None
        assert seen == []

    def test_ten_candles_size_two_emits_five(self):
        seen = []
        cb = CandleAggregator(2, on_candle=seen.append)
        for candle in _candles():
            cb.write(candle)
        assert len(seen) == 5
        assert [c.start for c in seen] == [T0 + timedelta(minutes=m) for m in range(0, 10, 2)]

    def test_ten_candles_size_one_emits_ten(self):
        seen = []
        cb = CandleAggregator(1, on_candle=seen.append)
        for candle in _candles():
            cb.write(candle)
        assert len(seen) == 10

    def test_trailing_partial_group_is_not_emitted(self):
        seen = []
        cb = CandleAggregator(4, on_candle=seen.append)
        for candle in _candles():
            cb.write(candle)
        assert len(seen) == 2
        assert cb.flush() == 2
        assert len(seen) == 2

    def test_returns_merged_candle(self):
        cb = CandleAggregator(2)
        first, second = _candles()[:2]
        assert cb.write(first) is None
        merged = cb.write(second)
        assert merged is not None
        assert merged.start == first.start

    def test_v2_aggregator_rejects_v1_candle(self):
        with pytest.raises(TypeError):
            CandleAggregator(2, version=2).write(_candles()[0])

    def test_v1_aggregator_accepts_v2_candles(self):
        cb = CandleAggregator(2)
        first, second = _v2_candles()
        cb.write(first)
        merged = cb.write(second)
        assert isinstance(merged, CandleV1)


class TestMerge:
    def test_two_candles(self):
        first, second = _candles()[:2]
        merged = merge_candles([first, second])

        assert merged.start == first.start
        assert merged.end == second.end
        assert merged.open == 257.19
        assert merged.high == 257.19
        assert merged.low == 256.98
        assert merged.close == 256.98
        assert merged.volume == pytest.approx(5.1128085)
        assert merged.trades == 4
        expected = (first.vwp * first.volume + second.vwp * second.volume) / (first.volume + second.volume)
        assert merged.vwp == pytest.approx(expected)

    def test_two_v2_candles(self):
        first, second = _v2_candles()
        merged = merge_candles([first, second], version=2)

        assert isinstance(merged, CandleV2)
        assert merged.buy_volume == pytest.approx(2.97206065)
        assert merged.buy_trades == 3
        assert merged.lag == 200
        assert [t.id for t in merged.raw] == ["a", "b"]

    def test_zero_volume_vwp_is_zero(self):
        flat = [c.model_copy(update={"volume": 0.0, "vwp": 0.0}) for c in _candles()[:3]]
        merged = merge_candles(flat)
        assert merged.volume == 0
        assert merged.vwp == 0.0
