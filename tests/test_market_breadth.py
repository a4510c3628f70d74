"""
大盤廣度聚合測試
"""

import random
from datetime import date, timedelta

import pytest

from conftest import START_DATE, make_bars
from feature_engine.repositories.features import BreadthRepository
from feature_engine.services.market_breadth import (
    MarketBreadthService,
    compute_day_breadth,
    compute_trin,
    fold_adl,
)
from feature_engine.services.technical_features import TechnicalFeatureService
from feature_engine.shared.exceptions import DateOrderError
from feature_engine.shared.types import BreadthInput, DayBreadth

DAY = date(2024, 3, 1)


def _input(symbol, change_pct, close=10.0, volume=100, turnover=None, **mas):
    return BreadthInput(
        date=DAY,
        symbol=symbol,
        close=close,
        volume=volume,
        turnover=turnover,
        change_pct=change_pct,
        **mas,
    )


class TestTrin:
    def test_no_advances_no_declines_is_one(self):
        assert compute_trin(0, 0, 0.0, 0.0) == 1.0

    def test_regular_day(self):
        # (30 / 10) / (6000 / 1000) = 0.5
        assert compute_trin(30, 10, 6000.0, 1000.0) == pytest.approx(0.5)

    def test_clamped_high(self):
        assert compute_trin(1, 500, 1.0, 1e9) == 8.0

    def test_clamped_low(self):
        assert compute_trin(500, 1, 1e9, 0.0) == 0.1

    def test_always_bounded(self):
        rng = random.Random(20240301)
        for _ in range(2000):
            up = rng.choice([0, rng.randint(0, 1000)])
            down = rng.choice([0, rng.randint(0, 1000)])
            up_t = rng.choice([0.0, rng.uniform(0, 1e10)])
            down_t = rng.choice([0.0, rng.uniform(0, 1e10)])
            assert 0.1 <= compute_trin(up, down, up_t, down_t) <= 8


class TestDayBreadth:
    def test_classification_and_turnover(self):
        rows = [
            _input("A", 1.5, close=10.0, volume=100, turnover=1200.0),
            _input("B", 0.5, close=20.0, volume=50),  # turnover 缺值 → close * volume
            _input("C", -2.0, close=5.0, volume=300, turnover=1500.0),
            _input("D", 0.0),
            _input("E", None),
        ]

        stats = compute_day_breadth(DAY, rows)

        assert (stats.up_count, stats.down_count, stats.flat_count) == (2, 1, 2)
        assert stats.up_turnover == pytest.approx(2200.0)
        assert stats.down_turnover == pytest.approx(1500.0)
        assert stats.up_volume == 150
        assert stats.down_volume == 300
        assert stats.total_stocks == 5
        assert stats.trin == pytest.approx(round((2 / 1) / (2200 / 1500), 3))

    def test_ma_breadth(self):
        rows = [
            _input("A", 1.0, close=11.0, ma5=10.0, ma20=12.0),
            _input("B", 1.0, close=9.0, ma5=10.0, ma20=8.0),
            _input("C", 1.0, close=9.0, ma5=10.0),
            _input("D", 1.0, close=9.0, ma5=0.0),
        ]

        stats = compute_day_breadth(DAY, rows)

        assert stats.ma5_breadth == pytest.approx(33.33)
        assert stats.ma20_breadth == pytest.approx(50.0)
        assert stats.ma60_breadth == 0.0
        assert stats.ma120_breadth == 0.0

    def test_empty_day_emits_defaults(self):
        stats = compute_day_breadth(DAY, [])

        assert stats.total_stocks == 0
        assert stats.up_count == stats.down_count == stats.flat_count == 0
        assert stats.trin == 1.0
        assert stats.ma20_breadth == 0.0


class TestFoldAdl:
    def _days(self, nets: list[tuple[int, int]]) -> list[DayBreadth]:
        return [
            DayBreadth(date=DAY + timedelta(days=i), up_count=up, down_count=down)
            for i, (up, down) in enumerate(nets)
        ]

    def test_running_sum(self):
        rows = fold_adl(self._days([(10, 5), (3, 8), (7, 7), (0, 4)]))
        assert [r.adl for r in rows] == [5, 0, 0, -4]

    def test_replay_is_identical(self):
        days = self._days([(10, 5), (3, 8), (7, 1)])
        assert fold_adl(days) == fold_adl(days)

    def test_out_of_order_rejected(self):
        days = self._days([(1, 0), (2, 0), (3, 0)])
        with pytest.raises(DateOrderError):
            fold_adl([days[0], days[2], days[1]])

    def test_duplicate_date_rejected(self):
        day = self._days([(1, 0)])[0]
        with pytest.raises(DateOrderError):
            fold_adl([day, day])

    def test_keeps_cross_sectional_fields(self):
        (row,) = fold_adl([DayBreadth(date=DAY, up_count=2, down_count=1, trin=0.75, total_stocks=3)])
        assert row.trin == 0.75
        assert row.total_stocks == 3
        assert row.adl == 1


class TestMarketBreadthService:
    def test_one_row_per_date_with_cumulative_adl(self, session, seed_prices):
        seed_prices(
            make_bars("2330", [100.0, 101.0, 102.0, 101.0])
            + make_bars("2317", [50.0, 49.0, 48.0, 49.0])
            + make_bars("2454", [80.0, 81.0, 80.0, 79.0])
        )
        TechnicalFeatureService(session).run()

        result = MarketBreadthService(session).run()
        rows = BreadthRepository(session).get()

        assert result.rows_written == 4
        assert [r.date for r in rows] == [START_DATE + timedelta(days=i) for i in range(4)]
        # 每日淨上漲家數：0, +1, -1, -1
        assert [r.adl for r in rows] == [0, 1, 0, -1]
        assert rows[0].flat_count == 3

    def test_rerun_restarts_accumulator(self, session, seed_prices):
        seed_prices(make_bars("2330", [10.0, 11.0, 12.0]))
        service = MarketBreadthService(session)

        service.run()
        first = BreadthRepository(session).get()
        service.run()
        second = BreadthRepository(session).get()

        assert first == second
        assert [r.adl for r in second] == [0, 1, 2]

    def test_non_positive_close_excluded(self, session, seed_prices):
        bars = make_bars("2330", [10.0, 11.0]) + make_bars("2317", [10.0, 12.0])
        bars[-1].close = 0.0
        seed_prices(bars)

        MarketBreadthService(session).run()
        rows = BreadthRepository(session).get()

        assert rows[1].total_stocks == 1
        assert rows[1].up_count == 1

    def test_date_without_valid_close_still_emitted(self, session, seed_prices):
        bars = make_bars("2330", [10.0, 11.0, 12.0])
        bars[1].close = 0.0
        seed_prices(bars)

        MarketBreadthService(session).run()
        rows = BreadthRepository(session).get()

        assert len(rows) == 3
        assert rows[1].total_stocks == 0
        assert rows[1].trin == 1.0
