"""
籌碼集中度 ETL 測試
"""

from datetime import date, timedelta

import pytest

from conftest import START_DATE, make_bars
from feature_engine.repositories.features import ChipFeatureRepository
from feature_engine.services.chip_features import ChipFeatureService, compute_chip_feature
from feature_engine.shared.types import ChipRecord, ChipVolume


def _day(i: int) -> date:
    return START_DATE + timedelta(days=i)


class TestComputeChipFeature:
    def test_five_day_concentration(self):
        foreign = [100, -50, 200, 0, 50]
        volumes = [1000, 2000, 3000, 2500, 1500]
        recent = [
            ChipVolume(date=_day(4 - i), symbol="2330", foreign_net=f, trust_net=0, dealer_net=0, volume=v)
            for i, (f, v) in enumerate(zip(foreign, volumes))
        ]

        row = compute_chip_feature("2330", recent)

        assert row.concentration_5d == pytest.approx(3.00)
        assert row.date == _day(4)

    def test_latest_snapshot_uses_single_day(self):
        recent = [
            ChipVolume(date=_day(2), symbol="2330", foreign_net=10, trust_net=20, dealer_net=-5, volume=100),
            ChipVolume(date=_day(1), symbol="2330", foreign_net=500, trust_net=0, dealer_net=0, volume=100),
            ChipVolume(date=_day(0), symbol="2330", foreign_net=500, trust_net=0, dealer_net=0, volume=100),
        ]

        row = compute_chip_feature("2330", recent)

        assert row.foreign_buy == 10
        assert row.trust_buy == 20
        assert row.dealer_buy == -5
        assert row.total_inst_buy == 25
        # (25 + 500 + 500) / 300 * 100
        assert row.concentration_5d == pytest.approx(341.67)

    def test_no_history(self):
        assert compute_chip_feature("2330", []) is None

    def test_volume_floor(self):
        recent = [ChipVolume(date=_day(0), symbol="2330", foreign_net=3, trust_net=0, dealer_net=0, volume=0)]
        assert compute_chip_feature("2330", recent).concentration_5d == pytest.approx(300.0)


class TestChipFeatureService:
    def test_uses_last_five_joined_days(self, session, seed_prices, seed_chips):
        bars = make_bars("2330", [100.0] * 7)
        bars[5].volume = 0  # 成交量為 0 的日期不列入
        seed_prices(bars)
        seed_chips(
            [
                ChipRecord(date=_day(i), symbol="2330", foreign_net=1000 * (i + 1), trust_net=0, dealer_net=0)
                for i in range(7)
            ]
        )

        result = ChipFeatureService(session).run()

        assert result.processed == 1
        assert result.rows_written == 1
        (row,) = ChipFeatureRepository(session).get("2330")
        # 使用 day 6, 4, 3, 2, 1（跳過 volume=0 的 day 5）
        assert row.date == _day(6)
        assert row.foreign_buy == 7000
        assert row.concentration_5d == pytest.approx((7000 + 5000 + 4000 + 3000 + 2000) / 5000 * 100)

    def test_symbols_without_chips_are_skipped(self, session, seed_prices, seed_chips):
        seed_prices(make_bars("2330", [100.0] * 3) + make_bars("2317", [50.0] * 3))
        seed_chips([ChipRecord(date=_day(0), symbol="2330", foreign_net=10, trust_net=0, dealer_net=0)])

        result = ChipFeatureService(session).run()

        assert result.processed == 1
        assert result.skipped == 1
        assert ChipFeatureRepository(session).count() == 1

    def test_chips_without_price_are_ignored(self, session, seed_prices, seed_chips):
        seed_prices(make_bars("2330", [100.0] * 2))
        seed_chips([ChipRecord(date=_day(10), symbol="2330", foreign_net=10, trust_net=0, dealer_net=0)])

        result = ChipFeatureService(session).run()

        assert result.skipped == 1
        assert ChipFeatureRepository(session).count() == 0
