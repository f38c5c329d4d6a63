"""Tests for exchange rate lookup."""

from datetime import datetime, timedelta, timezone, UTC
from decimal import Decimal

import pytest

from ledgerguard.domain.entities import Currency, RateDirection
from ledgerguard.domain.errors import RateUnavailableError, ValidationError
from ledgerguard.domain.fx import FxRateSnapshot, StoreFxRateProvider

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


class TestSnapshot:
    def test_pegged_currencies(self):
        snapshot = FxRateSnapshot(taken_at=NOW)

        assert snapshot.rate_for(Currency.USD, RateDirection.BUY) == Decimal("1")
        assert snapshot.rate_for(Currency.USDT, RateDirection.SELL) == Decimal("1")

    def test_direction_selects_rate(self):
        snapshot = FxRateSnapshot(
            taken_at=NOW,
            buy_rates={Currency.YER: Decimal("530")},
            sell_rates={Currency.YER: Decimal("535")},
        )

        assert snapshot.rate_for(Currency.YER, RateDirection.BUY) == Decimal("530")
        assert snapshot.rate_for(Currency.YER, RateDirection.SELL) == Decimal("535")

    def test_zero_rate_falls_back(self):
        snapshot = FxRateSnapshot(
            taken_at=NOW,
            buy_rates={Currency.SAR: Decimal("0")},
            fallback_rates={Currency.SAR: Decimal("3.75")},
        )

        assert snapshot.rate_for(Currency.SAR, RateDirection.BUY) == Decimal("3.75")

    @pytest.mark.parametrize("fallback", [{}, {Currency.YER: Decimal("0")}, {Currency.YER: Decimal("-1")}])
    def test_no_usable_rate(self, fallback):
        snapshot = FxRateSnapshot(taken_at=NOW, fallback_rates=fallback)

        with pytest.raises(RateUnavailableError, match="YER"):
            snapshot.rate_for(Currency.YER, RateDirection.SELL)

    def test_snapshot_is_itself(self):
        snapshot = FxRateSnapshot(taken_at=NOW)

        assert snapshot.snapshot() is snapshot


class TestStoreProvider:
    def test_latest_rate_at_or_before_now(self, temp_db):
        provider = StoreFxRateProvider(temp_db, clock=lambda: NOW)
        provider.record_rate(Currency.YER, Decimal("520"), Decimal("525"), NOW - timedelta(days=2))
        provider.record_rate(Currency.YER, Decimal("530"), Decimal("535"), NOW - timedelta(hours=1))
        provider.record_rate(Currency.YER, Decimal("600"), Decimal("605"), NOW + timedelta(days=1))

        assert provider.rate_for(Currency.YER, RateDirection.BUY) == Decimal("530")
        assert provider.rate_for(Currency.YER, RateDirection.SELL) == Decimal("535")

    def test_snapshot_is_frozen(self, temp_db):
        clock = [NOW]
        provider = StoreFxRateProvider(temp_db, clock=lambda: clock[0])
        provider.record_rate(Currency.SAR, Decimal("3.75"), Decimal("3.76"), NOW - timedelta(minutes=5))

        snapshot = provider.snapshot()
        clock[0] = NOW + timedelta(hours=1)
        provider.record_rate(Currency.SAR, Decimal("4"), Decimal("4.01"))

        assert snapshot.rate_for(Currency.SAR, RateDirection.BUY) == Decimal("3.75")
        assert provider.rate_for(Currency.SAR, RateDirection.BUY) == Decimal("4")

    def test_fallback_when_no_history(self, temp_db):
        provider = StoreFxRateProvider(temp_db, fallback_rates={Currency.YER: Decimal("530")})

        assert provider.rate_for(Currency.YER, RateDirection.BUY) == Decimal("530")

    def test_missing_rate(self, temp_db):
        with pytest.raises(RateUnavailableError):
            StoreFxRateProvider(temp_db).rate_for(Currency.YER, RateDirection.BUY)

    @pytest.mark.parametrize(
        "currency,buy,sell",
        [
            (Currency.USD, "1", "1"),
            (Currency.YER, "0", "530"),
            (Currency.YER, "530", "-1"),
        ],
    )
    def test_record_rate_validation(self, temp_db, currency, buy, sell):
        with pytest.raises(ValidationError):
            StoreFxRateProvider(temp_db).record_rate(currency, Decimal(buy), Decimal(sell))

    def test_history_newest_first(self, temp_db):
        provider = StoreFxRateProvider(temp_db, clock=lambda: NOW)
        provider.record_rate(Currency.YER, Decimal("520"), Decimal("525"), NOW - timedelta(days=2))
        provider.record_rate(Currency.YER, Decimal("530"), Decimal("535"), NOW - timedelta(days=1))

        history = temp_db.list_fx_rates(Currency.YER)

        assert [rate.buy_rate for rate in history] == [Decimal("530"), Decimal("520")]

    def test_offset_timestamps_compare_in_utc(self, temp_db):
        aden = timezone(timedelta(hours=3))
        provider = StoreFxRateProvider(temp_db, clock=lambda: NOW)
        # 14:00 in Aden is 11:00 UTC, an hour before NOW
        provider.record_rate(Currency.YER, Decimal("530"), Decimal("535"), (NOW - timedelta(hours=1)).astimezone(aden))

        assert provider.snapshot().rate_for(Currency.YER, RateDirection.BUY) == Decimal("530")

        [stored] = temp_db.list_fx_rates(Currency.YER)
        assert stored.recorded_at == NOW - timedelta(hours=1)
        assert stored.recorded_at.tzinfo is not None

    def test_offset_clock_excludes_later_rates(self, temp_db):
        aden = timezone(timedelta(hours=3))
        provider = StoreFxRateProvider(temp_db, clock=lambda: NOW.astimezone(aden))
        provider.record_rate(Currency.YER, Decimal("600"), Decimal("605"), NOW + timedelta(hours=2))

        with pytest.raises(RateUnavailableError):
            provider.rate_for(Currency.YER, RateDirection.BUY)
