"""Exchange rate lookup for non-USD postings.

Rates are quoted as units of currency per 1 USD. USD and USDT are pegged at 1.
The posting engine never reads rates from a global cache: callers take an
``FxRateSnapshot`` from a provider and hand it to the engine explicitly.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from decimal import Decimal
from typing import Callable, Mapping, Optional, Protocol

from ledgerguard.database.base import Database
from ledgerguard.domain.entities import Currency, RateDirection
from ledgerguard.domain.errors import RateUnavailableError, ValidationError, rate_unavailable
from ledgerguard.logging_config import get_logger

logger = get_logger("fx")

ONE = Decimal("1")


class FxRateProvider(Protocol):
    """Anything that can quote a rate for a currency and direction."""

    def rate_for(self, currency: Currency, direction: RateDirection) -> Decimal:
        ...

    def snapshot(self) -> "FxRateSnapshot":
        ...


def _usable(rate: Optional[Decimal]) -> bool:
    return rate is not None and rate > 0


@dataclass(frozen=True)
class FxRateSnapshot:
    """Immutable set of rates resolved at one instant."""

    taken_at: datetime
    buy_rates: Mapping[Currency, Decimal] = field(default_factory=dict)
    sell_rates: Mapping[Currency, Decimal] = field(default_factory=dict)
    fallback_rates: Mapping[Currency, Decimal] = field(default_factory=dict)

    def rate_for(self, currency: Currency, direction: RateDirection) -> Decimal:
        """Return the rate or raise RateUnavailableError.

        A recorded rate of zero or less is treated as missing; the configured
        fallback is used only when it is itself positive.
        """
        if currency.is_usd_pegged:
            return ONE

        rates = self.buy_rates if direction == RateDirection.BUY else self.sell_rates
        rate = rates.get(currency)
        if _usable(rate):
            return rate

        fallback = self.fallback_rates.get(currency)
        if _usable(fallback):
            logger.warning(
                "fx_fallback_rate_used",
                extra={"currency": currency.value, "status": direction.value},
            )
            return fallback

        raise RateUnavailableError(rate_unavailable(currency.value, direction.value))

    def snapshot(self) -> "FxRateSnapshot":
        return self


class StoreFxRateProvider:
    """Resolve rates from the store's rate history.

    Always returns the most recent rate recorded at or before "now".
    """

    def __init__(
        self,
        db: Database,
        fallback_rates: Optional[Mapping[Currency, Decimal]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.fallback_rates = dict(fallback_rates or {})
        self.clock = clock or (lambda: datetime.now(UTC))

    def rate_for(self, currency: Currency, direction: RateDirection) -> Decimal:
        """Look up a single rate; see FxRateSnapshot.rate_for for semantics."""
        return self.snapshot(currencies=(currency,)).rate_for(currency, direction)

    def snapshot(self, currencies: Optional[tuple[Currency, ...]] = None) -> FxRateSnapshot:
        """Resolve the latest buy and sell rate for each non-pegged currency."""
        now = self.clock()
        wanted = currencies or tuple(c for c in Currency if not c.is_usd_pegged)
        buy_rates: dict[Currency, Decimal] = {}
        sell_rates: dict[Currency, Decimal] = {}
        for currency in wanted:
            if currency.is_usd_pegged:
                continue
            latest = self.db.latest_fx_rate(currency, now)
            if latest is None:
                continue
            buy_rates[currency] = latest.buy_rate
            sell_rates[currency] = latest.sell_rate
        return FxRateSnapshot(
            taken_at=now,
            buy_rates=buy_rates,
            sell_rates=sell_rates,
            fallback_rates=dict(self.fallback_rates),
        )

    def record_rate(
        self,
        currency: Currency,
        buy_rate: Decimal,
        sell_rate: Decimal,
        recorded_at: Optional[datetime] = None,
    ) -> int:
        """Append a rate to the history.

        Raises:
            ValidationError: If either rate is not positive, or the
                currency is pegged to USD
        """
        if currency.is_usd_pegged:
            raise ValidationError(f"{currency.value} is pegged to USD and has no rate history")
        if buy_rate <= 0 or sell_rate <= 0:
            raise ValidationError(f"Rates for {currency.value} must be positive")
        return self.db.add_fx_rate(currency, buy_rate, sell_rate, recorded_at or self.clock())
