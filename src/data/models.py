"""
Records parsed from the BestChange bundle.

All records are built once per bundle; a `Dataset` is never partially
updated.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

import pandas as pd

RATE_COLUMNS = [
    "from_currency_id",
    "to_currency_id",
    "exchanger_id",
    "rate_give",
    "rate_receive",
    "rate",
    "reserve",
]


class RecordKind(str, Enum):
    """Record collections accepted by `Dataset.lookup`."""

    CURRENCIES = "currencies"
    EXCHANGERS = "exchangers"
    RATES = "rates"


@dataclass(frozen=True)
class Currency:
    """A currency (or payment system) listed by BestChange."""

    id: int
    name: str


@dataclass(frozen=True)
class Exchanger:
    """An exchange service listed by BestChange."""

    id: int
    name: str


@dataclass(frozen=True)
class Rate:
    """
    One exchanger's offer for a currency pair.

    Attributes:
        from_currency_id: Currency the client gives
        to_currency_id: Currency the client receives
        exchanger_id: Exchanger making the offer
        rate_give: Amount given
        rate_receive: Amount received for `rate_give`
        rate: rate_give / rate_receive
        reserve: Vendor reserve figure, passed through unchanged
    """

    from_currency_id: int
    to_currency_id: int
    exchanger_id: int
    rate_give: float
    rate_receive: float
    rate: float
    reserve: str

    @property
    def triple(self) -> tuple[int, int, int]:
        return (self.from_currency_id, self.to_currency_id, self.exchanger_id)

    def to_dict(self) -> dict[str, Any]:
        return {column: getattr(self, column) for column in RATE_COLUMNS}


@dataclass
class Metadata:
    """Bundle descriptor values (bm_info.dat)."""

    version: str = ""
    last_update: datetime | None = None
    extra: dict[str, str] = field(default_factory=dict)


@dataclass
class MemberStats:
    """Row counts for one parsed member."""

    parsed: int = 0
    skipped: int = 0


@dataclass
class ParseStats:
    """Row counts for every parsed member of a bundle."""

    currencies: MemberStats = field(default_factory=MemberStats)
    exchangers: MemberStats = field(default_factory=MemberStats)
    rates: MemberStats = field(default_factory=MemberStats)

    @property
    def total_skipped(self) -> int:
        return self.currencies.skipped + self.exchangers.skipped + self.rates.skipped


RateTable = dict[int, dict[int, dict[int, Rate]]]
RateView = Mapping[int, Mapping[int, Mapping[int, Rate]]]

_NO_OFFERS: Mapping[int, Rate] = MappingProxyType({})


@dataclass
class Dataset:
    """
    Everything parsed from a single bundle.

    Attributes:
        currencies: Currency by id
        exchangers: Exchanger by id, in ascending id order
        rates: Rate by from-currency id, to-currency id, exchanger id
        metadata: Bundle version and last update time
        stats: Parsed and skipped row counts
    """

    currencies: Mapping[int, Currency]
    exchangers: Mapping[int, Exchanger]
    rates: RateView
    metadata: Metadata = field(default_factory=Metadata)
    stats: ParseStats = field(default_factory=ParseStats)

    def lookup(self, record_id: int, kind: RecordKind | str = RecordKind.CURRENCIES) -> Any | None:
        """
        Find a record by id.

        For `rates` the id is a from-currency id and the result is the
        nested to-currency -> exchanger -> Rate mapping.

        Args:
            record_id: Record id
            kind: One of "currencies", "exchangers", "rates"

        Returns:
            The record, or None if there is no record with this id

        Raises:
            ValueError: Unknown kind
        """
        kind = RecordKind(kind)
        if kind is RecordKind.CURRENCIES:
            return self.currencies.get(record_id)
        if kind is RecordKind.EXCHANGERS:
            return self.exchangers.get(record_id)
        return self.rates.get(record_id)

    def rates_between(self, from_currency_id: int, to_currency_id: int) -> Mapping[int, Rate]:
        """All offers for a currency pair, keyed by exchanger id."""
        return self.rates.get(from_currency_id, {}).get(to_currency_id, _NO_OFFERS)

    def read_only(self) -> "Dataset":
        """
        Copy of this dataset whose record mappings cannot be modified.

        The copy wraps the same records in `MappingProxyType` views at every
        level of the rate table; nothing is duplicated.
        """
        return replace(
            self,
            currencies=MappingProxyType(self.currencies),
            exchangers=MappingProxyType(self.exchangers),
            rates=MappingProxyType(
                {
                    from_id: MappingProxyType(
                        {to_id: MappingProxyType(offers) for to_id, offers in by_to.items()}
                    )
                    for from_id, by_to in self.rates.items()
                }
            ),
        )

    def get_rate(
        self,
        from_currency_id: int,
        to_currency_id: int,
        exchanger_id: int,
    ) -> Rate | None:
        return self.rates_between(from_currency_id, to_currency_id).get(exchanger_id)

    def iter_rates(self):
        """Yield every Rate in from -> to -> exchanger order."""
        for by_to in self.rates.values():
            for by_exchanger in by_to.values():
                yield from by_exchanger.values()

    @property
    def rate_count(self) -> int:
        return sum(
            len(by_exchanger) for by_to in self.rates.values() for by_exchanger in by_to.values()
        )

    def rates_frame(self) -> pd.DataFrame:
        """
        Flatten the rate table into a DataFrame.

        Returns:
            One row per (from, to, exchanger) triple with RATE_COLUMNS
        """
        return pd.DataFrame([rate.to_dict() for rate in self.iter_rates()], columns=RATE_COLUMNS)
