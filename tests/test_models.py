"""
Tests for dataset records and queries.
"""

import pandas as pd
import pytest

from data.models import (
    RATE_COLUMNS,
    Currency,
    Dataset,
    Exchanger,
    MemberStats,
    ParseStats,
    Rate,
    RecordKind,
)


def make_rate(from_id, to_id, exchanger_id, give=1.0, receive=2.0, reserve="0"):
    return Rate(
        from_currency_id=from_id,
        to_currency_id=to_id,
        exchanger_id=exchanger_id,
        rate_give=give,
        rate_receive=receive,
        rate=give / receive,
        reserve=reserve,
    )


@pytest.fixture
def dataset():
    rates = [make_rate(1, 2, 5), make_rate(1, 2, 6, give=3.0), make_rate(2, 1, 5)]
    table = {}
    for rate in rates:
        table.setdefault(rate.from_currency_id, {}).setdefault(rate.to_currency_id, {})[
            rate.exchanger_id
        ] = rate
    return Dataset(
        currencies={1: Currency(1, "USD"), 2: Currency(2, "EUR")},
        exchangers={5: Exchanger(5, "A"), 6: Exchanger(6, "B")},
        rates=table,
    )


class TestRate:
    """Tests for the Rate record."""

    def test_triple(self):
        assert make_rate(1, 2, 5).triple == (1, 2, 5)

    def test_to_dict(self):
        d = make_rate(1, 2, 5, reserve="100").to_dict()
        assert list(d) == RATE_COLUMNS
        assert d["reserve"] == "100"
        assert d["rate"] == 0.5

    def test_frozen(self):
        rate = make_rate(1, 2, 5)
        with pytest.raises(AttributeError):
            rate.rate = 2.0


class TestDataset:
    """Tests for Dataset queries."""

    def test_lookup_kinds(self, dataset):
        assert dataset.lookup(1) == Currency(1, "USD")
        assert dataset.lookup(6, RecordKind.EXCHANGERS) == Exchanger(6, "B")
        assert set(dataset.lookup(2, "rates")) == {1}

    def test_lookup_missing(self, dataset):
        assert dataset.lookup(42, "exchangers") is None

    def test_get_rate(self, dataset):
        assert dataset.get_rate(1, 2, 6).rate_give == 3.0
        assert dataset.get_rate(1, 2, 7) is None
        assert dataset.get_rate(9, 9, 9) is None

    def test_rate_count_and_iter(self, dataset):
        assert dataset.rate_count == 3
        assert [r.triple for r in dataset.iter_rates()] == [(1, 2, 5), (1, 2, 6), (2, 1, 5)]

    def test_rates_frame(self, dataset):
        df = dataset.rates_frame()

        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == RATE_COLUMNS
        assert len(df) == 3
        assert df.loc[1, "rate"] == pytest.approx(1.5)

    def test_read_only_views(self, dataset):
        """Test that the read-only copy rejects writes at every level."""
        view = dataset.read_only()

        with pytest.raises(TypeError):
            view.currencies[3] = Currency(3, "GBP")
        with pytest.raises(TypeError):
            view.rates[1][2][9] = make_rate(1, 2, 9)
        with pytest.raises(TypeError):
            view.rates_between(9, 9)[5] = make_rate(9, 9, 5)
        assert view.get_rate(1, 2, 6) is dataset.get_rate(1, 2, 6)
        assert view.rate_count == 3

    def test_rates_frame_empty(self):
        df = Dataset(currencies={}, exchangers={}, rates={}).rates_frame()
        assert df.empty
        assert list(df.columns) == RATE_COLUMNS


class TestParseStats:
    """Tests for skipped row counters."""

    def test_total_skipped(self):
        stats = ParseStats(
            currencies=MemberStats(parsed=10, skipped=1),
            exchangers=MemberStats(parsed=5, skipped=0),
            rates=MemberStats(parsed=100, skipped=7),
        )
        assert stats.total_skipped == 8
