"""Tests for the market registry and environment-driven settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from cotscope.config.markets import (
    COMMODITY,
    CURRENCY,
    MARKETS,
    MarketConfig,
    get_market_by_cftc_code,
    get_markets,
    path_safe,
)
from cotscope.config.settings import configured_markets, resolve_data_dir


# ---------------------------------------------------------------------------
# Registry completeness and structure
# ---------------------------------------------------------------------------


class TestMarketRegistry:
    """Verify all ten markets are present with valid structural fields."""

    EXPECTED_SYMBOLS = {
        "EUR/USD", "GBP/USD", "USD/JPY", "AUD/USD", "USD/CAD",
        "GOLD", "SILVER", "CRUDE", "COPPER", "NATGAS",
    }

    def test_expected_symbols_match(self):
        assert set(MARKETS.keys()) == self.EXPECTED_SYMBOLS

    def test_each_config_symbol_matches_key(self):
        for sym, cfg in MARKETS.items():
            assert isinstance(cfg, MarketConfig)
            assert cfg.symbol == sym

    def test_cftc_codes_unique_six_digits(self):
        codes = [cfg.cftc_code for cfg in MARKETS.values()]
        assert len(set(codes)) == len(codes)
        assert all(len(c) == 6 and c.isdigit() for c in codes)

    def test_currencies_priced_as_forex(self):
        for cfg in MARKETS.values():
            if cfg.category == CURRENCY:
                assert cfg.price_kind == "forex"
                assert cfg.price_symbol.count("/") == 1
            else:
                assert cfg.category == COMMODITY
                assert cfg.price_kind == "equity"

    def test_frozen(self):
        with pytest.raises(AttributeError):
            MARKETS["GOLD"].cftc_code = "000000"

    def test_known_codes(self):
        assert MARKETS["EUR/USD"].cftc_code == "099741"
        assert MARKETS["GOLD"].cftc_code == "088606"
        assert MARKETS["CRUDE"].cftc_code == "067411"


class TestLookups:
    def test_get_markets_all_sorted(self):
        markets = get_markets()
        assert len(markets) == 10
        keys = [(m.category, m.symbol) for m in markets]
        assert keys == sorted(keys)

    def test_get_markets_by_category(self):
        currencies = get_markets([CURRENCY])
        assert len(currencies) == 5
        assert all(m.category == CURRENCY for m in currencies)

    def test_get_market_by_cftc_code(self):
        assert get_market_by_cftc_code("084605").symbol == "SILVER"
        assert get_market_by_cftc_code("000000") is None

    def test_path_safe(self):
        assert path_safe("EUR/USD") == "EUR_USD"
        assert path_safe("GOLD") == "GOLD"


class TestSettings:
    def test_resolve_explicit_dir(self, tmp_path):
        assert resolve_data_dir(tmp_path) == tmp_path

    def test_resolve_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("COTSCOPE_DATA_DIR", str(tmp_path))
        assert resolve_data_dir() == tmp_path

    def test_resolve_default_expands_home(self, monkeypatch):
        monkeypatch.delenv("COTSCOPE_DATA_DIR", raising=False)
        assert resolve_data_dir() == Path("~/.cotscope").expanduser()

    def test_configured_markets_default_all(self, monkeypatch):
        monkeypatch.delenv("COTSCOPE_MARKETS", raising=False)
        assert set(configured_markets()) == set(MARKETS)

    def test_configured_markets_subset_skips_unknown(self, monkeypatch):
        monkeypatch.setenv("COTSCOPE_MARKETS", "GOLD, EUR/USD,PLATINUM,,")
        assert configured_markets() == ["GOLD", "EUR/USD"]
