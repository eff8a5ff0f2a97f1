"""Market registry: canonical configuration for the ten tracked markets.

Each market has a display symbol, a human name, a category (currency or
commodity), the CFTC contract market code used to pull its legacy COT rows,
and the Alpha Vantage symbol used for its daily price series. Commodities are
priced through liquid ETF proxies; currencies through the FX endpoint.
"""

from __future__ import annotations

from dataclasses import dataclass

CURRENCY = "Currency"
COMMODITY = "Commodity"


@dataclass(frozen=True)
class MarketConfig:
    """Immutable configuration for a single tracked market.

    Attributes
    ----------
    symbol : str
        Symbol used throughout the system (e.g., "EUR/USD", "GOLD").
    name : str
        Human-readable market name.
    category : str
        ``"Currency"`` or ``"Commodity"``.
    cftc_code : str
        CFTC contract market code (zero-padded string).
    cftc_market_name : str
        Market name as printed on the CFTC report.
    price_symbol : str
        Alpha Vantage symbol. For currencies this is ``"FROM/TO"``.
    price_kind : str
        ``"forex"`` or ``"equity"`` -- selects the Alpha Vantage endpoint.
    """

    symbol: str
    name: str
    category: str
    cftc_code: str
    cftc_market_name: str
    price_symbol: str
    price_kind: str


MARKETS: dict[str, MarketConfig] = {
    "EUR/USD": MarketConfig(
        symbol="EUR/USD",
        name="Euro / US Dollar",
        category=CURRENCY,
        cftc_code="099741",
        cftc_market_name="EURO FX",
        price_symbol="EUR/USD",
        price_kind="forex",
    ),
    "GBP/USD": MarketConfig(
        symbol="GBP/USD",
        name="British Pound / US Dollar",
        category=CURRENCY,
        cftc_code="096742",
        cftc_market_name="BRITISH POUND",
        price_symbol="GBP/USD",
        price_kind="forex",
    ),
    "USD/JPY": MarketConfig(
        symbol="USD/JPY",
        name="US Dollar / Japanese Yen",
        category=CURRENCY,
        cftc_code="097741",
        cftc_market_name="JAPANESE YEN",
        price_symbol="USD/JPY",
        price_kind="forex",
    ),
    "AUD/USD": MarketConfig(
        symbol="AUD/USD",
        name="Australian Dollar / US Dollar",
        category=CURRENCY,
        cftc_code="232741",
        cftc_market_name="AUSTRALIAN DOLLAR",
        price_symbol="AUD/USD",
        price_kind="forex",
    ),
    "USD/CAD": MarketConfig(
        symbol="USD/CAD",
        name="US Dollar / Canadian Dollar",
        category=CURRENCY,
        cftc_code="090741",
        cftc_market_name="CANADIAN DOLLAR",
        price_symbol="USD/CAD",
        price_kind="forex",
    ),
    "GOLD": MarketConfig(
        symbol="GOLD",
        name="Gold",
        category=COMMODITY,
        cftc_code="088606",
        cftc_market_name="GOLD, 100 TROY OZ",
        price_symbol="GLD",
        price_kind="equity",
    ),
    "SILVER": MarketConfig(
        symbol="SILVER",
        name="Silver",
        category=COMMODITY,
        cftc_code="084605",
        cftc_market_name="SILVER, 5000 TROY OZ",
        price_symbol="SLV",
        price_kind="equity",
    ),
    "CRUDE": MarketConfig(
        symbol="CRUDE",
        name="Crude Oil WTI",
        category=COMMODITY,
        cftc_code="067411",
        cftc_market_name="CRUDE OIL, LIGHT SWEET-WTI",
        price_symbol="USO",
        price_kind="equity",
    ),
    "COPPER": MarketConfig(
        symbol="COPPER",
        name="Copper",
        category=COMMODITY,
        cftc_code="084691",
        cftc_market_name="COPPER - HIGH GRADE",
        price_symbol="CPER",
        price_kind="equity",
    ),
    "NATGAS": MarketConfig(
        symbol="NATGAS",
        name="Natural Gas",
        category=COMMODITY,
        cftc_code="023611",
        cftc_market_name="NATURAL GAS",
        price_symbol="UNG",
        price_kind="equity",
    ),
}


def get_markets(categories: list[str] | None = None) -> list[MarketConfig]:
    """Return all markets belonging to the given categories.

    Parameters
    ----------
    categories : list[str] | None
        Categories to include (e.g., ``["Currency"]``). None selects all.

    Returns
    -------
    list[MarketConfig]
        Sorted by category then symbol for deterministic ordering.
    """
    return sorted(
        [
            m for m in MARKETS.values()
            if categories is None or m.category in categories
        ],
        key=lambda m: (m.category, m.symbol),
    )


def get_market_by_cftc_code(code: str) -> MarketConfig | None:
    """Look up a market by its CFTC contract market code."""
    for market in MARKETS.values():
        if market.cftc_code == code:
            return market
    return None


def path_safe(symbol: str) -> str:
    """Return a filesystem-safe form of a market symbol (``EUR/USD`` -> ``EUR_USD``)."""
    return symbol.replace("/", "_")
