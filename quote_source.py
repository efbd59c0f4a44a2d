"""
Upstream quote sources
======================
A QuoteSource fetches one symbol's quote from a market-data provider and
hands back a Quote. Two providers are available:
- Yahoo Finance v7 quote endpoint, called directly with requests
- yfinance, which wraps the same Yahoo data with its own session handling

Failures are raised, never returned:
- SymbolNotFound: the provider has no quote for the symbol
- UpstreamError: network error, timeout, bad status or unreadable payload
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import requests
import yfinance as yf

from config import QUOTE_TIMEOUT, YAHOO_QUOTE_URL
from grader import FundamentalsSnapshot

# yfinance is noisy about symbols without fundamentals
logging.getLogger('yfinance').setLevel(logging.CRITICAL)

logger = logging.getLogger(__name__)


class QuoteSourceError(Exception):
    """Base class for upstream quote failures."""


class SymbolNotFound(QuoteSourceError):
    def __init__(self, symbol):
        super().__init__(f'no quote for {symbol}')
        self.symbol = symbol


class UpstreamError(QuoteSourceError):
    pass


@dataclass(frozen=True)
class Quote:
    symbol: str
    name: Optional[str] = None
    exchange: Optional[str] = None
    currency: Optional[str] = None
    price: Optional[float] = None
    change: Optional[float] = None
    pe: Optional[float] = None
    eps: Optional[float] = None
    volume: Optional[float] = None
    market_cap: Optional[float] = None

    def __post_init__(self):
        # raises ValueError for out-of-domain fundamentals
        self.fundamentals

    @property
    def fundamentals(self) -> FundamentalsSnapshot:
        return FundamentalsSnapshot(
            pe_ratio=self.pe,
            eps=self.eps,
            market_cap=self.market_cap,
            volume=self.volume,
        )


# =============================================================================
# FIELD HELPERS
# =============================================================================

def _number(value):
    """Finite non-zero number, else None (zero counts as missing upstream)"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or not value:
        return None
    return value


def _text(value):
    return value if isinstance(value, str) and value else None


def _is_not_found(error):
    """Newer yfinance raises an HTTP 404 for unknown symbols instead of returning empty info"""
    response = getattr(error, 'response', None)
    if getattr(response, 'status_code', None) == 404:
        return True
    message = str(error).lower()
    return '404' in message or 'not found' in message


def quote_from_yahoo(raw: dict, requested_symbol: str) -> Quote:
    """
    Build a Quote from a Yahoo quote record (v7 result or yfinance info).

    P/E prefers trailing and falls back to forward; the name prefers the
    long name over the short one.
    """
    market_cap = _number(raw.get('marketCap'))
    if market_cap is not None and market_cap < 0:
        market_cap = None

    return Quote(
        symbol=_text(raw.get('symbol')) or requested_symbol,
        name=_text(raw.get('longName')) or _text(raw.get('shortName')),
        exchange=_text(raw.get('fullExchangeName')),
        currency=_text(raw.get('currency')),
        price=_number(raw.get('regularMarketPrice')),
        change=_number(raw.get('regularMarketChangePercent')),
        pe=_number(raw.get('trailingPE')) or _number(raw.get('forwardPE')),
        eps=_number(raw.get('epsTrailingTwelveMonths')),
        volume=_number(raw.get('regularMarketVolume')),
        market_cap=market_cap,
    )


# =============================================================================
# SOURCES
# =============================================================================

class QuoteSource(ABC):
    """Fetches a single symbol's quote from an upstream provider."""

    name = 'base'

    @abstractmethod
    def fetch_quote(self, symbol: str) -> Quote:
        """Return the quote for symbol or raise SymbolNotFound / UpstreamError."""

    def fetch_fundamentals(self, symbol: str) -> FundamentalsSnapshot:
        return self.fetch_quote(symbol).fundamentals


class YahooQuoteSource(QuoteSource):
    """Yahoo Finance v7 quote endpoint over plain HTTP"""

    name = 'yahoo'

    def __init__(self, timeout=QUOTE_TIMEOUT, url=YAHOO_QUOTE_URL, session=None):
        self.timeout = timeout
        self.url = url
        self.session = session or requests

    def fetch_quote(self, symbol: str) -> Quote:
        headers = {
            'User-Agent': 'Mozilla/5.0',
            'Accept': 'application/json'
        }

        try:
            response = self.session.get(self.url, params={'symbols': symbol}, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise UpstreamError(str(e)) from e
        except ValueError as e:
            raise UpstreamError(f'invalid JSON from Yahoo: {e}') from e

        if not isinstance(data, dict):
            raise UpstreamError('unexpected payload from Yahoo')

        quote_response = data.get('quoteResponse') or {}
        if not isinstance(quote_response, dict):
            raise UpstreamError('unexpected payload from Yahoo')

        results = quote_response.get('result') or []
        if not isinstance(results, list):
            raise UpstreamError('unexpected payload from Yahoo')
        if not results:
            raise SymbolNotFound(symbol)
        if not isinstance(results[0], dict):
            raise UpstreamError('unexpected payload from Yahoo')

        return quote_from_yahoo(results[0], symbol)


class YFinanceQuoteSource(QuoteSource):
    """Same Yahoo fields, fetched through yfinance.Ticker().info"""

    name = 'yfinance'

    def __init__(self, timeout=QUOTE_TIMEOUT):
        # informational only, yfinance manages its own HTTP session
        self.timeout = timeout

    def fetch_quote(self, symbol: str) -> Quote:
        try:
            info = yf.Ticker(symbol).info
        except Exception as e:
            if _is_not_found(e):
                raise SymbolNotFound(symbol) from e
            raise UpstreamError(str(e)) from e

        # yfinance returns a near-empty dict for unknown symbols
        if not info or not (info.get('quoteType') or info.get('regularMarketPrice')):
            raise SymbolNotFound(symbol)

        return quote_from_yahoo(info, symbol)


QUOTE_SOURCES = {
    YahooQuoteSource.name: YahooQuoteSource,
    YFinanceQuoteSource.name: YFinanceQuoteSource,
}


def build_quote_source(name: str, timeout=QUOTE_TIMEOUT) -> QuoteSource:
    try:
        source_cls = QUOTE_SOURCES[name.lower()]
    except KeyError:
        raise ValueError(f'unknown quote provider {name!r}, expected one of {sorted(QUOTE_SOURCES)}') from None
    logger.info('Using %s quote source (timeout %ss)', source_cls.name, timeout)
    return source_cls(timeout=timeout)
