import pytest
import requests

import quote_source
from grader import FundamentalsSnapshot
from quote_source import (
    Quote,
    SymbolNotFound,
    UpstreamError,
    YahooQuoteSource,
    YFinanceQuoteSource,
    build_quote_source,
    quote_from_yahoo,
)

AAPL_RESULT = {
    'symbol': 'AAPL',
    'longName': 'Apple Inc.',
    'shortName': 'Apple',
    'fullExchangeName': 'NasdaqGS',
    'currency': 'USD',
    'regularMarketPrice': 189.5,
    'regularMarketChangePercent': -0.42,
    'trailingPE': 29.4,
    'forwardPE': 26.1,
    'epsTrailingTwelveMonths': 6.43,
    'regularMarketVolume': 51234567,
    'marketCap': 2950000000000,
}


class _FakeResponse:
    def __init__(self, payload=None, status=200, bad_json=False):
        self._payload = payload
        self.status_code = status
        self._bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} Server Error')

    def json(self):
        if self._bad_json:
            raise ValueError('Expecting value')
        return self._payload


class _FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({'url': url, 'params': params, 'timeout': timeout})
        if self.error is not None:
            raise self.error
        return self.response


def test_quote_from_yahoo_maps_fields() -> None:
    quote = quote_from_yahoo(AAPL_RESULT, 'AAPL')
    assert quote == Quote(
        symbol='AAPL',
        name='Apple Inc.',
        exchange='NasdaqGS',
        currency='USD',
        price=189.5,
        change=-0.42,
        pe=29.4,
        eps=6.43,
        volume=51234567,
        market_cap=2950000000000,
    )
    assert quote.fundamentals == FundamentalsSnapshot(
        pe_ratio=29.4, eps=6.43, market_cap=2950000000000, volume=51234567,
    )


def test_quote_from_yahoo_falls_back_to_forward_pe_and_short_name() -> None:
    raw = {'trailingPE': 0, 'forwardPE': 18.2, 'shortName': 'Maybank'}
    quote = quote_from_yahoo(raw, '1155.KL')
    assert quote.symbol == '1155.KL'
    assert quote.pe == 18.2
    assert quote.name == 'Maybank'


def test_quote_from_yahoo_treats_zero_and_junk_as_missing() -> None:
    raw = {
        'symbol': 'XYZ',
        'regularMarketPrice': 0,
        'epsTrailingTwelveMonths': float('nan'),
        'marketCap': -5,
        'regularMarketVolume': 'n/a',
        'trailingPE': float('inf'),
    }
    quote = quote_from_yahoo(raw, 'XYZ')
    assert quote.price is None
    assert quote.eps is None
    assert quote.market_cap is None
    assert quote.volume is None
    assert quote.pe is None
    assert quote.fundamentals == FundamentalsSnapshot()


def test_yahoo_source_returns_first_result() -> None:
    session = _FakeSession(_FakeResponse({'quoteResponse': {'result': [AAPL_RESULT], 'error': None}}))
    source = YahooQuoteSource(timeout=3, session=session)
    quote = source.fetch_quote('AAPL')
    assert quote.name == 'Apple Inc.'
    assert session.calls[0]['params'] == {'symbols': 'AAPL'}
    assert session.calls[0]['timeout'] == 3


def test_yahoo_source_fetch_fundamentals() -> None:
    session = _FakeSession(_FakeResponse({'quoteResponse': {'result': [AAPL_RESULT]}}))
    snapshot = YahooQuoteSource(session=session).fetch_fundamentals('AAPL')
    assert snapshot.pe_ratio == 29.4
    assert snapshot.market_cap == 2950000000000


def test_yahoo_source_empty_result_is_not_found() -> None:
    session = _FakeSession(_FakeResponse({'quoteResponse': {'result': []}}))
    with pytest.raises(SymbolNotFound):
        YahooQuoteSource(session=session).fetch_quote('NOPE')


@pytest.mark.parametrize(
    'session',
    [
        _FakeSession(error=requests.Timeout('read timed out')),
        _FakeSession(error=requests.ConnectionError('connection refused')),
        _FakeSession(_FakeResponse(status=502)),
        _FakeSession(_FakeResponse(bad_json=True)),
        _FakeSession(_FakeResponse(['AAPL'])),
        _FakeSession(_FakeResponse({'quoteResponse': 'oops'})),
        _FakeSession(_FakeResponse({'quoteResponse': {'result': {'symbol': 'AAPL'}}})),
        _FakeSession(_FakeResponse({'quoteResponse': {'result': ['AAPL']}})),
    ],
)
def test_yahoo_source_failures_raise_upstream_error(session) -> None:
    with pytest.raises(UpstreamError):
        YahooQuoteSource(session=session).fetch_quote('AAPL')


def test_yfinance_source_uses_ticker_info(monkeypatch) -> None:
    class _FakeTicker:
        def __init__(self, symbol):
            self.info = dict(AAPL_RESULT, symbol=symbol, quoteType='EQUITY')

    class _FakeYf:
        Ticker = _FakeTicker

    monkeypatch.setattr(quote_source, 'yf', _FakeYf)
    quote = YFinanceQuoteSource().fetch_quote('AAPL')
    assert quote.symbol == 'AAPL'
    assert quote.eps == 6.43


def test_yfinance_source_unknown_symbol(monkeypatch) -> None:
    class _FakeTicker:
        def __init__(self, symbol):
            self.info = {'trailingPegRatio': None}

    class _FakeYf:
        Ticker = _FakeTicker

    monkeypatch.setattr(quote_source, 'yf', _FakeYf)
    with pytest.raises(SymbolNotFound):
        YFinanceQuoteSource().fetch_quote('NOPE')


def test_yfinance_http_404_is_not_found(monkeypatch) -> None:
    class _FakeTicker:
        def __init__(self, symbol):
            pass

        @property
        def info(self):
            raise requests.HTTPError('404 Client Error: Not Found for url: https://query2.finance.yahoo.com/v10/finance/quoteSummary/NOPE')

    class _FakeYf:
        Ticker = _FakeTicker

    monkeypatch.setattr(quote_source, 'yf', _FakeYf)
    with pytest.raises(SymbolNotFound):
        YFinanceQuoteSource().fetch_quote('NOPE')


def test_yfinance_error_response_status_404_is_not_found(monkeypatch) -> None:
    class _Response:
        status_code = 404

    class _FakeTicker:
        def __init__(self, symbol):
            pass

        @property
        def info(self):
            raise requests.HTTPError('Client Error', response=_Response())

    class _FakeYf:
        Ticker = _FakeTicker

    monkeypatch.setattr(quote_source, 'yf', _FakeYf)
    with pytest.raises(SymbolNotFound):
        YFinanceQuoteSource().fetch_quote('NOPE')


def test_quote_rejects_out_of_domain_fundamentals() -> None:
    with pytest.raises(ValueError):
        Quote(symbol='BAD', market_cap=-1)
    with pytest.raises(ValueError):
        Quote(symbol='BAD', pe=float('nan'))


def test_yfinance_source_wraps_errors(monkeypatch) -> None:
    class _FakeTicker:
        def __init__(self, symbol):
            pass

        @property
        def info(self):
            raise RuntimeError('Too Many Requests. Rate limited.')

    class _FakeYf:
        Ticker = _FakeTicker

    monkeypatch.setattr(quote_source, 'yf', _FakeYf)
    with pytest.raises(UpstreamError, match='Rate limited'):
        YFinanceQuoteSource().fetch_quote('AAPL')


def test_build_quote_source_by_name() -> None:
    assert isinstance(build_quote_source('yahoo', timeout=5), YahooQuoteSource)
    assert isinstance(build_quote_source('YFinance'), YFinanceQuoteSource)
    assert build_quote_source('yahoo', timeout=5).timeout == 5


def test_build_quote_source_unknown_name() -> None:
    with pytest.raises(ValueError):
        build_quote_source('bloomberg')
