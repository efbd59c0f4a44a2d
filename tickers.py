"""
Ticker lookup table
===================
Maps a symbol to its company name and exchange using a local JSON file:

    {"AAPL": {"name": "Apple Inc.", "exchange": "NASDAQ"}, ...}

The table is loaded once at startup and handed to the app; it is read-only
after that.
"""

import json
import logging
import re
from types import MappingProxyType
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r'\s+')

# Bursa Malaysia listings are stored without their Yahoo suffix
KL_SUFFIX = '.KL'


def normalize_symbol(raw) -> str:
    """Trim, upper-case and drop any whitespace inside the symbol"""
    symbol = str(raw or '').strip().upper()
    return _WHITESPACE.sub('', symbol)


class TickerTable:
    """Read-only symbol -> {name, exchange} mapping"""

    def __init__(self, entries: Optional[Mapping[str, dict]] = None):
        self._entries = MappingProxyType(dict(entries or {}))

    def __len__(self):
        return len(self._entries)

    def __contains__(self, symbol):
        return symbol in self._entries

    @property
    def entries(self) -> Mapping[str, dict]:
        return self._entries

    def resolve(self, symbol: str) -> Optional[dict]:
        """Find the entry for a normalized symbol, retrying without a .KL suffix."""
        entry = self._entries.get(symbol)
        if entry is None:
            entry = self._entries.get(symbol.replace(KL_SUFFIX, '', 1))
        return entry


def load_tickers(path: str) -> TickerTable:
    """
    Load the ticker table from a JSON file.

    A missing or broken file is not fatal: the lookup endpoint just reports
    every symbol as not found.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning('tickers.json load error: %s', e)
        return TickerTable()

    if not isinstance(data, dict):
        logger.warning('tickers.json load error: expected an object, got %s', type(data).__name__)
        return TickerTable()

    logger.info('Loaded %d tickers from %s', len(data), path)
    return TickerTable(data)
