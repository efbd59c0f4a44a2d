import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Server
HOST = os.getenv('HOST', '0.0.0.0')
PORT = int(os.getenv('PORT', '8080'))
DEBUG = os.getenv('FLASK_DEBUG', '').lower() in ('1', 'true', 'yes')

# Upstream quotes: 'yahoo' (direct v7 quote endpoint) or 'yfinance'
QUOTE_PROVIDER = os.getenv('QUOTE_PROVIDER', 'yahoo')
QUOTE_TIMEOUT = float(os.getenv('QUOTE_TIMEOUT', '10'))
YAHOO_QUOTE_URL = 'https://query1.finance.yahoo.com/v7/finance/quote'

# Ticker name/exchange table
TICKERS_PATH = os.getenv('TICKERS_PATH', os.path.join(BASE_DIR, 'tickers.json'))

# Static web UI
STATIC_DIR = os.path.join(BASE_DIR, 'public')

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
