"""
Stock Grader Live - Python Backend
==================================
A small Flask gateway in front of Yahoo Finance:
- Looks up a ticker's name and exchange in a local table (tickers.json)
- Fetches a live quote and grades it A-F from P/E, EPS and market cap

Data Sources:
- Yahoo Finance v7 quote endpoint (or yfinance)
- tickers.json for symbol names
"""

import logging
import time

from flask import Flask, jsonify, request, send_from_directory
from flask_cors import CORS

import config
from grader import grade
from quote_source import QuoteSource, QuoteSourceError, SymbolNotFound, build_quote_source
from tickers import TickerTable, load_tickers, normalize_symbol

logger = logging.getLogger(__name__)


def configure_logging(level=config.LOG_LEVEL):
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


# =============================================================================
# RESPONSE SHAPING
# =============================================================================

def build_quote_response(quote, symbol):
    """Quote fields plus the computed grade, in the public JSON shape"""
    result = grade(quote.fundamentals)
    return {
        'symbol': quote.symbol or symbol,
        'name': quote.name,
        'exchange': quote.exchange,
        'currency': quote.currency,
        'price': quote.price,
        'change': quote.change,
        'pe': quote.pe,
        'eps': quote.eps,
        'volume': quote.volume,
        'marketCap': quote.market_cap,
        'grade': result.letter,
        'score': result.score
    }


# =============================================================================
# APP FACTORY
# =============================================================================

def create_app(tickers: TickerTable = None, quote_source: QuoteSource = None) -> Flask:
    """
    Build the Flask app.

    The ticker table and quote source are created once here and shared by
    every request; tests pass their own.
    """
    if tickers is None:
        tickers = load_tickers(config.TICKERS_PATH)
    if quote_source is None:
        quote_source = build_quote_source(config.QUOTE_PROVIDER, timeout=config.QUOTE_TIMEOUT)

    app = Flask(__name__, static_folder=config.STATIC_DIR, static_url_path='')
    CORS(app)
    app.config['TICKERS'] = tickers
    app.config['QUOTE_SOURCE'] = quote_source

    # =========================================================================
    # API ROUTES
    # =========================================================================

    @app.route('/')
    def index():
        """Serve the web UI"""
        return send_from_directory(app.static_folder, 'index.html')

    @app.route('/api/lookup')
    def lookup():
        """Name and exchange for a symbol, from the local table"""
        symbol = normalize_symbol(request.args.get('symbol'))
        if not symbol:
            return jsonify({'error': 'symbol required'}), 400

        entry = tickers.resolve(symbol)
        if entry:
            return jsonify({
                'found': True,
                'symbol': symbol,
                'name': entry.get('name'),
                'exchange': entry.get('exchange')
            })
        return jsonify({'found': False})

    @app.route('/api/quote')
    def get_quote():
        """Live quote with grade and score"""
        symbol = str(request.args.get('symbol') or '').strip().upper()
        if not symbol:
            return jsonify({'error': 'symbol required'}), 400

        try:
            quote = quote_source.fetch_quote(symbol)
        except SymbolNotFound:
            return jsonify({'error': 'not found'}), 404
        except (QuoteSourceError, ValueError) as e:
            logger.error('quote error for %s: %s', symbol, e)
            return jsonify({'error': 'fetch error', 'details': str(e)}), 500

        return jsonify(build_quote_response(quote, symbol))

    @app.route('/health')
    def health():
        """Health check endpoint"""
        return jsonify({'ok': True, 'ts': int(time.time() * 1000)})

    return app


# =============================================================================
# MAIN
# =============================================================================

if __name__ == '__main__':
    configure_logging()
    app = create_app()

    print(f"""
    ╔═══════════════════════════════════════════════════════════╗
    ║            Stock Grader Live - Backend Server             ║
    ╠═══════════════════════════════════════════════════════════╣
    ║  API Endpoints:                                           ║
    ║  • GET  /                        - Web UI                 ║
    ║  • GET  /health                  - Server health check    ║
    ║  • GET  /api/lookup?symbol=AAPL  - Ticker name lookup     ║
    ║  • GET  /api/quote?symbol=AAPL   - Graded live quote      ║
    ╚═══════════════════════════════════════════════════════════╝
    Stock Grader Live server listening on port {config.PORT}
    """)

    if not len(app.config['TICKERS']):
        print("⚠️  Ticker table is empty, /api/lookup will not find anything")
        print(f"   Check TICKERS_PATH ({config.TICKERS_PATH})")
        print("")

    app.run(host=config.HOST, port=config.PORT, debug=config.DEBUG)
