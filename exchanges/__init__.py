"""
Exchange Adapters Package

This package contains individual exchange adapter modules.
Each exchange (Bithumb, Upbit, Binance) has its own subfolder with:
- __init__.py: Adapter class implementing ExchangeAdapter
- api_client.py: REST client for market metadata (where the exchange has one)

The modular design allows adding new exchanges without modifying existing code.
"""
