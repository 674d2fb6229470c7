"""
dex/ - Quoting layer.

- adapters: one adapter per AMM family
- quoter: QuoteProvider, the uniform "sell X, receive how much" entry point
"""
