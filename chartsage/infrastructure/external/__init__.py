"""External market data adapters."""
