"""Chart rendering adapters."""
