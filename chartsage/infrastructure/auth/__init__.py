"""Token validation adapters."""
