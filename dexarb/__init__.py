"""Round-trip DEX arbitrage opportunity monitor."""

__version__ = "0.1.0"
