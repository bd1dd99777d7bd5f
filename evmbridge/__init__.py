"""Cross-chain bridge route planning and transfer tracking for EVM test networks."""

__version__ = "0.1.0"
