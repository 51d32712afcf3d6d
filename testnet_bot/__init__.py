"""Testnet wallet automation: scripted on-chain activity per wallet."""

__version__ = "0.1.0"
