"""Wallet Trust Scoring.

Deterministic 0-100 trust scores for blockchain wallets, built from
on-chain activity and token-launch history gathered from multiple
chain-data providers with health tracking and failover.
"""

__version__ = "0.1.0"
