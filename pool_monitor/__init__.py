"""
Solana pool monitor: detects liquidity-pool creation transactions delivered
by Helius webhooks, enriches them with DefiLlama and Jupiter data and serves
the results over a small read API.
"""

__version__ = "1.0.0"
