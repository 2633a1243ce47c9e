"""
Stock Kernel - Inventory Ledger Engine

A transactional stock ledger for finite physical supplies with:
- Non-negative on-hand quantities enforced at every write
- Atomic multi-item consumption tied to a clinical event
- Reversal by compensating entry, never by editing history
- Append-only, immutable ledger (the source of truth)
- Replayable projection with reconciliation reports
"""

__version__ = "0.1.0"
