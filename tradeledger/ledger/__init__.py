"""
Trade ledger + realized P&L over bot offer history.

This package is intentionally split into:
- models: immutable trade/event shapes used by the calculators
- currency: keys + metal normalization and key price sanity checks
- sanitize: record parsing, timestamp resolution, strict ordering
- counterparty: owner trade exclusion
- cumulative: running profit series
- fifo: per-item FIFO matching (pure functions, deterministic)
"""
