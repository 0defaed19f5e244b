"""Read-only ledger access.

This package loads blocks and committed state history from file-backed
ledger stores and answers point-in-time state queries.
"""
