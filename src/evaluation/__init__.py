"""Block replay.

This package re-executes recorded actions against the ledger state as of
each block's parent and produces ordered action effects.
"""
