"""Fact extraction.

This package turns action effects into typed sink records through a
registry that maps each versioned action kind to one pure handler.
"""
