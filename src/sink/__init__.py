"""Sink staging and bulk loading.

This package encodes extracted records into chunk files, rotates and
flushes staging buffers, and hands completed chunks to a bulk loader.
"""
