"""Migration pipeline driver.

This package resolves block ranges, scans blocks concurrently with an
ordering barrier, deduplicates reference records, and coordinates the
staging writer and bulk loader for one run.
"""
