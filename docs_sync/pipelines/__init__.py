"""Docs sync pipeline.

Discover -> fetch -> rewrite -> validate -> store, for one GitHub directory
per run. Records are keyed by their canonical metadata URL.
"""
