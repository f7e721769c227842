"""Durable Store Adapters.

Concrete implementations of the DurableStore port: in-memory (dev/test),
diskcache-backed and plain file-backed stores.
"""
