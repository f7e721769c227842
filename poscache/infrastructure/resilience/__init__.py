"""Durable Tier Resilience.

Retry with exponential backoff for best-effort durable writes.
Bounded Context: Cache Resilience
"""
