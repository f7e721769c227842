"""Domain events emitted by the cache manager."""
