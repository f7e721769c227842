"""Core orchestration: the cache manager and the helpers built on it."""
