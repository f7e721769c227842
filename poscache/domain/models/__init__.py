"""Value objects and records shared across the caching subsystem."""
