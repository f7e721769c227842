"""Domain layer: value objects, ports and events for the caching subsystem."""
