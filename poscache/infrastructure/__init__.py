"""Infrastructure Layer:

Concrete Fast Tier storage, eviction policies, durable store adapters,
configuration, logging and the operator CLI.
"""
