"""Fast Tier Implementation.

In-process bounded entry store, the eviction policies that pick its victims,
the durable payload codec and the stats collector.
Bounded Context: Cache Management
"""
