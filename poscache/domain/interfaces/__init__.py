"""Domain Interfaces (Ports):

Defines the contracts (Abstract Base Classes) that infrastructure components
must implement. The cache manager depends on these interfaces, not on
concrete stores or policies.
"""
