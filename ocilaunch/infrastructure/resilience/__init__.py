"""API Resilience Implementations.

Contains the persistent too-many-requests waiter that backs off instance
creation after the provider rate limits us.
Bounded Context: API Resilience
"""
