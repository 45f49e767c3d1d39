"""Caching Service Implementation.

Provides the diskcache-backed implementation of the CacheService interface,
used to memoize availability-domain lookups between runs.
Bounded Context: Cache Management
"""
