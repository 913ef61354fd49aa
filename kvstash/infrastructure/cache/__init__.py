"""Cache backend implementations.

Provides concrete implementations of the CacheStore interface: a single
file backend with an in-process snapshot and a Redis adapter.
"""
