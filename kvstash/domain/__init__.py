"""Domain Layer: cache contracts, value objects and the error taxonomy.

Nothing in here performs I/O; infrastructure adapters implement the
interfaces defined under `interfaces`.
"""
