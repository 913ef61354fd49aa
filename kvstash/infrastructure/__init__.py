"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the cache contracts to the outside world (local files, Redis,
configuration sources, the console) by implementing the interfaces defined
in the domain layer.
"""
