"""Core Layer: shared cache rules and CLI command orchestration.

Key validation and TTL resolution live here as free functions so every
backend applies them the same way.
"""
