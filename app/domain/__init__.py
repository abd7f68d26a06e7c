"""
Domain layer for the storefront order backend.

This layer contains business entities, value objects, and domain logic
following Domain-Driven Design principles.
"""
