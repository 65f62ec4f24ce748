"""Core Application Layer: key validation, namespace resolution and the cache engine.

Connects the domain layer with the infrastructure layer through interfaces.
"""
