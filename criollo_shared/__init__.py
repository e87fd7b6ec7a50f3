"""
Shared building blocks for the El Criollo backend.

Configuration, logging, database session handling, security primitives,
exceptions and validators used by the REST API and the operations CLI.
"""
