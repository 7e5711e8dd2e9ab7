"""
Core package for shared utilities.

Holds the application settings and the structured logging setup used by the
order engine services and the API layer.
"""
