"""
Gate Exceptions
===============

Errors raised while declaring and building a routing table.

Failures raised by conditions, middleware steps or handlers during
dispatch are never wrapped: they reach the caller of ``dispatch``
exactly as they were raised.
"""

from __future__ import annotations


class GateError(Exception):
    """Base class for all gate errors."""
    pass


class DeclarationError(GateError):
    """
    Invalid declaration.
    
    Raised when a step is added before any pipeline is opened, a
    pipeline name is declared twice, a route references a pipeline
    that was never declared, or duplicate routes are rejected.
    """
    pass


class BuildError(GateError):
    """Router mutated after ``build()`` was called."""
    pass


class ConfigError(GateError):
    """Invalid configuration value."""
    pass
