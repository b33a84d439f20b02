"""Exceptions raised by the Synaptic Context Engine."""


class SynapticError(Exception):
    """Base exception for all engine errors."""


class ConfigurationError(SynapticError, ValueError):
    """Raised when an engine option is unknown or outside its valid range."""


class GraphIntegrityError(SynapticError, ValueError):
    """Raised when a structural edit would break graph invariants."""


class PulseInProgressError(SynapticError, RuntimeError):
    """Raised when a pulse is started on a graph that already has one in flight."""


class PulseStateError(SynapticError, RuntimeError):
    """Raised when a pulse operation is called in the wrong stage."""
