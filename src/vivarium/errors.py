from __future__ import annotations


class VivariumError(Exception):
    """Base class for errors raised by the simulation package."""


class ConfigurationError(VivariumError, ValueError):
    """A configuration value the world refuses to run with."""
